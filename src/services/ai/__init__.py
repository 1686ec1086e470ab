"""Init file for AI services."""

from .latex_extraction import extract_latex, split_summary_and_document
from .report_client import ReportClient, ReportSession


__all__ = [
    "ReportClient",
    "ReportSession",
    "extract_latex",
    "split_summary_and_document",
]
