"""Workspace dependency for FastAPI endpoints."""

from datetime import date

from fastapi import Request

from core.config import get_settings
from services.ai.report_client import ReportClient
from services.project_form import default_project_metadata
from services.report_workspace import ReportWorkspace


def create_workspace() -> ReportWorkspace:
    """Build the application's single drafting workspace."""
    settings = get_settings()
    return ReportWorkspace(
        ReportClient(temperature=settings.REPORT_TEMPERATURE),
        default_project_metadata(settings, date.today()),
        copy_feedback_seconds=settings.COPY_FEEDBACK_SECONDS,
    )


def get_workspace(request: Request) -> ReportWorkspace:
    """Return the workspace owned by the running application."""
    workspace: ReportWorkspace = request.app.state.workspace
    return workspace
