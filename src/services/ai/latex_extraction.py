"""Recover the LaTeX document and the change summary from raw model output.

Model replies are free-form prose that normally wrap the document in a
markdown code fence. Extraction never fails: when nothing recognisable is
found the raw text is passed through as the document.
"""

from __future__ import annotations

import re


DOCUMENT_START_MARKER = "\\documentclass"
DEFAULT_EDIT_SUMMARY = "Code mis à jour avec succès."

# Non-greedy: the first closing fence ends the block.
_LATEX_BLOCK_RE = re.compile(r"```latex([\s\S]*?)```", re.IGNORECASE)
_ANY_BLOCK_RE = re.compile(r"```([\s\S]*?)```")


def extract_latex(text: str) -> str:
    """Return the LaTeX document carried by `text`.

    Lookup order:
    1. first block fenced as ```latex (tag matched case-insensitively)
    2. first fenced block of any kind; an unrecognised tag stays in the body
    3. the whole trimmed text when it starts with ``\\documentclass``
    4. `text` unchanged

    Blocks whose inner content is empty are skipped.
    """
    match = _LATEX_BLOCK_RE.search(text)
    if match and match.group(1):
        return match.group(1).strip()

    generic_match = _ANY_BLOCK_RE.search(text)
    if generic_match and generic_match.group(1):
        return generic_match.group(1).strip()

    stripped = text.strip()
    if stripped.startswith(DOCUMENT_START_MARKER):
        return stripped
    return text


def split_summary_and_document(text: str) -> tuple[str, str]:
    """Split an edit reply into (summary, document).

    The summary is the reply with every fenced block removed, while the
    document is only the first block found by `extract_latex`.
    """
    document = extract_latex(text)

    summary = _LATEX_BLOCK_RE.sub("", text)
    summary = _ANY_BLOCK_RE.sub("", summary).strip()
    if not summary:
        summary = DEFAULT_EDIT_SUMMARY

    return summary, document
