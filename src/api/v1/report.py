"""Report generation, conversational editing and workspace endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.error_handler import build_error_response, get_correlation_id
from dependencies.workspace import get_workspace
from schemas.api import ApiResponse
from schemas.report import (
    CopyResult,
    EditRequest,
    SidebarTab,
    TabSelectRequest,
    WorkspaceSnapshot,
)
from services.report_workspace import ReportWorkspace


router = APIRouter(tags=["report"])


@router.get("/workspace", response_model=ApiResponse[WorkspaceSnapshot])
async def get_workspace_state(
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[WorkspaceSnapshot]:
    """Everything the page renders: form, status, transcript and document."""
    return ApiResponse(data=workspace.snapshot(), message="Workspace retrieved")


@router.put("/workspace/tab", response_model=ApiResponse[SidebarTab])
async def select_tab(
    payload: TabSelectRequest,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[SidebarTab]:
    return ApiResponse(data=workspace.select_tab(payload.tab), message="Tab selected")


@router.post(
    "/report/generate",
    response_model=ApiResponse[WorkspaceSnapshot],
    responses={status.HTTP_502_BAD_GATEWAY: {"description": "Generation failed"}},
)
async def generate_report(
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[WorkspaceSnapshot] | JSONResponse:
    """Draft a new report from the current form, starting a fresh session.

    Service failures answer 502 with the alert text as message; the workspace
    status becomes `error` and a new attempt is allowed right away.
    """
    outcome = await workspace.generate()
    if outcome.alert is not None:
        return build_error_response(
            correlation_id=get_correlation_id(),
            error_type="generation_failed",
            message=outcome.alert,
            environment=get_settings().ENVIRONMENT,
            details={"status": outcome.status.value},
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
    return ApiResponse(data=workspace.snapshot(), message="Report generated")


@router.post("/report/edits", response_model=ApiResponse[WorkspaceSnapshot])
async def send_edit(
    payload: EditRequest,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[WorkspaceSnapshot]:
    """Apply an instruction to the current document on the open session.

    A failed edit is still a 200: the failure is reported in the transcript.
    """
    outcome = await workspace.send_edit(payload.instruction)
    return ApiResponse(
        data=workspace.snapshot(),
        message="Document updated" if outcome.succeeded else "Edit failed",
    )


@router.post("/report/copy", response_model=ApiResponse[CopyResult])
async def copy_report(
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[CopyResult]:
    """Return the document for the clipboard and start the copy feedback."""
    document = workspace.copy_document()
    return ApiResponse(
        data=CopyResult(document=document, label=workspace.copy_label),
        message="Document ready to copy",
    )
