"""Project configuration form endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends

from dependencies.workspace import get_workspace
from schemas.api import ApiResponse
from schemas.project import (
    FieldUpdateRequest,
    ProjectField,
    ProjectMetadata,
    Roster,
    RosterEntryRequest,
)
from services.project_form import academic_year_options
from services.report_workspace import ReportWorkspace


router = APIRouter(prefix="/project", tags=["project"])


@router.get("", response_model=ApiResponse[ProjectMetadata])
async def get_project(
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[ProjectMetadata]:
    """Return the current form contents."""
    return ApiResponse(data=workspace.metadata, message="Project metadata retrieved")


@router.get("/academic-years", response_model=ApiResponse[list[str]])
async def list_academic_years() -> ApiResponse[list[str]]:
    """Selectable academic years, starting at the current one."""
    return ApiResponse(
        data=academic_year_options(date.today()),
        message="Academic years retrieved",
    )


@router.put("/fields/{field}", response_model=ApiResponse[ProjectMetadata])
async def update_project_field(
    field: ProjectField,
    payload: FieldUpdateRequest,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[ProjectMetadata]:
    """Set one free-text field of the form."""
    metadata = workspace.update_field(field, payload.value)
    return ApiResponse(data=metadata, message=f"Field '{field.value}' updated")


@router.post("/{roster}/entries", response_model=ApiResponse[ProjectMetadata])
async def add_roster_entry(
    roster: Roster,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[ProjectMetadata]:
    """Append an empty name slot (no-op when the roster is full)."""
    before = len(workspace.metadata.roster(roster))
    metadata = workspace.add_roster_entry(roster)
    added = len(metadata.roster(roster)) > before
    return ApiResponse(
        data=metadata,
        message="Entry added" if added else f"{roster.value} already has {before} entries",
    )


@router.put("/{roster}/entries/{index}", response_model=ApiResponse[ProjectMetadata])
async def set_roster_entry(
    roster: Roster,
    index: int,
    payload: RosterEntryRequest,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[ProjectMetadata]:
    metadata = workspace.set_roster_entry(roster, index, payload.value)
    return ApiResponse(data=metadata, message="Entry updated")


@router.delete("/{roster}/entries/{index}", response_model=ApiResponse[ProjectMetadata])
async def remove_roster_entry(
    roster: Roster,
    index: int,
    workspace: Annotated[ReportWorkspace, Depends(get_workspace)],
) -> ApiResponse[ProjectMetadata]:
    """Remove a name; the last remaining entry is kept."""
    metadata = workspace.remove_roster_entry(roster, index)
    return ApiResponse(data=metadata, message="Entry removed")
