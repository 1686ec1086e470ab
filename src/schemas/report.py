"""Schemas for report generation, the editing transcript and workspace state."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from schemas.project import ProjectMetadata


class GenerationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class SidebarTab(str, Enum):
    CONFIG = "config"
    CHAT = "chat"


class TranscriptEntry(BaseModel):
    """One message of the editing transcript (display only)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: Literal["user", "assistant"]
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class WorkspaceSnapshot(BaseModel):
    """Read-only view of the workspace handed to the presentation layer."""

    status: GenerationStatus
    is_sending: bool
    active_tab: SidebarTab
    metadata: ProjectMetadata
    document: str
    transcript: list[TranscriptEntry]
    has_session: bool
    copy_label: str


class EditRequest(BaseModel):
    """Natural-language instruction for the conversational editor."""

    instruction: str = Field(..., max_length=4000)


class TabSelectRequest(BaseModel):
    tab: SidebarTab


class CopyResult(BaseModel):
    document: str
    label: str
