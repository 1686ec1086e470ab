"""Shared test fixtures for pytest.

ENVIRONMENT is forced to `test` before the application is imported so the
settings loader skips env files and needs no provider credentials.
"""

import asyncio
import os
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient


os.environ["ENVIRONMENT"] = "test"

from main import app
from schemas.project import ProjectMetadata
from services.ai.report_client import ReportSession
from services.report_workspace import ReportWorkspace


LATEX_REPLY = (
    "Here you go:\n```latex\n\\documentclass{article}\n\\begin{document}\n"
    "Intro\n\\end{document}\n```"
)


class FakeDraftingClient:
    """Scripted stand-in for ReportClient; records every call.

    Replies are strings or exceptions (raised instead of returned). When
    `gate` is set, requests wait on it before answering.
    """

    def __init__(
        self,
        initial_reply: str | Exception = LATEX_REPLY,
        edit_replies: list[str | Exception] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.initial_reply = initial_reply
        self.edit_replies = list(edit_replies or [])
        self.gate = gate
        self.sessions: list[ReportSession] = []
        self.initial_calls: list[tuple[ReportSession, ProjectMetadata]] = []
        self.edit_calls: list[tuple[ReportSession, str, str]] = []

    def open_session(self) -> ReportSession:
        session = ReportSession(agent=MagicMock())
        self.sessions.append(session)
        return session

    async def request_initial_document(
        self, session: ReportSession, metadata: ProjectMetadata
    ) -> str:
        self.initial_calls.append((session, metadata))
        return await self._reply(self.initial_reply)

    async def request_edit(
        self, session: ReportSession, current_document: str, instruction: str
    ) -> str:
        self.edit_calls.append((session, current_document, instruction))
        return await self._reply(self.edit_replies.pop(0))

    async def _reply(self, reply: str | Exception) -> str:
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(reply, Exception):
            raise reply
        return reply


def complete_metadata(**overrides: object) -> ProjectMetadata:
    values: dict[str, object] = {
        "university": "Université Mohammed Premier",
        "school": "Ecole Nationale des Sciences Appliquées Oujda",
        "academic_year": "2025-2026",
        "title": "X",
        "student_name": "Salma",
        "supervisors": ["Pr. A", ""],
        "jury_members": ["Pr. B"],
        "program": "Génie Informatique",
        "description": "Y",
        "keywords": "NLP",
        "custom_instructions": "",
    }
    values.update(overrides)
    return ProjectMetadata(**values)


@pytest.fixture
def fake_client_factory() -> Callable[..., FakeDraftingClient]:
    return FakeDraftingClient


@pytest.fixture
def metadata() -> ProjectMetadata:
    return complete_metadata()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def make_workspace(
    metadata: ProjectMetadata, fixed_now: datetime
) -> Callable[..., ReportWorkspace]:
    def _make(
        client: FakeDraftingClient,
        project: ProjectMetadata | None = None,
        clock: Callable[[], float] | None = None,
    ) -> ReportWorkspace:
        return ReportWorkspace(
            client,
            project or metadata,
            copy_feedback_seconds=2.0,
            clock=clock or (lambda: 0.0),
            now=lambda: fixed_now,
        )

    return _make


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def api_client(
    make_workspace: Callable[..., ReportWorkspace],
) -> Generator[Callable[[FakeDraftingClient], TestClient], None, None]:
    """Test client whose workspace talks to a FakeDraftingClient."""
    clients: list[TestClient] = []

    def _build(
        drafting_client: FakeDraftingClient,
        project: ProjectMetadata | None = None,
    ) -> TestClient:
        test_client = TestClient(app)
        test_client.__enter__()
        app.state.workspace = make_workspace(drafting_client, project)
        clients.append(test_client)
        return test_client

    yield _build

    for test_client in clients:
        test_client.__exit__(None, None, None)
