"""Tests for the report drafting workspace (session and state orchestration)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from core.exceptions import (
    EmptyDocumentError,
    EmptyInstructionError,
    MissingProjectFieldsError,
    NoActiveSessionError,
    TabLockedError,
    WorkspaceBusyError,
)
from schemas.project import ProjectField, ProjectMetadata, Roster
from schemas.report import GenerationStatus, SidebarTab
from services.report_workspace import (
    COPY_DONE_LABEL,
    COPY_IDLE_LABEL,
    EDIT_FAILED_MESSAGE,
    GENERATION_FAILED_ALERT,
    INITIAL_ASSISTANT_MESSAGE,
    ReportWorkspace,
)


DOCUMENT = "\\documentclass{article}\n..."
INITIAL_REPLY = f"Here you go:\n```latex\n{DOCUMENT}\n```"
EDITED_DOCUMENT = "\\documentclass{article}\n\\section{Conclusion}"
EDIT_REPLY = f"J'ai ajouté une conclusion.\n```latex\n{EDITED_DOCUMENT}\n```"


@pytest.mark.asyncio
class TestGenerate:
    async def test_success_replaces_document_and_seeds_transcript(
        self, fake_client_factory, make_workspace, fixed_now: datetime
    ) -> None:
        client = fake_client_factory(initial_reply=INITIAL_REPLY)
        workspace: ReportWorkspace = make_workspace(client)

        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.SUCCESS
        assert outcome.alert is None
        assert workspace.status is GenerationStatus.SUCCESS
        assert workspace.document == DOCUMENT
        assert workspace.session is client.sessions[0]
        assert workspace.active_tab is SidebarTab.CHAT

        _, sent_metadata = client.initial_calls[0]
        assert sent_metadata.title == "X"
        assert sent_metadata.description == "Y"

        user, assistant = workspace.transcript
        assert user.role == "user"
        assert user.text == "Génère le rapport PFE pour : X"
        assert assistant.role == "assistant"
        assert assistant.text == INITIAL_ASSISTANT_MESSAGE
        # The model's own explanation is not surfaced on the first turn
        assert "Here you go" not in assistant.text
        assert user.created_at == fixed_now - timedelta(seconds=2)
        assert assistant.created_at == fixed_now

    @pytest.mark.parametrize(
        "overrides",
        [{"title": ""}, {"description": ""}, {"title": "   ", "description": "Y"}],
    )
    async def test_missing_title_or_description_makes_no_call(
        self, fake_client_factory, make_workspace, overrides: dict[str, str]
    ) -> None:
        client = fake_client_factory()
        workspace: ReportWorkspace = make_workspace(client)
        for name, value in overrides.items():
            workspace.update_field(name, value)

        with pytest.raises(MissingProjectFieldsError):
            await workspace.generate()

        assert client.sessions == []
        assert client.initial_calls == []
        assert workspace.status is GenerationStatus.IDLE
        assert workspace.session is None

    async def test_service_failure_moves_to_error_with_alert(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(initial_reply=ConnectionError("invalid API key"))
        workspace: ReportWorkspace = make_workspace(client)

        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.ERROR
        assert outcome.alert == GENERATION_FAILED_ALERT
        assert workspace.status is GenerationStatus.ERROR
        assert workspace.document == ""
        assert workspace.transcript == []
        assert workspace.active_tab is SidebarTab.CONFIG

    async def test_session_factory_failure_is_a_generation_failure(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory()

        def no_credentials():
            raise ValueError("No valid LLM provider configured")

        client.open_session = no_credentials
        workspace: ReportWorkspace = make_workspace(client)

        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.ERROR
        assert workspace.session is None

    async def test_error_is_not_sticky(self, fake_client_factory, make_workspace) -> None:
        client = fake_client_factory(initial_reply=RuntimeError("network down"))
        workspace: ReportWorkspace = make_workspace(client)
        await workspace.generate()

        client.initial_reply = INITIAL_REPLY
        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.SUCCESS
        assert workspace.document == DOCUMENT

    async def test_regenerate_discards_session_and_transcript(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY, edit_replies=[EDIT_REPLY]
        )
        workspace: ReportWorkspace = make_workspace(client)
        await workspace.generate()
        await workspace.send_edit("ajoute une conclusion")
        assert len(workspace.transcript) == 4

        await workspace.generate()

        assert len(client.sessions) == 2
        assert workspace.session is client.sessions[1]
        assert len(workspace.transcript) == 2
        assert workspace.document == DOCUMENT

    async def test_unfenced_reply_passes_through(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(initial_reply="Je ne peux pas.")
        workspace: ReportWorkspace = make_workspace(client)

        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.SUCCESS
        assert workspace.document == "Je ne peux pas."


@pytest.mark.asyncio
class TestSendEdit:
    async def _generated(self, client, make_workspace) -> ReportWorkspace:
        workspace: ReportWorkspace = make_workspace(client)
        await workspace.generate()
        return workspace

    async def test_success_replaces_document_and_appends_two_entries(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY, edit_replies=[EDIT_REPLY]
        )
        workspace = await self._generated(client, make_workspace)

        outcome = await workspace.send_edit("add a conclusion")

        assert outcome.succeeded is True
        assert workspace.document == EDITED_DOCUMENT
        transcript = workspace.transcript
        assert len(transcript) == 4
        assert (transcript[2].role, transcript[2].text) == ("user", "add a conclusion")
        assert (transcript[3].role, transcript[3].text) == (
            "assistant",
            "J'ai ajouté une conclusion.",
        )
        assert outcome.reply == transcript[3]
        assert workspace.status is GenerationStatus.SUCCESS
        assert workspace.is_sending is False

        session, current_document, instruction = client.edit_calls[0]
        assert session is workspace.session
        assert current_document == DOCUMENT
        assert instruction == "add a conclusion"

    async def test_failure_keeps_document_and_apologises(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY, edit_replies=[TimeoutError("slow")]
        )
        workspace = await self._generated(client, make_workspace)

        outcome = await workspace.send_edit("add a conclusion")

        assert outcome.succeeded is False
        assert workspace.document == DOCUMENT
        transcript = workspace.transcript
        assert len(transcript) == 4
        assert transcript[2].text == "add a conclusion"
        assert (transcript[3].role, transcript[3].text) == (
            "assistant",
            EDIT_FAILED_MESSAGE,
        )
        assert workspace.status is GenerationStatus.SUCCESS
        assert workspace.is_sending is False

    async def test_retry_after_failure_uses_same_session(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY,
            edit_replies=[RuntimeError("503"), EDIT_REPLY],
        )
        workspace = await self._generated(client, make_workspace)

        await workspace.send_edit("add a conclusion")
        outcome = await workspace.send_edit("add a conclusion")

        assert outcome.succeeded is True
        assert workspace.document == EDITED_DOCUMENT
        assert client.edit_calls[0][0] is client.edit_calls[1][0]
        assert len(workspace.transcript) == 6

    async def test_empty_document_rejected_without_call(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory()
        workspace: ReportWorkspace = make_workspace(client)

        with pytest.raises(EmptyDocumentError):
            await workspace.send_edit("a perfectly reasonable instruction")

        assert client.edit_calls == []
        assert workspace.transcript == []

    @pytest.mark.parametrize("instruction", ["", "   ", "\n\t"])
    async def test_blank_instruction_rejected(
        self, fake_client_factory, make_workspace, instruction: str
    ) -> None:
        client = fake_client_factory(initial_reply=INITIAL_REPLY)
        workspace = await self._generated(client, make_workspace)

        with pytest.raises(EmptyInstructionError):
            await workspace.send_edit(instruction)

        assert client.edit_calls == []
        assert len(workspace.transcript) == 2

    async def test_document_without_session_rejected(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(initial_reply="\\documentclass{article}")
        workspace = await self._generated(client, make_workspace)
        workspace._session = None

        with pytest.raises(NoActiveSessionError):
            await workspace.send_edit("x")

    async def test_unfenced_edit_reply_becomes_document_and_summary(
        self, fake_client_factory, make_workspace
    ) -> None:
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY, edit_replies=["Aucun changement."]
        )
        workspace = await self._generated(client, make_workspace)

        outcome = await workspace.send_edit("rien")

        assert outcome.reply.text == "Aucun changement."
        assert workspace.document == "Aucun changement."


@pytest.mark.asyncio
class TestConcurrency:
    async def test_second_edit_rejected_while_first_in_flight(
        self, fake_client_factory, make_workspace
    ) -> None:
        gate = asyncio.Event()
        gate.set()
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY, edit_replies=[EDIT_REPLY], gate=gate
        )
        workspace: ReportWorkspace = make_workspace(client)
        await workspace.generate()

        gate.clear()
        pending = asyncio.create_task(workspace.send_edit("first"))
        await asyncio.sleep(0)
        assert workspace.is_sending is True

        with pytest.raises(WorkspaceBusyError):
            await workspace.send_edit("second")
        with pytest.raises(WorkspaceBusyError):
            await workspace.generate()

        gate.set()
        outcome = await pending

        assert outcome.succeeded is True
        assert [call[2] for call in client.edit_calls] == ["first"]
        assert len(workspace.transcript) == 4
        assert workspace.is_sending is False

    async def test_requests_rejected_while_generating(
        self, fake_client_factory, make_workspace
    ) -> None:
        gate = asyncio.Event()
        client = fake_client_factory(initial_reply=INITIAL_REPLY, gate=gate)
        workspace: ReportWorkspace = make_workspace(client)

        pending = asyncio.create_task(workspace.generate())
        await asyncio.sleep(0)
        assert workspace.status is GenerationStatus.LOADING

        with pytest.raises(WorkspaceBusyError):
            await workspace.generate()
        with pytest.raises(WorkspaceBusyError):
            await workspace.send_edit("x")
        with pytest.raises(TabLockedError):
            workspace.select_tab(SidebarTab.CHAT)

        gate.set()
        outcome = await pending

        assert outcome.status is GenerationStatus.SUCCESS
        assert len(client.sessions) == 1

    async def test_cancelled_generation_allows_new_attempt(
        self, fake_client_factory, make_workspace
    ) -> None:
        gate = asyncio.Event()
        client = fake_client_factory(initial_reply=INITIAL_REPLY, gate=gate)
        workspace: ReportWorkspace = make_workspace(client)

        pending = asyncio.create_task(workspace.generate())
        await asyncio.sleep(0)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert workspace.status is GenerationStatus.ERROR
        workspace.select_tab(SidebarTab.CONFIG)

        gate.set()
        outcome = await workspace.generate()

        assert outcome.status is GenerationStatus.SUCCESS
        assert workspace.document == DOCUMENT
        assert len(client.sessions) == 2

    async def test_cancelled_edit_is_answered_and_releases_workspace(
        self, fake_client_factory, make_workspace
    ) -> None:
        gate = asyncio.Event()
        gate.set()
        client = fake_client_factory(
            initial_reply=INITIAL_REPLY,
            edit_replies=[EDIT_REPLY, EDIT_REPLY],
            gate=gate,
        )
        workspace: ReportWorkspace = make_workspace(client)
        await workspace.generate()

        gate.clear()
        pending = asyncio.create_task(workspace.send_edit("first"))
        await asyncio.sleep(0)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert workspace.is_sending is False
        assert workspace.document == DOCUMENT
        transcript = workspace.transcript
        assert [(e.role, e.text) for e in transcript[2:]] == [
            ("user", "first"),
            ("assistant", EDIT_FAILED_MESSAGE),
        ]

        gate.set()
        outcome = await workspace.send_edit("second")

        assert outcome.succeeded is True
        assert workspace.document == EDITED_DOCUMENT


class TestFormAndPresentation:
    def test_form_intents_update_metadata(
        self, fake_client_factory, make_workspace
    ) -> None:
        workspace: ReportWorkspace = make_workspace(fake_client_factory())

        workspace.update_field(ProjectField.KEYWORDS, "LaTeX")
        workspace.add_roster_entry(Roster.JURY_MEMBERS)
        workspace.set_roster_entry(Roster.JURY_MEMBERS, 1, "Pr. C")
        workspace.remove_roster_entry(Roster.SUPERVISORS, 1)

        metadata: ProjectMetadata = workspace.metadata
        assert metadata.keywords == "LaTeX"
        assert metadata.jury_members == ["Pr. B", "Pr. C"]
        assert metadata.supervisors == ["Pr. A"]

    def test_select_tab(self, fake_client_factory, make_workspace) -> None:
        workspace: ReportWorkspace = make_workspace(fake_client_factory())

        assert workspace.select_tab(SidebarTab.CHAT) is SidebarTab.CHAT
        assert workspace.active_tab is SidebarTab.CHAT

    def test_copy_label_reverts_after_feedback_window(
        self, fake_client_factory, make_workspace
    ) -> None:
        now = [100.0]
        clock: Callable[[], float] = lambda: now[0]
        workspace: ReportWorkspace = make_workspace(fake_client_factory(), clock=clock)
        assert workspace.copy_label == COPY_IDLE_LABEL

        assert workspace.copy_document() == ""
        assert workspace.copy_label == COPY_DONE_LABEL

        now[0] = 101.9
        assert workspace.snapshot().copy_label == COPY_DONE_LABEL
        now[0] = 102.0
        assert workspace.copy_label == COPY_IDLE_LABEL

    def test_snapshot_reflects_state(self, fake_client_factory, make_workspace) -> None:
        workspace: ReportWorkspace = make_workspace(fake_client_factory())

        snapshot = workspace.snapshot()

        assert snapshot.status is GenerationStatus.IDLE
        assert snapshot.is_sending is False
        assert snapshot.active_tab is SidebarTab.CONFIG
        assert snapshot.document == ""
        assert snapshot.transcript == []
        assert snapshot.has_session is False
        assert snapshot.metadata.title == "X"

    def test_transcript_is_a_copy(self, fake_client_factory, make_workspace) -> None:
        workspace: ReportWorkspace = make_workspace(fake_client_factory())
        workspace.transcript.append(None)  # type: ignore[arg-type]
        assert workspace.transcript == []
