"""Session and state orchestration for report drafting.

`ReportWorkspace` owns everything the presentation layer observes: the
project metadata, the drafting session handle, the current document, the
editing transcript, the generation status and the edit-in-flight flag.

Generation status follows one explicit state machine::

    idle -> loading -> success | error
    success | error -> loading   (regenerate)

Edits never move the status; they are tracked by the separate `is_sending`
flag. Only one request (generation or edit) may be in flight at a time,
because the conversational context on the provider side is order-sensitive.
Busy checks run before the first ``await`` so they are atomic on the event
loop.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from core.exceptions import (
    EmptyDocumentError,
    EmptyInstructionError,
    MissingProjectFieldsError,
    NoActiveSessionError,
    TabLockedError,
    WorkspaceBusyError,
)
from schemas.project import ProjectField, ProjectMetadata, Roster
from schemas.report import (
    GenerationStatus,
    SidebarTab,
    TranscriptEntry,
    WorkspaceSnapshot,
)
from services import project_form
from services.ai.latex_extraction import extract_latex, split_summary_and_document
from services.ai.prompts import build_generation_request_text
from services.ai.report_client import ReportSession


logger = logging.getLogger(__name__)


GENERATION_FAILED_ALERT = (
    "An error occurred while generating the report. "
    "Please check your API key and try again."
)
INITIAL_ASSISTANT_MESSAGE = (
    "Voici la structure LaTeX préliminaire. "
    "Vous pouvez utiliser cet assistant pour modifier le code."
)
EDIT_FAILED_MESSAGE = (
    "Désolé, une erreur est survenue lors de la modification du code. "
    "Veuillez réessayer."
)
COPY_IDLE_LABEL = "Copier le code"
COPY_DONE_LABEL = "Copié !"

# The synthetic request echo is back-dated so it sorts before the reply.
_REQUEST_ECHO_OFFSET = timedelta(seconds=2)

_TRANSITIONS: dict[GenerationStatus, frozenset[GenerationStatus]] = {
    GenerationStatus.IDLE: frozenset({GenerationStatus.LOADING}),
    GenerationStatus.LOADING: frozenset(
        {GenerationStatus.SUCCESS, GenerationStatus.ERROR}
    ),
    GenerationStatus.SUCCESS: frozenset({GenerationStatus.LOADING}),
    GenerationStatus.ERROR: frozenset({GenerationStatus.LOADING}),
}


class DraftingClient(Protocol):
    """What the workspace needs from the generation service client."""

    def open_session(self) -> ReportSession: ...

    async def request_initial_document(
        self, session: ReportSession, metadata: ProjectMetadata
    ) -> str: ...

    async def request_edit(
        self, session: ReportSession, current_document: str, instruction: str
    ) -> str: ...


@dataclass(frozen=True, slots=True)
class GenerationOutcome:
    status: GenerationStatus
    # Blocking notice for the user when the service call failed
    alert: str | None = None


@dataclass(frozen=True, slots=True)
class EditOutcome:
    reply: TranscriptEntry
    succeeded: bool


class ReportWorkspace:
    """Single-user drafting workspace (one session per application run)."""

    def __init__(
        self,
        client: DraftingClient,
        metadata: ProjectMetadata,
        *,
        copy_feedback_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._client = client
        self._metadata = metadata
        self._copy_feedback_seconds = copy_feedback_seconds
        self._clock = clock
        self._now = now

        self._session: ReportSession | None = None
        self._document = ""
        self._transcript: list[TranscriptEntry] = []
        self._status = GenerationStatus.IDLE
        self._is_sending = False
        self._active_tab = SidebarTab.CONFIG
        self._copied_at: float | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def status(self) -> GenerationStatus:
        return self._status

    @property
    def is_sending(self) -> bool:
        return self._is_sending

    @property
    def document(self) -> str:
        return self._document

    @property
    def metadata(self) -> ProjectMetadata:
        return self._metadata

    @property
    def session(self) -> ReportSession | None:
        return self._session

    @property
    def transcript(self) -> list[TranscriptEntry]:
        return list(self._transcript)

    @property
    def active_tab(self) -> SidebarTab:
        return self._active_tab

    @property
    def copy_label(self) -> str:
        if (
            self._copied_at is not None
            and self._clock() - self._copied_at < self._copy_feedback_seconds
        ):
            return COPY_DONE_LABEL
        return COPY_IDLE_LABEL

    def snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            status=self._status,
            is_sending=self._is_sending,
            active_tab=self._active_tab,
            metadata=self._metadata,
            document=self._document,
            transcript=list(self._transcript),
            has_session=self._session is not None,
            copy_label=self.copy_label,
        )

    # ------------------------------------------------------------------
    # Form intents
    # ------------------------------------------------------------------

    def update_field(self, field: ProjectField | str, value: str) -> ProjectMetadata:
        self._metadata = project_form.apply_field_update(self._metadata, field, value)
        return self._metadata

    def add_roster_entry(self, roster: Roster) -> ProjectMetadata:
        self._metadata = project_form.add_roster_entry(self._metadata, roster)
        return self._metadata

    def set_roster_entry(self, roster: Roster, index: int, value: str) -> ProjectMetadata:
        self._metadata = project_form.set_roster_entry(
            self._metadata, roster, index, value
        )
        return self._metadata

    def remove_roster_entry(self, roster: Roster, index: int) -> ProjectMetadata:
        self._metadata = project_form.remove_roster_entry(self._metadata, roster, index)
        return self._metadata

    def select_tab(self, tab: SidebarTab) -> SidebarTab:
        if self._status is GenerationStatus.LOADING:
            raise TabLockedError()
        self._active_tab = tab
        return self._active_tab

    def copy_document(self) -> str:
        """Hand out the document and start the transient copy feedback."""
        self._copied_at = self._clock()
        return self._document

    # ------------------------------------------------------------------
    # Generation and editing
    # ------------------------------------------------------------------

    async def generate(self) -> GenerationOutcome:
        """Draft a new report, discarding any previous session and transcript.

        Raises:
            WorkspaceBusyError: a generation or an edit is in flight.
            MissingProjectFieldsError: title or description is blank.
        """
        self._ensure_not_busy()
        metadata = self._metadata
        if not metadata.title.strip() or not metadata.description.strip():
            raise MissingProjectFieldsError()

        self._transition(GenerationStatus.LOADING)
        self._active_tab = SidebarTab.CONFIG

        try:
            session = self._client.open_session()
            self._session = session
            self._transcript = []
            raw_text = await self._client.request_initial_document(session, metadata)
            document = extract_latex(raw_text)
        except Exception:
            logger.exception("Report generation failed")
            self._transition(GenerationStatus.ERROR)
            return GenerationOutcome(
                status=self._status, alert=GENERATION_FAILED_ALERT
            )
        except BaseException:
            # Cancelled while waiting on the model: leave LOADING so the
            # workspace accepts a new attempt
            logger.warning("Report generation interrupted")
            self._transition(GenerationStatus.ERROR)
            raise

        self._document = document
        replied_at = self._now()
        self._transcript = [
            TranscriptEntry(
                role="user",
                text=build_generation_request_text(metadata),
                created_at=replied_at - _REQUEST_ECHO_OFFSET,
            ),
            TranscriptEntry(
                role="assistant",
                text=INITIAL_ASSISTANT_MESSAGE,
                created_at=replied_at,
            ),
        ]
        self._active_tab = SidebarTab.CHAT
        self._transition(GenerationStatus.SUCCESS)
        logger.info("Report generated (%d chars)", len(document))
        return GenerationOutcome(status=self._status)

    async def send_edit(self, instruction: str) -> EditOutcome:
        """Apply a natural-language edit to the current document.

        Service failures are reported in the transcript; the previous
        document and the session stay usable.

        Raises:
            WorkspaceBusyError: a generation or an edit is in flight.
            EmptyInstructionError: the instruction is blank.
            EmptyDocumentError: no document has been generated yet.
            NoActiveSessionError: no drafting session is open.
        """
        self._ensure_not_busy()
        if not instruction.strip():
            raise EmptyInstructionError()
        if not self._document:
            raise EmptyDocumentError()
        if self._session is None:
            raise NoActiveSessionError()

        session = self._session
        current_document = self._document
        self._is_sending = True
        self._transcript.append(
            TranscriptEntry(role="user", text=instruction, created_at=self._now())
        )

        succeeded = False
        try:
            raw_text = await self._client.request_edit(
                session, current_document, instruction
            )
            summary, document = split_summary_and_document(raw_text)
        except Exception:
            logger.exception("Report edit failed on session %s", session.id)
            reply_text = EDIT_FAILED_MESSAGE
        except BaseException:
            # Every instruction in the transcript gets an answer, even when
            # the request is cancelled
            logger.warning("Report edit interrupted on session %s", session.id)
            self._append_reply(EDIT_FAILED_MESSAGE)
            raise
        else:
            self._document = document
            reply_text = summary
            succeeded = True
        finally:
            self._is_sending = False

        reply = self._append_reply(reply_text)
        logger.info(
            "Edit %s (transcript now %d entries)",
            "applied" if succeeded else "failed",
            len(self._transcript),
        )
        return EditOutcome(reply=reply, succeeded=succeeded)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _append_reply(self, text: str) -> TranscriptEntry:
        reply = TranscriptEntry(role="assistant", text=text, created_at=self._now())
        self._transcript.append(reply)
        return reply

    def _ensure_not_busy(self) -> None:
        if self._status is GenerationStatus.LOADING or self._is_sending:
            raise WorkspaceBusyError()

    def _transition(self, target: GenerationStatus) -> None:
        if target not in _TRANSITIONS[self._status]:
            raise RuntimeError(
                f"Invalid generation status transition {self._status.value} -> "
                f"{target.value}"
            )
        logger.debug("Generation status %s -> %s", self._status.value, target.value)
        self._status = target
