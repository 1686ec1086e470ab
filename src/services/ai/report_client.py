"""Conversational client for the report drafting model.

A `ReportSession` is one stateful exchange with the model: the agent carries
the fixed system instruction and temperature, and the session keeps the
message history so each edit turn sees the whole conversation so far.

Provider errors (network, authentication, quota, malformed responses) are
logged and re-raised unchanged; there is no retry and no local timeout.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from pydantic_ai import Agent
from pydantic_ai.messages import ModelMessage
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from core.config import get_settings
from schemas.project import ProjectMetadata
from services.ai.model_factory import get_report_model
from services.ai.prompts import (
    REPORT_SYSTEM_INSTRUCTION,
    build_edit_prompt,
    build_initial_prompt,
)


logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "Aucune réponse générée."


@dataclass
class ReportSession:
    """Opaque handle on one drafting conversation."""

    agent: Agent[None, str]
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    history: list[ModelMessage] = field(default_factory=list)
    turns: int = 0


class ReportClient:
    """Open drafting sessions and run the initial and edit turns."""

    def __init__(
        self,
        model_factory: Callable[[], Model] = get_report_model,
        *,
        temperature: float | None = None,
        instructions: str = REPORT_SYSTEM_INSTRUCTION,
    ) -> None:
        self._model_factory = model_factory
        self._temperature = temperature
        self._instructions = instructions

    def open_session(self) -> ReportSession:
        """Create a fresh session; no request is sent to the provider."""
        temperature = (
            self._temperature
            if self._temperature is not None
            else get_settings().REPORT_TEMPERATURE
        )
        agent: Agent[None, str] = Agent(
            self._model_factory(),
            instructions=self._instructions,
            model_settings=ModelSettings(temperature=temperature),
            name="report-drafter",
        )
        session = ReportSession(agent=agent)
        logger.info(
            "Opened drafting session %s (temperature=%.2f)", session.id, temperature
        )
        return session

    async def request_initial_document(
        self, session: ReportSession, metadata: ProjectMetadata
    ) -> str:
        """Ask for the first full draft built from the project metadata.

        Returns the raw reply, or a placeholder when the model sent no text.
        """
        prompt = build_initial_prompt(metadata)
        text = await self._send(session, prompt, purpose="initial draft")
        return text or NO_RESPONSE_TEXT

    async def request_edit(
        self, session: ReportSession, current_document: str, instruction: str
    ) -> str:
        """Send the current document and an instruction on the same session."""
        prompt = build_edit_prompt(current_document, instruction)
        text = await self._send(session, prompt, purpose="edit")
        return text or ""

    async def _send(self, session: ReportSession, prompt: str, *, purpose: str) -> str:
        logger.info(
            "Sending %s turn %d on session %s (%d prompt chars)",
            purpose,
            session.turns + 1,
            session.id,
            len(prompt),
        )
        try:
            result = await session.agent.run(prompt, message_history=session.history)
        except Exception as e:
            logger.error(
                f"Report model {purpose} failed on session {session.id}: {e}",
                exc_info=True,
            )
            raise

        session.history = result.all_messages()
        session.turns += 1
        text = result.output or ""
        logger.info(
            "Received %s reply on session %s (%d chars)", purpose, session.id, len(text)
        )
        return text
