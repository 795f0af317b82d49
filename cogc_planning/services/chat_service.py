"""ChatService: one chat-bulletin turn, from request to saved session.

A turn runs on a working copy of the session and is saved with the version
read at the start. Errors follow one policy:

- ValidationError: nothing is saved.
- ConflictStateError: nothing is appended; the caller sees the conflict.
- any other ProjectError: the user turn and a French explanation are
  appended to the session as it was before the turn, status unchanged.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from cogc_planning.bulletin.orchestrator import ImportOrchestrator, ImportStep
from cogc_planning.bulletin.ports import SessionStore
from cogc_planning.bulletin.prompts import BOT_NAME
from cogc_planning.bulletin.state_machine import ensure_mutable
from cogc_planning.bulletin.types import (
    AssistantTurn,
    ImportSession,
    QuickReplyType,
    ReconciliationResult,
    ResolutionStrategy,
    SessionStatus,
    UserTurn,
)
from cogc_planning.core.exceptions import (
    ConflictStateError,
    ExternalServiceError,
    NotFoundError,
    ProjectError,
    ValidationError,
)
from cogc_planning.core.logger import conversation_logger
from cogc_planning.qa.assistant import QAAssistant
from cogc_planning.qa.types import QAAnswer

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    f"👋 Salut ! Je suis **{BOT_NAME}**, ton assistant au COGC.\n\n"
    "Je peux t'aider avec :\n"
    "📎 **Import PDF** : envoie-moi ton bulletin de commande\n"
    "📅 **Planning** : tes services, tes heures, l'équipe du jour\n\n"
    "Pose-moi ta question ou envoie un fichier, je m'occupe du reste ! 🚄"
)


@dataclass(frozen=True)
class QuickReply:
    type: QuickReplyType
    value: Optional[str] = None
    service_index: Optional[int] = None
    conflict_strategy: Optional[ResolutionStrategy] = None


@dataclass(frozen=True)
class ChatTurn:
    """One inbound turn. At most one of message / pdf_bytes / quick_reply drives it."""

    agent_id: uuid.UUID
    message: Optional[str] = None
    pdf_bytes: Optional[bytes] = None
    pdf_filename: Optional[str] = None
    conversation_id: Optional[uuid.UUID] = None
    quick_reply: Optional[QuickReply] = None

    @property
    def text(self) -> Optional[str]:
        if self.message is None or not self.message.strip():
            return None
        return self.message.strip()


@dataclass
class TurnResult:
    session: ImportSession
    message: str
    view: Dict[str, Any] = field(default_factory=dict)
    import_result: Optional[ReconciliationResult] = None
    qa_answer: Optional[QAAnswer] = None
    error: Optional[ProjectError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def conversation_id(self) -> uuid.UUID:
        return self.session.id


def validate_turn(turn: ChatTurn, *, max_pdf_bytes: Optional[int] = None) -> None:
    """Request-level checks; nothing has been loaded or mutated yet."""
    drivers = [
        name
        for name, present in (
            ("message", turn.text is not None),
            ("pdf_bytes", turn.pdf_bytes is not None),
            ("quick_reply", turn.quick_reply is not None),
        )
        if present
    ]
    if len(drivers) > 1:
        raise ValidationError(
            f"Only one of message, pdf_bytes, quick_reply may drive a turn (got {', '.join(drivers)})",
            details={"drivers": drivers},
        )
    if turn.pdf_bytes is not None:
        if not turn.pdf_bytes:
            raise ValidationError("pdf_bytes is empty", user_message="Le fichier PDF est vide.")
        if max_pdf_bytes is not None and len(turn.pdf_bytes) > max_pdf_bytes:
            raise ValidationError(
                f"PDF too large ({len(turn.pdf_bytes)} bytes > {max_pdf_bytes})",
                details={"size": len(turn.pdf_bytes), "max": max_pdf_bytes},
                user_message="Le fichier PDF est trop volumineux.",
            )
    reply = turn.quick_reply
    if reply is None:
        return
    if reply.type is QuickReplyType.SELECT_CODE and (reply.service_index is None or not reply.value):
        raise ValidationError(
            "select_code requires service_index and value",
            details={"service_index": reply.service_index, "value": reply.value},
        )
    if reply.type is QuickReplyType.RESOLVE_CONFLICTS and reply.conflict_strategy is None:
        raise ValidationError("resolve_conflicts requires conflict_strategy")


def _user_turn(turn: ChatTurn) -> UserTurn:
    if turn.pdf_bytes is not None:
        return UserTurn(attachment=turn.pdf_filename or "bulletin.pdf")
    reply = turn.quick_reply
    if reply is None:
        return UserTurn(text=turn.text)
    if reply.type is QuickReplyType.SELECT_CODE:
        return UserTurn(text=f"J'ai choisi {reply.value} pour le service #{reply.service_index}")
    if reply.type is QuickReplyType.RESOLVE_CONFLICTS:
        return UserTurn(text=f"[resolve_conflicts] {reply.conflict_strategy.value}")
    return UserTurn(text=f"[{reply.type.value}]")


def _writes_schedule(turn: ChatTurn) -> bool:
    reply = turn.quick_reply
    return reply is not None and reply.type in (QuickReplyType.CONFIRM_IMPORT, QuickReplyType.RESOLVE_CONFLICTS)


class ChatService:
    def __init__(
        self,
        sessions: SessionStore,
        orchestrator: ImportOrchestrator,
        qa: QAAssistant,
        *,
        turn_timeout: Optional[float] = None,
        max_pdf_bytes: Optional[int] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._sessions = sessions
        self._orchestrator = orchestrator
        self._qa = qa
        self._turn_timeout = turn_timeout
        self._max_pdf_bytes = max_pdf_bytes
        self._today = today or date.today

    async def get_conversation(self, conversation_id: uuid.UUID, agent_id: uuid.UUID) -> ImportSession:
        session = await self._sessions.get(conversation_id)
        if session is None or session.agent_id != agent_id:
            raise NotFoundError(
                f"Conversation {conversation_id} not found",
                details={"conversation_id": str(conversation_id)},
                user_message="Conversation introuvable.",
            )
        return session

    def view(self, session: ImportSession) -> Dict[str, Any]:
        return self._orchestrator.snapshot(session)

    async def handle(self, turn: ChatTurn) -> TurnResult:
        validate_turn(turn, max_pdf_bytes=self._max_pdf_bytes)
        if turn.conversation_id is not None:
            session = await self.get_conversation(turn.conversation_id, turn.agent_id)
        else:
            session = await self._sessions.create(turn.agent_id)
        log = conversation_logger(logger, conversation_id=session.id, agent_id=turn.agent_id)

        if turn.text is None and turn.pdf_bytes is None and turn.quick_reply is None:
            return TurnResult(session=session, message=WELCOME_MESSAGE, view=self.view(session))

        ensure_mutable(session)
        if turn.pdf_bytes is not None and session.status is not SessionStatus.NEW:
            raise ValidationError(
                "pdf_bytes is only accepted on a new session",
                details={"status": session.status.value},
                user_message="Un bulletin est déjà en cours d'import dans cette conversation.",
            )

        user_turn = _user_turn(turn)
        working = session.clone()
        working.append(user_turn)
        try:
            outcome = await self._run(working, turn)
        except (ValidationError, ConflictStateError):
            raise
        except ProjectError as exc:
            log.warning("turn failed (%s): %s", exc.code, exc.message)
            session.append(user_turn)
            session.append(AssistantTurn(text=exc.user_message, payload={"error": {"code": exc.code}}))
            saved = await self._sessions.save(session, expected_version=session.version)
            return TurnResult(session=saved, message=exc.user_message, view=self.view(saved), error=exc)

        saved = await self._sessions.save(working, expected_version=session.version)
        log.info("turn done, status=%s version=%d", saved.status.value, saved.version)
        if isinstance(outcome, QAAnswer):
            return TurnResult(session=saved, message=outcome.message, view=self.view(saved), qa_answer=outcome)
        return TurnResult(
            session=saved,
            message=outcome.message,
            view=self.view(saved),
            import_result=outcome.import_result,
        )

    async def _run(self, working: ImportSession, turn: ChatTurn) -> ImportStep | QAAnswer:
        # the deadline bounds model and OCR calls; a schedule commit runs to completion
        if self._turn_timeout is None or _writes_schedule(turn):
            return await self._dispatch(working, turn)
        try:
            return await asyncio.wait_for(self._dispatch(working, turn), timeout=self._turn_timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalServiceError(
                f"Turn exceeded {self._turn_timeout:g}s",
                details={"timeout": self._turn_timeout},
                cause=exc,
            ) from exc

    async def _dispatch(self, working: ImportSession, turn: ChatTurn) -> ImportStep | QAAnswer:
        orchestrator = self._orchestrator
        if turn.pdf_bytes is not None:
            return await orchestrator.start_from_pdf(working, turn.pdf_bytes, turn.pdf_filename)

        reply = turn.quick_reply
        if reply is not None:
            if reply.type is QuickReplyType.SELECT_CODE:
                return orchestrator.select_code(working, reply.service_index, reply.value)
            if reply.type is QuickReplyType.CONFIRM_IMPORT:
                return await orchestrator.confirm_import(working)
            if reply.type is QuickReplyType.RESOLVE_CONFLICTS:
                return await orchestrator.resolve_conflicts(working, reply.conflict_strategy)
            return orchestrator.cancel(working)

        if working.has_active_import:
            return await orchestrator.apply_correction(working, turn.text)

        answer = await self._qa.answer(turn.text, working.agent_id, self._today())
        working.append(
            AssistantTurn(
                text=answer.message,
                payload={"intent": answer.intent.to_dict(), "qa_response": answer.to_dict()},
            )
        )
        return answer


def today_in(tz) -> Callable[[], date]:
    """Clock returning the current date in ``tz`` (a tzinfo)."""
    return lambda: datetime.now(tz).date()
