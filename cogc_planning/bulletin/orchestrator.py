"""Import orchestrator: drives one bulletin import across conversation turns.

Every public method works on the caller's working copy of the session,
appends exactly one AssistantTurn and returns the step outcome. Persisting
the session is the caller's job.

Entries always go through the same pipeline after structuring:
catalog canonicalisation, then night-shift normalisation. The model reports
printed dates only, so repeated turns never shift a date twice.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from cogc_planning.bulletin.agent_resolver import resolve_agent
from cogc_planning.bulletin.catalog import ServiceCodeCatalog, normalize_code
from cogc_planning.bulletin.conflicts import detect_conflicts, duplicate_dates
from cogc_planning.bulletin.normalizer import normalize_entries, normalize_entry
from cogc_planning.bulletin.ports import AgentDirectory, ScheduleStore
from cogc_planning.bulletin.prompts import (
    build_correction_prompt,
    build_extraction_prompt,
    build_system_prompt,
)
from cogc_planning.bulletin.reconciliation import ReconciliationEngine
from cogc_planning.bulletin.state_machine import transition
from cogc_planning.bulletin.structuring import StructuringAdapter
from cogc_planning.bulletin.types import (
    AssistantTurn,
    CandidateEntry,
    EntryConfidence,
    ImportSession,
    Question,
    QuestionOption,
    ReconciliationResult,
    ResolutionStrategy,
    SessionStatus,
    StructuredResponse,
    UserTurn,
)
from cogc_planning.core.exceptions import AgentNotFoundError, ConflictStateError, ParseError, ValidationError
from cogc_planning.qa.dates import format_day_name

if TYPE_CHECKING:
    from cogc_planning.clients.llm.base import LLMMessage
    from cogc_planning.clients.ocr.base import BaseOCRClient
    from cogc_planning.clients.retry import RetryPolicy

logger = logging.getLogger(__name__)

MAX_RECOVERY_QUESTIONS = 10


@dataclass(frozen=True)
class ImportStep:
    message: str
    import_result: Optional[ReconciliationResult] = None


def _day(entry: CandidateEntry) -> str:
    return format_day_name(entry.displayed_date or entry.date).lower()


class ImportOrchestrator:
    def __init__(
        self,
        catalog: ServiceCodeCatalog,
        structuring: StructuringAdapter,
        ocr: "BaseOCRClient",
        ocr_retry: "RetryPolicy",
        schedule: ScheduleStore,
        agents: AgentDirectory,
        *,
        history_window: int = 20,
    ) -> None:
        self._catalog = catalog
        self._structuring = structuring
        self._ocr = ocr
        self._ocr_retry = ocr_retry
        self._schedule = schedule
        self._agents = agents
        self._engine = ReconciliationEngine(schedule)
        self._history_window = history_window
        self._system_prompt = build_system_prompt(catalog)

    # ── Turns ───────────────────────────────────────────────────────

    async def start_from_pdf(self, session: ImportSession, pdf_bytes: bytes, filename: Optional[str]) -> ImportStep:
        if session.status is not SessionStatus.NEW:
            raise ValidationError(
                "pdf_bytes is only accepted on a new session",
                details={"status": session.status.value},
                user_message="Un bulletin est déjà en cours d'import dans cette conversation.",
            )
        ocr_text = await self._ocr_retry.run(lambda: self._ocr.extract(pdf_bytes), name="ocr")
        session.ocr_text = ocr_text
        session.pdf_filename = filename
        logger.info("session %s: OCR returned %d chars for %s", session.id, len(ocr_text), filename or "<pdf>")
        return await self._structure(session, build_extraction_prompt(ocr_text))

    async def apply_correction(
        self,
        session: ImportSession,
        message: str,
        *,
        question_index: Optional[int] = None,
    ) -> ImportStep:
        question = None
        if question_index is not None:
            question = next((q for q in self.pending_questions(session) if q.index == question_index), None)
        prompt = build_correction_prompt(message, session.candidate_entries, question=question)
        return await self._structure(session, prompt)

    def select_code(self, session: ImportSession, index: Optional[int], value: Optional[str]) -> ImportStep:
        """Apply a code chosen from a question's options; no model call."""
        entries = session.candidate_entries
        if index is None or not 0 <= index < len(entries):
            raise ValidationError(
                f"service_index {index!r} out of range (0..{len(entries) - 1})",
                details={"service_index": index, "count": len(entries)},
                user_message="Ce service n'existe pas dans l'extraction en cours.",
            )
        code = normalize_code(value or "")
        if not self._catalog.is_known(code):
            raise ValidationError(
                f"Unknown service code {value!r}",
                details={"value": value},
                user_message=f"Le code « {value} » n'est pas dans le référentiel.",
            )

        original = entries[index]
        twin = next(
            (
                i for i, entry in enumerate(entries)
                if i != index and entry.date == original.date and normalize_code(entry.raw_code) == code
            ),
            None,
        )
        if twin is not None:
            # the other candidate on this date already carries the chosen code
            chosen = entries[twin].corrected(note=None)
        else:
            chosen = normalize_entry(self._catalog.canonicalize(original.corrected(raw_code=code, note=None)))
        keep_at = index if twin is None else twin
        taken = {original.date, chosen.date}
        kept: List[CandidateEntry] = []
        remap: Dict[int, int] = {}
        for i, entry in enumerate(entries):
            if i == keep_at:
                remap[i] = len(kept)
                kept.append(chosen)
            elif entry.date not in taken:
                remap[i] = len(kept)
                kept.append(entry)
        dropped = len(entries) - len(kept)

        session.candidate_entries = kept
        session.questions = [
            replace(q, index=remap[q.index])
            for q in session.questions
            if q.index not in (index, keep_at) and q.index in remap
        ]
        session.conflicts = None
        ready = self.is_ready(session, True)
        transition(session, SessionStatus.READY_TO_IMPORT if ready else SessionStatus.IN_PROGRESS)

        message = f"✅ Service du {_day(chosen)} : {chosen.raw_code}."
        if dropped:
            message += f" {dropped} doublon(s) sur la même date retiré(s)."
        remaining = len(self.pending_questions(session))
        if ready:
            message += " Tout est validé, tu peux lancer l'import."
        elif remaining:
            message += f" Il reste {remaining} question(s)."
        return self._reply(session, message)

    async def confirm_import(self, session: ImportSession) -> ImportStep:
        self._ensure_ready(session)
        await self._ensure_owner(session)
        entries = session.candidate_entries
        persisted = await self._schedule.get_for_dates(session.agent_id, [e.date for e in entries])
        conflicts = detect_conflicts(entries, persisted)
        if conflicts:
            session.conflicts = conflicts
            transition(session, SessionStatus.READY_TO_IMPORT)
            logger.info("session %s: %d conflicts, waiting for a strategy", session.id, len(conflicts))
            return self._reply(
                session,
                f"⚠️ {len(conflicts)} conflit(s) détecté(s) avec des services existants. Comment souhaitez-vous procéder ?",
            )
        result = await self._engine.commit(session.agent_id, entries, ResolutionStrategy.OVERWRITE_ALL)
        self._mark_imported(session, result)
        return self._reply(session, f"✅ {result.imported_count} services importés avec succès !", import_result=result)

    async def resolve_conflicts(self, session: ImportSession, strategy: ResolutionStrategy) -> ImportStep:
        self._ensure_ready(session)
        if not session.conflicts:
            raise ConflictStateError(
                "No conflicts awaiting a strategy",
                details={"conversation_id": str(session.id)},
                user_message="Aucun conflit en attente : utilise « Importer » pour lancer l'import.",
            )
        await self._ensure_owner(session)
        entries = session.candidate_entries
        # The schedule may have changed since the conflicts were shown
        persisted = await self._schedule.get_for_dates(session.agent_id, [e.date for e in entries])
        conflicts = detect_conflicts(entries, persisted)
        result = await self._engine.commit(session.agent_id, entries, strategy, conflicts)
        session.conflicts = conflicts
        self._mark_imported(session, result)
        if strategy is ResolutionStrategy.OVERWRITE_ALL:
            detail = f"{result.imported_count} services importés (conflits écrasés)"
        else:
            detail = f"{result.imported_count} services importés ({result.skipped_count} ignorés)"
        return self._reply(session, f"✅ {detail}", import_result=result)

    def cancel(self, session: ImportSession) -> ImportStep:
        transition(session, SessionStatus.CANCELLED)
        return self._reply(session, "Import annulé.")

    # ── Readiness and questions ─────────────────────────────────────

    def pending_questions(self, session: ImportSession) -> List[Question]:
        """Stored questions plus one per date carried by several candidates."""
        questions = list(session.questions)
        asked = {q.index for q in questions}
        entries = session.candidate_entries
        for day, indexes in duplicate_dates(entries).items():
            if indexes[0] in asked:
                continue
            options = []
            for i in indexes:
                code = entries[i].raw_code
                if code and code not in (o.value for o in options):
                    options.append(QuestionOption(label=code, value=code))
            questions.append(
                Question(
                    index=indexes[0],
                    text=f"Plusieurs services le {format_day_name(day).lower()} : lequel garder ?",
                    options=tuple(options),
                )
            )
        return questions

    def is_ready(self, session: ImportSession, model_ready: bool) -> bool:
        entries = session.candidate_entries
        return (
            model_ready
            and bool(entries)
            and not any(e.confidence is EntryConfidence.LOW for e in entries)
            and not session.questions
            and not duplicate_dates(entries)
        )

    def snapshot(self, session: ImportSession) -> Dict[str, Any]:
        """Session view shared by assistant-turn payloads and turn responses."""
        detected = session.detected_agent
        return {
            "services": [e.to_dict() for e in session.candidate_entries],
            "questions": [q.to_dict() for q in self.pending_questions(session)],
            "ready_to_import": session.status is SessionStatus.READY_TO_IMPORT,
            "conflicts": [c.to_dict() for c in session.conflicts] if session.conflicts else None,
            "detected_agent": detected.to_dict() if detected else None,
            "agent_mismatch": bool(detected and detected.agent_mismatch),
            "metadata": session.metadata.to_dict(),
        }

    # ── Internals ───────────────────────────────────────────────────

    async def _structure(self, session: ImportSession, user_prompt: str) -> ImportStep:
        try:
            response = await self._structuring.structure(self._system_prompt, self._history(session), user_prompt)
        except ParseError as exc:
            return self._recover(session, exc)
        return await self._apply(session, response)

    async def _apply(self, session: ImportSession, response: StructuredResponse) -> ImportStep:
        entries = normalize_entries(self._catalog.canonicalize(e) for e in response.services)
        session.candidate_entries = entries
        session.questions = [q for q in response.questions if 0 <= q.index < len(entries)]
        session.questions.extend(self._low_confidence_questions(session))
        session.metadata = session.metadata.merged_with(response.metadata)
        session.conflicts = None
        await self._detect_agent(session)

        ready = self.is_ready(session, response.ready_to_import)
        transition(session, SessionStatus.READY_TO_IMPORT if ready else SessionStatus.IN_PROGRESS)

        message = response.message or f"J'ai extrait {len(entries)} service(s)."
        if response.ready_to_import and not ready:
            message += "\n\n❓ Certains services restent à confirmer avant l'import."
        if session.detected_agent and session.detected_agent.agent_mismatch:
            message += (
                f"\n\n⚠️ Ce bulletin semble appartenir à {session.detected_agent.name}. "
                "L'import se fera quand même dans ton planning."
            )
        return self._reply(session, message)

    def _recover(self, session: ImportSession, exc: ParseError) -> ImportStep:
        logger.warning("session %s: structuring output rejected (%s), asking the user", session.id, exc.message)
        session.candidate_entries = [replace(e, confidence=EntryConfidence.LOW) for e in session.candidate_entries]
        session.questions = self._low_confidence_questions(session, replace_existing=True)
        session.conflicts = None
        if not session.candidate_entries:
            return self._reply(
                session,
                "⚠️ Je n'ai pas réussi à analyser ce bulletin. Tu peux renvoyer le PDF ou réessayer plus tard.",
            )
        transition(session, SessionStatus.IN_PROGRESS)
        return self._reply(
            session,
            "⚠️ Je n'ai pas pu interpréter la dernière analyse. Merci de confirmer les services ci-dessous.",
        )

    def _low_confidence_questions(self, session: ImportSession, *, replace_existing: bool = False) -> List[Question]:
        asked = set() if replace_existing else {q.index for q in session.questions}
        questions: List[Question] = []
        for index, entry in enumerate(session.candidate_entries):
            if entry.confidence is not EntryConfidence.LOW or index in asked:
                continue
            alternatives = self._catalog.alternatives_for(entry)
            questions.append(
                Question(
                    index=index,
                    text=f"Quel est le service du {_day(entry)} (lu : {entry.raw_code or '?'}) ?",
                    options=tuple(QuestionOption(label=f"{a.code} - {a.description}", value=a.code) for a in alternatives),
                )
            )
            if len(questions) >= MAX_RECOVERY_QUESTIONS:
                break
        return questions

    async def _detect_agent(self, session: ImportSession) -> None:
        name = session.metadata.agent_name
        if not name:
            return
        if session.detected_agent is not None and session.detected_agent.name == name.strip():
            return
        directory = await self._agents.list_agents()
        session.detected_agent = resolve_agent(name, directory, session.agent_id)
        logger.info(
            "session %s: bulletin agent %r matched %s (mismatch=%s)",
            session.id, name, session.detected_agent.confidence.value, session.detected_agent.agent_mismatch,
        )

    def _history(self, session: ImportSession) -> List["LLMMessage"]:
        """Turns of the current import, without the user turn being processed."""
        turns = list(session.history)
        if turns and isinstance(turns[-1], UserTurn):
            turns.pop()
        start = next(
            (i for i in range(len(turns) - 1, -1, -1) if isinstance(turns[i], UserTurn) and turns[i].attachment),
            None,
        )
        if start is None:
            return []
        rest = turns[start + 1:]
        rest = rest[-(self._history_window - 1):] if self._history_window > 1 else []

        messages: List["LLMMessage"] = []
        if session.ocr_text:
            messages.append({"role": "user", "content": build_extraction_prompt(session.ocr_text)})
        for turn in rest:
            if isinstance(turn, UserTurn):
                if turn.text:
                    messages.append({"role": "user", "content": turn.text})
            elif "services" in turn.payload:
                messages.append({"role": "assistant", "content": _assistant_content(turn)})
        return messages

    def _ensure_ready(self, session: ImportSession) -> None:
        if session.status is not SessionStatus.READY_TO_IMPORT:
            raise ConflictStateError(
                f"Session {session.id} is {session.status.value}, not ready to import",
                details={"conversation_id": str(session.id), "status": session.status.value},
                user_message="Les services ne sont pas encore prêts à être importés.",
            )

    async def _ensure_owner(self, session: ImportSession) -> None:
        if await self._agents.get(session.agent_id) is None:
            raise AgentNotFoundError(
                f"Agent {session.agent_id} not found",
                details={"agent_id": str(session.agent_id)},
            )

    @staticmethod
    def _mark_imported(session: ImportSession, result: ReconciliationResult) -> None:
        transition(session, SessionStatus.IMPORTED)
        session.imported_count = result.imported_count
        session.imported_at = datetime.now(timezone.utc)

    def _reply(
        self,
        session: ImportSession,
        message: str,
        *,
        import_result: Optional[ReconciliationResult] = None,
    ) -> ImportStep:
        payload = self.snapshot(session)
        if import_result is not None:
            payload["import_result"] = import_result.to_dict()
        session.append(AssistantTurn(text=message, payload=payload))
        return ImportStep(message=message, import_result=import_result)


def _assistant_content(turn: AssistantTurn) -> str:
    """Replay of a past answer, in the shape the model produced it (printed dates)."""
    payload = turn.payload
    services = [CandidateEntry.from_dict(s).to_prompt_dict() for s in payload.get("services") or []]
    return json.dumps(
        {
            "message": turn.text,
            "services": services,
            "questions": payload.get("questions") or [],
            "ready_to_import": bool(payload.get("ready_to_import")),
        },
        ensure_ascii=False,
    )
