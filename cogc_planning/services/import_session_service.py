"""ImportSessionService: the conversation session store over import_sessions."""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Dict, Optional

from cogc_planning.bulletin.ports import SessionStore
from cogc_planning.bulletin.types import (
    BulletinMetadata,
    CandidateEntry,
    Conflict,
    DetectedAgent,
    ImportSession,
    Question,
    SessionStatus,
    turn_from_dict,
    turn_to_dict,
)
from cogc_planning.core.exceptions import ConflictStateError
from cogc_planning.infra.database.repositories import ImportSessionRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cogc_planning.infra.database.models import ImportSessionRecord

logger = logging.getLogger(__name__)


def session_from_record(record: "ImportSessionRecord") -> ImportSession:
    return ImportSession(
        id=record.id,
        agent_id=record.agent_id,
        status=SessionStatus(record.status),
        version=record.version,
        history=[turn_from_dict(t) for t in record.history or []],
        candidate_entries=[CandidateEntry.from_dict(e) for e in record.candidate_entries or []],
        questions=[Question.from_dict(q) for q in record.questions or []],
        conflicts=[Conflict.from_dict(c) for c in record.conflicts] if record.conflicts is not None else None,
        detected_agent=DetectedAgent.from_dict(record.detected_agent) if record.detected_agent else None,
        metadata=BulletinMetadata.from_dict(record.bulletin_metadata),
        pdf_filename=record.pdf_filename,
        ocr_text=record.ocr_text,
        imported_count=record.imported_count,
        imported_at=record.imported_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def session_values(session: ImportSession) -> Dict[str, Any]:
    """Column values written on save (everything but id, agent and version)."""
    return {
        "status": session.status.value,
        "history": [turn_to_dict(t) for t in session.history],
        "candidate_entries": [e.to_dict() for e in session.candidate_entries],
        "questions": [q.to_dict() for q in session.questions],
        "conflicts": [c.to_dict() for c in session.conflicts] if session.conflicts is not None else None,
        "detected_agent": session.detected_agent.to_dict() if session.detected_agent else None,
        "bulletin_metadata": session.metadata.to_dict(),
        "pdf_filename": session.pdf_filename,
        "ocr_text": session.ocr_text,
        "imported_count": session.imported_count,
        "imported_at": session.imported_at,
    }


class ImportSessionService(SessionStore):
    def __init__(self, session: "AsyncSession") -> None:
        self._session = session
        self._repo = ImportSessionRepository(session)

    async def create(self, agent_id: uuid.UUID) -> ImportSession:
        record = await self._repo.start(agent_id)
        logger.info("Created conversation %s for agent %s", record.id, agent_id)
        return session_from_record(record)

    async def get(self, conversation_id: uuid.UUID) -> Optional[ImportSession]:
        record = await self._repo.get_by_id(conversation_id)
        return session_from_record(record) if record is not None else None

    async def save(self, session: ImportSession, *, expected_version: int) -> ImportSession:
        saved = await self._repo.update_if_version(session.id, expected_version, session_values(session))
        if not saved:
            raise ConflictStateError(
                f"Conversation {session.id} was modified concurrently",
                details={"conversation_id": str(session.id), "expected_version": expected_version},
            )
        return replace(session, version=expected_version + 1)
