"""Import session ORM model: the conversation state of one chat-bulletin thread."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from cogc_planning.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class ImportSessionRecord(Base, TimestampMixin):
    __tablename__ = "import_sessions"
    __table_args__ = (
        Index("ix_import_sessions_agent_id", "agent_id"),
        Index("ix_import_sessions_status", "status"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    agent_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="new")
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    """Optimistic concurrency token, incremented on every save."""

    history: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    candidate_entries: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    questions: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    conflicts: Mapped[Optional[List[dict[str, Any]]]] = mapped_column(JSONB, nullable=True)
    detected_agent: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    bulletin_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    """Agent name, CP number and period as read on the bulletin."""

    pdf_filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ocr_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    imported_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    imported_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"ImportSessionRecord(id={self.id!r}, status={self.status!r}, version={self.version})"
