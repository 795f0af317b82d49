"""Planning ORM model: one row per (agent, date)."""
from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from cogc_planning.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class PlanningEntry(Base, TimestampMixin):
    __tablename__ = "planning"
    __table_args__ = (
        UniqueConstraint("agent_id", "date", name="uq_planning_agent_date"),
        Index("ix_planning_date", "date"),
        Index("ix_planning_service_code", "service_code"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    agent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    service_code: Mapped[str] = mapped_column(String(16), nullable=False)
    poste_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Free-form annotations, never written by bulletin imports
    commentaire: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    postes_supplementaires: Mapped[Optional[List[str]]] = mapped_column(JSONB, nullable=True)
    texte_libre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    statut_conge: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return (
            f"PlanningEntry(agent_id={self.agent_id!r}, date={self.date!r}, "
            f"service={self.service_code!r}, poste={self.poste_code!r})"
        )
