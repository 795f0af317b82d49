"""Agent directory ORM model."""
from __future__ import annotations

import uuid

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from cogc_planning.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Agent(Base, TimestampMixin):
    """A scheduled agent; owner of a planning calendar."""

    __tablename__ = "agents"
    __table_args__ = (
        Index("ix_agents_nom_prenom", "nom", "prenom"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    nom: Mapped[str] = mapped_column(String(128), nullable=False)
    prenom: Mapped[str] = mapped_column(String(128), nullable=False, server_default="")

    def __repr__(self) -> str:
        return f"Agent(id={self.id!r}, nom={self.nom!r}, prenom={self.prenom!r})"
