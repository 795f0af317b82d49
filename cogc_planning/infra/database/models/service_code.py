"""Service code catalog ORM model."""
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cogc_planning.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class ServiceCode(Base, TimestampMixin):
    __tablename__ = "codes_services"

    id: Mapped[uuid.UUID] = _uuid_pk()
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    """Code as printed on bulletins, e.g. CCU003."""

    service_code: Mapped[str] = mapped_column(String(16), nullable=False)
    poste_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    horaires_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    def __repr__(self) -> str:
        return f"ServiceCode(code={self.code!r}, service={self.service_code!r}, poste={self.poste_code!r})"
