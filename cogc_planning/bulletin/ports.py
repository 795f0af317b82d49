"""Storage boundaries used by the import pipeline and the Q&A executor.

Postgres implementations live in ``cogc_planning.services``; in-memory ones
in ``cogc_planning.infra.memory``.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence

from cogc_planning.bulletin.types import AgentRecord, ImportSession, ScheduleEntry, ScheduleMetadata, TeamMember

if TYPE_CHECKING:
    from cogc_planning.qa.dates import DateRange


class ScheduleStore(ABC):
    """Keyed storage of one entry per (agent_id, date)."""

    @abstractmethod
    async def upsert(
        self,
        agent_id: uuid.UUID,
        day: date,
        service_code: str,
        poste_code: Optional[str],
        metadata: Optional[ScheduleMetadata] = None,
    ) -> None:
        """Insert or replace the entry for (agent_id, day). ``metadata=None`` keeps stored metadata."""
        ...

    @abstractmethod
    async def query(
        self,
        agent_id: uuid.UUID,
        date_range: "DateRange",
        service_code_filter: Optional[str] = None,
        *,
        service_codes: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduleEntry]:
        """Entries in the inclusive range, ordered by date."""
        ...

    @abstractmethod
    async def get_for_dates(self, agent_id: uuid.UUID, days: Iterable[date]) -> List[ScheduleEntry]:
        ...

    @abstractmethod
    async def query_team(
        self,
        day: date,
        *,
        exclude_agent_id: uuid.UUID,
        service_codes: Sequence[str],
        poste_code: Optional[str] = None,
    ) -> List[TeamMember]:
        ...


class SessionStore(ABC):
    """Conversation sessions with optimistic concurrency on ``version``."""

    @abstractmethod
    async def create(self, agent_id: uuid.UUID) -> ImportSession:
        ...

    @abstractmethod
    async def get(self, conversation_id: uuid.UUID) -> Optional[ImportSession]:
        ...

    @abstractmethod
    async def save(self, session: ImportSession, *, expected_version: int) -> ImportSession:
        """
        Persist ``session`` if the stored version still equals
        ``expected_version``; returns it with the version incremented.
        Raises ConflictStateError otherwise.
        """
        ...


class AgentDirectory(ABC):
    @abstractmethod
    async def get(self, agent_id: uuid.UUID) -> Optional[AgentRecord]:
        ...

    @abstractmethod
    async def list_agents(self) -> List[AgentRecord]:
        ...
