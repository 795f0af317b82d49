"""In-memory implementations of the storage boundaries (tests and local runs)."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from cogc_planning.bulletin.ports import AgentDirectory, ScheduleStore, SessionStore
from cogc_planning.bulletin.types import (
    AgentRecord,
    ImportSession,
    ScheduleEntry,
    ScheduleMetadata,
    TeamMember,
)
from cogc_planning.core.exceptions import ConflictStateError, NotFoundError

if TYPE_CHECKING:
    from cogc_planning.qa.dates import DateRange


class InMemoryScheduleStore(ScheduleStore):
    def __init__(self, agents: Optional["InMemoryAgentDirectory"] = None) -> None:
        self._entries: Dict[Tuple[uuid.UUID, date], ScheduleEntry] = {}
        self._agents = agents
        self.upsert_calls = 0

    async def upsert(
        self,
        agent_id: uuid.UUID,
        day: date,
        service_code: str,
        poste_code: Optional[str],
        metadata: Optional[ScheduleMetadata] = None,
    ) -> None:
        self.upsert_calls += 1
        current = self._entries.get((agent_id, day))
        if metadata is None:
            metadata = current.metadata if current is not None else ScheduleMetadata()
        self._entries[(agent_id, day)] = ScheduleEntry(agent_id, day, service_code, poste_code, metadata)

    async def query(
        self,
        agent_id: uuid.UUID,
        date_range: "DateRange",
        service_code_filter: Optional[str] = None,
        *,
        service_codes: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduleEntry]:
        found = sorted(
            (
                e for (owner, day), e in self._entries.items()
                if owner == agent_id and day in date_range
            ),
            key=lambda e: e.date,
        )
        if service_code_filter:
            found = [e for e in found if e.service_code == service_code_filter]
        if service_codes:
            found = [e for e in found if e.service_code in service_codes]
        return found[:limit] if limit is not None else found

    async def get_for_dates(self, agent_id: uuid.UUID, days: Iterable[date]) -> List[ScheduleEntry]:
        return [self._entries[(agent_id, d)] for d in sorted(set(days)) if (agent_id, d) in self._entries]

    async def query_team(
        self,
        day: date,
        *,
        exclude_agent_id: uuid.UUID,
        service_codes: Sequence[str],
        poste_code: Optional[str] = None,
    ) -> List[TeamMember]:
        team = []
        for (owner, d), entry in sorted(self._entries.items(), key=lambda kv: str(kv[0][0])):
            if d != day or owner == exclude_agent_id or entry.service_code not in service_codes:
                continue
            if poste_code and entry.poste_code != poste_code:
                continue
            record = await self._agents.get(owner) if self._agents is not None else None
            name = f"{record.prenom} {record.nom}" if record else str(owner)
            team.append(TeamMember(owner, name, entry.service_code, entry.poste_code))
        return team

    def all_entries(self, agent_id: uuid.UUID) -> List[ScheduleEntry]:
        return sorted((e for (owner, _), e in self._entries.items() if owner == agent_id), key=lambda e: e.date)


class InMemorySessionStore(SessionStore):
    """Stores copies, so callers never share state with the store."""

    def __init__(self) -> None:
        self._sessions: Dict[uuid.UUID, ImportSession] = {}
        self._lock = asyncio.Lock()

    async def create(self, agent_id: uuid.UUID) -> ImportSession:
        session = ImportSession(agent_id=agent_id)
        async with self._lock:
            self._sessions[session.id] = session.clone()
        return session

    async def get(self, conversation_id: uuid.UUID) -> Optional[ImportSession]:
        stored = self._sessions.get(conversation_id)
        return stored.clone() if stored is not None else None

    async def save(self, session: ImportSession, *, expected_version: int) -> ImportSession:
        async with self._lock:
            stored = self._sessions.get(session.id)
            if stored is None:
                raise NotFoundError(f"Conversation {session.id} not found")
            if stored.version != expected_version:
                raise ConflictStateError(
                    f"Conversation {session.id} was modified concurrently",
                    details={"expected_version": expected_version, "actual_version": stored.version},
                )
            saved = replace(session.clone(), version=expected_version + 1, updated_at=datetime.now(timezone.utc))
            self._sessions[session.id] = saved
        return saved.clone()


class InMemoryAgentDirectory(AgentDirectory):
    def __init__(self, agents: Iterable[AgentRecord] = ()) -> None:
        self._agents: Dict[uuid.UUID, AgentRecord] = {a.id: a for a in agents}

    def add(self, agent: AgentRecord) -> None:
        self._agents[agent.id] = agent

    async def get(self, agent_id: uuid.UUID) -> Optional[AgentRecord]:
        return self._agents.get(agent_id)

    async def list_agents(self) -> List[AgentRecord]:
        return sorted(self._agents.values(), key=lambda a: (a.nom, a.prenom))
