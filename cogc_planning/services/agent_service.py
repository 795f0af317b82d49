"""AgentService: the agent directory over the agents table."""
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, List, Optional

from cogc_planning.bulletin.ports import AgentDirectory
from cogc_planning.bulletin.types import AgentRecord
from cogc_planning.infra.database.repositories import AgentRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class AgentService(AgentDirectory):
    def __init__(self, session: "AsyncSession") -> None:
        self._repo = AgentRepository(session)

    async def get(self, agent_id: uuid.UUID) -> Optional[AgentRecord]:
        agent = await self._repo.get_by_id(agent_id)
        if agent is None:
            return None
        return AgentRecord(id=agent.id, nom=agent.nom, prenom=agent.prenom)

    async def list_agents(self) -> List[AgentRecord]:
        return [AgentRecord(id=a.id, nom=a.nom, prenom=a.prenom) for a in await self._repo.list_ordered()]
