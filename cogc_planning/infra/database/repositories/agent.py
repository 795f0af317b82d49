"""Repository for the agent directory."""
from __future__ import annotations

from typing import ClassVar, List

from sqlalchemy import select

from cogc_planning.infra.database.models.agent import Agent
from cogc_planning.infra.database.repositories.base import BaseRepository


class AgentRepository(BaseRepository[Agent]):
    model: ClassVar[type] = Agent

    async def list_ordered(self) -> List[Agent]:
        stmt = select(Agent).order_by(Agent.nom, Agent.prenom)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
