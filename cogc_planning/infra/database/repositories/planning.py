"""Repository for planning rows, keyed on (agent_id, date)."""
from __future__ import annotations

import uuid
from datetime import date
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from cogc_planning.infra.database.models.agent import Agent
from cogc_planning.infra.database.models.planning import PlanningEntry
from cogc_planning.infra.database.repositories.base import BaseRepository


class PlanningRepository(BaseRepository[PlanningEntry]):
    model: ClassVar[type] = PlanningEntry

    async def upsert_entry(
        self,
        agent_id: uuid.UUID,
        day: date,
        service_code: str,
        poste_code: Optional[str],
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        ``INSERT ... ON CONFLICT (agent_id, date) DO UPDATE``. Columns in
        ``extra`` (metadata) are only overwritten when given.
        """
        values: Dict[str, Any] = {
            "agent_id": agent_id,
            "date": day,
            "service_code": service_code,
            "poste_code": poste_code,
            **(extra or {}),
        }
        stmt = pg_insert(PlanningEntry).values(**values)
        update_cols = {"service_code": stmt.excluded.service_code, "poste_code": stmt.excluded.poste_code}
        for column in extra or {}:
            update_cols[column] = getattr(stmt.excluded, column)
        update_cols["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(constraint="uq_planning_agent_date", set_=update_cols)
        await self.session.execute(stmt)

    async def in_range(
        self,
        agent_id: uuid.UUID,
        start: date,
        end: date,
        *,
        service_code: Optional[str] = None,
        service_codes: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[PlanningEntry]:
        stmt = (
            select(PlanningEntry)
            .where(PlanningEntry.agent_id == agent_id)
            .where(PlanningEntry.date >= start, PlanningEntry.date <= end)
            .order_by(PlanningEntry.date)
        )
        if service_code:
            stmt = stmt.where(PlanningEntry.service_code == service_code)
        if service_codes:
            stmt = stmt.where(PlanningEntry.service_code.in_(list(service_codes)))
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def on_dates(self, agent_id: uuid.UUID, days: Iterable[date]) -> List[PlanningEntry]:
        days = sorted(set(days))
        if not days:
            return []
        stmt = (
            select(PlanningEntry)
            .where(PlanningEntry.agent_id == agent_id, PlanningEntry.date.in_(days))
            .order_by(PlanningEntry.date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def team_on(
        self,
        day: date,
        *,
        exclude_agent_id: uuid.UUID,
        service_codes: Sequence[str],
        poste_code: Optional[str] = None,
    ) -> List[Tuple[PlanningEntry, Agent]]:
        stmt = (
            select(PlanningEntry, Agent)
            .join(Agent, Agent.id == PlanningEntry.agent_id)
            .where(PlanningEntry.date == day, PlanningEntry.agent_id != exclude_agent_id)
            .where(PlanningEntry.service_code.in_(list(service_codes)))
            .order_by(PlanningEntry.poste_code, Agent.nom, Agent.prenom)
        )
        if poste_code:
            stmt = stmt.where(PlanningEntry.poste_code == poste_code)
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
