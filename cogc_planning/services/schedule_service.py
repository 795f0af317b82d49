"""ScheduleService: the schedule store over the planning table."""
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from cogc_planning.bulletin.ports import ScheduleStore
from cogc_planning.bulletin.types import ScheduleEntry, ScheduleMetadata, TeamMember
from cogc_planning.infra.database.repositories import PlanningRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cogc_planning.infra.database.models import PlanningEntry
    from cogc_planning.qa.dates import DateRange


def _to_entry(row: "PlanningEntry") -> ScheduleEntry:
    return ScheduleEntry(
        agent_id=row.agent_id,
        date=row.date,
        service_code=row.service_code,
        poste_code=row.poste_code,
        metadata=ScheduleMetadata(
            commentaire=row.commentaire,
            postes_supplementaires=tuple(row.postes_supplementaires or ()),
            texte_libre=row.texte_libre,
            statut_conge=row.statut_conge,
        ),
    )


class ScheduleService(ScheduleStore):
    def __init__(self, session: "AsyncSession") -> None:
        self._session = session
        self._repo = PlanningRepository(session)

    async def upsert(
        self,
        agent_id: uuid.UUID,
        day: date,
        service_code: str,
        poste_code: Optional[str],
        metadata: Optional[ScheduleMetadata] = None,
    ) -> None:
        extra: Optional[Dict[str, Any]] = None
        if metadata is not None:
            extra = {
                "commentaire": metadata.commentaire,
                "postes_supplementaires": list(metadata.postes_supplementaires),
                "texte_libre": metadata.texte_libre,
                "statut_conge": metadata.statut_conge,
            }
        await self._repo.upsert_entry(agent_id, day, service_code, poste_code, extra)

    async def query(
        self,
        agent_id: uuid.UUID,
        date_range: "DateRange",
        service_code_filter: Optional[str] = None,
        *,
        service_codes: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[ScheduleEntry]:
        rows = await self._repo.in_range(
            agent_id,
            date_range.start,
            date_range.end,
            service_code=service_code_filter,
            service_codes=service_codes,
            limit=limit,
        )
        return [_to_entry(r) for r in rows]

    async def get_for_dates(self, agent_id: uuid.UUID, days: Iterable[date]) -> List[ScheduleEntry]:
        return [_to_entry(r) for r in await self._repo.on_dates(agent_id, days)]

    async def query_team(
        self,
        day: date,
        *,
        exclude_agent_id: uuid.UUID,
        service_codes: Sequence[str],
        poste_code: Optional[str] = None,
    ) -> List[TeamMember]:
        rows = await self._repo.team_on(
            day, exclude_agent_id=exclude_agent_id, service_codes=service_codes, poste_code=poste_code,
        )
        return [
            TeamMember(
                agent_id=entry.agent_id,
                agent_name=f"{agent.prenom} {agent.nom}".strip(),
                service_code=entry.service_code,
                poste_code=entry.poste_code,
            )
            for entry, agent in rows
        ]
