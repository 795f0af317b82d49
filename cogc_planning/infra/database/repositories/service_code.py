"""Repository for the service code catalog table."""
from __future__ import annotations

from typing import ClassVar, List

from sqlalchemy import select

from cogc_planning.infra.database.models.service_code import ServiceCode
from cogc_planning.infra.database.repositories.base import BaseRepository


class ServiceCodeRepository(BaseRepository[ServiceCode]):
    model: ClassVar[type] = ServiceCode

    async def list_all(self) -> List[ServiceCode]:
        result = await self.session.execute(select(ServiceCode).order_by(ServiceCode.code))
        return list(result.scalars().all())
