"""Repository for import sessions with a version-checked update."""
from __future__ import annotations

import uuid
from typing import Any, ClassVar, Dict, Optional

from sqlalchemy import func, update

from cogc_planning.infra.database.models.import_session import ImportSessionRecord
from cogc_planning.infra.database.repositories.base import BaseRepository


class ImportSessionRepository(BaseRepository[ImportSessionRecord]):
    model: ClassVar[type] = ImportSessionRecord

    async def start(self, agent_id: uuid.UUID, *, id: Optional[uuid.UUID] = None) -> ImportSessionRecord:
        data: Dict[str, Any] = {
            "agent_id": agent_id,
            "status": "new",
            "version": 0,
            "history": [],
            "candidate_entries": [],
            "questions": [],
        }
        if id is not None:
            data["id"] = id
        return await self.create(data)

    async def update_if_version(self, id: uuid.UUID, expected_version: int, values: Dict[str, Any]) -> bool:
        """``UPDATE ... WHERE id = :id AND version = :expected``; bumps the version. False if nothing matched."""
        stmt = (
            update(ImportSessionRecord)
            .where(ImportSessionRecord.id == id, ImportSessionRecord.version == expected_version)
            .values(**values, version=expected_version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) == 1
