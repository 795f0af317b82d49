"""
cogc_planning.infra.database.repositories – async repositories over the ORM models.
"""
from cogc_planning.infra.database.repositories.agent import AgentRepository
from cogc_planning.infra.database.repositories.base import BaseRepository
from cogc_planning.infra.database.repositories.import_session import ImportSessionRepository
from cogc_planning.infra.database.repositories.planning import PlanningRepository
from cogc_planning.infra.database.repositories.service_code import ServiceCodeRepository

__all__ = [
    "BaseRepository",
    "AgentRepository",
    "PlanningRepository",
    "ServiceCodeRepository",
    "ImportSessionRepository",
]
