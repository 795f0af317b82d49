"""
cogc_planning.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from cogc_planning.infra.database.models.agent import Agent
from cogc_planning.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from cogc_planning.infra.database.models.import_session import ImportSessionRecord
from cogc_planning.infra.database.models.planning import PlanningEntry
from cogc_planning.infra.database.models.service_code import ServiceCode

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "Agent",
    "PlanningEntry",
    "ServiceCode",
    "ImportSessionRecord",
]
