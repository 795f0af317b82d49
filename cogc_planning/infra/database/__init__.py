"""
cogc_planning.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine
  Base, Agent, PlanningEntry, ServiceCode, ImportSessionRecord (models)
  BaseRepository, AgentRepository, PlanningRepository,
  ServiceCodeRepository, ImportSessionRepository
"""
from cogc_planning.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    init_db,
)
from cogc_planning.infra.database.models import (
    Agent,
    Base,
    ImportSessionRecord,
    PlanningEntry,
    ServiceCode,
)
from cogc_planning.infra.database.repositories import (
    AgentRepository,
    BaseRepository,
    ImportSessionRepository,
    PlanningRepository,
    ServiceCodeRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "Base",
    "Agent",
    "PlanningEntry",
    "ServiceCode",
    "ImportSessionRecord",
    "BaseRepository",
    "AgentRepository",
    "PlanningRepository",
    "ServiceCodeRepository",
    "ImportSessionRepository",
]
