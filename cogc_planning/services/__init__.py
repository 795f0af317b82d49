"""Service layer: storage boundaries over the database, catalog loading and turn handling."""
from cogc_planning.services.agent_service import AgentService
from cogc_planning.services.catalog_service import load_service_catalog
from cogc_planning.services.chat_service import ChatService, ChatTurn, QuickReply, TurnResult
from cogc_planning.services.import_session_service import ImportSessionService
from cogc_planning.services.schedule_service import ScheduleService

__all__ = [
    "AgentService",
    "ChatService",
    "ChatTurn",
    "ImportSessionService",
    "QuickReply",
    "ScheduleService",
    "TurnResult",
    "load_service_catalog",
]
