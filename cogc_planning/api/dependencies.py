"""FastAPI dependency providers."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cogc_planning.bulletin.orchestrator import ImportOrchestrator
from cogc_planning.qa.assistant import QAAssistant
from cogc_planning.qa.executor import QueryExecutor
from cogc_planning.services.agent_service import AgentService
from cogc_planning.services.chat_service import ChatService, today_in
from cogc_planning.services.import_session_service import ImportSessionService
from cogc_planning.services.schedule_service import ScheduleService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_chat_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ChatService:
    """Wire a ChatService over the request's DB session and the app-level clients."""
    state = request.app.state
    config = state.assistant_config
    schedule = ScheduleService(session)
    orchestrator = ImportOrchestrator(
        state.catalog,
        state.structuring,
        state.ocr_client,
        state.ocr_retry,
        schedule,
        AgentService(session),
        history_window=config.history_window,
    )
    qa = QAAssistant(
        state.qa_resolver,
        QueryExecutor(schedule, next_service_limit=config.next_service_limit),
        state.conversational_llm,
        llm_timeout=config.llm_timeout,
    )
    return ChatService(
        ImportSessionService(session),
        orchestrator,
        qa,
        turn_timeout=config.turn_timeout,
        max_pdf_bytes=config.max_pdf_bytes,
        today=today_in(config.tz),
    )
