"""Chat-bulletin router: one endpoint for bulletin import turns and planning questions."""
from __future__ import annotations

import logging
import os
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from cogc_planning.api.dependencies import get_chat_service
from cogc_planning.api.schemas.chat import ConversationResponse, TurnRequest, TurnResponse
from cogc_planning.services.chat_service import ChatService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat-bulletin", tags=["chat-bulletin"])
limiter = Limiter(key_func=get_remote_address)
CHAT_RATE_LIMIT = os.environ.get("CHAT_RATE_LIMIT", "30/minute")


@router.post("", response_model=TurnResponse)
@limiter.limit(CHAT_RATE_LIMIT)
async def chat_turn(
    request: Request,
    body: TurnRequest,
    service: ChatService = Depends(get_chat_service),
):
    result = await service.handle(body.to_turn())
    response = TurnResponse.from_result(result)
    if result.error is not None:
        # The error turn was saved; report it with the error's status
        logger.info("chat_turn: %s on conversation %s", result.error.code, result.conversation_id)
        return JSONResponse(status_code=result.error.http_status, content=response.model_dump(mode="json"))
    return response


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    agent_id: UUID = Query(...),
    service: ChatService = Depends(get_chat_service),
):
    session = await service.get_conversation(conversation_id, agent_id)
    return ConversationResponse.from_session(session, service.view(session))
