"""Pydantic v2 schemas for the chat-bulletin API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Base64Bytes, BaseModel, Field

from cogc_planning.bulletin.types import (
    AssistantTurn,
    ImportSession,
    QuickReplyType,
    ResolutionStrategy,
    SessionStatus,
    Turn,
    UserTurn,
)
from cogc_planning.core.exceptions import ProjectError
from cogc_planning.services.chat_service import ChatTurn, QuickReply, TurnResult


class QuickReplySchema(BaseModel):
    type: QuickReplyType
    value: Optional[str] = Field(default=None, max_length=64)
    service_index: Optional[int] = Field(default=None, ge=0)
    conflict_strategy: Optional[ResolutionStrategy] = None


class TurnRequest(BaseModel):
    agent_id: UUID
    message: Optional[str] = Field(default=None, max_length=8000)
    pdf_bytes: Optional[Base64Bytes] = None
    """Base64-encoded PDF."""
    pdf_filename: Optional[str] = Field(default=None, max_length=255)
    conversation_id: Optional[UUID] = None
    quick_reply: Optional[QuickReplySchema] = None

    def to_turn(self) -> ChatTurn:
        reply = None
        if self.quick_reply is not None:
            reply = QuickReply(
                type=self.quick_reply.type,
                value=self.quick_reply.value,
                service_index=self.quick_reply.service_index,
                conflict_strategy=self.quick_reply.conflict_strategy,
            )
        return ChatTurn(
            agent_id=self.agent_id,
            message=self.message,
            pdf_bytes=self.pdf_bytes,
            pdf_filename=self.pdf_filename,
            conversation_id=self.conversation_id,
            quick_reply=reply,
        )


class ImportResultSchema(BaseModel):
    count: int
    skipped: int = 0
    success: bool


class ErrorSchema(BaseModel):
    code: str
    message: str


class TurnResponse(BaseModel):
    success: bool = True
    conversation_id: Optional[UUID] = None
    message: str
    services: Optional[List[Dict[str, Any]]] = None
    questions: Optional[List[Dict[str, Any]]] = None
    ready_to_import: bool = False
    conflicts: Optional[List[Dict[str, Any]]] = None
    detected_agent: Optional[Dict[str, Any]] = None
    agent_mismatch: Optional[bool] = None
    import_result: Optional[ImportResultSchema] = None
    qa_response: Optional[Dict[str, Any]] = None
    error: Optional[ErrorSchema] = None

    @classmethod
    def from_result(cls, result: TurnResult) -> "TurnResponse":
        view = result.view
        import_result = None
        if result.import_result is not None:
            data = result.import_result.to_dict()
            import_result = ImportResultSchema(count=data["count"], skipped=data["skipped"], success=data["success"])
        return cls(
            success=result.success,
            conversation_id=result.conversation_id,
            message=result.message,
            services=view.get("services") or None,
            questions=view.get("questions") or None,
            ready_to_import=bool(view.get("ready_to_import")),
            conflicts=view.get("conflicts"),
            detected_agent=view.get("detected_agent"),
            agent_mismatch=view.get("agent_mismatch") or None,
            import_result=import_result,
            qa_response=result.qa_answer.to_dict() if result.qa_answer is not None else None,
            error=ErrorSchema(code=result.error.code, message=result.error.message) if result.error else None,
        )

    @classmethod
    def from_error(cls, exc: ProjectError, conversation_id: Optional[UUID] = None) -> "TurnResponse":
        return cls(
            success=False,
            conversation_id=conversation_id,
            message=exc.user_message,
            error=ErrorSchema(code=exc.code, message=exc.message),
        )


class TurnSchema(BaseModel):
    kind: str
    text: Optional[str] = None
    attachment: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime

    @classmethod
    def from_turn(cls, turn: Turn) -> "TurnSchema":
        if isinstance(turn, UserTurn):
            return cls(kind=turn.kind, text=turn.text, attachment=turn.attachment, created_at=turn.created_at)
        if isinstance(turn, AssistantTurn):
            return cls(kind=turn.kind, text=turn.text, payload=turn.payload, created_at=turn.created_at)
        raise TypeError(f"Unknown turn type: {type(turn).__name__}")


class ConversationResponse(BaseModel):
    conversation_id: UUID
    agent_id: UUID
    status: SessionStatus
    version: int
    ready_to_import: bool = False
    services: List[Dict[str, Any]] = []
    questions: List[Dict[str, Any]] = []
    conflicts: Optional[List[Dict[str, Any]]] = None
    detected_agent: Optional[Dict[str, Any]] = None
    pdf_filename: Optional[str] = None
    imported_count: Optional[int] = None
    imported_at: Optional[datetime] = None
    history: List[TurnSchema] = []

    @classmethod
    def from_session(cls, session: ImportSession, view: Dict[str, Any]) -> "ConversationResponse":
        return cls(
            conversation_id=session.id,
            agent_id=session.agent_id,
            status=session.status,
            version=session.version,
            ready_to_import=bool(view.get("ready_to_import")),
            services=view.get("services") or [],
            questions=view.get("questions") or [],
            conflicts=view.get("conflicts"),
            detected_agent=view.get("detected_agent"),
            pdf_filename=session.pdf_filename,
            imported_count=session.imported_count,
            imported_at=session.imported_at,
            history=[TurnSchema.from_turn(t) for t in session.history],
        )
