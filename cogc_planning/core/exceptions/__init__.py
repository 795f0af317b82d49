"""
Project exception system.

    from cogc_planning.core.exceptions import ExternalServiceError

    raise ExternalServiceError("OCR returned 503", details={"retryable": True}, cause=exc)

Raised ProjectErrors surface in the chat as their ``user_message``; see
api/errors.py and services/chat_service.py for the turn error policy.
"""
from cogc_planning.core.exceptions.base import ProjectError
from cogc_planning.core.exceptions.errors import (
    AgentNotFoundError,
    ConfigurationError,
    ConflictError,
    ConflictStateError,
    ExternalServiceError,
    ExtractionError,
    NotFoundError,
    ParseError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "ConflictStateError",
    "ExternalServiceError",
    "ExtractionError",
    "ParseError",
    "AgentNotFoundError",
    "RateLimitError",
]
