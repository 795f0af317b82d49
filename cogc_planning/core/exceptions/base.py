"""
Base exception type for the project.

Every error carries a machine-readable code, the HTTP status the API layer
answers with, and a French ``user_message`` that is safe to show to the agent
in the chat history. ``message`` stays technical and goes to logs.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional


class ProjectError(Exception):
    default_code: str = "ERROR"
    default_http_status: int = 500
    default_user_message: str = "Une erreur inattendue est survenue. Réessayez dans quelques instants."

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: dict[str, Any] = details or {}
        self.cause = cause
        self.user_message = user_message or self.default_user_message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, http_status={self.http_status}, message={self.message!r})"

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Log payload; the API exposes only code and message."""
        out: dict[str, Any] = {"code": self.code, "http_status": self.http_status, "message": self.message}
        if self.details:
            out["details"] = self.details
        if self.cause is not None:
            out["cause"] = f"{type(self.cause).__name__}: {self.cause}"
            out["cause_traceback"] = "".join(
                traceback.format_exception(type(self.cause), self.cause, self.cause.__traceback__)
            ).strip()
        return out
