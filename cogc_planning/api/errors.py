"""Exception handlers: every failure comes back in the turn-response shape."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from cogc_planning.api.schemas.chat import TurnResponse
from cogc_planning.core.exceptions import ProjectError, RateLimitError, ValidationError

logger = logging.getLogger(__name__)


def error_response(exc: ProjectError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=TurnResponse.from_error(exc).model_dump(mode="json"))


async def project_error_handler(request: Request, exc: ProjectError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.to_dict())
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    error = ValidationError(
        f"Invalid request: {field or 'body'}: {first.get('msg', 'invalid')}",
        details={"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
        user_message="Requête invalide.",
    )
    return await project_error_handler(request, error)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return await project_error_handler(request, RateLimitError(f"Rate limit exceeded: {exc.detail}"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProjectError, project_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
