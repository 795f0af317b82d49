"""Retry policy for calls to external adapters (OCR, LLM).

Transient failures (timeouts, connection errors, HTTP 5xx and 429) are retried
with bounded exponential backoff. Anything else fails on the first attempt.
Exhausted or non-retryable failures surface as ExternalServiceError;
project errors raised by the operation itself pass through unchanged.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
import openai

from cogc_planning.core.exceptions import ExternalServiceError, ProjectError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _retryable_status(status: Optional[int]) -> bool:
    return status is not None and (status >= 500 or status == 429)


def is_transient_error(exc: BaseException) -> bool:
    """Default predicate: timeouts, connection errors, HTTP 5xx and 429."""
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return _retryable_status(exc.response.status_code)
    if isinstance(exc, openai.APIConnectionError):
        # includes APITimeoutError
        return True
    if isinstance(exc, openai.APIStatusError):
        return _retryable_status(exc.status_code)
    if isinstance(exc, ExternalServiceError):
        return bool(exc.details.get("retryable", False))
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff: attempt n waits ``min(base_delay * 2**(n-1), max_delay)``
    before attempt n+1. ``attempt_timeout`` caps every single attempt with
    ``asyncio.wait_for``; cancellation of the caller is never caught.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    attempt_timeout: Optional[float] = None
    is_retryable: Callable[[BaseException], bool] = is_transient_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < self.base_delay:
            raise ValueError("need 0 <= base_delay <= max_delay")

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    def with_timeout(self, attempt_timeout: Optional[float]) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            attempt_timeout=attempt_timeout,
            is_retryable=self.is_retryable,
            sleep=self.sleep,
        )

    async def run(self, operation: Callable[[], Awaitable[T]], *, name: str = "call") -> T:
        last_exc: BaseException = RuntimeError("unreachable")
        for attempt in range(1, self.max_attempts + 1):
            try:
                if self.attempt_timeout is not None:
                    return await asyncio.wait_for(operation(), timeout=self.attempt_timeout)
                return await operation()
            except Exception as exc:
                last_exc = exc
                if not self.is_retryable(exc):
                    if isinstance(exc, ProjectError):
                        raise
                    raise ExternalServiceError(
                        f"{name} failed (not retryable): {exc}",
                        details={"operation": name, "attempts": attempt, "retryable": False},
                        cause=exc,
                    ) from exc
            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%r), retry in %.1fs",
                    name, attempt, self.max_attempts, last_exc, delay,
                )
                await self.sleep(delay)
        raise ExternalServiceError(
            f"{name} failed after {self.max_attempts} attempts: {last_exc}",
            details={"operation": name, "attempts": self.max_attempts},
            cause=last_exc,
        ) from last_exc
