"""Unit tests for RetryPolicy."""
from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock

import httpx

from cogc_planning.clients.retry import RetryPolicy, is_transient_error
from cogc_planning.core.exceptions import ExternalServiceError, ParseError

_REQUEST = httpx.Request("POST", "https://ocr.example/v1/ocr")


def _status_error(code: int) -> httpx.HTTPStatusError:
    return httpx.HTTPStatusError("boom", request=_REQUEST, response=httpx.Response(code, request=_REQUEST))


class TestIsTransientError(unittest.TestCase):
    def test_transient(self) -> None:
        self.assertTrue(is_transient_error(asyncio.TimeoutError()))
        self.assertTrue(is_transient_error(httpx.ConnectError("refused", request=_REQUEST)))
        self.assertTrue(is_transient_error(_status_error(503)))
        self.assertTrue(is_transient_error(_status_error(429)))

    def test_not_transient(self) -> None:
        self.assertFalse(is_transient_error(_status_error(400)))
        self.assertFalse(is_transient_error(ValueError("bad")))


class TestRetryPolicy(unittest.TestCase):
    def test_backoff_is_bounded(self) -> None:
        policy = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=3.0)
        self.assertEqual([policy.delay_for(n) for n in (1, 2, 3, 4)], [1.0, 2.0, 3.0, 3.0])

    def test_retries_transient_then_succeeds(self) -> None:
        sleep = AsyncMock()
        operation = AsyncMock(side_effect=[_status_error(502), "texte"])
        policy = RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=2.0, sleep=sleep)

        self.assertEqual(asyncio.run(policy.run(operation, name="ocr")), "texte")
        self.assertEqual(operation.await_count, 2)
        sleep.assert_awaited_once_with(0.5)

    def test_exhaustion_raises_external_service_error(self) -> None:
        operation = AsyncMock(side_effect=_status_error(500))
        policy = RetryPolicy(max_attempts=3, sleep=AsyncMock())
        with self.assertRaises(ExternalServiceError) as ctx:
            asyncio.run(policy.run(operation, name="ocr"))
        self.assertEqual(operation.await_count, 3)
        self.assertEqual(ctx.exception.details["attempts"], 3)

    def test_client_error_not_retried(self) -> None:
        operation = AsyncMock(side_effect=_status_error(401))
        policy = RetryPolicy(max_attempts=3, sleep=AsyncMock())
        with self.assertRaises(ExternalServiceError) as ctx:
            asyncio.run(policy.run(operation))
        self.assertEqual(operation.await_count, 1)
        self.assertFalse(ctx.exception.details["retryable"])

    def test_project_error_passes_through(self) -> None:
        operation = AsyncMock(side_effect=ParseError("bad json"))
        with self.assertRaises(ParseError):
            asyncio.run(RetryPolicy(max_attempts=3, sleep=AsyncMock()).run(operation))
        self.assertEqual(operation.await_count, 1)

    def test_attempt_timeout(self) -> None:
        async def slow():
            await asyncio.sleep(1)

        policy = RetryPolicy(max_attempts=2, base_delay=0.0, max_delay=0.0, attempt_timeout=0.01, sleep=AsyncMock())
        with self.assertRaises(ExternalServiceError):
            asyncio.run(policy.run(slow, name="llm"))

    def test_invalid_policy(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)


if __name__ == "__main__":
    unittest.main()
