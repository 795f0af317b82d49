"""Unit tests for structuring response parsing and the structuring adapter."""
from __future__ import annotations

import asyncio
import json
import unittest
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from cogc_planning.bulletin.structuring import StructuringAdapter, parse_structured_response
from cogc_planning.bulletin.types import EntryConfidence
from cogc_planning.clients.retry import RetryPolicy
from cogc_planning.core.exceptions import ParseError

_VALID = {
    "message": "J'ai trouvé 2 services.",
    "services": [
        {"date": "2025-01-31", "code": "ccu003", "service_code": "X", "poste_code": "CCU", "confidence": "high"},
        {"date": "2025-02-01", "code": "RP", "service_code": "RP", "poste_code": "null", "confidence": "bizarre"},
    ],
    "questions": [{"index": 1, "text": "Code illisible ?", "options": [{"label": "Repos", "value": "RP"}]}],
    "ready_to_import": False,
    "metadata": {"agent_name": "DUPONT Jean", "periode_debut": "2025-01-27", "periode_fin": "n/a"},
}


class TestParseStructuredResponse(unittest.TestCase):
    def test_valid_payload(self) -> None:
        response = parse_structured_response(json.dumps(_VALID))
        self.assertEqual(len(response.services), 2)
        first = response.services[0]
        self.assertEqual(first.raw_code, "CCU003")
        self.assertEqual(first.date, date(2025, 1, 31))
        self.assertEqual(first.displayed_date, date(2025, 1, 31))
        self.assertIsNone(response.services[1].poste_code)
        self.assertEqual(response.services[1].confidence, EntryConfidence.LOW)
        self.assertEqual(response.questions[0].options[0].value, "RP")
        self.assertEqual(response.metadata.agent_name, "DUPONT Jean")
        self.assertEqual(response.metadata.periode_debut, date(2025, 1, 27))
        self.assertIsNone(response.metadata.periode_fin)

    def test_code_fence_and_thinking_stripped(self) -> None:
        raw = "<thinking>hmm</thinking>\n```json\n" + json.dumps({"message": "ok", "services": []}) + "\n```"
        response = parse_structured_response(raw)
        self.assertEqual(response.message, "ok")
        self.assertEqual(response.services, [])

    def test_json_embedded_in_text(self) -> None:
        raw = "Voici le résultat : " + json.dumps({"message": "ok", "ready_to_import": True}) + " fin."
        self.assertTrue(parse_structured_response(raw).ready_to_import)

    def test_not_json_raises(self) -> None:
        with self.assertRaises(ParseError):
            parse_structured_response("Je ne peux pas lire ce document.")

    def test_json_array_raises(self) -> None:
        with self.assertRaises(ParseError):
            parse_structured_response("[1, 2]")

    def test_service_without_code_raises(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_structured_response(json.dumps({"services": [{"date": "2025-01-31"}]}))
        self.assertEqual(ctx.exception.http_status, 422)

    def test_null_lists_accepted(self) -> None:
        response = parse_structured_response(json.dumps({"message": "", "services": None, "questions": None}))
        self.assertEqual(response.questions, [])


class TestStructuringAdapter(unittest.TestCase):
    def test_messages_order_and_json_mode(self) -> None:
        llm = MagicMock()
        llm.chat = AsyncMock(return_value=json.dumps(_VALID))
        adapter = StructuringAdapter(llm, RetryPolicy(max_attempts=1))
        history = [{"role": "user", "content": "ocr"}, {"role": "assistant", "content": "{}"}]

        response = asyncio.run(adapter.structure("SYSTEM", history, "corrige"))

        self.assertEqual(len(response.services), 2)
        messages = llm.chat.await_args.args[0]
        self.assertEqual([m["role"] for m in messages], ["system", "user", "assistant", "user"])
        self.assertEqual(messages[-1]["content"], "corrige")
        self.assertTrue(llm.chat.await_args.kwargs["json_mode"])

    def test_parse_error_is_not_retried(self) -> None:
        llm = MagicMock()
        llm.chat = AsyncMock(return_value="pas du json")
        adapter = StructuringAdapter(llm, RetryPolicy(max_attempts=3, sleep=AsyncMock()))
        with self.assertRaises(ParseError):
            asyncio.run(adapter.structure("SYSTEM", [], "go"))
        self.assertEqual(llm.chat.await_count, 1)


if __name__ == "__main__":
    unittest.main()
