"""ChatService: turn routing, error policy and persistence on in-memory stores."""
from __future__ import annotations

import asyncio
import json
import unittest
from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import httpx

from cogc_planning.bulletin.catalog import ServiceCodeCatalog
from cogc_planning.bulletin.orchestrator import ImportOrchestrator
from cogc_planning.bulletin.structuring import StructuringAdapter
from cogc_planning.bulletin.types import (
    AgentRecord,
    AssistantTurn,
    QuickReplyType,
    ResolutionStrategy,
    SessionStatus,
    UserTurn,
)
from cogc_planning.clients.retry import RetryPolicy
from cogc_planning.core.exceptions import ConflictStateError, NotFoundError, ValidationError
from cogc_planning.infra.memory import InMemoryAgentDirectory, InMemoryScheduleStore, InMemorySessionStore
from cogc_planning.qa.assistant import QAAssistant
from cogc_planning.qa.executor import QueryExecutor
from cogc_planning.qa.pre_classifier import QAPreClassifier
from cogc_planning.qa.resolver import QAIntentResolver
from cogc_planning.services.chat_service import (
    WELCOME_MESSAGE,
    ChatService,
    ChatTurn,
    QuickReply,
    validate_turn,
)

OWNER = AgentRecord(id=uuid4(), nom="DUPONT", prenom="Jean")

STRUCTURED = json.dumps(
    {
        "message": "J'ai trouvé 2 services.",
        "services": [
            {"date": "2025-01-31", "code": "CCU003", "confidence": "high"},
            {"date": "2025-02-02", "code": "RP", "confidence": "high"},
        ],
        "questions": [],
        "ready_to_import": True,
        "metadata": {"agent_name": "DUPONT Jean"},
    }
)


def build_chat_service(*, owner: AgentRecord = OWNER, turn_timeout=None, max_pdf_bytes=None):
    """ChatService over in-memory stores; returns (service, llm, ocr, sessions, schedule)."""
    agents = InMemoryAgentDirectory([owner])
    schedule = InMemoryScheduleStore(agents)
    sessions = InMemorySessionStore()
    llm = MagicMock()
    llm.chat = AsyncMock(return_value=STRUCTURED)
    ocr = MagicMock()
    ocr.extract = AsyncMock(return_value="BULLETIN DE COMMANDE DUPONT Jean")
    orchestrator = ImportOrchestrator(
        ServiceCodeCatalog.default(),
        StructuringAdapter(llm, RetryPolicy(max_attempts=1)),
        ocr,
        RetryPolicy(max_attempts=1),
        schedule,
        agents,
    )
    qa = QAAssistant(QAIntentResolver(QAPreClassifier()), QueryExecutor(schedule))
    service = ChatService(
        sessions,
        orchestrator,
        qa,
        turn_timeout=turn_timeout,
        max_pdf_bytes=max_pdf_bytes,
        today=lambda: date(2025, 2, 1),
    )
    return service, llm, ocr, sessions, schedule


def _pdf_turn(agent_id, conversation_id=None) -> ChatTurn:
    return ChatTurn(agent_id=agent_id, pdf_bytes=b"%PDF-1.7", pdf_filename="bulletin.pdf", conversation_id=conversation_id)


def _reply(agent_id, conversation_id, kind: QuickReplyType, **kwargs) -> ChatTurn:
    return ChatTurn(agent_id=agent_id, conversation_id=conversation_id, quick_reply=QuickReply(type=kind, **kwargs))


class TestValidateTurn(unittest.TestCase):
    def test_single_driver(self) -> None:
        with self.assertRaises(ValidationError):
            validate_turn(ChatTurn(agent_id=uuid4(), message="salut", pdf_bytes=b"%PDF"))

    def test_blank_message_is_not_a_driver(self) -> None:
        validate_turn(ChatTurn(agent_id=uuid4(), message="   ", pdf_bytes=b"%PDF"))

    def test_pdf_checks(self) -> None:
        with self.assertRaises(ValidationError):
            validate_turn(ChatTurn(agent_id=uuid4(), pdf_bytes=b""))
        with self.assertRaises(ValidationError):
            validate_turn(ChatTurn(agent_id=uuid4(), pdf_bytes=b"x" * 11), max_pdf_bytes=10)

    def test_quick_reply_requirements(self) -> None:
        agent = uuid4()
        with self.assertRaises(ValidationError):
            validate_turn(ChatTurn(agent_id=agent, quick_reply=QuickReply(QuickReplyType.SELECT_CODE, value="RP")))
        with self.assertRaises(ValidationError):
            validate_turn(ChatTurn(agent_id=agent, quick_reply=QuickReply(QuickReplyType.RESOLVE_CONFLICTS)))
        validate_turn(ChatTurn(agent_id=agent, quick_reply=QuickReply(QuickReplyType.CANCEL)))


class TestChatServiceFlow(unittest.TestCase):
    def setUp(self) -> None:
        self.service, self.llm, self.ocr, self.sessions, self.schedule = build_chat_service()

    def _handle(self, turn: ChatTurn):
        return asyncio.run(self.service.handle(turn))

    def test_welcome_without_driver(self) -> None:
        result = self._handle(ChatTurn(agent_id=OWNER.id))
        self.assertEqual(result.message, WELCOME_MESSAGE)
        self.assertEqual(result.session.status, SessionStatus.NEW)
        self.assertEqual(result.session.history, [])

    def test_validation_error_creates_nothing(self) -> None:
        with self.assertRaises(ValidationError):
            self._handle(ChatTurn(agent_id=OWNER.id, message="salut", pdf_bytes=b"%PDF"))
        self.assertEqual(self.sessions._sessions, {})

    def test_pdf_then_confirm(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        self.assertTrue(first.success)
        self.assertEqual(first.session.status, SessionStatus.READY_TO_IMPORT)
        self.assertEqual(first.session.version, 1)
        self.assertTrue(first.view["ready_to_import"])
        self.assertEqual(first.view["services"][0]["date"], "2025-02-01")
        self.assertEqual(first.session.history[0], UserTurn(attachment="bulletin.pdf", created_at=first.session.history[0].created_at))

        second = self._handle(_reply(OWNER.id, first.conversation_id, QuickReplyType.CONFIRM_IMPORT))
        self.assertEqual(second.session.status, SessionStatus.IMPORTED)
        self.assertEqual(second.import_result.imported_count, 2)
        self.assertEqual(second.session.version, 2)
        self.assertEqual(len(self.schedule.all_entries(OWNER.id)), 2)

        with self.assertRaises(ConflictStateError):
            self._handle(ChatTurn(agent_id=OWNER.id, conversation_id=first.conversation_id, message="encore"))

    def test_conflicts_then_strategy(self) -> None:
        asyncio.run(self.schedule.upsert(OWNER.id, date(2025, 2, 1), "RP", None))
        first = self._handle(_pdf_turn(OWNER.id))
        cid = first.conversation_id

        confirm = self._handle(_reply(OWNER.id, cid, QuickReplyType.CONFIRM_IMPORT))
        self.assertEqual(confirm.session.status, SessionStatus.READY_TO_IMPORT)
        self.assertEqual(len(confirm.view["conflicts"]), 1)

        done = self._handle(
            _reply(OWNER.id, cid, QuickReplyType.RESOLVE_CONFLICTS, conflict_strategy=ResolutionStrategy.SKIP_EXISTING)
        )
        self.assertEqual(done.import_result.to_dict()["skipped"], 1)
        self.assertEqual(done.session.status, SessionStatus.IMPORTED)

    def test_message_on_active_import_is_a_correction(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        self._handle(ChatTurn(agent_id=OWNER.id, conversation_id=first.conversation_id, message="le 2 c'est un C"))
        self.assertEqual(self.llm.chat.await_count, 2)

    def test_message_without_import_is_a_question(self) -> None:
        asyncio.run(self.schedule.upsert(OWNER.id, date(2025, 2, 2), "X", "CCU"))
        result = self._handle(ChatTurn(agent_id=OWNER.id, message="Je travaille demain ?"))

        self.assertIsNotNone(result.qa_answer)
        self.assertEqual(result.qa_answer.to_dict()["type"], "specific_date")
        self.assertIn("X (nuit)", result.message)
        last = result.session.history[-1]
        self.assertIsInstance(last, AssistantTurn)
        self.assertEqual(last.payload["intent"]["type"], "specific_date")
        self.assertEqual(result.session.status, SessionStatus.NEW)
        self.llm.chat.assert_not_awaited()

    def test_cancel(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        result = self._handle(_reply(OWNER.id, first.conversation_id, QuickReplyType.CANCEL))
        self.assertEqual(result.message, "Import annulé.")
        self.assertEqual(result.session.status, SessionStatus.CANCELLED)

    def test_select_code_turn(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        result = self._handle(
            _reply(OWNER.id, first.conversation_id, QuickReplyType.SELECT_CODE, service_index=1, value="C")
        )
        self.assertEqual(result.view["services"][1]["service_code"], "C")
        self.assertEqual(result.session.history[-2].text, "J'ai choisi C pour le service #1")

    def test_second_pdf_rejected(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        with self.assertRaises(ValidationError):
            self._handle(_pdf_turn(OWNER.id, first.conversation_id))

    def test_other_agents_conversation_not_found(self) -> None:
        first = self._handle(_pdf_turn(OWNER.id))
        with self.assertRaises(NotFoundError):
            self._handle(ChatTurn(agent_id=uuid4(), conversation_id=first.conversation_id, message="salut"))
        with self.assertRaises(NotFoundError):
            asyncio.run(self.service.get_conversation(uuid4(), OWNER.id))


class TestChatServiceErrors(unittest.TestCase):
    def test_ocr_failure_appends_error_turn(self) -> None:
        service, _, ocr, _, _ = build_chat_service()
        ocr.extract.side_effect = httpx.ConnectError("refused")

        result = asyncio.run(service.handle(_pdf_turn(OWNER.id)))

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, "EXTERNAL_SERVICE_ERROR")
        self.assertEqual(result.session.status, SessionStatus.NEW)
        self.assertEqual(result.session.version, 1)
        self.assertEqual(len(result.session.history), 2)
        self.assertEqual(result.session.history[-1].payload["error"]["code"], "EXTERNAL_SERVICE_ERROR")
        self.assertIsNone(result.session.ocr_text)

    def test_turn_timeout(self) -> None:
        service, _, ocr, _, _ = build_chat_service(turn_timeout=0.01)

        async def slow(pdf_bytes):
            await asyncio.sleep(1)
            return "texte"

        ocr.extract = slow
        result = asyncio.run(service.handle(_pdf_turn(OWNER.id)))
        self.assertFalse(result.success)
        self.assertEqual(result.error.http_status, 502)
        self.assertIn("0.01s", result.error.message)

    def test_slow_commit_is_not_cut_by_turn_timeout(self) -> None:
        service, _, _, _, schedule = build_chat_service(turn_timeout=0.2)
        first = asyncio.run(service.handle(_pdf_turn(OWNER.id)))
        upsert = schedule.upsert

        async def slow_second_upsert(*args, **kwargs):
            if schedule.upsert_calls == 1:
                await asyncio.sleep(0.5)
            await upsert(*args, **kwargs)

        schedule.upsert = slow_second_upsert
        result = asyncio.run(service.handle(_reply(OWNER.id, first.conversation_id, QuickReplyType.CONFIRM_IMPORT)))

        self.assertTrue(result.success)
        self.assertEqual(result.session.status, SessionStatus.IMPORTED)
        self.assertEqual(
            [(e.date, e.service_code) for e in schedule.all_entries(OWNER.id)],
            [(date(2025, 2, 1), "X"), (date(2025, 2, 2), "RP")],
        )

    def test_unknown_owner_keeps_status(self) -> None:
        stranger = AgentRecord(id=uuid4(), nom="X", prenom="Y")
        service, *_ = build_chat_service(owner=stranger)
        first = asyncio.run(service.handle(_pdf_turn(OWNER.id)))
        result = asyncio.run(service.handle(_reply(OWNER.id, first.conversation_id, QuickReplyType.CONFIRM_IMPORT)))

        self.assertEqual(result.error.code, "AGENT_NOT_FOUND")
        self.assertEqual(result.error.http_status, 404)
        self.assertEqual(result.session.status, SessionStatus.READY_TO_IMPORT)

    def test_confirm_before_ready_is_a_conflict(self) -> None:
        service, *_ = build_chat_service()
        created = asyncio.run(service.handle(ChatTurn(agent_id=OWNER.id)))
        with self.assertRaises(ConflictStateError):
            asyncio.run(service.handle(_reply(OWNER.id, created.conversation_id, QuickReplyType.CONFIRM_IMPORT)))


if __name__ == "__main__":
    unittest.main()
