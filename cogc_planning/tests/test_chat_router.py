"""HTTP behaviour of the chat-bulletin router and the turn-shaped error handlers."""
from __future__ import annotations

import base64
import unittest
from uuid import uuid4

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cogc_planning.api.dependencies import get_chat_service
from cogc_planning.api.errors import install_error_handlers
from cogc_planning.api.routers import chat
from cogc_planning.api.schemas.chat import TurnSchema
from cogc_planning.bulletin.types import AssistantTurn, UserTurn
from cogc_planning.tests.test_chat_service import OWNER, build_chat_service

PDF = base64.b64encode(b"%PDF-1.7").decode()


# ─── helpers ─────────────────────────────────────────────────────────────────

def _client(service) -> TestClient:
    app = FastAPI()
    chat.limiter.reset()
    app.state.limiter = chat.limiter
    install_error_handlers(app)
    app.include_router(chat.router, prefix="/api/v1")
    app.dependency_overrides[get_chat_service] = lambda: service
    return TestClient(app, raise_server_exceptions=False)


# ─── POST /api/v1/chat-bulletin ───────────────────────────────────────────────

class TestChatTurnEndpoint(unittest.TestCase):
    def setUp(self) -> None:
        self.service, self.llm, self.ocr, self.sessions, self.schedule = build_chat_service()
        self.client = _client(self.service)

    def _post(self, **body):
        body.setdefault("agent_id", str(OWNER.id))
        return self.client.post("/api/v1/chat-bulletin", json=body)

    def test_welcome(self) -> None:
        resp = self._post()
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertTrue(data["success"])
        self.assertIsNotNone(data["conversation_id"])
        self.assertFalse(data["ready_to_import"])

    def test_pdf_upload_and_import(self) -> None:
        first = self._post(pdf_bytes=PDF, pdf_filename="bulletin.pdf")
        self.assertEqual(first.status_code, 200)
        data = first.json()
        self.assertTrue(data["ready_to_import"])
        self.assertEqual([s["date"] for s in data["services"]], ["2025-02-01", "2025-02-02"])
        self.ocr.extract.assert_awaited_once_with(b"%PDF-1.7")

        second = self._post(conversation_id=data["conversation_id"], quick_reply={"type": "confirm_import"})
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["import_result"], {"count": 2, "skipped": 0, "success": True})

    def test_question(self) -> None:
        resp = self._post(message="aide")
        data = resp.json()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(data["qa_response"]["type"], "help")

    def test_multiple_drivers_rejected(self) -> None:
        resp = self._post(message="salut", pdf_bytes=PDF)
        self.assertEqual(resp.status_code, 400)
        data = resp.json()
        self.assertFalse(data["success"])
        self.assertEqual(data["error"]["code"], "VALIDATION_ERROR")

    def test_invalid_body_rejected(self) -> None:
        resp = self._post(agent_id="not-a-uuid")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Requête invalide.")

    def test_unknown_conversation(self) -> None:
        resp = self._post(conversation_id=str(uuid4()), message="salut")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "NOT_FOUND")

    def test_confirm_too_early_is_409(self) -> None:
        created = self._post().json()
        resp = self._post(conversation_id=created["conversation_id"], quick_reply={"type": "confirm_import"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "CONFLICT_STATE")

    def test_external_failure_keeps_turn_shape(self) -> None:
        self.ocr.extract.side_effect = httpx.ConnectError("refused")
        resp = self._post(pdf_bytes=PDF)
        self.assertEqual(resp.status_code, 502)
        data = resp.json()
        self.assertFalse(data["success"])
        self.assertIsNotNone(data["conversation_id"])
        self.assertEqual(data["error"]["code"], "EXTERNAL_SERVICE_ERROR")


# ─── GET /api/v1/chat-bulletin/{conversation_id} ──────────────────────────────

class TestConversationEndpoint(unittest.TestCase):
    def setUp(self) -> None:
        self.service, *_ = build_chat_service()
        self.client = _client(self.service)

    def test_history(self) -> None:
        created = self.client.post(
            "/api/v1/chat-bulletin", json={"agent_id": str(OWNER.id), "pdf_bytes": PDF, "pdf_filename": "b.pdf"}
        ).json()
        cid = created["conversation_id"]

        resp = self.client.get(f"/api/v1/chat-bulletin/{cid}", params={"agent_id": str(OWNER.id)})

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "ready_to_import")
        self.assertEqual(data["version"], 1)
        self.assertEqual(data["pdf_filename"], "b.pdf")
        self.assertEqual([t["kind"] for t in data["history"]], ["user", "assistant"])
        self.assertEqual(data["history"][0]["attachment"], "b.pdf")

    def test_other_agent_gets_404(self) -> None:
        created = self.client.post("/api/v1/chat-bulletin", json={"agent_id": str(OWNER.id)}).json()
        resp = self.client.get(
            f"/api/v1/chat-bulletin/{created['conversation_id']}", params={"agent_id": str(uuid4())}
        )
        self.assertEqual(resp.status_code, 404)

    def test_agent_id_required(self) -> None:
        resp = self.client.get(f"/api/v1/chat-bulletin/{uuid4()}")
        self.assertEqual(resp.status_code, 400)



# ─── schemas ─────────────────────────────────────────────────────────────────

class TestTurnSchema(unittest.TestCase):
    def test_user_and_assistant_turns(self) -> None:
        user = TurnSchema.from_turn(UserTurn(attachment="bulletin.pdf"))
        assistant = TurnSchema.from_turn(AssistantTurn(text="ok", payload={"intent": "qa"}))
        self.assertEqual((user.kind, user.attachment), ("user", "bulletin.pdf"))
        self.assertEqual((assistant.kind, assistant.payload), ("assistant", {"intent": "qa"}))

    def test_unknown_turn_type(self) -> None:
        with self.assertRaises(TypeError):
            TurnSchema.from_turn(object())


if __name__ == "__main__":
    unittest.main()
