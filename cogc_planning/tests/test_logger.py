"""Logging: JSON records carry conversation ids; configure() is idempotent."""
from __future__ import annotations

import io
import json
import logging
import unittest
from uuid import uuid4

from cogc_planning.core.logger import JsonFormatter, LoggerConfig, configure, conversation_logger


class TestConversationLogging(unittest.TestCase):
    def setUp(self) -> None:
        self.stream = io.StringIO()
        self.logger = logging.getLogger("cogc_planning.tests.logging")
        self.logger.handlers = []
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(JsonFormatter())
        self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

    def test_ids_in_message_and_payload(self) -> None:
        cid = uuid4()
        log = conversation_logger(self.logger, conversation_id=cid, agent_id=None)
        log.info("status %s", "imported")

        record = json.loads(self.stream.getvalue())
        self.assertEqual(record["message"], f"[conversation_id={cid}] status imported")
        self.assertEqual(record["conversation_id"], str(cid))
        self.assertNotIn("agent_id", record)
        self.assertEqual(record["level"], "INFO")

    def test_exception_is_serialised(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            self.logger.exception("failed")
        record = json.loads(self.stream.getvalue())
        self.assertIn("RuntimeError: boom", record["exception"])


class TestConfigure(unittest.TestCase):
    def test_reconfigure_does_not_duplicate_handlers(self) -> None:
        config = LoggerConfig(root_name="cogc_planning_test_root", log_dir=None)
        configure(config)
        root = configure(config)
        self.assertEqual(len(root.handlers), 1)
        self.assertFalse(root.propagate)


if __name__ == "__main__":
    unittest.main()
