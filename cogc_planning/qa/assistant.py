"""Q&A entry point: resolve the intent, run the query, phrase the answer."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, Optional

from cogc_planning.bulletin.prompts import BOT_NAME
from cogc_planning.qa.executor import QueryExecutor
from cogc_planning.qa.resolver import QAIntentResolver
from cogc_planning.qa.types import QAAnswer, QAIntentType

if TYPE_CHECKING:
    from cogc_planning.clients.llm.base import BaseLLMClient

logger = logging.getLogger(__name__)

_CONVERSATIONAL_PROMPT = """\
Tu es {bot_name}, l'assistant planning des agents du COGC (SNCF).
Tu sais : importer des bulletins de commande PDF, répondre aux questions sur le planning
(services de la semaine, prochain service, heures du mois, repos, équipe du jour).

L'agent écrit : "{message}"

Réponds en 2 ou 3 phrases, en français, sur un ton amical. Si la demande sort de ton
périmètre, dis-le simplement et rappelle ce que tu sais faire. N'invente aucun service
ni aucune date."""


class QAAssistant:
    """
    ``unknown`` questions get a short free-text reply from the conversational
    model when one is configured; any failure keeps the static fallback.
    """

    def __init__(
        self,
        resolver: QAIntentResolver,
        executor: QueryExecutor,
        llm: Optional["BaseLLMClient"] = None,
        *,
        llm_timeout: Optional[float] = 30.0,
    ) -> None:
        self._resolver = resolver
        self._executor = executor
        self._llm = llm
        self._llm_timeout = llm_timeout

    async def answer(self, message: str, agent_id: uuid.UUID, today: date) -> QAAnswer:
        intent = await self._resolver.resolve(message, today)
        answer = await self._executor.execute(intent, agent_id)
        if intent.type is QAIntentType.UNKNOWN and self._llm is not None:
            reply = await self._converse(message)
            if reply:
                answer = replace(answer, message=reply)
        return answer

    async def _converse(self, message: str) -> Optional[str]:
        prompt = _CONVERSATIONAL_PROMPT.format(bot_name=BOT_NAME, message=message.replace('"', "'"))
        try:
            coro = self._llm.complete(prompt)
            if self._llm_timeout is not None and self._llm_timeout > 0:
                coro = asyncio.wait_for(coro, timeout=self._llm_timeout)
            reply = await coro
        except asyncio.TimeoutError:
            logger.warning("QAAssistant: conversational reply timed out")
            return None
        except Exception as exc:
            logger.warning("QAAssistant: conversational reply failed: %s", exc)
            return None
        return (reply or "").strip() or None
