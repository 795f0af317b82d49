"""Layered intent resolution: keywords first, then the optional LLM, else unknown."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from cogc_planning.qa.dates import derive_range
from cogc_planning.qa.llm_classifier import QALLMClassifier
from cogc_planning.qa.pre_classifier import QAPreClassifier
from cogc_planning.qa.types import QAIntent, QAIntentType

logger = logging.getLogger(__name__)


class QAIntentResolver:
    def __init__(self, pre: QAPreClassifier, llm: Optional[QALLMClassifier] = None) -> None:
        self._pre = pre
        self._llm = llm

    async def resolve(self, text: str, today: date) -> QAIntent:
        """Classify ``text`` and attach the date range derived relative to ``today``."""
        intent = self._pre.try_classify(text)
        if intent is None and self._llm is not None:
            intent = await self._llm.classify(text)
        if intent is None:
            intent = QAIntent(type=QAIntentType.UNKNOWN, confidence=0.0, classifier_layer="none")

        resolved = replace(intent, date_range=derive_range(intent.type, text, today))
        logger.info(
            "qa intent=%s layer=%s range=%s service=%s poste=%s",
            resolved.type.value,
            resolved.classifier_layer,
            resolved.date_range.to_dict() if resolved.date_range else None,
            resolved.service_code,
            resolved.poste_code,
        )
        return resolved
