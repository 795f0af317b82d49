"""Layer 2: LLM-based intent classifier for planning questions."""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, Optional

from cogc_planning.qa.pre_classifier import canonical_service_code
from cogc_planning.qa.types import QAIntent, QAIntentType

if TYPE_CHECKING:
    from cogc_planning.clients.llm.base import BaseLLMClient

logger = logging.getLogger(__name__)

_CLASSIFICATION_PROMPT = """\
Tu classes les questions d'un agent SNCF sur son planning de services.

Intentions possibles :
- "weekly_services" : services d'une semaine
- "specific_date"   : service d'un jour précis
- "monthly_hours"   : heures travaillées sur une période
- "next_service"    : prochain(s) service(s) travaillé(s)
- "service_search"  : dates d'un type de service ou d'un poste (repos, nuits, CCU...)
- "stats_summary"   : comptage des services par type
- "team_on_date"    : qui travaille un jour donné
- "team_on_poste"   : qui est sur un poste donné un jour donné
- "help"            : ce que l'assistant sait faire
- "unknown"         : rien à voir avec le planning

Codes de service : "-" (matin), "O" (soir), "X" (nuit), "RP" (repos), "C" (congé),
"D" (disponible), "NU", "HAB", "I".
Postes : {postes}

Question : "{query}"

Ne calcule AUCUNE date. Réponds UNIQUEMENT avec ce JSON (sans markdown) :
{{"intent": {{"type": "<intention>", "params": {{"service_code": <code|null>, "poste_code": <poste|null>}}}}, "confidence": <0.0-1.0>, "reasoning": "<une phrase>"}}
"""


class QALLMClassifier:
    """Ask the LLM for an intent when the keyword layer has no match.

    Dates are never taken from the model; the resolver derives them from the
    question text.
    """

    def __init__(
        self,
        llm: "BaseLLMClient",
        *,
        postes: tuple = (),
        timeout_seconds: Optional[float] = 30.0,
    ) -> None:
        self._llm = llm
        self._postes = tuple(p.upper() for p in postes)
        self._timeout = timeout_seconds

    async def classify(self, query: str) -> QAIntent:
        prompt = _CLASSIFICATION_PROMPT.format(
            postes=", ".join(self._postes) or "(aucun)",
            query=query.replace('"', "'"),
        )
        try:
            coro = self._llm.complete(prompt)
            if self._timeout is not None and self._timeout > 0:
                coro = asyncio.wait_for(coro, timeout=self._timeout)
            raw = await coro
        except asyncio.TimeoutError:
            logger.warning("QALLMClassifier: classification timed out (%.0fs)", self._timeout or 0)
            return _unknown("LLM timeout")
        except Exception as exc:
            logger.error("QALLMClassifier: classification failed: %s", exc)
            return _unknown(f"LLM error: {exc}")
        return self._parse(raw, self._postes)

    @staticmethod
    def _parse(raw: str, postes: tuple = ()) -> QAIntent:
        text = re.sub(r"<thinking>.*?</thinking>", "", raw or "", flags=re.DOTALL).strip()
        if text.startswith("```"):
            text = "\n".join(line for line in text.splitlines() if not line.strip().startswith("```")).strip()

        data: dict = {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Fallback: outermost {...} containing "intent"
            fallback = re.search(r'\{.*"intent".*\}', text, re.DOTALL)
            if fallback:
                try:
                    data = json.loads(fallback.group())
                except json.JSONDecodeError:
                    pass
        if not isinstance(data, dict) or not data:
            logger.warning("QALLMClassifier: could not parse JSON from: %s", (raw or "")[:300])
            return _unknown("JSON parse error")

        intent_data = data.get("intent")
        if isinstance(intent_data, str):
            # Flat shape: {"intent": "help", "params": {...}}
            intent_data = {"type": intent_data, "params": data.get("params") or {}}
        if not isinstance(intent_data, dict):
            return _unknown("missing intent")

        try:
            intent_type = QAIntentType(str(intent_data.get("type", "unknown")).lower().strip())
        except ValueError:
            intent_type = QAIntentType.UNKNOWN

        params = intent_data.get("params") or {}
        if not isinstance(params, dict):
            params = {}
        service_code = canonical_service_code(_text(params.get("service_code")))
        poste_code = _text(params.get("poste_code"))
        poste_code = poste_code.upper() if poste_code else None
        if poste_code and postes and poste_code not in postes:
            poste_code = None

        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5
        return QAIntent(
            type=intent_type,
            service_code=service_code,
            poste_code=poste_code,
            confidence=max(0.0, min(confidence, 1.0)),
            classifier_layer="llm",
            reasoning=str(data.get("reasoning", "")),
        )


def _text(value: object) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return None if value.lower() in ("", "null", "none") else value


def _unknown(reason: str) -> QAIntent:
    return QAIntent(type=QAIntentType.UNKNOWN, confidence=0.0, classifier_layer="llm", reasoning=reason)
