"""Unit tests for the planning question classifiers and the layered resolver."""
from __future__ import annotations

import asyncio
import json
import unittest
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from cogc_planning.qa.dates import DateRange
from cogc_planning.qa.llm_classifier import QALLMClassifier
from cogc_planning.qa.pre_classifier import QAPreClassifier, canonical_service_code
from cogc_planning.qa.resolver import QAIntentResolver
from cogc_planning.qa.types import QAIntentType

TODAY = date(2025, 6, 11)


class TestQAPreClassifier(unittest.TestCase):
    def setUp(self) -> None:
        self.pc = QAPreClassifier()

    def _type(self, text: str):
        result = self.pc.try_classify(text)
        return result.type if result else None

    def test_help(self) -> None:
        self.assertEqual(self._type("aide"), QAIntentType.HELP)
        self.assertEqual(self._type("Que sais-tu faire ?"), QAIntentType.HELP)

    def test_team_on_poste(self) -> None:
        result = self.pc.try_classify("Qui est sur le ccu demain ?")
        self.assertEqual(result.type, QAIntentType.TEAM_ON_POSTE)
        self.assertEqual(result.poste_code, "CCU")

    def test_two_letter_poste_needs_capitals(self) -> None:
        self.assertEqual(self.pc.try_classify("Qui est au RE samedi ?").poste_code, "RE")
        self.assertEqual(self._type("qui est re-venu samedi ?"), None)

    def test_team_on_date(self) -> None:
        self.assertEqual(self._type("Qui travaille avec moi demain ?"), QAIntentType.TEAM_ON_DATE)

    def test_hours(self) -> None:
        self.assertEqual(self._type("Combien d'heures ce mois ?"), QAIntentType.MONTHLY_HOURS)

    def test_at_what_time_is_not_hours(self) -> None:
        self.assertEqual(self._type("À quelle heure je commence demain ?"), QAIntentType.SPECIFIC_DATE)

    def test_next_service(self) -> None:
        self.assertEqual(self._type("C'est quand mon prochain service ?"), QAIntentType.NEXT_SERVICE)
        self.assertEqual(self._type("je reprends quand ?"), QAIntentType.NEXT_SERVICE)

    def test_stats_with_service(self) -> None:
        result = self.pc.try_classify("Combien de nuits ce mois ?")
        self.assertEqual(result.type, QAIntentType.STATS_SUMMARY)
        self.assertEqual(result.service_code, "X")

    def test_service_search(self) -> None:
        result = self.pc.try_classify("Quand sont mes repos ?")
        self.assertEqual(result.type, QAIntentType.SERVICE_SEARCH)
        self.assertEqual(result.service_code, "RP")

    def test_weekly(self) -> None:
        self.assertEqual(self._type("Mon planning de la semaine"), QAIntentType.WEEKLY_SERVICES)

    def test_specific_date(self) -> None:
        self.assertEqual(self._type("Je travaille le 15 ?"), QAIntentType.SPECIFIC_DATE)

    def test_no_match(self) -> None:
        self.assertIsNone(self.pc.try_classify("Bonjour, ça va ?"))
        self.assertIsNone(self.pc.try_classify("   "))

    def test_canonical_service_code(self) -> None:
        self.assertEqual(canonical_service_code("rpp"), "RP")
        self.assertEqual(canonical_service_code("X"), "X")
        self.assertIsNone(canonical_service_code(""))


class TestQALLMClassifier(unittest.TestCase):
    def _classifier(self, answer=None, side_effect=None, **kwargs) -> QALLMClassifier:
        llm = MagicMock()
        llm.complete = AsyncMock(return_value=answer, side_effect=side_effect)
        return QALLMClassifier(llm, postes=("CCU", "ACR"), **kwargs)

    def test_nested_shape(self) -> None:
        raw = json.dumps({
            "intent": {"type": "service_search", "params": {"service_code": "rpp", "poste_code": None}},
            "confidence": 0.8,
            "reasoning": "repos",
        })
        intent = asyncio.run(self._classifier(raw).classify("mes jours off"))
        self.assertEqual(intent.type, QAIntentType.SERVICE_SEARCH)
        self.assertEqual(intent.service_code, "RP")
        self.assertEqual(intent.classifier_layer, "llm")
        self.assertIsNone(intent.date_range)

    def test_flat_shape_in_code_fence(self) -> None:
        raw = '```json\n{"intent": "team_on_poste", "params": {"poste_code": "ccu"}, "confidence": 3}\n```'
        intent = asyncio.run(self._classifier(raw).classify("les gars du ccu"))
        self.assertEqual(intent.type, QAIntentType.TEAM_ON_POSTE)
        self.assertEqual(intent.poste_code, "CCU")
        self.assertEqual(intent.confidence, 1.0)

    def test_unknown_poste_dropped(self) -> None:
        raw = json.dumps({"intent": {"type": "team_on_poste", "params": {"poste_code": "ZZZ"}}})
        self.assertIsNone(QALLMClassifier._parse(raw, ("CCU",)).poste_code)

    def test_garbage_is_unknown(self) -> None:
        intent = asyncio.run(self._classifier("je ne sais pas").classify("?!"))
        self.assertEqual(intent.type, QAIntentType.UNKNOWN)

    def test_invalid_intent_type_is_unknown(self) -> None:
        self.assertEqual(QALLMClassifier._parse('{"intent": {"type": "meteo"}}').type, QAIntentType.UNKNOWN)

    def test_error_is_unknown(self) -> None:
        intent = asyncio.run(self._classifier(side_effect=RuntimeError("down")).classify("x"))
        self.assertEqual(intent.type, QAIntentType.UNKNOWN)
        self.assertIn("down", intent.reasoning)

    def test_timeout_is_unknown(self) -> None:
        async def slow(prompt, **kwargs):
            await asyncio.sleep(1)
            return "{}"

        llm = MagicMock()
        llm.complete = slow
        intent = asyncio.run(QALLMClassifier(llm, timeout_seconds=0.01).classify("x"))
        self.assertEqual(intent.reasoning, "LLM timeout")


class TestQAIntentResolver(unittest.TestCase):
    def test_pre_layer_wins_and_range_attached(self) -> None:
        llm = MagicMock()
        llm.classify = AsyncMock()
        resolver = QAIntentResolver(QAPreClassifier(), llm)

        intent = asyncio.run(resolver.resolve("mes services cette semaine", TODAY))

        self.assertEqual(intent.type, QAIntentType.WEEKLY_SERVICES)
        self.assertEqual(intent.date_range, DateRange(date(2025, 6, 9), date(2025, 6, 15)))
        llm.classify.assert_not_awaited()

    def test_llm_fallback(self) -> None:
        classifier = QALLMClassifier(MagicMock(complete=AsyncMock(return_value='{"intent": "stats_summary"}')))
        resolver = QAIntentResolver(QAPreClassifier(), classifier)
        intent = asyncio.run(resolver.resolve("fais-moi un récap de juillet", TODAY))
        self.assertEqual(intent.type, QAIntentType.STATS_SUMMARY)
        self.assertEqual(intent.date_range, DateRange(date(2025, 7, 1), date(2025, 7, 31)))

    def test_unknown_without_llm(self) -> None:
        intent = asyncio.run(QAIntentResolver(QAPreClassifier()).resolve("Bonjour", TODAY))
        self.assertEqual(intent.type, QAIntentType.UNKNOWN)
        self.assertEqual(intent.classifier_layer, "none")
        self.assertIsNone(intent.date_range)


if __name__ == "__main__":
    unittest.main()
