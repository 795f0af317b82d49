"""Unit tests for deterministic date derivation (today = Wednesday 11 June 2025)."""
from __future__ import annotations

import unittest
from datetime import date

from cogc_planning.qa.dates import (
    DateRange,
    add_months,
    derive_range,
    format_day_name,
    mentions_period,
    parse_period,
)
from cogc_planning.qa.types import QAIntentType

TODAY = date(2025, 6, 11)


def _range(text: str, today: date = TODAY):
    found = parse_period(text, today)
    return (found.start, found.end) if found else None


class TestParsePeriod(unittest.TestCase):
    def test_weeks(self) -> None:
        self.assertEqual(_range("mes services cette semaine"), (date(2025, 6, 9), date(2025, 6, 15)))
        self.assertEqual(_range("la semaine prochaine"), (date(2025, 6, 16), date(2025, 6, 22)))
        self.assertEqual(_range("la semaine dernière"), (date(2025, 6, 2), date(2025, 6, 8)))

    def test_relative_days(self) -> None:
        self.assertEqual(_range("aujourd'hui"), (TODAY, TODAY))
        self.assertEqual(_range("demain"), (date(2025, 6, 12),) * 2)
        self.assertEqual(_range("après-demain"), (date(2025, 6, 13),) * 2)
        self.assertEqual(_range("hier"), (date(2025, 6, 10),) * 2)

    def test_weekdays(self) -> None:
        self.assertEqual(_range("vendredi"), (date(2025, 6, 13),) * 2)
        self.assertEqual(_range("mercredi"), (TODAY, TODAY))
        self.assertEqual(_range("lundi prochain"), (date(2025, 6, 16),) * 2)
        self.assertEqual(_range("lundi dernier"), (date(2025, 6, 2),) * 2)

    def test_explicit_dates(self) -> None:
        self.assertEqual(_range("le 15/01"), (date(2025, 1, 15),) * 2)
        self.assertEqual(_range("15/01/26"), (date(2026, 1, 15),) * 2)
        self.assertEqual(_range("le 15 janvier 2026"), (date(2026, 1, 15),) * 2)
        self.assertEqual(_range("le 1er août"), (date(2025, 8, 1),) * 2)

    def test_day_of_month_is_next_occurrence(self) -> None:
        self.assertEqual(_range("le 20"), (date(2025, 6, 20),) * 2)
        self.assertEqual(_range("le 3"), (date(2025, 7, 3),) * 2)
        # 31 June does not exist
        self.assertEqual(_range("le 31"), (date(2025, 7, 31),) * 2)

    def test_explicit_ranges(self) -> None:
        self.assertEqual(_range("du 15 au 28 janvier"), (date(2025, 1, 15), date(2025, 1, 28)))
        self.assertEqual(_range("du 25 au 3 février"), (date(2025, 1, 25), date(2025, 2, 3)))
        self.assertEqual(_range("du 20 décembre au 5 janvier"), (date(2025, 12, 20), date(2026, 1, 5)))
        self.assertEqual(_range("de lundi à vendredi"), (date(2025, 6, 16), date(2025, 6, 20)))

    def test_months_and_year(self) -> None:
        self.assertEqual(_range("ce mois"), (date(2025, 6, 1), date(2025, 6, 30)))
        self.assertEqual(_range("le mois prochain"), (date(2025, 7, 1), date(2025, 7, 31)))
        self.assertEqual(_range("le mois dernier"), (date(2025, 5, 1), date(2025, 5, 31)))
        self.assertEqual(_range("en février"), (date(2025, 2, 1), date(2025, 2, 28)))
        self.assertEqual(_range("cette année"), (date(2025, 1, 1), date(2025, 12, 31)))

    def test_month_rollover(self) -> None:
        self.assertEqual(_range("mois prochain", date(2025, 12, 30)), (date(2026, 1, 1), date(2026, 1, 31)))

    def test_no_period(self) -> None:
        self.assertIsNone(parse_period("bonjour", TODAY))
        self.assertFalse(mentions_period("combien d'heures"))
        self.assertTrue(mentions_period("demain"))


class TestDeriveRange(unittest.TestCase):
    def test_defaults(self) -> None:
        self.assertEqual(derive_range(QAIntentType.WEEKLY_SERVICES, "mes services", TODAY),
                         DateRange(date(2025, 6, 9), date(2025, 6, 15)))
        self.assertEqual(derive_range(QAIntentType.MONTHLY_HOURS, "mes heures", TODAY),
                         DateRange(date(2025, 6, 1), date(2025, 6, 30)))
        self.assertEqual(derive_range(QAIntentType.SERVICE_SEARCH, "mes repos", TODAY),
                         DateRange(TODAY, date(2025, 9, 11)))

    def test_next_service_always_forward(self) -> None:
        self.assertEqual(derive_range(QAIntentType.NEXT_SERVICE, "hier", TODAY),
                         DateRange(TODAY, date(2025, 7, 11)))

    def test_team_takes_single_day(self) -> None:
        self.assertEqual(derive_range(QAIntentType.TEAM_ON_DATE, "cette semaine", TODAY),
                         DateRange.single(date(2025, 6, 9)))

    def test_help_and_unknown_have_no_range(self) -> None:
        self.assertIsNone(derive_range(QAIntentType.HELP, "demain", TODAY))
        self.assertIsNone(derive_range(QAIntentType.UNKNOWN, "demain", TODAY))

    def test_deterministic(self) -> None:
        self.assertEqual(derive_range(QAIntentType.SPECIFIC_DATE, "vendredi", TODAY),
                         derive_range(QAIntentType.SPECIFIC_DATE, "vendredi", TODAY))


class TestHelpers(unittest.TestCase):
    def test_labels(self) -> None:
        self.assertEqual(format_day_name(date(2025, 6, 9)), "Lundi 9 juin")
        self.assertEqual(DateRange.single(date(2025, 6, 9)).label(), "Lundi 9 juin")
        self.assertEqual(DateRange(date(2025, 6, 9), date(2025, 6, 15)).label(),
                         "du lundi 9 juin au dimanche 15 juin")

    def test_add_months_clamps(self) -> None:
        self.assertEqual(add_months(date(2025, 1, 31), 1), date(2025, 2, 28))

    def test_range_rejects_inverted(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(date(2025, 6, 2), date(2025, 6, 1))
        self.assertEqual(DateRange(date(2025, 6, 1), date(2025, 6, 3)).days, 3)


if __name__ == "__main__":
    unittest.main()
