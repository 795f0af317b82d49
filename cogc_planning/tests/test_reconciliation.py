"""Unit tests for conflict detection and the reconciliation engine."""
from __future__ import annotations

import asyncio
import unittest
from datetime import date
from uuid import uuid4

from cogc_planning.bulletin.conflicts import detect_conflicts, duplicate_dates
from cogc_planning.bulletin.reconciliation import ReconciliationEngine
from cogc_planning.bulletin.types import (
    CandidateEntry,
    ResolutionStrategy,
    ScheduleEntry,
    ScheduleMetadata,
)
from cogc_planning.infra.memory import InMemoryScheduleStore

AGENT = uuid4()


def _entry(day: date, service: str, poste=None, code=None) -> CandidateEntry:
    return CandidateEntry(date=day, raw_code=code or service, service_code=service, poste_code=poste)


class TestDetectConflicts(unittest.TestCase):
    def test_no_persisted_no_conflict(self) -> None:
        self.assertEqual(detect_conflicts([_entry(date(2025, 2, 1), "X", "CCU")], []), [])

    def test_same_service_and_poste_is_not_conflict(self) -> None:
        persisted = [ScheduleEntry(AGENT, date(2025, 2, 1), "X", "CCU")]
        self.assertEqual(detect_conflicts([_entry(date(2025, 2, 1), "X", "CCU")], persisted), [])

    def test_different_poste_conflicts(self) -> None:
        persisted = [ScheduleEntry(AGENT, date(2025, 2, 1), "X", "ACR")]
        conflicts = detect_conflicts([_entry(date(2025, 2, 1), "X", "CCU")], persisted)
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].existing_poste_code, "ACR")
        self.assertEqual(conflicts[0].incoming_poste_code, "CCU")

    def test_null_poste_against_set_poste_conflicts(self) -> None:
        persisted = [ScheduleEntry(AGENT, date(2025, 2, 1), "-", "CCU")]
        conflicts = detect_conflicts([_entry(date(2025, 2, 1), "-")], persisted)
        self.assertEqual(len(conflicts), 1)

    def test_sorted_by_date(self) -> None:
        persisted = [
            ScheduleEntry(AGENT, date(2025, 2, 3), "RP"),
            ScheduleEntry(AGENT, date(2025, 2, 1), "RP"),
        ]
        candidates = [_entry(date(2025, 2, 3), "C"), _entry(date(2025, 2, 1), "C")]
        conflicts = detect_conflicts(candidates, persisted)
        self.assertEqual([c.date for c in conflicts], [date(2025, 2, 1), date(2025, 2, 3)])

    def test_to_dict_shape(self) -> None:
        persisted = [ScheduleEntry(AGENT, date(2025, 2, 1), "RP")]
        data = detect_conflicts([_entry(date(2025, 2, 1), "C")], persisted)[0].to_dict()
        self.assertEqual(data["date"], "2025-02-01")


class TestDuplicateDates(unittest.TestCase):
    def test_duplicates_reported_with_indexes(self) -> None:
        entries = [
            _entry(date(2025, 2, 1), "X", "CCU"),
            _entry(date(2025, 2, 2), "RP"),
            _entry(date(2025, 2, 1), "-", "CCU"),
        ]
        self.assertEqual(duplicate_dates(entries), {date(2025, 2, 1): [0, 2]})

    def test_no_duplicates(self) -> None:
        self.assertEqual(duplicate_dates([_entry(date(2025, 2, 1), "RP")]), {})


class TestReconciliationEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryScheduleStore()
        asyncio.run(self.store.upsert(AGENT, date(2025, 2, 1), "RP", None))
        self.candidates = [_entry(date(2025, 2, 1), "X", "CCU"), _entry(date(2025, 2, 2), "-", "CCU")]
        self.conflicts = detect_conflicts(self.candidates, self.store.all_entries(AGENT))

    def test_overwrite_all(self) -> None:
        engine = ReconciliationEngine(self.store)
        result = asyncio.run(
            engine.commit(AGENT, self.candidates, ResolutionStrategy.OVERWRITE_ALL, self.conflicts)
        )
        self.assertEqual(result.imported_count, 2)
        self.assertEqual(result.skipped_count, 0)
        codes = [e.service_code for e in self.store.all_entries(AGENT)]
        self.assertEqual(codes, ["X", "-"])

    def test_skip_existing(self) -> None:
        engine = ReconciliationEngine(self.store)
        result = asyncio.run(
            engine.commit(AGENT, self.candidates, ResolutionStrategy.SKIP_EXISTING, self.conflicts)
        )
        self.assertEqual(result.imported_count, 1)
        self.assertEqual(result.skipped_count, 1)
        self.assertEqual(result.to_dict(), {"count": 1, "skipped": 1, "strategy": "skip_existing", "success": True})
        self.assertEqual(self.store.all_entries(AGENT)[0].service_code, "RP")

    def test_skip_existing_leaves_conflicting_row_untouched(self) -> None:
        meta = ScheduleMetadata(commentaire="échange", postes_supplementaires=("ACR",), statut_conge="pose")
        asyncio.run(self.store.upsert(AGENT, date(2025, 2, 1), "RP", "CCU", meta))
        before = self.store.all_entries(AGENT)[0]
        conflicts = detect_conflicts(self.candidates, self.store.all_entries(AGENT))

        engine = ReconciliationEngine(self.store)
        asyncio.run(engine.commit(AGENT, self.candidates, ResolutionStrategy.SKIP_EXISTING, conflicts))

        self.assertEqual(self.store.all_entries(AGENT)[0], before)
        self.assertEqual(self.store.all_entries(AGENT)[0].metadata, meta)

    def test_commit_twice_is_idempotent(self) -> None:
        engine = ReconciliationEngine(self.store)
        asyncio.run(engine.commit(AGENT, self.candidates, ResolutionStrategy.OVERWRITE_ALL))
        first = self.store.all_entries(AGENT)
        self.assertEqual(detect_conflicts(self.candidates, first), [])
        asyncio.run(engine.commit(AGENT, self.candidates, ResolutionStrategy.OVERWRITE_ALL))
        self.assertEqual(self.store.all_entries(AGENT), first)

    def test_upsert_keeps_metadata_when_not_given(self) -> None:
        meta = ScheduleMetadata(commentaire="formation")
        asyncio.run(self.store.upsert(AGENT, date(2025, 2, 2), "RP", None, meta))
        engine = ReconciliationEngine(self.store)
        asyncio.run(engine.commit(AGENT, self.candidates, ResolutionStrategy.OVERWRITE_ALL))
        entry = [e for e in self.store.all_entries(AGENT) if e.date == date(2025, 2, 2)][0]
        self.assertEqual(entry.metadata.commentaire, "formation")
        self.assertEqual(entry.service_code, "-")


if __name__ == "__main__":
    unittest.main()
