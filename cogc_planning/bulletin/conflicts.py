"""Conflict detection between candidate entries and the persisted schedule.

No I/O here: callers fetch the persisted entries for the candidate dates and
pass them in.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Sequence

from cogc_planning.bulletin.types import CandidateEntry, Conflict, ScheduleEntry


def detect_conflicts(
    candidates: Sequence[CandidateEntry],
    persisted: Iterable[ScheduleEntry],
) -> List[Conflict]:
    """
    One Conflict per date where a persisted entry exists and differs on
    service_code or poste_code. A null poste against a set poste differs.
    Dates without a persisted entry never conflict. Sorted by date.
    """
    existing: Dict[date, ScheduleEntry] = {e.date: e for e in persisted}
    conflicts: Dict[date, Conflict] = {}
    for candidate in candidates:
        stored = existing.get(candidate.date)
        if stored is None:
            continue
        if (stored.service_code, stored.poste_code) == (candidate.service_code, candidate.poste_code):
            conflicts.pop(candidate.date, None)
            continue
        conflicts[candidate.date] = Conflict(
            date=candidate.date,
            existing_service_code=stored.service_code,
            existing_poste_code=stored.poste_code,
            incoming_service_code=candidate.service_code,
            incoming_poste_code=candidate.poste_code,
        )
    return [conflicts[d] for d in sorted(conflicts)]


def conflict_dates(conflicts: Iterable[Conflict]) -> frozenset:
    return frozenset(c.date for c in conflicts)


def duplicate_dates(candidates: Iterable[CandidateEntry]) -> Dict[date, List[int]]:
    """Effective dates carried by more than one candidate -> their indexes."""
    seen: Dict[date, List[int]] = defaultdict(list)
    for index, candidate in enumerate(candidates):
        seen[candidate.date].append(index)
    return {d: idx for d, idx in sorted(seen.items()) if len(idx) > 1}
