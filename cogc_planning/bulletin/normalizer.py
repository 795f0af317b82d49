"""Night-shift date correction.

A night shift printed on day D starts late in the evening and is recorded
under D + 1. Night shifts are recognised by their code: the canonical night
service ``X`` or an operational code ending with the night suffix ``003``
(CCU003, ACR003, CRC003, ...). A printed start time never overrides the code;
when the two disagree the entry is flagged for review instead.
"""
from __future__ import annotations

import re
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, List, Optional

from cogc_planning.bulletin.types import CandidateEntry, EntryConfidence, NIGHT_SERVICE_CODE

NIGHT_CODE_SUFFIX = "003"
NIGHT_START_HOUR = 20

_START_TIME = re.compile(r"(\d{1,2})\s*[h:H]\s*(\d{2})?")

TIMING_MISMATCH_NOTE = "Horaire imprimé incohérent avec le code (règle du code appliquée)"


def is_night_shift(raw_code: str, service_code: Optional[str] = None) -> bool:
    code = (raw_code or "").strip().upper()
    if (service_code or "").strip().upper() == NIGHT_SERVICE_CODE or code == NIGHT_SERVICE_CODE:
        return True
    return len(code) > len(NIGHT_CODE_SUFFIX) and code.endswith(NIGHT_CODE_SUFFIX)


def effective_date(raw_code: str, displayed: date, service_code: Optional[str] = None) -> date:
    """Calendar date the service is recorded under."""
    if is_night_shift(raw_code, service_code):
        return displayed + timedelta(days=1)
    return displayed


def start_hour(horaires: Optional[str]) -> Optional[int]:
    """Start hour of a printed band such as ``22:00-06:00`` or ``6h15``; None if unreadable."""
    if not horaires:
        return None
    match = _START_TIME.search(horaires)
    if match is None:
        return None
    hour = int(match.group(1))
    return hour if 0 <= hour <= 23 else None


def timing_contradicts_code(entry: CandidateEntry) -> bool:
    hour = start_hour(entry.horaires)
    if hour is None:
        return False
    return (hour >= NIGHT_START_HOUR) != is_night_shift(entry.raw_code, entry.service_code)


def normalize_entry(entry: CandidateEntry) -> CandidateEntry:
    """
    Effective date from (raw_code, displayed_date); flags printed times that
    contradict the code. Idempotent: normalising twice gives the same entry.
    """
    displayed = entry.displayed_date or entry.date
    mismatch = timing_contradicts_code(entry)
    note = entry.note
    confidence = entry.confidence
    if mismatch:
        if not note or TIMING_MISMATCH_NOTE not in note:
            note = f"{note} ; {TIMING_MISMATCH_NOTE}" if note else TIMING_MISMATCH_NOTE
        if confidence is EntryConfidence.HIGH:
            confidence = EntryConfidence.MEDIUM
    return replace(
        entry,
        date=effective_date(entry.raw_code, displayed, entry.service_code),
        displayed_date=displayed,
        timing_mismatch=mismatch,
        note=note,
        confidence=confidence,
    )


def normalize_entries(entries: Iterable[CandidateEntry]) -> List[CandidateEntry]:
    return [normalize_entry(e) for e in entries]
