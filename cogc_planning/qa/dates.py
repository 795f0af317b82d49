"""Deterministic date derivation for planning questions.

Every rule is evaluated against an explicit ``today`` so the same question
asked on the same day always yields the same range:

- "cette semaine"                 Monday..Sunday containing today
- "semaine prochaine / dernière"  the same range shifted by 7 days
- "aujourd'hui", "demain", "après-demain", "hier"
- weekday names                   next occurrence, today included;
                                  "lundi prochain" / "lundi dernier" use next / last week
- "15/01", "15/01/2025", "15 janvier [2025]"
- "le 15"                         next 15th on or after today
- "du 15 au 28 janvier", "de lundi à vendredi"
- "ce mois", "mois prochain / dernier", named months (current year)
- "cette année"                   January 1st..December 31st
"""
from __future__ import annotations

import calendar
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterator, Optional

from cogc_planning.qa.types import QAIntentType

FRENCH_DAYS = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche")
FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)

_MONTHS: Dict[str, int] = {
    "janvier": 1, "fevrier": 2, "mars": 3, "avril": 4, "mai": 5, "juin": 6,
    "juillet": 7, "aout": 8, "septembre": 9, "octobre": 10, "novembre": 11, "decembre": 12,
}
_WEEKDAYS: Dict[str, int] = {
    "lundi": 0, "mardi": 1, "mercredi": 2, "jeudi": 3, "vendredi": 4, "samedi": 5, "dimanche": 6,
}
_MONTH_RE = "|".join(_MONTHS)
_DAY_RE = "|".join(_WEEKDAYS)


def _date_pattern(p: str) -> str:
    return (
        rf"(?P<{p}d>\d{{1,2}})(?:er)?"
        rf"(?:/(?P<{p}mn>\d{{1,2}})(?:/(?P<{p}yn>\d{{2,4}}))?"
        rf"|\s+(?P<{p}m>{_MONTH_RE})(?:\s+(?P<{p}y>\d{{4}}))?)?"
    )


_RANGE = re.compile(rf"\bdu\s+{_date_pattern('a')}\s+au\s+{_date_pattern('b')}")
_WEEKDAY_RANGE = re.compile(rf"\b(?:de|du)\s+({_DAY_RE})\s+(?:a|au|jusqu'a)\s+({_DAY_RE})\b")
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b")
_DAY_MONTH = re.compile(rf"\b(\d{{1,2}})(?:er)?\s+({_MONTH_RE})(?:\s+(\d{{4}}))?\b")
_DAY_ONLY = re.compile(r"\ble\s+(\d{1,2})(?:er)?\b")
_NAMED_MONTH = re.compile(rf"\b({_MONTH_RE})(?:\s+(\d{{4}}))?\b")
_WEEKDAY = re.compile(rf"\b({_DAY_RE})(?:\s+(prochain|dernier))?\b")


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"empty range {self.start}..{self.end}")

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(day, day)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __iter__(self) -> Iterator[date]:
        for offset in range(self.days):
            yield self.start + timedelta(days=offset)

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    def label(self) -> str:
        if self.start == self.end:
            return format_day_name(self.start)
        return f"du {format_day_name(self.start).lower()} au {format_day_name(self.end).lower()}"


# ── Calendar helpers ────────────────────────────────────────────────


def format_day_name(day: date) -> str:
    """``date(2025, 6, 9)`` -> ``"Lundi 9 juin"``."""
    return f"{FRENCH_DAYS[day.weekday()]} {day.day} {FRENCH_MONTHS[day.month - 1]}"


def week_range(today: date, offset_weeks: int = 0) -> DateRange:
    monday = today - timedelta(days=today.weekday()) + timedelta(weeks=offset_weeks)
    return DateRange(monday, monday + timedelta(days=6))


def month_range(year: int, month: int) -> DateRange:
    last = calendar.monthrange(year, month)[1]
    return DateRange(date(year, month, 1), date(year, month, last))


def shift_month(year: int, month: int, offset: int) -> tuple:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    year, month = shift_month(day.year, day.month, months)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of ``weekday`` (0 = Monday), today included."""
    return today + timedelta(days=(weekday - today.weekday()) % 7)


def fold(text: str) -> str:
    """Lowercase, accents stripped, typographic apostrophes normalised."""
    text = (text or "").replace("’", "'").lower()
    return "".join(c for c in unicodedata.normalize("NFKD", text) if not unicodedata.combining(c))


def _year(raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    value = int(raw)
    return value + 2000 if value < 100 else value


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _next_day_of_month(today: date, day: int) -> Optional[date]:
    year, month = today.year, today.month
    if day < today.day:
        year, month = shift_month(year, month, 1)
    for _ in range(12):
        found = _safe_date(year, month, day)
        if found is not None:
            return found
        year, month = shift_month(year, month, 1)
    return None


# ── Parsing ─────────────────────────────────────────────────────────


def _explicit_range(match: "re.Match[str]", today: date) -> Optional[DateRange]:
    g = match.groupdict()
    end_month = _MONTHS.get(g["bm"] or "") or (int(g["bmn"]) if g["bmn"] else today.month)
    end_year = _year(g["by"] or g["byn"], today.year)
    start_explicit_month = bool(g["am"] or g["amn"])
    start_month = _MONTHS.get(g["am"] or "") or (int(g["amn"]) if g["amn"] else end_month)
    start_year = _year(g["ay"] or g["ayn"], end_year)

    end = _safe_date(end_year, end_month, int(g["bd"]))
    start = _safe_date(start_year, start_month, int(g["ad"]))
    if start is None or end is None:
        return None
    if start > end:
        if not start_explicit_month:
            # "du 25 au 3 février" -> 25 janvier
            y, m = shift_month(end.year, end.month, -1)
            start = _safe_date(y, m, start.day)
        elif not (g["by"] or g["byn"]):
            end = _safe_date(end.year + 1, end.month, end.day)
        else:
            return None
    if start is None or end is None or start > end:
        return None
    return DateRange(start, end)


def parse_period(text: str, today: date) -> Optional[DateRange]:
    """Date range named in ``text``, or None when it names none."""
    q = fold(text)

    m = _RANGE.search(q)
    if m:
        found = _explicit_range(m, today)
        if found is not None:
            return found

    m = _WEEKDAY_RANGE.search(q)
    if m:
        start = next_weekday(today, _WEEKDAYS[m.group(1)])
        span = (_WEEKDAYS[m.group(2)] - _WEEKDAYS[m.group(1)]) % 7
        return DateRange(start, start + timedelta(days=span))

    m = _DAY_MONTH.search(q)
    if m:
        found = _safe_date(_year(m.group(3), today.year), _MONTHS[m.group(2)], int(m.group(1)))
        if found is not None:
            return DateRange.single(found)

    m = _NUMERIC_DATE.search(q)
    if m:
        found = _safe_date(_year(m.group(3), today.year), int(m.group(2)), int(m.group(1)))
        if found is not None:
            return DateRange.single(found)

    m = _DAY_ONLY.search(q)
    if m:
        found = _next_day_of_month(today, int(m.group(1)))
        if found is not None:
            return DateRange.single(found)

    if re.search(r"\bapres[- ]demain\b", q):
        return DateRange.single(today + timedelta(days=2))
    if re.search(r"\bdemain\b", q):
        return DateRange.single(today + timedelta(days=1))
    if re.search(r"\bhier\b", q):
        return DateRange.single(today - timedelta(days=1))
    if re.search(r"\baujourd'?hui\b|\bce soir\b|\bce matin\b|\bcette nuit\b", q):
        return DateRange.single(today)

    if re.search(r"\bsemaine\s+prochaine\b|\bprochaine\s+semaine\b", q):
        return week_range(today, 1)
    if re.search(r"\bsemaine\s+(derniere|passee)\b|\bderniere\s+semaine\b", q):
        return week_range(today, -1)
    if re.search(r"\bsemaine\b", q):
        return week_range(today)

    if re.search(r"\bmois\s+prochain\b|\bprochain\s+mois\b", q):
        return month_range(*shift_month(today.year, today.month, 1))
    if re.search(r"\bmois\s+(dernier|passe)\b|\bdernier\s+mois\b", q):
        return month_range(*shift_month(today.year, today.month, -1))

    m = _NAMED_MONTH.search(q)
    if m:
        return month_range(_year(m.group(2), today.year), _MONTHS[m.group(1)])
    if re.search(r"\bce\s+mois\b|\bmois\b", q):
        return month_range(today.year, today.month)

    m = _WEEKDAY.search(q)
    if m:
        weekday = _WEEKDAYS[m.group(1)]
        if m.group(2) == "prochain":
            return DateRange.single(week_range(today, 1).start + timedelta(days=weekday))
        if m.group(2) == "dernier":
            return DateRange.single(week_range(today, -1).start + timedelta(days=weekday))
        return DateRange.single(next_weekday(today, weekday))

    if re.search(r"\bannee\b", q):
        return DateRange(date(today.year, 1, 1), date(today.year, 12, 31))
    return None


def default_range(intent: QAIntentType, today: date) -> Optional[DateRange]:
    """Range used when the question names no period; None for help / unknown."""
    if intent is QAIntentType.WEEKLY_SERVICES:
        return week_range(today)
    if intent in (QAIntentType.SPECIFIC_DATE, QAIntentType.TEAM_ON_DATE, QAIntentType.TEAM_ON_POSTE):
        return DateRange.single(today)
    if intent in (QAIntentType.MONTHLY_HOURS, QAIntentType.STATS_SUMMARY):
        return month_range(today.year, today.month)
    if intent is QAIntentType.NEXT_SERVICE:
        return DateRange(today, add_months(today, 1))
    if intent is QAIntentType.SERVICE_SEARCH:
        return DateRange(today, add_months(today, 3))
    return None


def derive_range(intent: QAIntentType, text: str, today: date) -> Optional[DateRange]:
    """
    Period named in the question, else the intent's default. ``next_service``
    always searches forward from today; team questions look at a single day.
    """
    if not intent.runs_query:
        return None
    if intent is QAIntentType.NEXT_SERVICE:
        return default_range(intent, today)
    found = parse_period(text, today)
    if found is None:
        return default_range(intent, today)
    if intent.is_team:
        return DateRange.single(found.start)
    return found


def mentions_period(text: str) -> bool:
    """True when ``text`` names any day or period (the reference day is irrelevant)."""
    return parse_period(text, date(2000, 1, 3)) is not None
