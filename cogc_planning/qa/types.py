"""Q&A intents and the per-intent response payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

from cogc_planning.bulletin.types import TeamMember

if TYPE_CHECKING:
    from cogc_planning.qa.dates import DateRange


class QAIntentType(str, Enum):
    WEEKLY_SERVICES = "weekly_services"
    SPECIFIC_DATE = "specific_date"
    MONTHLY_HOURS = "monthly_hours"
    NEXT_SERVICE = "next_service"
    SERVICE_SEARCH = "service_search"
    STATS_SUMMARY = "stats_summary"
    TEAM_ON_DATE = "team_on_date"
    TEAM_ON_POSTE = "team_on_poste"
    HELP = "help"
    UNKNOWN = "unknown"

    @property
    def runs_query(self) -> bool:
        return self not in (QAIntentType.HELP, QAIntentType.UNKNOWN)

    @property
    def is_team(self) -> bool:
        return self in (QAIntentType.TEAM_ON_DATE, QAIntentType.TEAM_ON_POSTE)


@dataclass(frozen=True)
class QAIntent:
    """Classified question. ``date_range`` is filled by the resolver for query intents."""

    type: QAIntentType
    date_range: Optional["DateRange"] = None
    service_code: Optional[str] = None
    poste_code: Optional[str] = None
    confidence: float = 1.0
    classifier_layer: str = "pre"
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "date_range": self.date_range.to_dict() if self.date_range else None,
            "service_code": self.service_code,
            "poste_code": self.poste_code,
            "confidence": self.confidence,
            "classifier_layer": self.classifier_layer,
        }


@dataclass(frozen=True)
class QASummary:
    count: int = 0
    period: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"count": self.count, "period": self.period}


@dataclass(frozen=True)
class PlanningItem:
    date: date
    day_name: str
    service_code: str
    poste_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "day_name": self.day_name,
            "service_code": self.service_code,
            "poste_code": self.poste_code,
        }


# ── Response variants (tagged by intent type) ───────────────────────


@dataclass(frozen=True)
class PlanningQAResponse:
    """weekly_services, specific_date, next_service, service_search."""

    type: QAIntentType
    entries: Tuple[PlanningItem, ...] = ()
    summary: QASummary = field(default_factory=QASummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "data": [e.to_dict() for e in self.entries],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class HoursQAResponse:
    entries: Tuple[PlanningItem, ...] = ()
    total_hours: float = 0.0
    worked_days: int = 0
    summary: QASummary = field(default_factory=QASummary)

    type = QAIntentType.MONTHLY_HOURS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "data": [e.to_dict() for e in self.entries],
            "total_hours": self.total_hours,
            "worked_days": self.worked_days,
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class StatsQAResponse:
    counts: Dict[str, int] = field(default_factory=dict)
    summary: QASummary = field(default_factory=QASummary)

    type = QAIntentType.STATS_SUMMARY

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "counts": dict(self.counts), "summary": self.summary.to_dict()}


@dataclass(frozen=True)
class TeamQAResponse:
    type: QAIntentType
    day: date
    team: Tuple[TeamMember, ...] = ()
    summary: QASummary = field(default_factory=QASummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "date": self.day.isoformat(),
            "team_data": [m.to_dict() for m in self.team],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class HelpQAResponse:
    type = QAIntentType.HELP

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value}


@dataclass(frozen=True)
class UnknownQAResponse:
    type = QAIntentType.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value}


QAResponse = Union[
    PlanningQAResponse,
    HoursQAResponse,
    StatsQAResponse,
    TeamQAResponse,
    HelpQAResponse,
    UnknownQAResponse,
]


@dataclass(frozen=True)
class QAAnswer:
    message: str
    intent: QAIntent
    response: QAResponse

    def to_dict(self) -> Dict[str, Any]:
        return self.response.to_dict()
