"""Core data structures for the bulletin import pipeline."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

WORK_SERVICE_CODES: Tuple[str, ...] = ("-", "O", "X")
"""Morning, evening and night shifts. Everything else is rest, leave or absence."""

NIGHT_SERVICE_CODE = "X"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _date_or_none(raw: Any) -> Optional[date]:
    if raw in (None, ""):
        return None
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw))


class SessionStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    READY_TO_IMPORT = "ready_to_import"
    IMPORTED = "imported"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.IMPORTED, SessionStatus.CANCELLED)


class EntryConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    USER_CORRECTED = "user_corrected"


class MatchConfidence(str, Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    NONE = "none"


class ResolutionStrategy(str, Enum):
    OVERWRITE_ALL = "overwrite_all"
    SKIP_EXISTING = "skip_existing"


class QuickReplyType(str, Enum):
    SELECT_CODE = "select_code"
    CONFIRM_IMPORT = "confirm_import"
    CANCEL = "cancel"
    RESOLVE_CONFLICTS = "resolve_conflicts"


# ── Candidate entries ───────────────────────────────────────────────


@dataclass
class CandidateEntry:
    """One dated service read from a bulletin, before it is committed.

    ``displayed_date`` is the date printed on the bulletin; ``date`` is the
    effective calendar date after night-shift rollover.
    """

    date: date
    raw_code: str
    service_code: str
    poste_code: Optional[str] = None
    confidence: EntryConfidence = EntryConfidence.HIGH
    note: Optional[str] = None
    displayed_date: Optional[date] = None
    horaires: Optional[str] = None
    timing_mismatch: bool = False

    def __post_init__(self) -> None:
        if self.displayed_date is None:
            self.displayed_date = self.date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "displayed_date": self.displayed_date.isoformat() if self.displayed_date else None,
            "code": self.raw_code,
            "service_code": self.service_code,
            "poste_code": self.poste_code,
            "confidence": self.confidence.value,
            "note": self.note,
            "horaires": self.horaires,
            "timing_mismatch": self.timing_mismatch,
        }

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Shape shown to the structuring model: dates as printed on the bulletin."""
        return {
            "date": (self.displayed_date or self.date).isoformat(),
            "code": self.raw_code,
            "service_code": self.service_code,
            "poste_code": self.poste_code,
            "horaires": self.horaires,
            "confidence": self.confidence.value,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateEntry":
        effective = date.fromisoformat(str(data["date"]))
        return cls(
            date=effective,
            displayed_date=_date_or_none(data.get("displayed_date")) or effective,
            raw_code=str(data.get("code") or data.get("raw_code") or ""),
            service_code=str(data.get("service_code") or ""),
            poste_code=data.get("poste_code") or None,
            confidence=EntryConfidence(data.get("confidence") or EntryConfidence.HIGH.value),
            note=data.get("note") or None,
            horaires=data.get("horaires") or None,
            timing_mismatch=bool(data.get("timing_mismatch", False)),
        )

    def corrected(self, **changes: Any) -> "CandidateEntry":
        """Copy with user-supplied changes; confidence is forced to user_corrected."""
        changes["confidence"] = EntryConfidence.USER_CORRECTED
        return replace(self, **changes)


# ── Persisted schedule ──────────────────────────────────────────────


@dataclass(frozen=True)
class ScheduleMetadata:
    commentaire: Optional[str] = None
    postes_supplementaires: Tuple[str, ...] = ()
    texte_libre: Optional[str] = None
    statut_conge: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commentaire": self.commentaire,
            "postes_supplementaires": list(self.postes_supplementaires),
            "texte_libre": self.texte_libre,
            "statut_conge": self.statut_conge,
        }


@dataclass(frozen=True)
class ScheduleEntry:
    """Persisted entry, one per (agent_id, date)."""

    agent_id: uuid.UUID
    date: date
    service_code: str
    poste_code: Optional[str] = None
    metadata: ScheduleMetadata = field(default_factory=ScheduleMetadata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": str(self.agent_id),
            "date": self.date.isoformat(),
            "service_code": self.service_code,
            "poste_code": self.poste_code,
            **self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class TeamMember:
    """Another agent on duty on a given day (team roster queries)."""

    agent_id: uuid.UUID
    agent_name: str
    service_code: str
    poste_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": str(self.agent_id),
            "agent_name": self.agent_name,
            "service_code": self.service_code,
            "poste_code": self.poste_code,
        }


@dataclass(frozen=True)
class Conflict:
    date: date
    existing_service_code: str
    existing_poste_code: Optional[str]
    incoming_service_code: str
    incoming_poste_code: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "existing": {"service_code": self.existing_service_code, "poste_code": self.existing_poste_code},
            "incoming": {"service_code": self.incoming_service_code, "poste_code": self.incoming_poste_code},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conflict":
        existing = data.get("existing") or {}
        incoming = data.get("incoming") or {}
        return cls(
            date=date.fromisoformat(str(data["date"])),
            existing_service_code=str(existing.get("service_code") or ""),
            existing_poste_code=existing.get("poste_code"),
            incoming_service_code=str(incoming.get("service_code") or ""),
            incoming_poste_code=incoming.get("poste_code"),
        )


@dataclass(frozen=True)
class ReconciliationResult:
    imported_count: int
    skipped_count: int
    strategy: ResolutionStrategy

    @property
    def total(self) -> int:
        return self.imported_count + self.skipped_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.imported_count,
            "skipped": self.skipped_count,
            "strategy": self.strategy.value,
            "success": self.imported_count > 0,
        }


# ── Agents ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AgentRecord:
    id: uuid.UUID
    nom: str
    prenom: str

    @property
    def display_name(self) -> str:
        return f"{self.nom} {self.prenom}"


@dataclass(frozen=True)
class DetectedAgent:
    """Agent named on the bulletin, as matched against the directory."""

    name: str
    confidence: MatchConfidence
    agent_id: Optional[uuid.UUID] = None
    nom: Optional[str] = None
    prenom: Optional[str] = None
    agent_mismatch: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "confidence": self.confidence.value,
            "agent_id": str(self.agent_id) if self.agent_id else None,
            "nom": self.nom,
            "prenom": self.prenom,
            "agent_mismatch": self.agent_mismatch,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectedAgent":
        raw_id = data.get("agent_id")
        return cls(
            name=str(data.get("name") or ""),
            confidence=MatchConfidence(data.get("confidence") or MatchConfidence.NONE.value),
            agent_id=uuid.UUID(str(raw_id)) if raw_id else None,
            nom=data.get("nom"),
            prenom=data.get("prenom"),
            agent_mismatch=bool(data.get("agent_mismatch", False)),
        )


# ── Structuring output ──────────────────────────────────────────────


@dataclass(frozen=True)
class QuestionOption:
    label: str
    value: str


@dataclass(frozen=True)
class Question:
    """Single-choice clarification about the service at ``index``."""

    index: int
    text: str
    options: Tuple[QuestionOption, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "text": self.text,
            "options": [{"label": o.label, "value": o.value} for o in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            index=int(data.get("index", 0)),
            text=str(data.get("text") or ""),
            options=tuple(
                QuestionOption(label=str(o.get("label") or o.get("value") or ""), value=str(o.get("value") or ""))
                for o in data.get("options") or []
            ),
        )


@dataclass(frozen=True)
class BulletinMetadata:
    agent_name: Optional[str] = None
    numero_cp: Optional[str] = None
    periode_debut: Optional[date] = None
    periode_fin: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_name": self.agent_name,
            "numero_cp": self.numero_cp,
            "periode_debut": self.periode_debut.isoformat() if self.periode_debut else None,
            "periode_fin": self.periode_fin.isoformat() if self.periode_fin else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "BulletinMetadata":
        if not data:
            return cls()
        return cls(
            agent_name=data.get("agent_name") or None,
            numero_cp=data.get("numero_cp") or None,
            periode_debut=_date_or_none(data.get("periode_debut")),
            periode_fin=_date_or_none(data.get("periode_fin")),
        )

    def merged_with(self, other: "BulletinMetadata") -> "BulletinMetadata":
        """Fields of ``other`` win when set; correction turns often omit metadata."""
        return BulletinMetadata(
            agent_name=other.agent_name or self.agent_name,
            numero_cp=other.numero_cp or self.numero_cp,
            periode_debut=other.periode_debut or self.periode_debut,
            periode_fin=other.periode_fin or self.periode_fin,
        )


@dataclass
class StructuredResponse:
    message: str
    services: List[CandidateEntry] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    ready_to_import: bool = False
    metadata: BulletinMetadata = field(default_factory=BulletinMetadata)
    raw: Optional[str] = None


# ── Conversation turns ──────────────────────────────────────────────


@dataclass(frozen=True)
class UserTurn:
    text: Optional[str] = None
    attachment: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    kind = "user"

    def __post_init__(self) -> None:
        if self.text is None and self.attachment is None:
            raise ValueError("UserTurn needs text or an attachment reference")


@dataclass(frozen=True)
class AssistantTurn:
    text: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)

    kind = "assistant"


Turn = Union[UserTurn, AssistantTurn]


def turn_to_dict(turn: Turn) -> Dict[str, Any]:
    if isinstance(turn, UserTurn):
        return {
            "kind": "user",
            "text": turn.text,
            "attachment": turn.attachment,
            "created_at": turn.created_at.isoformat(),
        }
    if isinstance(turn, AssistantTurn):
        return {
            "kind": "assistant",
            "text": turn.text,
            "payload": turn.payload,
            "created_at": turn.created_at.isoformat(),
        }
    raise TypeError(f"Unknown turn type: {type(turn).__name__}")


def turn_from_dict(data: Dict[str, Any]) -> Turn:
    created = data.get("created_at")
    created_at = datetime.fromisoformat(created) if created else _utcnow()
    kind = data.get("kind")
    if kind == "user":
        return UserTurn(text=data.get("text"), attachment=data.get("attachment"), created_at=created_at)
    if kind == "assistant":
        return AssistantTurn(text=str(data.get("text") or ""), payload=data.get("payload") or {}, created_at=created_at)
    raise ValueError(f"Unknown turn kind: {kind!r}")


# ── Session ─────────────────────────────────────────────────────────


@dataclass
class ImportSession:
    """Conversation session state, round-tripped through the SessionStore on every turn."""

    agent_id: uuid.UUID
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: SessionStatus = SessionStatus.NEW
    version: int = 0
    history: List[Turn] = field(default_factory=list)
    candidate_entries: List[CandidateEntry] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    detected_agent: Optional[DetectedAgent] = None
    conflicts: Optional[List[Conflict]] = None
    metadata: BulletinMetadata = field(default_factory=BulletinMetadata)
    pdf_filename: Optional[str] = None
    ocr_text: Optional[str] = None
    imported_count: Optional[int] = None
    imported_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def has_active_import(self) -> bool:
        return self.status in (SessionStatus.IN_PROGRESS, SessionStatus.READY_TO_IMPORT)

    def append(self, turn: Turn) -> None:
        self.history.append(turn)

    def clone(self) -> "ImportSession":
        """Working copy for one turn; lists are copied, turns and entries are shared or replaced."""
        return replace(
            self,
            history=list(self.history),
            candidate_entries=[replace(e) for e in self.candidate_entries],
            questions=list(self.questions),
            conflicts=list(self.conflicts) if self.conflicts is not None else None,
        )
