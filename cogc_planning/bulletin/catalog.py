"""Service code catalog: bulletin code -> canonical (service_code, poste_code).

Loaded once at startup (``services.catalog_service.load_service_catalog``)
and shared read-only afterwards.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from cogc_planning.bulletin.types import CandidateEntry, EntryConfidence, WORK_SERVICE_CODES


@dataclass(frozen=True)
class ServiceCodeEntry:
    code: str
    service_code: str
    poste_code: Optional[str] = None
    description: str = ""
    horaires_type: Optional[str] = None

    def to_prompt_dict(self) -> Dict[str, Optional[str]]:
        return {
            "code": self.code,
            "poste": self.poste_code,
            "service": self.service_code,
            "desc": self.description,
        }


_SLOT = {"-": ("matin", "matin"), "O": ("soir", "soir"), "X": ("nuit", "nuit")}


def _shift(code: str, service: str, poste: str) -> ServiceCodeEntry:
    label, horaires_type = _SLOT[service]
    return ServiceCodeEntry(code, service, poste, f"{poste} {label}", horaires_type)


# Used when the codes_services table is empty or unreachable.
DEFAULT_SERVICE_CODES: Tuple[ServiceCodeEntry, ...] = (
    _shift("CRC001", "-", "CRC"),
    _shift("CRC002", "O", "CRC"),
    _shift("CRC003", "X", "CRC"),
    _shift("ACR001", "-", "ACR"),
    _shift("ACR002", "O", "ACR"),
    _shift("ACR003", "X", "ACR"),
    _shift("CCU001", "-", "CCU"),
    _shift("CCU002", "O", "CCU"),
    _shift("CCU003", "X", "CCU"),
    _shift("CCU004", "-", "RE"),
    _shift("CCU005", "O", "RE"),
    _shift("CCU006", "X", "RE"),
    _shift("CENT001", "-", "RC"),
    _shift("CENT002", "O", "RC"),
    _shift("CENT003", "X", "RC"),
    _shift("REO007", "-", "RO"),
    _shift("REO008", "O", "RO"),
    _shift("SOUF001", "-", "SOUF"),
    _shift("SOUF002", "O", "SOUF"),
    ServiceCodeEntry("RP", "RP", None, "Repos périodique"),
    ServiceCodeEntry("RPP", "RP", None, "Repos périodique (RPP)"),
    ServiceCodeEntry("C", "C", None, "Congé"),
    ServiceCodeEntry("NU", "NU", None, "Non utilisé"),
    ServiceCodeEntry("D", "D", None, "Disponible", "journee"),
    ServiceCodeEntry("DISPO", "D", None, "Disponible", "journee"),
    ServiceCodeEntry("HAB", "HAB", None, "Habilitation"),
    ServiceCodeEntry("HAB-QF", "HAB", None, "Habilitation QF"),
    ServiceCodeEntry("I", "I", None, "Inaction"),
    ServiceCodeEntry("INACTIN", "I", None, "Inaction"),
    ServiceCodeEntry("VISIMED", "I", None, "Visite médicale"),
    ServiceCodeEntry("VMT", "I", None, "Visite médicale du travail"),
)


def normalize_code(raw: str) -> str:
    return (raw or "").strip().upper()


class ServiceCodeCatalog:
    """Immutable code table with lookups used by the import pipeline."""

    def __init__(self, entries: Iterable[ServiceCodeEntry]) -> None:
        self._by_code: Mapping[str, ServiceCodeEntry] = {
            normalize_code(e.code): e for e in entries
        }
        self._service_codes = frozenset(e.service_code for e in self._by_code.values()) | frozenset(
            WORK_SERVICE_CODES
        )
        self._postes = frozenset(e.poste_code for e in self._by_code.values() if e.poste_code)

    @classmethod
    def default(cls) -> "ServiceCodeCatalog":
        return cls(DEFAULT_SERVICE_CODES)

    def __len__(self) -> int:
        return len(self._by_code)

    def __iter__(self) -> Iterator[ServiceCodeEntry]:
        return iter(self._by_code.values())

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._by_code

    def get(self, code: str) -> Optional[ServiceCodeEntry]:
        return self._by_code.get(normalize_code(code))

    @property
    def service_codes(self) -> frozenset:
        return self._service_codes

    @property
    def postes(self) -> frozenset:
        return self._postes

    def is_known(self, code: str) -> bool:
        code = normalize_code(code)
        return code in self._by_code or code in self._service_codes

    def canonicalize(self, entry: CandidateEntry) -> CandidateEntry:
        """
        Replace service/poste with the catalog mapping of ``raw_code``.

        A raw code that is itself a canonical service code keeps the poste
        given by the model. Unknown codes keep the model's guess but drop to
        low confidence, unless the user set them explicitly.
        """
        code = normalize_code(entry.raw_code)
        known = self._by_code.get(code)
        if known is not None:
            return replace(entry, raw_code=code, service_code=known.service_code, poste_code=known.poste_code)
        if code in self._service_codes:
            return replace(entry, raw_code=code, service_code=code)
        if entry.confidence is EntryConfidence.USER_CORRECTED:
            return replace(entry, raw_code=code)
        return replace(
            entry,
            raw_code=code,
            confidence=EntryConfidence.LOW,
            note=_join_notes(entry.note, f"Code {code or '?'} absent du référentiel"),
        )

    def alternatives_for(self, entry: CandidateEntry, limit: int = 6) -> List[ServiceCodeEntry]:
        """Plausible replacements: same poste for operational codes, rest/absence codes otherwise."""
        if entry.poste_code:
            pool = [e for e in self._by_code.values() if e.poste_code == entry.poste_code]
        else:
            pool = [e for e in self._by_code.values() if e.poste_code is None]
        current = normalize_code(entry.raw_code)
        ordered = sorted(pool, key=lambda e: (e.code != current, e.code))
        return ordered[:limit]

    def to_prompt_json(self) -> str:
        return json.dumps([e.to_prompt_dict() for e in self._by_code.values()], ensure_ascii=False, indent=2)


def _join_notes(*notes: Optional[str]) -> Optional[str]:
    parts = [n for n in notes if n]
    return " ; ".join(parts) if parts else None
