"""Layer 1: keyword/pattern classifier for planning questions, no LLM calls."""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Tuple

from cogc_planning.qa.dates import fold, mentions_period
from cogc_planning.qa.types import QAIntent, QAIntentType

logger = logging.getLogger(__name__)

DEFAULT_POSTES: Tuple[str, ...] = ("CRC", "CCU", "ACR", "RE", "RC", "RO", "SOUF")

# Stored service codes. Bulletin-only variants map to their canonical code.
SERVICE_ALIASES = {
    "RPP": "RP",
    "DISPO": "D",
    "HAB-QF": "HAB",
    "INACTIN": "I",
    "VISIMED": "I",
    "VMT": "I",
}

# Words in a folded question -> service code searched for
_SERVICE_WORDS: List[Tuple[str, str]] = [
    (r"\brepos\b|\brpp?\b", "RP"),
    (r"\bnuits?\b", "X"),
    (r"\bmatins?\b|\bmatinees?\b", "-"),
    (r"\bsoirs?\b|\bsoirees?\b|\bapres-midi\b", "O"),
    (r"\bconges?\b", "C"),
    (r"\bdispos?\b|\bdisponibles?\b", "D"),
    (r"\bformations?\b", "FO"),
    (r"\bhabilitations?\b", "HAB"),
    (r"\bvisites? medicales?\b", "I"),
]

_HELP = re.compile(
    r"^\s*(aide|help|\?)\s*[!?.]*\s*$|que (peux|sais)[- ]tu faire|tes (fonctionnalites|capacites)"
    r"|quelles sont tes|comment (ca|tu) (marche|fonctionne)s?|fonctionnalites"
)
_TEAM_DATE = re.compile(
    r"\bqui (travaille|bosse|est de service|sera de service|est la|est en service|est dispo)"
    r"|\bavec moi\b|\bequipe\b|\bcollegues?\b"
)
_WHO = re.compile(r"\bqui\b|\bles agents\b|\bagents? (en|au|sur)\b")
_HOURS = re.compile(r"\bheures\b|\bh travaillees\b")
_AT_WHAT_TIME = re.compile(r"\ba quelle heure\b|\bquelle heure\b")
_NEXT_SERVICE = re.compile(
    r"prochain service|prochaine (vacation|prise de service)|prochain jour de travail"
    r"|quand (est-ce que |est ce que )?je (travaille|bosse|reprends|reprend)"
    r"|je reprends quand|je travaille quand"
)
_STATS = re.compile(r"\bcombien\b|statistiques?|\bstats?\b|\bbilan\b|\bcompteurs?\b|\bnombre de\b")
_SEARCH = re.compile(r"\bmes\b|\bquand\b|\bprochaine?s?\b|\bliste\b|\bou sont\b|\bj'ai\b")
_WEEK = re.compile(r"\bsemaine\b")
_DAY_QUESTION = re.compile(
    r"\bservice\b|\btravaille\b|\bbosse\b|\bplanning\b|\bcommence\b|\bfinis?\b|\bhoraires?\b"
    r"|\bquoi\b|\bsuis\b|\bposte\b|\bheure\b|\bvacation\b"
)


def canonical_service_code(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    code = code.strip().upper()
    return SERVICE_ALIASES.get(code, code) or None


class QAPreClassifier:
    """Fast deterministic classifier using French keyword patterns.

    Returns a ``QAIntent`` (without date range) when a pattern matches, or
    ``None`` to hand off to the next classification layer.
    """

    def __init__(self, postes: Iterable[str] = DEFAULT_POSTES) -> None:
        long_postes = sorted({p.upper() for p in postes if len(p) >= 3}, key=len, reverse=True)
        short_postes = sorted({p.upper() for p in postes if len(p) < 3})
        # Two-letter postes (RE, RC, RO) only count when typed in capitals
        self._long = re.compile(r"\b(" + "|".join(map(re.escape, long_postes)) + r")\b", re.IGNORECASE) if long_postes else None
        self._short = re.compile(r"\b(" + "|".join(map(re.escape, short_postes)) + r")\b") if short_postes else None

    def find_poste(self, text: str) -> Optional[str]:
        for pattern in (self._long, self._short):
            if pattern is None:
                continue
            m = pattern.search(text)
            if m:
                return m.group(1).upper()
        return None

    @staticmethod
    def find_service_code(folded: str) -> Optional[str]:
        for pattern, code in _SERVICE_WORDS:
            if re.search(pattern, folded):
                return code
        return None

    def try_classify(self, query: str) -> Optional[QAIntent]:
        q = fold(query)
        if not q.strip():
            return None
        poste = self.find_poste(query)
        service = self.find_service_code(q)

        def hit(intent: QAIntentType, reason: str, confidence: float = 0.9, **params: Optional[str]) -> QAIntent:
            logger.debug("QAPreClassifier: %s (%s)", intent.value, reason)
            return QAIntent(
                type=intent,
                confidence=confidence,
                classifier_layer="pre",
                reasoning=reason,
                service_code=params.get("service_code"),
                poste_code=params.get("poste_code"),
            )

        if _HELP.search(q):
            return hit(QAIntentType.HELP, "help keyword", 0.95)
        if poste and _WHO.search(q):
            return hit(QAIntentType.TEAM_ON_POSTE, f"who + poste {poste}", poste_code=poste)
        if _TEAM_DATE.search(q):
            return hit(QAIntentType.TEAM_ON_DATE, "team keyword")
        if _HOURS.search(q) and not _AT_WHAT_TIME.search(q):
            return hit(QAIntentType.MONTHLY_HOURS, "hours keyword")
        if _NEXT_SERVICE.search(q):
            return hit(QAIntentType.NEXT_SERVICE, "next service keyword", 0.95)
        if _STATS.search(q):
            return hit(QAIntentType.STATS_SUMMARY, "count keyword", service_code=service)
        if (service or poste) and _SEARCH.search(q):
            return hit(
                QAIntentType.SERVICE_SEARCH,
                "service search",
                0.85,
                service_code=service,
                poste_code=poste,
            )
        if _WEEK.search(q):
            return hit(QAIntentType.WEEKLY_SERVICES, "week keyword", 0.85)
        if _DAY_QUESTION.search(q) and mentions_period(query):
            return hit(QAIntentType.SPECIFIC_DATE, "date + planning keyword", 0.8)
        return None


