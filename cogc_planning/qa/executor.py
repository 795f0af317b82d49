"""Runs one bounded schedule query per resolved intent and phrases the answer."""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Dict, List, Sequence, Tuple

from cogc_planning.bulletin.ports import ScheduleStore
from cogc_planning.bulletin.prompts import BOT_NAME
from cogc_planning.bulletin.types import ScheduleEntry, WORK_SERVICE_CODES
from cogc_planning.qa.dates import format_day_name
from cogc_planning.qa.types import (
    HelpQAResponse,
    HoursQAResponse,
    PlanningItem,
    PlanningQAResponse,
    QAAnswer,
    QAIntent,
    QAIntentType,
    QASummary,
    StatsQAResponse,
    TeamQAResponse,
    UnknownQAResponse,
)

logger = logging.getLogger(__name__)

# Hours credited per service code
SHIFT_HOURS: Dict[str, float] = {"-": 8.0, "O": 8.0, "X": 8.0, "D": 7.75}

SERVICE_LABELS: Dict[str, str] = {
    "-": "matin",
    "O": "soir",
    "X": "nuit",
    "RP": "repos",
    "C": "congé",
    "D": "disponible",
    "NU": "non utilisé",
    "HAB": "habilitation",
    "I": "inaction",
    "FO": "formation",
}

FALLBACK_MESSAGE = (
    "Je n'ai pas compris ta question. Tu peux me demander tes services de la semaine, "
    "ton prochain service, tes heures du mois ou qui travaille avec toi. "
    "Tu peux aussi m'envoyer un bulletin PDF à importer. Tape \"aide\" pour tout voir."
)

HELP_MESSAGE = f"""\
🤖 **{BOT_NAME} - Fonctionnalités**

📎 **Import de bulletins PDF**
Envoie ton bulletin de commande et j'en extrais les services : dates, codes, postes \
(CRC, CCU, ACR...), services de nuit (décalage J+1) et agent concerné.
Si quelque chose n'est pas clair, je te pose la question avant d'importer.

💬 **Questions sur ton planning**
📅 "Quels sont mes services cette semaine ?"
📆 "Je travaille demain ?", "Quel service le 15 janvier ?"
⏱️ "Combien d'heures ce mois ?"
🔜 "C'est quand mon prochain service ?"
🔍 "Mes prochains repos", "Quand j'ai un CRC ?"
📊 "Combien de repos ce mois ?"
👥 "Qui travaille avec moi lundi ?", "Qui est en CRC demain ?"

💡 Tu peux corriger les services par message : "le 15 c'est RPP pas RP".
Les périodes comme "du 15 au 28 janvier" ou "la semaine dernière" sont comprises."""


def service_label(code: str) -> str:
    label = SERVICE_LABELS.get(code)
    return f"{code} ({label})" if label else code


def period_phrase(intent: QAIntent) -> str:
    """``"le lundi 9 juin"`` or ``"du lundi 9 juin au dimanche 15 juin"``."""
    r = intent.date_range
    if r.start == r.end:
        return f"le {format_day_name(r.start).lower()}"
    return r.label()


def _describe(entry: ScheduleEntry) -> str:
    poste = f" en {entry.poste_code}" if entry.poste_code else ""
    return f"• {format_day_name(entry.date)} : {service_label(entry.service_code)}{poste}"


def _items(entries: Sequence[ScheduleEntry]) -> Tuple[PlanningItem, ...]:
    return tuple(
        PlanningItem(
            date=e.date,
            day_name=format_day_name(e.date),
            service_code=e.service_code,
            poste_code=e.poste_code,
        )
        for e in entries
    )


class QueryExecutor:
    """
    ``help`` and ``unknown`` run no query. Every other intent runs exactly one
    range query (team intents: one roster query) on the schedule store.
    """

    def __init__(self, store: ScheduleStore, next_service_limit: int = 5) -> None:
        self._store = store
        self._next_service_limit = next_service_limit

    async def execute(self, intent: QAIntent, agent_id: uuid.UUID) -> QAAnswer:
        kind = intent.type
        if kind is QAIntentType.HELP:
            return QAAnswer(HELP_MESSAGE, intent, HelpQAResponse())
        if kind is QAIntentType.UNKNOWN or intent.date_range is None:
            return QAAnswer(FALLBACK_MESSAGE, intent, UnknownQAResponse())
        if kind.is_team:
            return await self._team(intent, agent_id)

        if kind is QAIntentType.NEXT_SERVICE:
            entries = await self._store.query(
                agent_id,
                intent.date_range,
                service_codes=WORK_SERVICE_CODES,
                limit=self._next_service_limit,
            )
        else:
            entries = await self._store.query(agent_id, intent.date_range, intent.service_code)
        if intent.poste_code:
            entries = [e for e in entries if e.poste_code == intent.poste_code]

        if kind is QAIntentType.MONTHLY_HOURS:
            return self._hours(intent, entries)
        if kind is QAIntentType.STATS_SUMMARY:
            return self._stats(intent, entries)
        return QAAnswer(
            self._planning_message(intent, entries),
            intent,
            PlanningQAResponse(
                type=kind,
                entries=_items(entries),
                summary=QASummary(count=len(entries), period=intent.date_range.label()),
            ),
        )

    # ── Per-intent phrasing ─────────────────────────────────────────

    @staticmethod
    def _planning_message(intent: QAIntent, entries: List[ScheduleEntry]) -> str:
        period = period_phrase(intent)
        if not entries:
            if intent.type is QAIntentType.NEXT_SERVICE:
                return "Aucun service prévu dans le mois qui vient."
            if intent.type is QAIntentType.SERVICE_SEARCH:
                what = service_label(intent.service_code) if intent.service_code else intent.poste_code
                return f"Aucun {what} trouvé {period}."
            return f"Aucun service enregistré {period}."

        if intent.type is QAIntentType.NEXT_SERVICE:
            head = "📅 Ton prochain service :" if len(entries) == 1 else f"📅 Tes {len(entries)} prochains services :"
        elif intent.type is QAIntentType.SPECIFIC_DATE and len(entries) == 1:
            entry = entries[0]
            poste = f" en {entry.poste_code}" if entry.poste_code else ""
            return f"📆 {format_day_name(entry.date)} : {service_label(entry.service_code)}{poste}."
        else:
            head = f"📅 {len(entries)} service(s) {period} :"
        return "\n".join([head] + [_describe(e) for e in entries])

    @staticmethod
    def _hours(intent: QAIntent, entries: List[ScheduleEntry]) -> QAAnswer:
        counted = [e for e in entries if e.service_code in SHIFT_HOURS]
        total = sum(SHIFT_HOURS[e.service_code] for e in counted)
        worked = sum(1 for e in counted if e.service_code in WORK_SERVICE_CODES)
        period = period_phrase(intent)
        hours = f"{total:g}".replace(".", ",")
        message = f"⏱️ {hours} h {period} ({worked} service(s) travaillé(s))."
        return QAAnswer(
            message,
            intent,
            HoursQAResponse(
                entries=_items(counted),
                total_hours=total,
                worked_days=worked,
                summary=QASummary(count=len(counted), period=intent.date_range.label()),
            ),
        )

    @staticmethod
    def _stats(intent: QAIntent, entries: List[ScheduleEntry]) -> QAAnswer:
        counts = dict(sorted(Counter(e.service_code for e in entries).items()))
        period = period_phrase(intent)
        if not counts:
            message = f"Aucun service enregistré {period}."
        else:
            lines = [f"• {service_label(code)} : {n}" for code, n in counts.items()]
            message = "\n".join([f"📊 Répartition {period} :"] + lines)
        return QAAnswer(
            message,
            intent,
            StatsQAResponse(counts=counts, summary=QASummary(count=len(entries), period=intent.date_range.label())),
        )

    async def _team(self, intent: QAIntent, agent_id: uuid.UUID) -> QAAnswer:
        day = intent.date_range.start
        poste = intent.poste_code if intent.type is QAIntentType.TEAM_ON_POSTE else None
        team = await self._store.query_team(
            day,
            exclude_agent_id=agent_id,
            service_codes=WORK_SERVICE_CODES,
            poste_code=poste,
        )
        label = format_day_name(day)
        where = f" en {poste}" if poste else ""
        if not team:
            message = f"Personne d'autre n'est de service{where} {label}."
        else:
            lines = [
                f"• {m.agent_name} : {service_label(m.service_code)}" + (f" ({m.poste_code})" if m.poste_code else "")
                for m in team
            ]
            message = "\n".join([f"👥 {len(team)} agent(s) de service{where} {label} :"] + lines)
        return QAAnswer(
            message,
            intent,
            TeamQAResponse(
                type=intent.type,
                day=day,
                team=tuple(team),
                summary=QASummary(count=len(team), period=label),
            ),
        )
