"""Commit candidate entries to the schedule store under a resolution strategy."""
from __future__ import annotations

import logging
import uuid
from typing import Sequence

from cogc_planning.bulletin.conflicts import conflict_dates
from cogc_planning.bulletin.ports import ScheduleStore
from cogc_planning.bulletin.types import (
    CandidateEntry,
    Conflict,
    ReconciliationResult,
    ResolutionStrategy,
)

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    ``overwrite_all`` upserts every candidate. ``skip_existing`` leaves the
    conflicting dates untouched. Upserts are keyed on (agent, date) by the
    store, so committing the same set twice is harmless.
    """

    def __init__(self, store: ScheduleStore) -> None:
        self._store = store

    async def commit(
        self,
        agent_id: uuid.UUID,
        candidates: Sequence[CandidateEntry],
        strategy: ResolutionStrategy,
        conflicts: Sequence[Conflict] = (),
    ) -> ReconciliationResult:
        skip = conflict_dates(conflicts) if strategy is ResolutionStrategy.SKIP_EXISTING else frozenset()
        imported = 0
        skipped = 0
        for entry in candidates:
            if entry.date in skip:
                skipped += 1
                continue
            await self._store.upsert(agent_id, entry.date, entry.service_code, entry.poste_code)
            imported += 1
        logger.info(
            "agent %s: %d imported, %d skipped (%s)",
            agent_id, imported, skipped, strategy.value,
        )
        return ReconciliationResult(imported_count=imported, skipped_count=skipped, strategy=strategy)
