"""Import session status transitions.

Only the transitions listed in ``TRANSITIONS`` are accepted; terminal
sessions (imported, cancelled) accept none.
"""
from __future__ import annotations

import logging
from typing import Dict, FrozenSet

from cogc_planning.bulletin.types import ImportSession, SessionStatus
from cogc_planning.core.exceptions import ConflictStateError

logger = logging.getLogger(__name__)

_NEW = SessionStatus.NEW
_IN_PROGRESS = SessionStatus.IN_PROGRESS
_READY = SessionStatus.READY_TO_IMPORT
_IMPORTED = SessionStatus.IMPORTED
_CANCELLED = SessionStatus.CANCELLED

TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    _NEW: frozenset({_IN_PROGRESS, _READY, _CANCELLED}),
    _IN_PROGRESS: frozenset({_IN_PROGRESS, _READY, _CANCELLED}),
    # self-loop: confirm found conflicts, strategy awaited
    _READY: frozenset({_READY, _IN_PROGRESS, _IMPORTED, _CANCELLED}),
    _IMPORTED: frozenset(),
    _CANCELLED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_mutable(session: ImportSession) -> None:
    """Raise ConflictStateError if the session no longer accepts turns."""
    if session.is_terminal:
        raise ConflictStateError(
            f"Session {session.id} is {session.status.value}; no further turns accepted",
            details={"conversation_id": str(session.id), "status": session.status.value},
            user_message=(
                "Cette conversation est terminée "
                f"({'import effectué' if session.status is _IMPORTED else 'import annulé'}). "
                "Démarrez une nouvelle conversation pour continuer."
            ),
        )


def transition(session: ImportSession, target: SessionStatus) -> SessionStatus:
    """Move ``session`` to ``target``; returns the previous status."""
    current = session.status
    if not can_transition(current, target):
        raise ConflictStateError(
            f"Invalid transition {current.value} -> {target.value}",
            details={
                "conversation_id": str(session.id),
                "from": current.value,
                "to": target.value,
            },
        )
    session.status = target
    if current is not target:
        logger.info("session %s: %s -> %s", session.id, current.value, target.value)
    return current
