"""Match the agent name printed on a bulletin against the agent directory."""
from __future__ import annotations

import uuid
from typing import List, Optional, Sequence, Tuple

from cogc_planning.bulletin.types import AgentRecord, DetectedAgent, MatchConfidence


def _split_name(name: str) -> Tuple[str, ...]:
    """``"dupont jean pierre"`` -> ``("DUPONT", "JEAN PIERRE")``; a single word stays alone."""
    tokens = (name or "").upper().split()
    if len(tokens) < 2:
        return tuple(tokens)
    return tokens[0], " ".join(tokens[1:])


def _exact_match(first: str, rest: str, directory: Sequence[AgentRecord]) -> Optional[AgentRecord]:
    for agent in directory:
        nom, prenom = agent.nom.upper(), agent.prenom.upper()
        if (nom == first and prenom == rest) or (nom == rest and prenom == first):
            return agent
    return None


def _partial_matches(tokens: Sequence[str], directory: Sequence[AgentRecord]) -> List[AgentRecord]:
    words = [w for token in tokens for w in token.split()]
    return [
        agent
        for agent in directory
        if any(w in agent.nom.upper() or w in agent.prenom.upper() for w in words)
    ]


def resolve_agent(
    name: Optional[str],
    directory: Sequence[AgentRecord],
    owner_agent_id: uuid.UUID,
) -> DetectedAgent:
    """
    Exact match on (nom, prenom) in either order, otherwise a substring search
    that only counts when exactly one agent matches. ``agent_mismatch`` tells
    the caller the bulletin names someone other than the calendar owner; the
    import target is never changed here.
    """
    label = (name or "").strip()
    tokens = _split_name(label)
    if not tokens:
        return DetectedAgent(name=label, confidence=MatchConfidence.NONE)

    agent: Optional[AgentRecord] = None
    confidence = MatchConfidence.NONE
    if len(tokens) == 2:
        agent = _exact_match(tokens[0], tokens[1], directory)
        if agent is not None:
            confidence = MatchConfidence.EXACT
    if agent is None:
        candidates = _partial_matches(tokens, directory)
        if len(candidates) == 1:
            agent = candidates[0]
            confidence = MatchConfidence.PARTIAL

    if agent is None:
        return DetectedAgent(name=label, confidence=MatchConfidence.NONE)
    return DetectedAgent(
        name=label,
        confidence=confidence,
        agent_id=agent.id,
        nom=agent.nom,
        prenom=agent.prenom,
        agent_mismatch=agent.id != owner_agent_id,
    )
