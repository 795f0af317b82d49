"""Unit tests for agent name resolution."""
from __future__ import annotations

import unittest
from uuid import uuid4

from cogc_planning.bulletin.agent_resolver import resolve_agent
from cogc_planning.bulletin.types import AgentRecord, MatchConfidence

DUPONT = AgentRecord(id=uuid4(), nom="DUPONT", prenom="Jean")
MARTIN = AgentRecord(id=uuid4(), nom="MARTIN", prenom="Claire")
MARTINEZ = AgentRecord(id=uuid4(), nom="MARTINEZ", prenom="Paul")
DIRECTORY = [DUPONT, MARTIN, MARTINEZ]


class TestResolveAgent(unittest.TestCase):
    def test_exact_match_nom_prenom(self) -> None:
        result = resolve_agent("Dupont Jean", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.EXACT)
        self.assertEqual(result.agent_id, DUPONT.id)
        self.assertFalse(result.agent_mismatch)

    def test_exact_match_prenom_nom(self) -> None:
        result = resolve_agent("JEAN DUPONT", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.EXACT)

    def test_partial_single_candidate(self) -> None:
        result = resolve_agent("Dupont", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.PARTIAL)
        self.assertEqual(result.nom, "DUPONT")

    def test_ambiguous_partial_is_none(self) -> None:
        # MARTIN is a substring of MARTINEZ
        result = resolve_agent("Martin", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.NONE)
        self.assertIsNone(result.agent_id)

    def test_mismatch_flag_when_other_agent(self) -> None:
        result = resolve_agent("Claire MARTIN", DIRECTORY, DUPONT.id)
        self.assertEqual(result.agent_id, MARTIN.id)
        self.assertTrue(result.agent_mismatch)

    def test_empty_name(self) -> None:
        result = resolve_agent("  ", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.NONE)

    def test_no_match(self) -> None:
        result = resolve_agent("Durand Luc", DIRECTORY, DUPONT.id)
        self.assertEqual(result.confidence, MatchConfidence.NONE)
        self.assertFalse(result.agent_mismatch)


if __name__ == "__main__":
    unittest.main()
