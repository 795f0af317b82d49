"""ORM models declare the full schema; init_db() creates it with create_all alone."""
from __future__ import annotations

import unittest

import cogc_planning.infra.database.models  # noqa: F401
from cogc_planning.infra.database import engine
from cogc_planning.infra.database.models.base import Base


class TestSchema(unittest.TestCase):
    def test_planning_metadata_columns(self) -> None:
        columns = Base.metadata.tables["planning"].c
        for name in ("commentaire", "postes_supplementaires", "texte_libre", "statut_conge"):
            self.assertIn(name, columns, name)
            self.assertTrue(columns[name].nullable, name)

    def test_import_session_version(self) -> None:
        version = Base.metadata.tables["import_sessions"].c["version"]
        self.assertFalse(version.nullable)
        self.assertEqual(version.server_default.arg, "0")

    def test_no_column_patching(self) -> None:
        self.assertFalse(hasattr(engine, "_MIGRATIONS"))


if __name__ == "__main__":
    unittest.main()
