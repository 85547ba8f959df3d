# ABOUTME: Unit tests for the schema migration runner.
# ABOUTME: Validates that migrations apply sequentially, only once, and preserve existing rows.

from pathlib import Path

import pytest

from folio.db import connection
from folio.db.connection import _apply_migrations, _get_schema_version, open_library
from folio.db.schema import MIGRATIONS

BOOKMARKS_V2 = """
CREATE TABLE bookmarks (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    page    INTEGER NOT NULL
);
"""


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "test_migration.db"


class TestMigrations:
    """Tests for the migration runner."""

    def test_fresh_db_is_version_one(self, db_path: Path) -> None:
        """A fresh database starts at schema version 1."""
        conn = open_library(db_path)
        version = _get_schema_version(conn)
        conn.close()
        assert version == 1

    def test_migrations_list_is_ordered(self) -> None:
        """MIGRATIONS list has strictly increasing version numbers above 1."""
        versions = [v for v, _ in MIGRATIONS]
        assert versions == sorted(versions)
        assert len(versions) == len(set(versions))
        assert all(v > 1 for v in versions)

    def test_pending_migration_applied_on_open(
        self, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An existing V1 database picks up a newer migration when reopened."""
        open_library(db_path).close()

        monkeypatch.setattr(connection, "MIGRATIONS", [(2, BOOKMARKS_V2)])
        conn = open_library(db_path)
        assert _get_schema_version(conn) == 2
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='bookmarks'"
        )
        assert cursor.fetchone() is not None
        conn.close()

    def test_migrations_are_idempotent(
        self, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Running the migration runner again does not re-apply anything."""
        monkeypatch.setattr(connection, "MIGRATIONS", [(2, BOOKMARKS_V2)])
        conn = open_library(db_path)
        _apply_migrations(conn)
        rows = conn.execute("SELECT version FROM schema_version ORDER BY version").fetchall()
        conn.close()
        assert [row[0] for row in rows] == [1, 2]

    def test_existing_rows_survive(
        self, db_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Books stored before a migration are still there afterwards."""
        conn = open_library(db_path)
        conn.execute(
            "INSERT INTO books (title, creator, language, file_name, file_size, file_hash, document) "
            "VALUES ('Legacy Book', 'Old Author', 'en', 'legacy.epub', 1, 'legacy_hash', '{}')"
        )
        conn.commit()
        conn.close()

        monkeypatch.setattr(connection, "MIGRATIONS", [(2, BOOKMARKS_V2)])
        conn = open_library(db_path)
        title = conn.execute("SELECT title FROM books").fetchone()[0]
        conn.close()
        assert title == "Legacy Book"
