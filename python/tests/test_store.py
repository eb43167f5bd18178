"""
Store Tests - Verify SQLite persistence of repository paths.

Tests:
- Empty store on first use
- Overwrite semantics and ordering
- Persistence across connections
"""

import pytest

from repowatch.store import SqliteRepositoryStore


class TestSqliteRepositoryStore:
    """Tests for the SqliteRepositoryStore class."""

    @pytest.fixture
    def store(self, test_config):
        s = SqliteRepositoryStore(test_config)
        yield s
        s.close()

    def test_creates_table(self, store):
        conn = store._get_connection()

        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}

        assert "repositories" in tables

    def test_empty_on_first_use(self, store):
        assert store.get() == []

    def test_keeps_order(self, store):
        paths = ["/src/zeta", "/src/alpha", "/src/mid"]

        store.set(paths)

        assert store.get() == paths

    def test_set_overwrites(self, store):
        store.set(["/src/a", "/src/b"])
        store.set(["/src/c"])

        assert store.get() == ["/src/c"]

    def test_set_empty(self, store):
        store.set(["/src/a"])
        store.set([])

        assert store.get() == []

    def test_drops_duplicates_and_blanks(self, store):
        store.set(["/src/a", "", "/src/b", "/src/a"])

        assert store.get() == ["/src/a", "/src/b"]

    def test_persists_across_instances(self, test_config, temp_dir):
        db_path = temp_dir / "other.db"
        first = SqliteRepositoryStore(test_config, db_path=db_path)
        first.set(["/src/a", "/src/b"])
        first.close()

        second = SqliteRepositoryStore(test_config, db_path=db_path)
        try:
            assert second.get() == ["/src/a", "/src/b"]
        finally:
            second.close()
