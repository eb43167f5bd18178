"""
Store - SQLite persistence of known repository paths.

Holds the ordered path list a restart replays instead of rescanning every
root. `set` overwrites the whole list in one transaction.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .config import get_config, MonitorConfig
from .interfaces import RepositoryStore


logger = logging.getLogger(__name__)


class SqliteRepositoryStore(RepositoryStore):
    """
    Path list stored in a single SQLite table.

    One connection is shared across threads (replay thread, flush timer)
    and guarded by a lock.
    """

    def __init__(self, config: MonitorConfig | None = None, db_path: Path | None = None):
        self.config = config or get_config()
        self.db_path = Path(db_path) if db_path else self.config.store_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._init_tables()
        return self._conn

    def _init_tables(self):
        conn = self._conn
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS repositories (
                position INTEGER PRIMARY KEY,
                path TEXT NOT NULL UNIQUE,
                stored_at INTEGER NOT NULL
            );
        """)
        conn.commit()

    def get(self) -> List[str]:
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute("SELECT path FROM repositories ORDER BY position")
            return [row[0] for row in cursor.fetchall()]

    def set(self, paths: Sequence[str]) -> None:
        now = int(datetime.now().timestamp())
        unique = list(dict.fromkeys(p for p in paths if p))

        with self._lock:
            conn = self._get_connection()
            with conn:
                conn.execute("DELETE FROM repositories")
                conn.executemany(
                    "INSERT INTO repositories (position, path, stored_at) VALUES (?, ?, ?)",
                    [(i, path, now) for i, path in enumerate(unique)],
                )

        logger.info(f"Stored {len(unique)} repository paths")

    def close(self):
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
