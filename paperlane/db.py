"""SQLite-backed local state store for paperlane."""

import logging
import sqlite3
from pathlib import Path

from paperlane.config import Config

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS local_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class StateDB:
    """SQLite key-value store implementing the ``Storage`` protocol."""

    def __init__(self, config: Config, db_path: Path | None = None) -> None:
        self.db_path = db_path or config.resolved_db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call init_db() first.")
        return self._conn

    def init_db(self) -> None:
        """Create database and tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA_SQL)
        logger.info("State database initialized at %s", self.db_path)

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    # --- Storage protocol ---

    def get_item(self, key: str) -> str | None:
        row = self.conn.execute(
            "SELECT value FROM local_state WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        self.conn.execute(
            """INSERT INTO local_state (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                              updated_at = datetime('now')""",
            (key, value),
        )
        self.conn.commit()

    def remove_item(self, key: str) -> None:
        self.conn.execute("DELETE FROM local_state WHERE key = ?", (key,))
        self.conn.commit()

    # --- Inspection ---

    def items(self) -> dict[str, str]:
        rows = self.conn.execute("SELECT key, value FROM local_state ORDER BY key").fetchall()
        return {r["key"]: r["value"] for r in rows}

    def clear(self) -> int:
        cursor = self.conn.execute("DELETE FROM local_state")
        self.conn.commit()
        return cursor.rowcount
