"""
SQLite storage backend.

Stores key-value slots in a SQLite database for:
- ACID writes of the whole inventory
- Single-file portability
- Offline operation

Suitable for single-user scenarios where one file is easier to back up
than a directory.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from .errors import StorageError, StorageQuotaError

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SQLiteStorage:
    """SQLite database key-value storage.

    Implements the KeyValueStorage protocol using one table of text slots.
    """

    def __init__(self, db_path: Path, max_bytes: Optional[int] = None):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
            max_bytes: Optional total size limit across all stored values
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_bytes

        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA_SQL)

            # Check/set schema version
            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,),
                )

            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection with automatic cleanup."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path)

        try:
            yield self._conn
        except Exception:
            self._conn.rollback()
            raise

    def get_item(self, key: str) -> Optional[str]:
        """Get stored text for key, or None if absent."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(key, f"Failed to read from {self.db_path}: {e}") from e

        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Replace stored text for key."""
        try:
            with self._get_connection() as conn:
                if self.max_bytes is not None:
                    projected = self._projected_size(conn, key, value)
                    if projected > self.max_bytes:
                        raise StorageQuotaError(
                            key,
                            f"Storage quota exceeded ({projected} > {self.max_bytes} bytes)",
                            size=projected,
                            limit=self.max_bytes,
                        )

                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(key, f"Failed to write to {self.db_path}: {e}") from e

        logger.debug(f"Saved {len(value)} characters under {key!r} in {self.db_path}")

    def remove_item(self, key: str) -> None:
        """Remove key if present."""
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(key, f"Failed to remove from {self.db_path}: {e}") from e

    @staticmethod
    def _projected_size(conn: sqlite3.Connection, key: str, value: str) -> int:
        row = conn.execute(
            "SELECT COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) FROM kv_store WHERE key != ?",
            (key,),
        ).fetchone()
        return row[0] + len(value.encode("utf-8"))

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
