"""Namespaced key/value storage backends for memory facts.

The store only depends on the narrow ``KeyValueBackend`` protocol:
namespace + key addressing, listing with a key-prefix exclusion, and
counting. Two implementations are provided:

- InMemoryBackend: dict-backed, used in tests and ephemeral setups
- SQLiteBackend: persistent storage in a local SQLite database
"""

import sqlite3
from pathlib import Path
from typing import Protocol


class KeyValueBackend(Protocol):
    """Protocol for namespaced keyed storage.

    Listing order is insertion order; overwriting an existing key keeps
    its position.
    """

    def get(self, namespace: str, key: str) -> str | None:
        """Return the value stored under key, or None."""
        ...

    def set(self, namespace: str, key: str, value: str) -> None:
        """Create or overwrite key."""
        ...

    def remove(self, namespace: str, key: str) -> None:
        """Remove key if present."""
        ...

    def items(
        self, namespace: str, exclude_prefix: str | None = None
    ) -> list[tuple[str, str]]:
        """List (key, value) pairs, skipping keys starting with exclude_prefix."""
        ...

    def count(self, namespace: str, exclude_prefix: str | None = None) -> int:
        """Count keys, skipping keys starting with exclude_prefix."""
        ...

    def clear(self, namespace: str, exclude_prefix: str | None = None) -> int:
        """Remove every key not starting with exclude_prefix.

        Returns:
            Number of keys removed.
        """
        ...


def _excluded(key: str, prefix: str | None) -> bool:
    return bool(prefix) and key.startswith(prefix)


class InMemoryBackend:
    """Dict-backed backend. Not shared across processes."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}

    def get(self, namespace: str, key: str) -> str | None:
        return self._data.get(namespace, {}).get(key)

    def set(self, namespace: str, key: str, value: str) -> None:
        self._data.setdefault(namespace, {})[key] = value

    def remove(self, namespace: str, key: str) -> None:
        self._data.get(namespace, {}).pop(key, None)

    def items(
        self, namespace: str, exclude_prefix: str | None = None
    ) -> list[tuple[str, str]]:
        return [
            (k, v)
            for k, v in self._data.get(namespace, {}).items()
            if not _excluded(k, exclude_prefix)
        ]

    def count(self, namespace: str, exclude_prefix: str | None = None) -> int:
        return len(self.items(namespace, exclude_prefix))

    def clear(self, namespace: str, exclude_prefix: str | None = None) -> int:
        entries = self._data.get(namespace, {})
        doomed = [k for k in entries if not _excluded(k, exclude_prefix)]
        for key in doomed:
            del entries[key]
        return len(doomed)


class SQLiteBackend:
    """Persistent backend using a single SQLite table.

    Rows are keyed by (namespace, key); the autoincrement id gives the
    listing order.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the backend with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the entries table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                namespace   TEXT NOT NULL,
                key         TEXT NOT NULL,
                value       TEXT NOT NULL,
                updated_at  TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(namespace, key)
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_entries_namespace ON entries(namespace)"
        )
        conn.commit()

    def get(self, namespace: str, key: str) -> str | None:
        conn = self._get_connection()
        row = conn.execute(
            "SELECT value FROM entries WHERE namespace = ? AND key = ?",
            (namespace, key),
        ).fetchone()
        return row["value"] if row is not None else None

    def set(self, namespace: str, key: str, value: str) -> None:
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO entries (namespace, key, value)
            VALUES (?, ?, ?)
            ON CONFLICT(namespace, key) DO UPDATE SET
                value = excluded.value,
                updated_at = datetime('now')
            """,
            (namespace, key, value),
        )
        conn.commit()

    def remove(self, namespace: str, key: str) -> None:
        conn = self._get_connection()
        conn.execute(
            "DELETE FROM entries WHERE namespace = ? AND key = ?",
            (namespace, key),
        )
        conn.commit()

    def items(
        self, namespace: str, exclude_prefix: str | None = None
    ) -> list[tuple[str, str]]:
        where, params = self._where(namespace, exclude_prefix)
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT key, value FROM entries WHERE {where} ORDER BY id", params
        )
        return [(row["key"], row["value"]) for row in cursor.fetchall()]

    def count(self, namespace: str, exclude_prefix: str | None = None) -> int:
        where, params = self._where(namespace, exclude_prefix)
        conn = self._get_connection()
        row = conn.execute(f"SELECT COUNT(*) FROM entries WHERE {where}", params).fetchone()
        return int(row[0])

    def clear(self, namespace: str, exclude_prefix: str | None = None) -> int:
        where, params = self._where(namespace, exclude_prefix)
        conn = self._get_connection()
        cursor = conn.execute(f"DELETE FROM entries WHERE {where}", params)
        conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @staticmethod
    def _where(
        namespace: str, exclude_prefix: str | None
    ) -> tuple[str, tuple[str | int, ...]]:
        # substr() instead of LIKE: '_' is a LIKE wildcard
        if not exclude_prefix:
            return "namespace = ?", (namespace,)
        return (
            "namespace = ? AND substr(key, 1, ?) != ?",
            (namespace, len(exclude_prefix), exclude_prefix),
        )
