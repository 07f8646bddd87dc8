"""
Key-value store for catalog records, gallery items and site settings.

Values are JSON documents. Writes are single-key atomic; nothing here offers
multi-key transactions.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Interface every key-value backend implements."""

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the value stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Insert or replace the value under key."""
        pass

    @abstractmethod
    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        """Return every value whose key starts with prefix, ordered by key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was deleted."""
        pass


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value store backed by a single SQLite table."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
        logger.debug("Key-value store ready at %s", self.db_path)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return json.loads(row[0]) if row else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        payload = json.dumps(value)
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                (key, payload),
            )

    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        # substr comparison avoids LIKE wildcards in user supplied prefixes
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT value FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [json.loads(row[0]) for row in rows]

    def delete(self, key: str) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cursor.rowcount > 0


class MemoryKeyValueStore(KeyValueStore):
    """In-process store for tests and throwaway servers."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        # Stored serialized so callers never share mutable state with the store
        with self._lock:
            self._data[key] = json.dumps(value)

    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        with self._lock:
            items = sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
        return [json.loads(v) for _, v in items]

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None
