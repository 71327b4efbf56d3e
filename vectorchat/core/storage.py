"""
Durable key-value storage slots.

Each slot holds one serialized (JSON) blob addressed by a string key. User
scoping is done by key namespacing, see user_key(). Writes replace the whole
blob; the last write is authoritative.
"""

import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .db import get_db, init_db


def user_key(namespace: str, user_id: str) -> str:
    """Build the storage key of a user-scoped slot, e.g. 'vectorDB_alice'."""
    if not user_id or not user_id.strip():
        raise ValueError("user_id cannot be empty")
    return f"{namespace}_{user_id.strip()}"


class IStorage(ABC):
    """Abstract interface for a durable key-value slot store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the serialized blob stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store (replace) the serialized blob under key."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove the slot; no error if it does not exist."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List all slot keys."""
        pass

    def health(self) -> bool:
        return True


class InMemoryStorage(IStorage):
    """Process-local storage, used for tests and ephemeral runs."""

    def __init__(self):
        self._slots: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._slots[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._slots.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._slots.keys())


class SQLiteStorage(IStorage):
    """Storage slots in a SQLite kv_store table."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_db(db_path)

    def get(self, key: str) -> Optional[str]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, datetime.now().isoformat())
            )
            conn.commit()

    def remove(self, key: str) -> None:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    def keys(self) -> List[str]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key FROM kv_store ORDER BY key")
            return [row[0] for row in cursor.fetchall()]

    def health(self) -> bool:
        from .db import health_check
        return health_check(self.db_path)


class JsonFileStorage(IStorage):
    """One JSON file per slot inside a directory."""

    _UNSAFE = re.compile(r"[^A-Za-z0-9_.@-]")

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{self._UNSAFE.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        # Write then rename so a crash never leaves a half-written slot
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def health(self) -> bool:
        return self.directory.is_dir()
