from __future__ import annotations

import sqlite3
from threading import RLock
from typing import Protocol


class KeyValueBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class MemoryBackend:
    def __init__(self) -> None:
        self._lock = RLock()
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._data:
                del self._data[key]
                return True
            return False

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


class SqliteBackend:
    """Key-value table in a single SQLite file.

    One connection is shared between threads and serialized by a lock.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def get(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value))
            self._conn.commit()

    def delete(self, key: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self._conn.commit()
            return cur.rowcount > 0

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            # LIKE would treat "_" in prefixes as a wildcard.
            rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            return [r[0] for r in rows if r[0].startswith(prefix)]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def make_backend(config) -> KeyValueBackend:
    kind = (getattr(config, "ROOM_STORE", "memory") or "memory").strip().lower()
    if kind == "memory":
        return MemoryBackend()
    if kind == "sqlite":
        return SqliteBackend(getattr(config, "ROOM_DB_PATH", "rooms.db"))
    raise ValueError(f"unknown ROOM_STORE: {kind!r}")
