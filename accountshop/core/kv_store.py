# accountshop/core/kv_store.py
"""
Key-value slots used as ambient storage.

Two flavours share the same get/set/delete surface:

  - SqlKeyValueStore: persistent, survives restarts (event log, theme).
  - MemoryKeyValueStore: session-scoped, lost when the process ends
    (admin session records).
"""
import threading
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from accountshop.models.kv_entry import KeyValueEntry


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class MemoryKeyValueStore:
    """In-process dict guarded by a lock."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]


class SqlKeyValueStore:
    """
    Persistent slots in the `kv_entries` table.

    Each call opens its own short session so callers don't need to
    thread a request session through analytics code.
    No locking: concurrent read-modify-write cycles may clobber each other.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get(self, key: str) -> str | None:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                entry = KeyValueEntry(key=key, value=value)
            else:
                entry.value = value
                entry.updated_at = datetime.now(timezone.utc)
            session.add(entry)
            session.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    def keys(self, prefix: str = "") -> list[str]:
        with Session(self.engine) as session:
            statement = select(KeyValueEntry.key).where(KeyValueEntry.key.startswith(prefix))
            return list(session.exec(statement).all())
