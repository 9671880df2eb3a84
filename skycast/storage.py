"""
Key-value persistence.

The core only needs get/set/remove on string values. KeyValueStore is the
protocol the cache, registry and preferences are written against;
SqlKeyValueStore is the SQLite implementation used by the app.

Storage faults (SQLAlchemy errors) are not caught here: a broken store must
fail the operation rather than produce wrong weather data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from . import models


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class SqlKeyValueStore:
    """KeyValueStore backed by the kv_entries table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            row = db.get(models.KeyValueEntry, key)
            return row.value if row is not None else None

    async def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            self._upsert(db, key, value)
            db.commit()

    async def remove(self, key: str) -> None:
        """Delete the entry; no-op if absent."""
        with self.session_factory() as db:
            row = db.get(models.KeyValueEntry, key)
            if row is None:
                return
            db.delete(row)
            db.commit()

    @staticmethod
    def _upsert(db: Session, key: str, value: str) -> None:
        row = db.get(models.KeyValueEntry, key)
        now = datetime.now(timezone.utc)
        if row is None:
            db.add(models.KeyValueEntry(key=key, value=value, updated_at=now))
        else:
            row.value = value
            row.updated_at = now
