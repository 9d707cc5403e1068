"""
kv/store.py -- Key-value persistence for credential records.

The credential core only needs get / put / delete by key, with values stored
as opaque strings (serialized JSON records). Two backends implement that
contract:

  MemoryStore  -- process-local dict. Used by tests and STORE_URL=memory://.
  SQLStore     -- SQLAlchemy Core table, one row per key. SQLite by default;
                  any SQLAlchemy URL works.

Every backend failure surfaces as StoreError so callers handle one exception
type regardless of which backend is configured.

Usage:
    store = open_store("memory://")
    store.put("a@x.com", '{"salt": "...", "hash": "..."}')
    record = store.get_json("a@x.com")   # returns dict or None
    store.delete("a@x.com")
    store.close()

Consistency: per-key last-write-wins. There is no conditional write, so a
read-then-write sequence spanning two calls is not atomic.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("credvault.kv")

MEMORY_URL = "memory://"


class StoreError(Exception):
    """Raised when the backing store cannot complete a read, write, or delete."""


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class KeyValueStore:
    """Base class for string-valued key-value stores.

    Subclasses implement get / put / delete. get_json is shared: it decodes
    whatever get returns and raises ValueError when the stored value is not
    valid JSON.
    """

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def get_json(self, key: str) -> Any | None:
        """Return the decoded JSON value for key, or None if the key is absent."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        """Return True if the backend is reachable. Used by the health endpoint."""
        return True

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class MemoryStore(KeyValueStore):
    """Dict-backed store. Thread-safe; FastAPI runs sync handlers in a thread pool."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data


# ---------------------------------------------------------------------------
# SQL backend
# ---------------------------------------------------------------------------

_metadata = MetaData()

_entries = Table(
    "kv_entries",
    _metadata,
    Column("key", String(320), primary_key=True),  # RFC 5321 max address length
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a concurrent write.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLStore(KeyValueStore):
    """Key-value store on a single SQLAlchemy Core table.

    put() is an upsert: an UPDATE, falling back to INSERT when no row matched,
    inside one transaction. The whole value is replaced, never merged.
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            self.engine: Engine = create_engine(db_url, connect_args=connect_args)
            if db_url.startswith("sqlite"):
                event.listen(self.engine, "connect", _set_wal_mode)
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError(f"could not open store: {exc.__class__.__name__}") from exc

    def get(self, key: str) -> str | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_entries.c.value).where(_entries.c.key == key)).fetchone()
        except (SQLAlchemyError, UnicodeError) as exc:
            raise StoreError(f"get failed: {exc.__class__.__name__}") from exc
        return row.value if row is not None else None

    def put(self, key: str, value: str) -> None:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _entries.update().where(_entries.c.key == key).values(value=value, updated_at=_now_iso())
                )
                if result.rowcount == 0:
                    conn.execute(_entries.insert().values(key=key, value=value, updated_at=_now_iso()))
        except (SQLAlchemyError, UnicodeError) as exc:
            raise StoreError(f"put failed: {exc.__class__.__name__}") from exc

    def delete(self, key: str) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(_entries.delete().where(_entries.c.key == key))
        except (SQLAlchemyError, UnicodeError) as exc:
            raise StoreError(f"delete failed: {exc.__class__.__name__}") from exc

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
        except SQLAlchemyError:
            logger.warning("Store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def open_store(url: str) -> KeyValueStore:
    """Return the backend selected by url ("memory://" or a SQLAlchemy URL)."""
    if url == MEMORY_URL:
        logger.warning("Using in-memory store -- credentials will not survive a restart")
        return MemoryStore()
    return SQLStore(url)
