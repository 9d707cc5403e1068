"""
tests/conftest.py -- Shared test fixtures for CredVault.

This module provides:
  - memory_store / credentials: a fresh MemoryStore and CredentialStore per test
  - failing_store: a store double whose calls raise StoreError on demand
  - _patch_lifespan(): wires a test store into app.state, bypassing real startup
  - api_client: module-scoped TestClient against the real FastAPI app

Design: API tests use MemoryStore rather than SQLite. TestClient runs sync
route handlers in a thread pool, and MemoryStore is shared across threads by
construction. SQLStore is covered directly in test_kv_store.py.

STORE_URL is pinned to memory:// before any project import so importing
api.main never opens or creates the default SQLite file.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("STORE_URL", "memory://")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import CredentialStore
from kv.store import KeyValueStore, MemoryStore, StoreError

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


class FailingStore(KeyValueStore):
    """MemoryStore wrapper that raises StoreError for the operations named in fail_on.

    fail_on may be changed between calls, e.g. seed a record with a healthy
    store and then make put() fail to exercise the write-error path.
    """

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.inner = MemoryStore()
        self.fail_on: set[str] = set(fail_on or ())

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise StoreError(f"{op} failed: simulated outage")

    def get(self, key: str) -> str | None:
        self._check("get")
        return self.inner.get(key)

    def put(self, key: str, value: str) -> None:
        self._check("put")
        self.inner.put(key, value)

    def delete(self, key: str) -> None:
        self._check("delete")
        self.inner.delete(key)

    def ping(self) -> bool:
        return "get" not in self.fail_on


def _patch_lifespan(store: KeyValueStore):
    """Return an async context manager that replaces the real lifespan.

    The test store is injected into app.state exactly where the real lifespan
    puts the production store.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.credentials = CredentialStore(store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Function-scoped fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def credentials(memory_store: MemoryStore) -> CredentialStore:
    return CredentialStore(memory_store)


@pytest.fixture
def failing_store() -> FailingStore:
    """A healthy FailingStore; set .fail_on to break individual operations."""
    return FailingStore()


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, MemoryStore], None, None]:
    """Yield (client, store) for API integration tests.

    Tests in the same module share the store, so each test uses its own
    email address.
    """
    store = MemoryStore()
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store


@pytest.fixture(scope="module")
def failing_api_client() -> Generator[tuple[TestClient, FailingStore], None, None]:
    """Yield (client, store) where store failures can be switched on per test."""
    store = FailingStore()
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store
