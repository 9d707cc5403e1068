"""Unit tests for kv/store.py -- MemoryStore, SQLStore, and open_store().

Covers:
- get / put / delete / get_json on both backends
- put() replaces the whole value (upsert), delete() of a missing key is a no-op
- get_json() raises ValueError on a non-JSON value
- SQLAlchemy failures surface as StoreError
- SQLStore persists across instances sharing a database file
"""

import pytest

from kv.store import MEMORY_URL, MemoryStore, SQLStore, StoreError, open_store

# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Each test in this module runs against both backends."""
    s = MemoryStore() if request.param == "memory" else SQLStore("sqlite:///:memory:")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# Backend contract
# ---------------------------------------------------------------------------


def test_get_missing_returns_none(store):
    assert store.get("nobody@x.com") is None
    assert store.get_json("nobody@x.com") is None


def test_put_then_get(store):
    store.put("a@x.com", '{"salt": "s", "hash": "h"}')
    assert store.get("a@x.com") == '{"salt": "s", "hash": "h"}'
    assert store.get_json("a@x.com") == {"salt": "s", "hash": "h"}


def test_put_replaces_existing_value(store):
    store.put("a@x.com", '{"v": 1}')
    store.put("a@x.com", '{"v": 2}')
    assert store.get_json("a@x.com") == {"v": 2}


def test_delete(store):
    store.put("a@x.com", "{}")
    store.delete("a@x.com")
    assert store.get("a@x.com") is None


def test_delete_missing_key_is_noop(store):
    store.delete("nobody@x.com")
    assert store.get("nobody@x.com") is None


def test_keys_are_independent(store):
    store.put("a@x.com", '"a"')
    store.put("b@x.com", '"b"')
    store.delete("a@x.com")
    assert store.get_json("b@x.com") == "b"


def test_get_json_rejects_non_json(store):
    store.put("a@x.com", "not json")
    with pytest.raises(ValueError):
        store.get_json("a@x.com")


def test_ping(store):
    assert store.ping() is True


# ---------------------------------------------------------------------------
# SQLStore specifics
# ---------------------------------------------------------------------------


def test_sql_store_persists_to_file(tmp_path):
    url = f"sqlite:///{tmp_path / 'kv.db'}"
    first = SQLStore(url)
    first.put("a@x.com", '{"salt": "s"}')
    first.close()

    second = SQLStore(url)
    assert second.get_json("a@x.com") == {"salt": "s"}
    second.close()


def test_sql_store_wraps_database_errors(tmp_path):
    s = SQLStore(f"sqlite:///{tmp_path / 'kv.db'}")
    with s.engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE kv_entries")

    with pytest.raises(StoreError):
        s.get("a@x.com")
    with pytest.raises(StoreError):
        s.put("a@x.com", "{}")
    with pytest.raises(StoreError):
        s.delete("a@x.com")
    s.close()


def test_sql_store_bad_url():
    with pytest.raises(StoreError):
        SQLStore("notadialect://nowhere")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_open_store_memory():
    assert isinstance(open_store(MEMORY_URL), MemoryStore)


def test_open_store_sql(tmp_path):
    s = open_store(f"sqlite:///{tmp_path / 'kv.db'}")
    assert isinstance(s, SQLStore)
    s.close()


def test_sql_store_wraps_unencodable_key():
    """sqlite3 cannot bind a str holding a lone surrogate; that is a StoreError, not a UnicodeError."""
    s = SQLStore("sqlite:///:memory:")
    with pytest.raises(StoreError):
        s.get("\ud800@x.com")
    with pytest.raises(StoreError):
        s.put("\ud800@x.com", "{}")
    with pytest.raises(StoreError):
        s.delete("\ud800@x.com")
    s.close()


def test_memory_store_contains(memory_store):
    memory_store.put("a@x.com", "{}")
    assert "a@x.com" in memory_store
    assert "b@x.com" not in memory_store
