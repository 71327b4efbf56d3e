"""
Tests for the durable key-value storage backends.
"""

import pytest

from vectorchat.core.db import health_check
from vectorchat.core.storage import InMemoryStorage, JsonFileStorage, SQLiteStorage, user_key


@pytest.fixture(params=["memory", "sqlite", "file"])
def backend(request, tmp_path):
    if request.param == "memory":
        return InMemoryStorage()
    if request.param == "sqlite":
        return SQLiteStorage(str(tmp_path / "data" / "test.db"))
    return JsonFileStorage(str(tmp_path / "slots"))


class TestStorageBackends:

    def test_missing_key_is_none(self, backend):
        """Test a missing key reads as None."""
        assert backend.get("vectorDB_nobody") is None

    def test_set_and_get(self, backend):
        """Test storing and reading a value."""
        backend.set("vectorDB_alice", '[{"id": "1"}]')
        assert backend.get("vectorDB_alice") == '[{"id": "1"}]'

    def test_set_replaces(self, backend):
        """Test setting a key replaces its value."""
        backend.set("profile_alice", "first")
        backend.set("profile_alice", "second")
        assert backend.get("profile_alice") == "second"

    def test_remove(self, backend):
        """Test removing a key."""
        backend.set("k_a", "v")
        backend.remove("k_a")
        assert backend.get("k_a") is None

    def test_remove_missing_is_silent(self, backend):
        """Test removing a missing key is a no-op."""
        backend.remove("never_written")

    def test_keys(self, backend):
        """Test listing stored keys."""
        backend.set("vectorDB_alice", "[]")
        backend.set("vectorDB_bob", "[]")
        assert sorted(backend.keys()) == ["vectorDB_alice", "vectorDB_bob"]

    def test_health(self, backend):
        """Test the backend reports healthy."""
        assert backend.health() is True


def test_sqlite_persists_across_instances(tmp_path):
    """Test SQLite data survives a new instance."""
    db_path = str(tmp_path / "persist.db")
    SQLiteStorage(db_path).set("vectorDB_alice", "[]")

    assert SQLiteStorage(db_path).get("vectorDB_alice") == "[]"
    assert health_check(db_path) is True


def test_file_storage_persists_across_instances(tmp_path):
    """Test file data survives a new instance."""
    JsonFileStorage(str(tmp_path)).set("chatHistory_alice", "[1]")
    assert JsonFileStorage(str(tmp_path)).get("chatHistory_alice") == "[1]"


def test_user_key():
    """Test per-user key layout."""
    assert user_key("vectorDB", "alice") == "vectorDB_alice"


def test_user_key_rejects_empty_user():
    """Test an empty user id is rejected."""
    with pytest.raises(ValueError):
        user_key("vectorDB", "")
