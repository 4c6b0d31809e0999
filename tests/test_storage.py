"""
Tests for storage backends.

Tests both JSONStorage and SQLiteStorage implementations.
"""

import json

import pytest

from zoarch.core.protocols import KeyValueStorage
from zoarch.core.storage import (
    JSONStorage,
    SQLiteStorage,
    StorageError,
    StorageQuotaError,
    create_storage,
)

SAMPLE_RECORDS = [
    {"Catalog #": "ZL-0001", "Genus": "Canis", "Species": "latrans"},
    {"Catalog #": "ZL-0002", "Genus": "Odocoileus", "Species": "hemionus"},
]


@pytest.fixture
def json_storage(tmp_path):
    """Create a JSONStorage instance with temp directory."""
    return JSONStorage(data_dir=tmp_path)


@pytest.fixture
def sqlite_storage(tmp_path):
    """Create a SQLiteStorage instance with temp database."""
    storage = SQLiteStorage(db_path=tmp_path / "test.db")
    yield storage
    storage.close()


@pytest.fixture(params=["json", "sqlite"])
def storage(request, json_storage, sqlite_storage):
    """Run the shared contract tests against both backends."""
    return json_storage if request.param == "json" else sqlite_storage


class TestKeyValueContract:
    """Behaviour every backend must share."""

    def test_implements_protocol(self, storage):
        assert isinstance(storage, KeyValueStorage)

    def test_get_missing_returns_none(self, storage):
        assert storage.get_item("zoarch_inventory_data") is None

    def test_set_and_get(self, storage):
        storage.set_item("zoarch_inventory_data", json.dumps(SAMPLE_RECORDS))
        assert json.loads(storage.get_item("zoarch_inventory_data")) == SAMPLE_RECORDS

    def test_set_replaces_value(self, storage):
        storage.set_item("zoarch_settings", '{"storage_mode": "local"}')
        storage.set_item("zoarch_settings", '{"storage_mode": "remote"}')
        assert storage.get_item("zoarch_settings") == '{"storage_mode": "remote"}'

    def test_remove(self, storage):
        storage.set_item("zoarch_settings", "{}")
        storage.remove_item("zoarch_settings")
        assert storage.get_item("zoarch_settings") is None

    def test_remove_missing_is_noop(self, storage):
        storage.remove_item("never-written")

    def test_unicode_round_trip(self, storage):
        storage.set_item("k", "Ménagerie du Jardin des Plantes")
        assert storage.get_item("k") == "Ménagerie du Jardin des Plantes"

    def test_keys_are_independent(self, storage):
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        assert storage.get_item("a") == "1"
        assert storage.get_item("b") == "2"


class TestJSONStorage:
    """Tests for JSONStorage backend."""

    def test_one_file_per_key(self, json_storage, tmp_path):
        json_storage.set_item("zoarch_inventory_data", "[]")
        assert (tmp_path / "zoarch_inventory_data.json").read_text() == "[]"

    def test_unsafe_key_characters_are_replaced(self, json_storage, tmp_path):
        json_storage.set_item("../escape", "x")
        assert not (tmp_path.parent / "escape.json").exists()
        assert json_storage.get_item("../escape") == "x"

    def test_no_temp_files_left_behind(self, json_storage, tmp_path):
        json_storage.set_item("k", "value")
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    def test_failed_write_removes_temp_file(self, tmp_path, monkeypatch):
        storage = JSONStorage(data_dir=tmp_path, max_bytes=10)

        def fail_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("zoarch.core.storage.json_storage.os.replace", fail_replace)
        with pytest.raises(StorageError):
            storage.set_item("k", "x" * 8)
        assert list(tmp_path.iterdir()) == []

        monkeypatch.undo()
        storage.set_item("k", "y" * 9)
        assert storage.get_item("k") == "y" * 9

    def test_creates_data_dir(self, tmp_path):
        target = tmp_path / "nested" / "data"
        JSONStorage(data_dir=target)
        assert target.is_dir()

    def test_quota_exceeded(self, tmp_path):
        storage = JSONStorage(data_dir=tmp_path, max_bytes=10)
        with pytest.raises(StorageQuotaError) as exc_info:
            storage.set_item("k", "x" * 20)
        assert exc_info.value.limit == 10
        assert exc_info.value.size == 20
        assert storage.get_item("k") is None

    def test_quota_counts_replaced_value_once(self, tmp_path):
        storage = JSONStorage(data_dir=tmp_path, max_bytes=10)
        storage.set_item("k", "x" * 8)
        storage.set_item("k", "y" * 9)
        assert storage.get_item("k") == "y" * 9

    def test_quota_error_is_storage_error(self, tmp_path):
        storage = JSONStorage(data_dir=tmp_path, max_bytes=1)
        with pytest.raises(StorageError):
            storage.set_item("k", "too big")


class TestSQLiteStorage:
    """Tests for SQLiteStorage backend."""

    def test_persists_across_connections(self, tmp_path):
        db_path = tmp_path / "persist.db"
        first = SQLiteStorage(db_path=db_path)
        first.set_item("zoarch_inventory_data", json.dumps(SAMPLE_RECORDS))
        first.close()

        second = SQLiteStorage(db_path=db_path)
        try:
            assert json.loads(second.get_item("zoarch_inventory_data")) == SAMPLE_RECORDS
        finally:
            second.close()

    def test_quota_exceeded(self, tmp_path):
        storage = SQLiteStorage(db_path=tmp_path / "quota.db", max_bytes=10)
        try:
            storage.set_item("a", "12345")
            with pytest.raises(StorageQuotaError):
                storage.set_item("b", "1234567890")
            assert storage.get_item("b") is None
            assert storage.get_item("a") == "12345"
        finally:
            storage.close()

    def test_quota_counts_multibyte_characters(self, tmp_path):
        storage = SQLiteStorage(db_path=tmp_path / "quota.db", max_bytes=4)
        try:
            with pytest.raises(StorageQuotaError):
                storage.set_item("k", "ééé")
        finally:
            storage.close()


class TestCreateStorage:
    """Tests for storage factory function."""

    def test_create_json_storage(self, tmp_path):
        storage = create_storage("json", {"path": str(tmp_path)})
        assert isinstance(storage, JSONStorage)

    def test_create_sqlite_storage(self, tmp_path):
        storage = create_storage("sqlite", {"path": str(tmp_path / "test.db")})
        try:
            assert isinstance(storage, SQLiteStorage)
        finally:
            storage.close()

    def test_passes_quota(self, tmp_path):
        storage = create_storage("json", {"path": str(tmp_path), "max_bytes": 100})
        assert storage.max_bytes == 100

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_storage("postgres", {})
