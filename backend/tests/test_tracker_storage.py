"""
Tests for session id storage.
"""
import uuid

import pytest

from wool_analytics.tracker.storage import (
    JsonFileStorage,
    MemoryStorage,
    StorageError,
    get_or_create_session_id,
)

KEY = "ovk_analytics_session_id"


class BrokenStorage:
    def get(self, key):
        raise StorageError("storage blocked")

    def set(self, key, value):
        raise StorageError("storage blocked")


class ReadOnlyStorage(MemoryStorage):
    def set(self, key, value):
        raise StorageError("quota exceeded")


def test_session_id_is_created_once():
    storage = MemoryStorage()

    session_id = get_or_create_session_id(storage, KEY)

    assert uuid.UUID(session_id).version == 4
    assert get_or_create_session_id(storage, KEY) == session_id


def test_existing_session_id_is_reused():
    storage = MemoryStorage({KEY: "existing-id"})

    assert get_or_create_session_id(storage, KEY) == "existing-id"


def test_unavailable_storage_gives_ephemeral_id():
    first = get_or_create_session_id(BrokenStorage(), KEY)
    second = get_or_create_session_id(BrokenStorage(), KEY)

    assert first != second
    assert uuid.UUID(first)


def test_unwritable_storage_still_returns_id():
    storage = ReadOnlyStorage()

    session_id = get_or_create_session_id(storage, KEY)

    assert session_id
    assert storage.get(KEY) is None


def test_json_file_storage_persists(tmp_path):
    path = tmp_path / "state" / "analytics.json"

    session_id = get_or_create_session_id(JsonFileStorage(path), KEY)

    assert path.exists()
    assert get_or_create_session_id(JsonFileStorage(path), KEY) == session_id


def test_json_file_storage_keeps_other_keys(tmp_path):
    storage = JsonFileStorage(tmp_path / "analytics.json")
    storage.set("theme", "dark")
    storage.set(KEY, "abc")

    assert storage.get("theme") == "dark"
    assert storage.get(KEY) == "abc"


def test_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "analytics.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorage(path).get(KEY)


def test_corrupt_file_falls_back_to_ephemeral_id(tmp_path):
    path = tmp_path / "analytics.json"
    path.write_text("[]", encoding="utf-8")

    assert get_or_create_session_id(JsonFileStorage(path), KEY)
    assert path.read_text(encoding="utf-8") == "[]"


def test_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "analytics.json"

    def refuse(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("wool_analytics.tracker.storage.os.replace", refuse)

    with pytest.raises(StorageError):
        JsonFileStorage(path).set(KEY, "abc")

    assert list(tmp_path.iterdir()) == []


def test_unserializable_value_leaves_no_temp_file(tmp_path):
    storage = JsonFileStorage(tmp_path / "analytics.json")

    with pytest.raises(StorageError):
        storage.set(KEY, object())

    assert list(tmp_path.iterdir()) == []
