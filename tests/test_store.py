"""Tests for store.FileStore."""

from __future__ import annotations

import json

from bookmark_sync.store import FileStore, StoreKey


class TestFileStore:
    """Tests for the JSON-file key-value store."""

    def test_missing_file_reads_none(self, tmp_path):
        store = FileStore(tmp_path / "state")
        assert store.get(StoreKey.BOOKMARKS) is None
        assert not store.path.exists()

    def test_set_creates_directory_and_file(self, tmp_path):
        store = FileStore(tmp_path / "state")
        store.set(StoreKey.BOOKMARKS, "enc:[]")
        assert store.get(StoreKey.BOOKMARKS) == "enc:[]"
        assert json.loads(store.path.read_text()) == {"bookmarks": "enc:[]"}

    def test_enum_and_string_keys_are_the_same(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("syncEnabled", True)
        assert store.get(StoreKey.SYNC_ENABLED) is True

    def test_none_removes_key(self, tmp_path):
        store = FileStore(tmp_path)
        store.set(StoreKey.SYNC_ENABLED, True)
        store.set(StoreKey.SYNC_ENABLED, None)
        assert "syncEnabled" not in json.loads(store.path.read_text())

    def test_values_survive_a_new_instance(self, tmp_path):
        FileStore(tmp_path).set(
            StoreKey.BOOKMARK_ID_MAPPINGS, [{"native_id": "a", "canonical_id": 1}]
        )
        assert FileStore(tmp_path).get(StoreKey.BOOKMARK_ID_MAPPINGS) == [
            {"native_id": "a", "canonical_id": 1}
        ]

    def test_no_temp_files_left_behind(self, tmp_path):
        store = FileStore(tmp_path)
        store.set(StoreKey.BOOKMARKS, "x")
        store.set(StoreKey.BOOKMARKS, "y")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]
