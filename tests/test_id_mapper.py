"""Tests for sync.id_mapper.BookmarkIdMapper."""

from __future__ import annotations

import pytest

from bookmark_sync.errors import IdMappingError
from bookmark_sync.native.models import IdMapping
from bookmark_sync.store import StoreKey
from bookmark_sync.sync.id_mapper import BookmarkIdMapper


def rows(*pairs):
    return [IdMapping(native_id=n, canonical_id=c) for n, c in pairs]


class TestLookups:
    """Tests for find_*/get_* lookups."""

    def test_both_directions(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1), ("b", 2)))
        assert mapper.find_canonical("b") == 2
        assert mapper.find_native(1) == "a"
        assert len(mapper) == 2

    def test_missing_and_none(self):
        mapper = BookmarkIdMapper()
        assert mapper.find_canonical(None) is None
        assert mapper.find_native(7) is None

    def test_get_raises_on_miss(self):
        mapper = BookmarkIdMapper()
        with pytest.raises(IdMappingError, match="native ID x"):
            mapper.get_canonical("x")
        with pytest.raises(IdMappingError, match="bookmark 3"):
            mapper.get_native(3)


class TestChanges:
    """Tests for add, remove, set and clear."""

    def test_add_replaces_rows_sharing_an_id(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1), ("b", 2)))
        mapper.add(rows(("a", 3), ("c", 2)))
        assert [(m.native_id, m.canonical_id) for m in mapper.mappings] == [
            ("c", 2),
            ("a", 3),
        ]

    def test_remove_by_either_side(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1), ("b", 2), ("c", 3)))
        mapper.remove(canonical_ids=[1, 99], native_ids=["c"])
        assert [m.native_id for m in mapper.mappings] == ["b"]
        assert mapper.find_native(3) is None

    def test_set_replaces_table(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1)))
        mapper.set(rows(("z", 9)))
        assert mapper.find_canonical("a") is None
        assert mapper.get_native(9) == "z"

    def test_clear(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1)))
        mapper.clear()
        assert len(mapper) == 0

    def test_reader_keeps_old_table_after_swap(self):
        mapper = BookmarkIdMapper()
        mapper.add(rows(("a", 1)))
        before = mapper._tables
        mapper.add(rows(("b", 2)))
        assert "b" not in before[0]


class TestPersistence:
    """Tests for store-backed mappers."""

    def test_changes_are_persisted(self, store):
        mapper = BookmarkIdMapper(store)
        mapper.add(rows(("b", 2), ("a", 1)))
        assert store.get(StoreKey.BOOKMARK_ID_MAPPINGS) == [
            {"native_id": "a", "canonical_id": 1},
            {"native_id": "b", "canonical_id": 2},
        ]

    def test_new_mapper_loads_persisted_table(self, store):
        BookmarkIdMapper(store).add(rows(("a", 1)))
        assert BookmarkIdMapper(store).get_canonical("a") == 1

    def test_clear_persists_empty_table(self, store):
        mapper = BookmarkIdMapper(store)
        mapper.add(rows(("a", 1)))
        mapper.clear()
        assert store.get(StoreKey.BOOKMARK_ID_MAPPINGS) == []
