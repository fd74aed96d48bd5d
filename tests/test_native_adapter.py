"""Tests for native.adapter and native.platforms."""

from __future__ import annotations

import logging

import pytest

from bookmark_sync.bookmarks.models import (
    BookmarkContainer,
    Folder,
    Leaf,
)
from bookmark_sync.errors import ContainerNotFoundError
from bookmark_sync.native.adapter import (
    NativeBookmarkAdapter,
    convert_native_bookmark,
)
from bookmark_sync.native.platforms import get_platform

from conftest import FakeHost


class OperaHost(FakeHost):
    """Host resolving roots by name, like Opera's API."""

    ROOT_NAMES = {"bookmarks_bar": "1", "user_root": "2", "other": "3"}

    def get_root_by_name(self, name):
        native_id = self.ROOT_NAMES.get(name)
        node = self.nodes.get(native_id)
        return self._snapshot(node) if node is not None else None


# ---------------------------------------------------------------------------
# Platforms
# ---------------------------------------------------------------------------


class TestPlatforms:
    """Tests for the platform profiles."""

    def test_get_platform_is_case_insensitive(self):
        assert get_platform("Firefox").new_tab_url == "about:newtab"

    def test_unknown_platform(self):
        with pytest.raises(ValueError, match="Unknown platform"):
            get_platform("netscape")

    def test_separator_without_native_type(self):
        chromium = get_platform("chromium")
        assert chromium.separator_details("1", in_toolbar=True) == {
            "parentId": "1",
            "title": "|",
            "url": "chrome://newtab/",
        }
        assert chromium.separator_details("2")["title"].startswith("─")

    def test_separator_with_native_type(self):
        details = get_platform("opera").separator_details("3")
        assert details["type"] == "separator"
        assert details["url"] == "data:text/plain;charset=UTF-8,separator"


# ---------------------------------------------------------------------------
# Container lookup
# ---------------------------------------------------------------------------


class TestNativeContainerIds:
    """Tests for get_native_container_ids."""

    def test_chromium_roots_by_id(self, adapter):
        assert adapter.get_native_container_ids() == {
            BookmarkContainer.TOOLBAR: "1",
            BookmarkContainer.OTHER: "2",
            BookmarkContainer.MOBILE: "3",
        }

    def test_falls_back_to_title(self):
        host = FakeHost([("a", "Bookmarks Bar"), ("b", "OTHER BOOKMARKS")])
        adapter = NativeBookmarkAdapter(host, get_platform("chromium"))
        assert adapter.get_native_container_ids() == {
            BookmarkContainer.TOOLBAR: "a",
            BookmarkContainer.OTHER: "b",
        }

    def test_missing_required_root_raises(self, caplog):
        host = FakeHost([("1", "Bookmarks bar")])
        adapter = NativeBookmarkAdapter(host, get_platform("chromium"))
        with caplog.at_level(logging.WARNING):
            with pytest.raises(ContainerNotFoundError):
                adapter.get_native_container_ids()
        assert "Missing container: other bookmarks" in caplog.text

    def test_roots_by_name(self):
        host = OperaHost([("1", "Bar"), ("2", "Menu"), ("3", "Other")])
        adapter = NativeBookmarkAdapter(host, get_platform("opera"))
        assert adapter.get_native_container_ids() == {
            BookmarkContainer.MENU: "2",
            BookmarkContainer.OTHER: "3",
            BookmarkContainer.TOOLBAR: "1",
        }

    def test_synced_ids_skip_toolbar_when_disabled(self, host):
        adapter = NativeBookmarkAdapter(
            host, get_platform("chromium"), sync_bookmarks_toolbar=False
        )
        assert BookmarkContainer.TOOLBAR not in adapter.get_synced_container_ids()

    def test_folder_sync_follows_its_root(self, host):
        adapter = NativeBookmarkAdapter(
            host, get_platform("chromium"), sync_bookmarks_toolbar=False
        )
        folder = host.add("1", "Folder")
        nested = host.add(folder, "Nested")
        other = host.add("2", "Elsewhere")

        assert not adapter.is_native_folder_synced("1")
        assert not adapter.is_native_folder_synced(nested)
        assert adapter.is_native_folder_synced(other)
        assert adapter.is_native_folder_synced("404")

        adapter.sync_bookmarks_toolbar = True
        assert adapter.is_native_folder_synced(nested)


# ---------------------------------------------------------------------------
# Native -> canonical
# ---------------------------------------------------------------------------


class TestConvertNativeBookmark:
    """Tests for convert_native_bookmark."""

    def test_assigns_ids_in_pre_order_above_tree_and_reservations(
        self, sample_tree
    ):
        native = {
            "id": "a",
            "title": "Folder",
            "children": [
                {"id": "b", "title": "One", "url": "https://one.example"},
                {"id": "c", "title": "Two", "url": "https://two.example"},
            ],
        }
        reserved = [7]
        bookmark, mappings = convert_native_bookmark(native, sample_tree, reserved)
        assert isinstance(bookmark, Folder)
        assert [bookmark.id] + [c.id for c in bookmark.children] == [8, 9, 10]
        assert [(m.native_id, m.canonical_id) for m in mappings] == [
            ("a", 8),
            ("b", 9),
            ("c", 10),
        ]
        assert reserved == [7, 8, 9, 10]

    def test_native_separator_becomes_canonical_separator(self):
        bookmark, _ = convert_native_bookmark(
            {"id": "s", "title": "|", "url": "chrome://newtab/"},
            [],
            new_tab_url="chrome://newtab/",
        )
        assert bookmark == Leaf(id=1, title="-")


class TestGetNativeBookmarksAsBookmarks:
    """Tests for get_native_bookmarks_as_bookmarks."""

    def test_ids_follow_container_order_then_date_added(self, host, adapter):
        folder = host.add("2", "Folder")
        host.add("1", "Toolbar link", "https://t.example")
        host.add(folder, "Nested", "https://n.example")

        bookmarks, mappings = adapter.get_native_bookmarks_as_bookmarks()

        assert [(b.title, b.id) for b in bookmarks] == [
            ("Mobile", 1),
            ("Other", 2),
            ("Toolbar", 3),
        ]
        other, toolbar = bookmarks[1], bookmarks[2]
        assert other.children[0].id == 4
        assert toolbar.children[0].id == 5
        assert other.children[0].children[0].id == 6
        assert len(mappings) == 3

    def test_same_native_state_gives_same_ids(self, host, adapter):
        host.add("2", "A", "https://a.example")
        host.add("1", "B", "https://b.example")
        first = adapter.get_native_bookmarks_as_bookmarks()
        second = adapter.get_native_bookmarks_as_bookmarks()
        assert first == second

    def test_toolbar_skipped_when_not_synced(self, host):
        host.add("1", "B", "https://b.example")
        adapter = NativeBookmarkAdapter(
            host, get_platform("chromium"), sync_bookmarks_toolbar=False
        )
        bookmarks, mappings = adapter.get_native_bookmarks_as_bookmarks()
        assert [b.title for b in bookmarks] == ["Mobile", "Other"]
        assert mappings == []


# ---------------------------------------------------------------------------
# Canonical -> native
# ---------------------------------------------------------------------------


class TestCreateNativeBookmarks:
    """Tests for create_native_bookmarks_from_bookmarks and clearing."""

    def test_export_then_reconstruct_preserves_tree(self, firefox_host, shape):
        tree = [
            Folder(id=1, title="Menu", children=[Leaf(id=2, title="M", url="https://m.example")]),
            Folder(
                id=3,
                title="Other",
                children=[
                    Folder(
                        id=4,
                        title="Dev",
                        children=[
                            Leaf(id=5, title="Py", url="https://python.org"),
                            Leaf(id=6, title="-"),
                            Leaf(id=7, title="Go", url="https://go.dev"),
                        ],
                    )
                ],
            ),
            Folder(id=8, title="Toolbar", children=[Leaf(id=9, title="T", url="https://t.example")]),
        ]
        adapter = NativeBookmarkAdapter(firefox_host, get_platform("firefox"))

        count, mappings = adapter.create_native_bookmarks_from_bookmarks(tree)
        assert count == 6
        assert sorted(m.canonical_id for m in mappings) == [2, 4, 5, 6, 7, 9]

        rebuilt, _ = adapter.get_native_bookmarks_as_bookmarks()
        rebuilt_by_title = {b.title: b for b in rebuilt}
        for container in tree:
            assert shape(rebuilt_by_title[container.title].children) == shape(
                container.children
            )

    def test_chromium_separators_use_new_tab_url(self, host, adapter):
        tree = [
            Folder(id=1, title="Toolbar", children=[Leaf(id=2, title="-")]),
            Folder(id=3, title="Other", children=[Leaf(id=4, title="-")]),
        ]
        adapter.create_native_bookmarks_from_bookmarks(tree)
        toolbar_sep = host.get_children("1")[0]
        other_sep = host.get_children("2")[0]
        assert toolbar_sep["title"] == "|"
        assert toolbar_sep["url"] == "chrome://newtab/"
        assert other_sep["title"].startswith("─")

        rebuilt, _ = adapter.get_native_bookmarks_as_bookmarks()
        assert rebuilt[1].children[0].title == "-"
        assert rebuilt[2].children[0].title == "-"

    def test_unsupported_url_replaced_with_new_tab(self, host, adapter):
        tree = [
            Folder(id=1, title="Other", children=[Leaf(id=2, title="Flags", url="about:config")])
        ]
        adapter.create_native_bookmarks_from_bookmarks(tree)
        assert host.get_children("2")[0]["url"] == "chrome://newtab/"

    def test_containers_without_native_root_are_skipped(self, host, adapter):
        tree = [Folder(id=1, title="Menu", children=[Leaf(id=2, title="M", url="https://m")])]
        count, mappings = adapter.create_native_bookmarks_from_bookmarks(tree)
        assert (count, mappings) == (0, [])

    def test_clear_native_bookmarks(self, host, adapter):
        folder = host.add("2", "Folder")
        host.add(folder, "Nested", "https://n.example")
        host.add("1", "Bar", "https://b.example")
        adapter.clear_native_bookmarks()
        assert host.titles("1") == []
        assert host.titles("2") == []
        assert folder not in host.nodes
