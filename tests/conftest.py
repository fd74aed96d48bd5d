"""Shared pytest fixtures for bookmark-sync tests.

The collaborators of the sync core are replaced by small in-memory fakes:

- ``FakeCrypto``: reversible "encryption" that still fails on foreign input.
- ``FakeRemote``: remote store with failure and latency switches.
- ``MemoryStore``: dict-backed key-value store.
- ``FakeHost``: native bookmarks API over an in-memory tree, emitting
  ``created`` and ``removed`` events like a browser does.
- ``FakePage``: active-tab metadata provider.
"""

from __future__ import annotations

import copy
import itertools
import time
from typing import Any, Callable

import pytest

from bookmark_sync.bookmarks.models import Folder, Leaf
from bookmark_sync.errors import RemoteSyncError
from bookmark_sync.native.adapter import NativeBookmarkAdapter
from bookmark_sync.native.platforms import get_platform
from bookmark_sync.sync.cache import CacheManager

CHROMIUM_ROOTS = [
    ("1", "Bookmarks bar"),
    ("2", "Other bookmarks"),
    ("3", "Mobile bookmarks"),
]

FIREFOX_ROOTS = [
    ("menu________", "Bookmarks Menu"),
    ("toolbar_____", "Bookmarks Toolbar"),
    ("unfiled_____", "Other Bookmarks"),
    ("mobile______", "Mobile Bookmarks"),
]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCrypto:
    """Prefixes the plaintext; decrypting anything else fails."""

    PREFIX = "enc:"

    def encrypt(self, plaintext: str) -> str:
        return self.PREFIX + plaintext

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext.startswith(self.PREFIX):
            raise ValueError("bad ciphertext")
        return ciphertext[len(self.PREFIX):]


class FakeRemote:
    """Remote store holding one blob.

    Attributes:
        fail_next: Number of upcoming pushes that fail.
        delay: Seconds every push sleeps before storing.
        fetch_error: Raised by ``get_bookmarks`` when set.
    """

    def __init__(self, blob: str | None = None) -> None:
        self.blob = blob
        self.pushes: list[str] = []
        self.fail_next = 0
        self.delay = 0.0
        self.fetch_error: Exception | None = None

    def get_bookmarks(self) -> dict[str, Any]:
        if self.fetch_error is not None:
            raise self.fetch_error
        return {"bookmarks": self.blob, "version": "1.0.0"}

    def push_bookmarks(self, encrypted: str) -> dict[str, Any]:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_next:
            self.fail_next -= 1
            raise RemoteSyncError("Service unavailable.")
        self.blob = encrypted
        self.pushes.append(encrypted)
        return {"lastUpdated": f"2024-01-0{len(self.pushes)}T00:00:00Z"}


class MemoryStore:
    """Dict-backed key-value store; ``None`` removes a key."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def get(self, key: Any) -> Any:
        return self.data.get(getattr(key, "value", key))

    def set(self, key: Any, value: Any) -> None:
        key = getattr(key, "value", key)
        if value is None:
            self.data.pop(key, None)
        else:
            self.data[key] = value


class FakeHost:
    """In-memory native bookmarks API.

    Nodes are dicts; folders carry a ``children`` list.  Every created node
    gets the next ``dateAdded`` tick, so creation order is also date order.
    """

    def __init__(
        self,
        roots: list[tuple[str, str]] | None = None,
        root_id: str = "0",
        separator_type: bool = False,
    ) -> None:
        self.root = {"id": root_id, "title": "", "children": []}
        self.nodes: dict[str, dict[str, Any]] = {root_id: self.root}
        self.listeners: dict[str, list[Callable[..., Any]]] = {}
        self._ids = itertools.count(100)
        self._dates = itertools.count(1)
        self.separator_type = separator_type
        for native_id, title in roots if roots is not None else CHROMIUM_ROOTS:
            node = {
                "id": native_id,
                "parentId": root_id,
                "title": title,
                "children": [],
            }
            self.root["children"].append(node)
            self.nodes[native_id] = node

    # -- host API -----------------------------------------------------------

    def get_tree(self) -> list[dict[str, Any]]:
        return [self._snapshot(self.root)]

    def get_subtree(self, native_id: str) -> list[dict[str, Any]]:
        node = self.nodes.get(native_id)
        return [self._snapshot(node)] if node is not None else []

    def get_children(self, native_id: str) -> list[dict[str, Any]]:
        return [
            self._snapshot(child)
            for child in self.nodes[native_id].get("children", [])
        ]

    def create(self, details: dict[str, Any]) -> dict[str, Any]:
        parent = self.nodes[details["parentId"]]
        node: dict[str, Any] = {
            "id": str(next(self._ids)),
            "parentId": parent["id"],
            "title": details.get("title", ""),
            "dateAdded": next(self._dates),
        }
        if details.get("url"):
            node["url"] = details["url"]
        if details.get("type") == "separator" and self.separator_type:
            node["type"] = "separator"
        elif not details.get("url") and details.get("type") != "separator":
            node["children"] = []
        siblings = parent["children"]
        index = details.get("index")
        siblings.insert(len(siblings) if index is None else index, node)
        self.nodes[node["id"]] = node
        snapshot = self._snapshot(node)
        self.emit("created", node["id"], snapshot)
        return snapshot

    def remove_tree(self, native_id: str) -> None:
        node = self.nodes[native_id]
        parent = self.nodes[node["parentId"]]
        index = parent["children"].index(node)
        del parent["children"][index]
        stack = [node]
        while stack:
            current = stack.pop()
            self.nodes.pop(current["id"], None)
            stack.extend(current.get("children", []))
        self.emit(
            "removed",
            native_id,
            {"parentId": parent["id"], "index": index, "node": node},
        )

    def add_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.listeners.get(event, []).remove(handler)

    # -- test helpers -------------------------------------------------------

    def emit(self, event: str, *args: Any) -> list[Any]:
        return [handler(*args) for handler in list(self.listeners.get(event, []))]

    def add(self, parent_id: str, title: str, url: str | None = None) -> str:
        """Create a node and return its ID."""
        return self.create(
            {"parentId": parent_id, "title": title, "url": url}
        )["id"]

    def move(self, native_id: str, parent_id: str, index: int | None = None) -> None:
        """Move a node and emit ``moved`` like a browser does."""
        node = self.nodes[native_id]
        old_parent = self.nodes[node["parentId"]]
        old_index = old_parent["children"].index(node)
        del old_parent["children"][old_index]
        siblings = self.nodes[parent_id]["children"]
        index = len(siblings) if index is None else index
        siblings.insert(index, node)
        node["parentId"] = parent_id
        self.emit(
            "moved",
            native_id,
            {
                "parentId": parent_id,
                "index": index,
                "oldParentId": old_parent["id"],
                "oldIndex": old_index,
            },
        )

    def titles(self, native_id: str) -> list[str]:
        return [c["title"] for c in self.nodes[native_id].get("children", [])]

    def _snapshot(self, node: dict[str, Any]) -> dict[str, Any]:
        snapshot = copy.deepcopy(node)
        stack = [snapshot]
        while stack:
            current = stack.pop()
            for i, child in enumerate(current.get("children", [])):
                child["index"] = i
                stack.append(child)
        if node is not self.root:
            parent = self.nodes[node["parentId"]]
            snapshot["index"] = parent["children"].index(node)
        return snapshot


class FakePage:
    """Active tab metadata provider."""

    def __init__(
        self, url: str | None = None, metadata: dict[str, Any] | None = None
    ) -> None:
        self.url = url
        self.metadata = metadata

    def get_current_url(self) -> str | None:
        return self.url

    def get_page_metadata(self) -> dict[str, Any] | None:
        return self.metadata


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def crypto():
    return FakeCrypto()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, crypto, remote):
    return CacheManager(store, crypto, remote)


@pytest.fixture
def host():
    """A Chromium-like host with empty roots."""
    return FakeHost()


@pytest.fixture
def firefox_host():
    return FakeHost(FIREFOX_ROOTS, root_id="root________", separator_type=True)


@pytest.fixture
def adapter(host):
    return NativeBookmarkAdapter(host, get_platform("chromium"))


@pytest.fixture
def sample_tree():
    """Other holds two bookmarks and a folder; Toolbar is empty."""
    return [
        Folder(
            id=1,
            title="Other",
            children=[
                Leaf(id=2, title="Example", url="https://example.com"),
                Folder(
                    id=3,
                    title="Docs",
                    children=[
                        Leaf(
                            id=4,
                            title="Python docs",
                            url="https://docs.python.org",
                            tags=["python", "reference"],
                        )
                    ],
                ),
            ],
        ),
        Folder(id=5, title="Toolbar", children=[]),
    ]


def project(bookmarks) -> list[Any]:
    """Strip IDs from a tree, keeping titles, urls and order."""
    result = []
    for node in bookmarks:
        if isinstance(node, Folder):
            result.append((node.title, project(node.children)))
        else:
            result.append((node.title, node.url))
    return result


@pytest.fixture
def shape():
    """The ``project`` helper, for comparing trees without IDs."""
    return project
