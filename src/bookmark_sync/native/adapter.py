"""Conversion between the native bookmark tree and the canonical tree.

Reading (:meth:`NativeBookmarkAdapter.get_native_bookmarks_as_bookmarks`)
builds one canonical container per native root and assigns canonical IDs
in the order the native bookmarks were added, so converting the same
native state twice yields the same IDs.  Writing
(:meth:`NativeBookmarkAdapter.create_native_bookmarks_from_bookmarks`)
recreates container contents under the native roots.  Both directions
return the native-to-canonical :class:`IdMapping` rows they produced.

Container folders themselves are never mapped: the orchestrator resolves
native root IDs to containers through
:meth:`NativeBookmarkAdapter.get_native_container_ids`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from bookmark_sync.bookmarks.containers import get_container
from bookmark_sync.bookmarks.helpers import (
    IdAllocator,
    get_supported_url,
    is_separator,
    new_bookmark,
    new_separator,
)
from bookmark_sync.bookmarks.models import (
    CONTAINER_ORDER,
    BookmarkContainer,
    Folder,
    Leaf,
)
from bookmark_sync.errors import ContainerNotFoundError
from bookmark_sync.native.models import (
    IdMapping,
    NativeBookmarkNode,
    to_native_node,
    to_native_nodes,
)
from bookmark_sync.native.platforms import PlatformProfile
from bookmark_sync.protocols import NativeBookmarksHost

logger = logging.getLogger(__name__)


def _convert_node(
    native: NativeBookmarkNode, new_tab_url: str | None
) -> Folder | Leaf:
    if is_separator(native, new_tab_url):
        return new_separator()
    return new_bookmark(native.title, native.url)


def convert_native_bookmark(
    native: NativeBookmarkNode | dict[str, Any],
    bookmarks: Iterable[Folder | Leaf],
    reserved_ids: list[int] | None = None,
    new_tab_url: str | None = None,
) -> tuple[Folder | Leaf, list[IdMapping]]:
    """Convert a native node and its descendants to a canonical bookmark.

    IDs are assigned in pre-order above every ID in *bookmarks* and in
    *reserved_ids*; each assigned ID is appended to *reserved_ids* so a
    batch of conversions against the same tree never collides.

    Returns:
        ``(bookmark, mappings)`` with one mapping per converted node.
    """
    allocator = IdAllocator(bookmarks, reserved_ids)
    mappings: list[IdMapping] = []

    def convert(node: NativeBookmarkNode) -> Folder | Leaf:
        bookmark = _convert_node(node, new_tab_url)
        bookmark.id = allocator.allocate()
        mappings.append(
            IdMapping(native_id=node.id, canonical_id=bookmark.id)
        )
        if isinstance(bookmark, Folder) and node.children:
            bookmark.children = [convert(child) for child in node.children]
        return bookmark

    return convert(to_native_node(native)), mappings


class NativeBookmarkAdapter:
    """Reads and writes the browser's bookmarks in canonical form.

    Args:
        host: The native bookmarks API.
        platform: Quirks of the browser behind *host*.
        sync_bookmarks_toolbar: When ``False`` the toolbar root is neither
            read nor written.
    """

    def __init__(
        self,
        host: NativeBookmarksHost,
        platform: PlatformProfile,
        sync_bookmarks_toolbar: bool = True,
    ) -> None:
        self.host = host
        self.platform = platform
        self.sync_bookmarks_toolbar = sync_bookmarks_toolbar

    @property
    def new_tab_url(self) -> str:
        return self.platform.new_tab_url

    # ------------------------------------------------------------------
    # Native roots
    # ------------------------------------------------------------------

    def get_native_container_ids(self) -> dict[BookmarkContainer, str]:
        """Locate the native root folder of every supported container.

        Hosts exposing ``get_root_by_name`` are asked by name when the
        platform supports it; otherwise the roots are found among the
        children of the tree root by ID, then by default title.

        Raises:
            ContainerNotFoundError: If a required root cannot be found.
        """
        get_root_by_name = getattr(self.host, "get_root_by_name", None)
        use_names = self.platform.uses_root_names and callable(
            get_root_by_name
        )
        if use_names:
            logger.info("Locating native roots with get_root_by_name")
            top_level: list[NativeBookmarkNode] = []
        else:
            tree = to_native_nodes(self.host.get_tree())
            if not tree or not tree[0].children:
                raise ContainerNotFoundError(
                    "Native bookmark tree has no root folders."
                )
            top_level = tree[0].children

        container_ids: dict[BookmarkContainer, str] = {}
        missing: list[BookmarkContainer] = []
        for root in self.platform.roots:
            node: NativeBookmarkNode | None = None
            if use_names and root.root_name:
                found = get_root_by_name(root.root_name)
                node = to_native_node(found) if found else None
            else:
                node = next(
                    (n for n in top_level if n.id == root.native_id), None
                ) or next(
                    (
                        n
                        for n in top_level
                        if n.title.lower() == root.title.lower()
                    ),
                    None,
                )

            if node is not None:
                container_ids[root.container] = node.id
            elif root.required:
                logger.warning(
                    "Missing container: %s bookmarks",
                    root.container.value.lower(),
                )
                missing.append(root.container)

        if missing:
            raise ContainerNotFoundError(
                "Native bookmark container not found: "
                + ", ".join(c.value for c in missing)
            )
        return container_ids

    def is_container_synced(self, container: BookmarkContainer) -> bool:
        return (
            container is not BookmarkContainer.TOOLBAR
            or self.sync_bookmarks_toolbar
        )

    def get_synced_container_ids(self) -> dict[BookmarkContainer, str]:
        """Like :meth:`get_native_container_ids`, minus unsynced roots."""
        return {
            container: native_id
            for container, native_id in self.get_native_container_ids().items()
            if self.is_container_synced(container)
        }

    def is_native_folder_synced(self, native_id: str | None) -> bool:
        """Whether the native folder *native_id* lies in a synced container.

        Walks up the parent chain to a native root.  Folders that cannot be
        traced to a root count as synced, so a change in one still fails
        on its unmapped IDs.
        """
        if native_id is None or self.sync_bookmarks_toolbar:
            return True
        roots = {
            root_id: container
            for container, root_id in self.get_native_container_ids().items()
        }
        seen: set[str] = set()
        current: str | None = native_id
        while current is not None and current not in seen:
            if current in roots:
                return self.is_container_synced(roots[current])
            seen.add(current)
            subtree = to_native_nodes(self.host.get_subtree(current))
            current = subtree[0].parent_id if subtree else None
        return True

    # ------------------------------------------------------------------
    # Native -> canonical
    # ------------------------------------------------------------------

    def get_native_bookmarks_as_bookmarks(
        self,
    ) -> tuple[list[Folder | Leaf], list[IdMapping]]:
        """Read the synced native roots into a canonical tree.

        Containers receive the lowest IDs, in container order.  Every other
        node is then numbered oldest ``date_added`` first; nodes added at
        the same time keep their pre-order position.

        Returns:
            ``(bookmarks, mappings)``; containers are not in *mappings*.
        """
        container_ids = self.get_synced_container_ids()
        bookmarks: list[Folder | Leaf] = []
        # (native node, canonical node, pre-order position)
        pending: list[tuple[NativeBookmarkNode, Folder | Leaf, int]] = []

        for name in CONTAINER_ORDER:
            native_id = container_ids.get(name)
            if native_id is None:
                continue
            container = get_container(name, bookmarks, create_if_missing=True)
            subtree = to_native_nodes(self.host.get_subtree(native_id))
            children = subtree[0].children if subtree else None
            container.children = self._build_children(
                children or [], pending
            )

        pending.sort(
            key=lambda item: (
                item[0].date_added is None,
                item[0].date_added or 0,
                item[2],
            )
        )
        next_id = max(c.id for c in bookmarks) + 1 if bookmarks else 1
        mappings: list[IdMapping] = []
        for offset, (native, bookmark, _) in enumerate(pending):
            bookmark.id = next_id + offset
            mappings.append(
                IdMapping(native_id=native.id, canonical_id=bookmark.id)
            )

        logger.debug(
            "Read %d native bookmarks into %d containers",
            len(mappings),
            len(bookmarks),
        )
        return bookmarks, mappings

    def _build_children(
        self,
        nodes: list[NativeBookmarkNode],
        pending: list[tuple[NativeBookmarkNode, Folder | Leaf, int]],
    ) -> list[Folder | Leaf]:
        built: list[Folder | Leaf] = []
        for node in nodes:
            bookmark = _convert_node(node, self.new_tab_url)
            pending.append((node, bookmark, len(pending)))
            if isinstance(bookmark, Folder) and node.children:
                bookmark.children = self._build_children(
                    node.children, pending
                )
            built.append(bookmark)
        return built

    # ------------------------------------------------------------------
    # Canonical -> native
    # ------------------------------------------------------------------

    def clear_native_bookmarks(self) -> None:
        """Remove every bookmark under the synced native roots."""
        for container, native_id in self.get_synced_container_ids().items():
            children = to_native_nodes(self.host.get_children(native_id))
            for child in children:
                self.host.remove_tree(child.id)
            logger.debug(
                "Cleared %d native bookmarks from %s",
                len(children),
                container.value,
            )

    def create_native_bookmarks_from_bookmarks(
        self, bookmarks: list[Folder | Leaf]
    ) -> tuple[int, list[IdMapping]]:
        """Recreate the canonical containers' contents natively.

        Containers without a synced native root are skipped.  Urls the
        browser refuses are replaced by its new-tab url.

        Returns:
            ``(created_count, mappings)``.
        """
        container_ids = self.get_synced_container_ids()
        toolbar_id = container_ids.get(BookmarkContainer.TOOLBAR)
        mappings: list[IdMapping] = []

        for name in CONTAINER_ORDER:
            native_id = container_ids.get(name)
            container = get_container(name, bookmarks)
            if native_id is None or container is None:
                continue
            self._create_tree(
                native_id,
                container.children,
                in_toolbar=native_id == toolbar_id,
                mappings=mappings,
            )

        logger.info("Created %d native bookmarks", len(mappings))
        return len(mappings), mappings

    def _create_tree(
        self,
        parent_id: str,
        bookmarks: list[Folder | Leaf],
        in_toolbar: bool,
        mappings: list[IdMapping],
    ) -> None:
        for bookmark in bookmarks:
            created = to_native_node(
                self.create_native_bookmark(parent_id, bookmark, in_toolbar)
            )
            if bookmark.id is not None:
                mappings.append(
                    IdMapping(native_id=created.id, canonical_id=bookmark.id)
                )
            if isinstance(bookmark, Folder) and bookmark.children:
                self._create_tree(
                    created.id, bookmark.children, in_toolbar, mappings
                )

    def create_native_bookmark(
        self,
        parent_id: str,
        bookmark: Folder | Leaf,
        in_toolbar: bool = False,
    ) -> dict[str, Any]:
        """Create one native node for *bookmark* (children not included)."""
        if is_separator(bookmark, self.new_tab_url):
            return self.host.create(
                self.platform.separator_details(parent_id, in_toolbar)
            )
        details: dict[str, Any] = {
            "parentId": parent_id,
            "title": bookmark.title or "",
        }
        if isinstance(bookmark, Leaf):
            details["url"] = get_supported_url(bookmark.url, self.new_tab_url)
        return self.host.create(details)
