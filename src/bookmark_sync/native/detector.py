"""Translate native bookmark events into queued changes.

Each handler builds exactly one :class:`~bookmark_sync.sync.models.Change`
and hands it to ``submit`` (normally
:meth:`SyncOrchestrator.submit <bookmark_sync.sync.orchestrator.SyncOrchestrator.submit>`).
Handlers never touch the canonical tree or the network, so they are safe
to call on whatever thread the host delivers events on.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from bookmark_sync.bookmarks.helpers import (
    find_native_by_id,
    get_tags_from_text,
    is_separator,
    strip_tags,
)
from bookmark_sync.bookmarks.models import BookmarkMetadata
from bookmark_sync.native.models import (
    NativeBookmarkNode,
    NativeMoveInfo,
    NativeRemoveInfo,
    NativeReorderInfo,
    WebpageMetadata,
    to_native_node,
    to_native_nodes,
)
from bookmark_sync.protocols import NativeBookmarksHost, PageMetadataProvider
from bookmark_sync.sync.models import (
    AddChangeData,
    BookmarkChangeType,
    Change,
    ModifyChangeData,
    MoveChangeData,
    RemoveChangeData,
    ReorderChangeData,
)

logger = logging.getLogger(__name__)

SubmitFn = Callable[[Change], Any]


class NativeChangeDetector:
    """Subscribe to native events and submit one change per event.

    Args:
        host: The native bookmarks API emitting the events.
        submit: Called with every change built.
        page_metadata: Source of the active page's metadata, used to enrich
            bookmarks created from that page.
        new_tab_url: The platform's new-tab url, for separator detection.
    """

    def __init__(
        self,
        host: NativeBookmarksHost,
        submit: SubmitFn,
        page_metadata: PageMetadataProvider | None = None,
        new_tab_url: str | None = None,
    ) -> None:
        self.host = host
        self.submit = submit
        self.page_metadata = page_metadata
        self.new_tab_url = new_tab_url
        self._enabled = False
        self._handlers: dict[str, Callable[..., Any]] = {
            "created": self.on_created,
            "changed": self.on_changed,
            "moved": self.on_moved,
            "removed": self.on_removed,
            "children_reordered": self.on_children_reordered,
        }

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Subscribe every handler to the host's events."""
        if self._enabled:
            return
        for event, handler in self._handlers.items():
            self.host.add_listener(event, handler)
        self._enabled = True
        logger.debug("Native event listeners enabled")

    def disable(self) -> None:
        """Unsubscribe every handler from the host's events."""
        if not self._enabled:
            return
        for event, handler in self._handlers.items():
            self.host.remove_listener(event, handler)
        self._enabled = False
        logger.debug("Native event listeners disabled")

    @contextmanager
    def paused(self) -> Iterator[None]:
        """Disable the listeners for the duration of the block.

        Used while the native tree is rewritten from remote data, so the
        writes are not fed back as changes.
        """
        was_enabled = self._enabled
        self.disable()
        try:
            yield
        finally:
            if was_enabled:
                self.enable()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_created(self, native_id: str, node: Any) -> Any:
        """Submit an Add change, enriched from the active page if it matches."""
        native = to_native_node(node)
        index = self._observed_index(native.id, native.parent_id)
        if index is not None:
            native = native.model_copy(update={"index": index})
        metadata = None
        if native.url and not is_separator(native, self.new_tab_url):
            metadata = self._page_metadata_for(native)
        change = Change(
            type=BookmarkChangeType.ADD,
            change_data=AddChangeData(native_bookmark=native, metadata=metadata),
        )
        return self.submit(change)

    def on_changed(self, native_id: str, change_info: Any = None) -> Any:
        """Submit a Modify change holding the node as it is now.

        The event payload only carries the changed fields, so the node is
        fetched again by ID.
        """
        subtree = to_native_nodes(self.host.get_subtree(native_id))
        if not subtree:
            logger.warning(
                "Changed native bookmark %s no longer exists", native_id
            )
            return None
        change = Change(
            type=BookmarkChangeType.MODIFY,
            change_data=ModifyChangeData(native_bookmark=subtree[0]),
        )
        return self.submit(change)

    def on_moved(self, native_id: str, move_info: Any) -> Any:
        """Submit a Move change carrying a snapshot of the moved subtree."""
        info = NativeMoveInfo.model_validate(move_info)
        index = self._observed_index(native_id, info.parent_id)
        subtree = to_native_nodes(self.host.get_subtree(native_id))
        change = Change(
            type=BookmarkChangeType.MOVE,
            change_data=MoveChangeData(
                id=native_id,
                old_parent_id=info.old_parent_id,
                parent_id=info.parent_id,
                old_index=info.old_index,
                index=info.index if index is None else index,
                node=subtree[0] if subtree else None,
            ),
        )
        return self.submit(change)

    def on_removed(self, native_id: str, remove_info: Any) -> Any:
        """Submit a Remove change."""
        info = NativeRemoveInfo.model_validate(remove_info)
        change = Change(
            type=BookmarkChangeType.REMOVE,
            change_data=RemoveChangeData(
                id=native_id,
                parent_id=info.parent_id,
                index=info.index,
                node=info.node,
            ),
        )
        return self.submit(change)

    def on_children_reordered(self, native_id: str, reorder_info: Any) -> Any:
        """Submit a Reorder change."""
        info = NativeReorderInfo.model_validate(reorder_info)
        change = Change(
            type=BookmarkChangeType.REORDER,
            change_data=ReorderChangeData(
                parent_id=native_id, child_ids=info.child_ids
            ),
        )
        return self.submit(change)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _observed_index(
        self, native_id: str, parent_id: str | None
    ) -> int | None:
        """Return *native_id*'s current position under *parent_id*.

        Event indices can be stale by the time the event arrives, so the
        position is read from the parent's children instead.  ``None``
        when the node is no longer there.
        """
        if parent_id is None:
            return None
        children = to_native_nodes(self.host.get_children(parent_id))
        _, index = find_native_by_id(children, native_id)
        return index

    def _page_metadata_for(
        self, native: NativeBookmarkNode
    ) -> BookmarkMetadata | None:
        if self.page_metadata is None:
            return None
        raw = self.page_metadata.get_page_metadata()
        if not raw:
            return None
        page = WebpageMetadata.model_validate(raw)
        # The user may have switched tabs before the metadata arrived.
        if page.url != native.url:
            logger.debug(
                "Skipping page metadata for %s: active page is %s",
                native.url,
                page.url,
            )
            return None
        return BookmarkMetadata(
            title=strip_tags(page.title),
            url=native.url,
            description=strip_tags(page.description),
            tags=get_tags_from_text(page.tags),
        )
