"""Read-side bookmark operations for the UI layer.

``BookmarkService`` answers searches, lookahead, export and settings
queries from the cache and the local store.  It never writes the
cached tree; every write goes through
:class:`~bookmark_sync.sync.orchestrator.SyncOrchestrator`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from bookmark_sync.bookmarks.containers import remove_empty_containers
from bookmark_sync.bookmarks.helpers import clean_bookmarks
from bookmark_sync.bookmarks.models import (
    BookmarkSearchResult,
    Folder,
    Leaf,
    bookmarks_to_list,
)
from bookmark_sync.bookmarks.search import get_lookahead, search
from bookmark_sync.core.async_utils import run_sync
from bookmark_sync.native.adapter import NativeBookmarkAdapter
from bookmark_sync.protocols import KeyValueStore, PageMetadataProvider
from bookmark_sync.store import StoreKey
from bookmark_sync.sync.cache import CacheManager

logger = logging.getLogger(__name__)


class BookmarkService:
    """Query the synced bookmarks.

    Args:
        cache: The bookmarks cache.
        store: Local store holding the sync settings flags.
        adapter: Native adapter, used to export while sync is disabled.
        page_metadata: Source of the active page's url.
    """

    def __init__(
        self,
        cache: CacheManager,
        store: KeyValueStore,
        adapter: NativeBookmarkAdapter | None = None,
        page_metadata: PageMetadataProvider | None = None,
    ) -> None:
        self.cache = cache
        self.store = store
        self.adapter = adapter
        self.page_metadata = page_metadata

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_cached_bookmarks(self) -> list[Folder | Leaf]:
        return await self.cache.get_cached_bookmarks()

    async def search_bookmarks(
        self,
        url: str | None = None,
        keywords: Sequence[str] | None = None,
    ) -> list[BookmarkSearchResult]:
        """Search the cached bookmarks; see :func:`bookmarks.search.search`."""
        entry = await self.cache.get_entry()
        return search(entry.bookmarks, url=url, keywords=keywords)

    async def get_lookahead(
        self,
        word: str | None,
        bookmarks: Iterable[Folder | Leaf] | None = None,
        tags_only: bool = False,
        exclusions: Iterable[str] = (),
    ) -> str | None:
        """Suggest a completion for *word*.

        Searches *bookmarks* when given, else the cached tree.
        """
        if not word:
            return None
        if bookmarks is None:
            bookmarks = (await self.cache.get_entry()).bookmarks
        return get_lookahead(
            word, bookmarks, tags_only=tags_only, exclusions=exclusions
        )

    async def find_current_url_in_bookmarks(
        self,
    ) -> BookmarkSearchResult | None:
        """Return the bookmark for the active page's url, if there is one."""
        if self.page_metadata is None:
            return None
        current_url = await run_sync(self.page_metadata.get_current_url)
        if not current_url:
            return None
        results = await self.search_bookmarks(url=current_url)
        return next(
            (r for r in results if r.url.lower() == current_url.lower()),
            None,
        )

    async def export_bookmarks(self) -> list[dict[str, Any]]:
        """Return the bookmarks as plain, cleaned dicts.

        While sync is enabled the remote copy is exported, minus empty
        containers.  Otherwise the native bookmarks are read.

        Raises:
            RemoteSyncError: If the remote fetch fails.
            DecryptionError: If the remote copy cannot be decrypted.
            ContainerNotFoundError: If a native root is missing.
        """
        if await self.is_sync_enabled():
            encrypted = await self.cache.fetch_remote()
            bookmarks = (
                await run_sync(self.cache.decrypt, encrypted)
                if encrypted
                else []
            )
            bookmarks = remove_empty_containers(bookmarks)
        elif self.adapter is not None:
            bookmarks, _ = await run_sync(
                self.adapter.get_native_bookmarks_as_bookmarks
            )
        else:
            logger.warning("Sync disabled and no native adapter to export")
            bookmarks = []
        return bookmarks_to_list(clean_bookmarks(bookmarks))

    async def get_sync_size(self) -> int:
        return await self.cache.get_sync_size()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def is_sync_enabled(self) -> bool:
        return bool(await run_sync(self.store.get, StoreKey.SYNC_ENABLED))

    async def get_sync_bookmarks_toolbar(self) -> bool:
        """Whether the toolbar is synced; ``True`` until set otherwise."""
        value = await run_sync(self.store.get, StoreKey.SYNC_BOOKMARKS_TOOLBAR)
        return True if value is None else bool(value)

    async def set_sync_bookmarks_toolbar(self, value: bool) -> None:
        await run_sync(
            self.store.set, StoreKey.SYNC_BOOKMARKS_TOOLBAR, bool(value)
        )
        if self.adapter is not None:
            self.adapter.sync_bookmarks_toolbar = bool(value)
        logger.info("Toolbar sync %s", "enabled" if value else "disabled")
