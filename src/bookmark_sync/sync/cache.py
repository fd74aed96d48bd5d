"""Point-in-time cache of the encrypted bookmarks and their plaintext tree.

The cache holds one :class:`CacheEntry` at a time.  Entries are frozen and
replaced wholesale, never edited, so a reader holding an entry keeps a
consistent ``(encrypted, bookmarks)`` pair however many writes happen
after it took the reference.

``get_entry()`` compares the cached ciphertext with the one persisted in
the local store.  When they differ (another process wrote the store, or
the cache is cold) the stored value is decrypted and swapped in; with
nothing stored the remote copy is fetched.  A refresh only lands if no
write was committed while it was decrypting, so a slow refresh can never
roll back a newer entry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable

from bookmark_sync.bookmarks.helpers import copy_bookmarks
from bookmark_sync.bookmarks.models import (
    Folder,
    Leaf,
    bookmarks_from_json,
    bookmarks_to_json,
)
from bookmark_sync.core.async_utils import run_sync, run_sync_limited
from bookmark_sync.errors import (
    BookmarkSyncError,
    DecryptionError,
    RemoteSyncError,
)
from bookmark_sync.protocols import CryptoService, KeyValueStore, RemoteStore
from bookmark_sync.store import StoreKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """An encrypted blob and the tree it decrypts to.

    Either both are unset or ``bookmarks`` is exactly the content of
    ``encrypted``.  Treat ``bookmarks`` as read-only; use
    :meth:`CacheManager.get_cached_bookmarks` for a copy to modify.
    """

    encrypted: str | None = None
    bookmarks: tuple[Folder | Leaf, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.encrypted is None


class CacheManager:
    """Owns the process-wide bookmarks cache.

    Args:
        store: Local store persisting the encrypted bookmarks.
        crypto: Cipher for the bookmarks plaintext.
        remote: Remote copy, read when the local store is empty.
    """

    def __init__(
        self,
        store: KeyValueStore,
        crypto: CryptoService,
        remote: RemoteStore,
    ) -> None:
        self.store = store
        self.crypto = crypto
        self.remote = remote
        self._entry = CacheEntry()
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def entry(self) -> CacheEntry:
        """The current entry, without any staleness check."""
        return self._entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_entry(self) -> CacheEntry:
        """Return the current entry, refreshing it first if stale.

        Raises:
            DecryptionError: If the stored or remote blob cannot be read.
            RemoteSyncError: If the remote fetch fails.
        """
        entry = self._entry
        stored = await run_sync(self.store.get, StoreKey.BOOKMARKS)
        if stored and stored == entry.encrypted:
            return entry

        generation = self._generation
        encrypted = stored
        from_remote = False
        if not encrypted:
            encrypted = await self.fetch_remote()
            from_remote = True
        if not encrypted:
            return CacheEntry()

        bookmarks = await run_sync(self.decrypt, encrypted)
        fresh = CacheEntry(encrypted, tuple(bookmarks))

        async with self._lock:
            if self._generation != generation:
                logger.debug("Discarding cache refresh overtaken by a write")
                return self._entry
            if from_remote:
                await run_sync(self.store.set, StoreKey.BOOKMARKS, encrypted)
            self._entry = fresh
            self._generation += 1
        logger.debug(
            "Cache refreshed from %s", "remote" if from_remote else "store"
        )
        return fresh

    async def get_cached_bookmarks(self) -> list[Folder | Leaf]:
        """Return a deep copy of the current tree."""
        entry = await self.get_entry()
        return copy_bookmarks(entry.bookmarks)

    async def get_sync_size(self) -> int:
        """Return the size in bytes of the cached encrypted bookmarks."""
        entry = await self.get_entry()
        if entry.encrypted is None:
            return 0
        return len(entry.encrypted.encode("utf-8"))

    async def fetch_remote(self) -> str | None:
        """Return the remote encrypted blob, or ``None`` if there is none.

        Raises:
            RemoteSyncError: If the remote fetch fails.
        """
        try:
            response = await run_sync_limited(self.remote.get_bookmarks)
        except BookmarkSyncError:
            raise
        except Exception as exc:
            raise RemoteSyncError(f"Remote fetch failed: {exc}") from exc
        return (response or {}).get("bookmarks") or None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def update(
        self, bookmarks: Iterable[Folder | Leaf], encrypted: str | None
    ) -> CacheEntry:
        """Persist *encrypted* and swap in a new entry for it.

        ``None`` empties both the store value and the cache.
        """
        fresh = (
            CacheEntry(encrypted, tuple(copy_bookmarks(bookmarks)))
            if encrypted
            else CacheEntry()
        )
        async with self._lock:
            await run_sync(self.store.set, StoreKey.BOOKMARKS, fresh.encrypted)
            self._entry = fresh
            self._generation += 1
        return fresh

    async def clear(self) -> None:
        """Forget the cached and stored bookmarks."""
        await self.update((), None)

    # ------------------------------------------------------------------
    # Crypto
    # ------------------------------------------------------------------

    def decrypt(self, encrypted: str) -> list[Folder | Leaf]:
        """Decrypt and parse *encrypted* into a tree.

        Raises:
            DecryptionError: If decryption or parsing fails.
        """
        try:
            return bookmarks_from_json(self.crypto.decrypt(encrypted))
        except BookmarkSyncError:
            raise
        except Exception as exc:
            raise DecryptionError(
                f"Failed to decrypt bookmarks data: {exc}"
            ) from exc

    def encrypt(self, bookmarks: Iterable[Folder | Leaf]) -> str:
        """Serialise and encrypt *bookmarks*."""
        return self.crypto.encrypt(bookmarks_to_json(bookmarks))
