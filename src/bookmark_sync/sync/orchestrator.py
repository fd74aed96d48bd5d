"""Sequential application of native changes to the synced bookmarks.

The ``SyncOrchestrator`` owns the change queue and the single worker task
draining it.  That worker is the only writer of the cache and the ID
mapper.  For every change it:

1. Reads the current cache entry (refreshed if stale).
2. Maps the native IDs in the change to canonical IDs.
3. Applies the mutation to a copy of the tree.
4. Encrypts the updated tree.
5. Pushes the ciphertext to the remote store, with a timeout.
6. Swaps the new entry into the cache.
7. Updates the ID mapper.

Any failure before step 6 leaves the cache and the mapper exactly as they
were.  Error handling is per-change: a failed change is recorded and the
worker moves on to the next one.  Failed changes are never retried here;
the caller raises a fresh change if it wants another attempt.

Changes inside a container that is not synced (the toolbar, while toolbar
sync is off) are skipped.  A move across that boundary is applied as a
removal or an addition.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from bookmark_sync.bookmarks.containers import (
    ensure_containers_exist,
    get_container,
    upgrade_legacy_containers,
)
from bookmark_sync.bookmarks.helpers import (
    clean_bookmark,
    find_by_id,
    get_ids_from_descendants,
    is_separator,
    trim_to_nearest_word,
)
from bookmark_sync.bookmarks.models import (
    BookmarkContainer,
    BookmarkMetadata,
    Folder,
    Leaf,
    bookmarks_to_list,
)
from bookmark_sync.bookmarks.operations import (
    insert_bookmark,
    modify_bookmark_by_id,
    move_bookmark,
    remove_bookmark_by_id,
    reorder_children,
)
from bookmark_sync.constants import DEFAULT_PUSH_TIMEOUT, DESCRIPTION_MAX_LENGTH
from bookmark_sync.core.async_utils import run_sync, run_sync_limited
from bookmark_sync.errors import (
    BookmarkSyncError,
    NotFoundError,
    RemoteSyncError,
)
from bookmark_sync.native.adapter import convert_native_bookmark
from bookmark_sync.native.models import IdMapping
from bookmark_sync.protocols import RemoteStore
from bookmark_sync.sync.cache import CacheManager
from bookmark_sync.sync.id_mapper import BookmarkIdMapper
from bookmark_sync.sync.models import (
    AddChangeData,
    BookmarkChangeType,
    Change,
    ChangeRecord,
    ModifyChangeData,
    MoveChangeData,
    RemoveChangeData,
    ReorderChangeData,
)

if TYPE_CHECKING:
    from bookmark_sync.native.adapter import NativeBookmarkAdapter
    from bookmark_sync.native.detector import NativeChangeDetector

logger = logging.getLogger(__name__)


@dataclass
class _Mutation:
    """Result of applying one change to a tree copy."""

    bookmarks: list[Folder | Leaf]
    added: list[IdMapping] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)


@dataclass
class _Job:
    """A queued change, or a queued exclusive action with its future."""

    record: ChangeRecord | None = None
    action: Callable[[], Awaitable[Any]] | None = None
    future: asyncio.Future | None = None


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _settle_stopped(future: asyncio.Future | None) -> None:
    if future is not None and not future.done():
        future.set_exception(RemoteSyncError("Sync worker stopped."))


class SyncOrchestrator:
    """Apply native changes one at a time and push the result remotely.

    Args:
        cache: The bookmarks cache; only this orchestrator writes it.
        id_mapper: The native/canonical ID table; only this orchestrator
            writes it.
        remote: Remote copy receiving every updated tree.
        native_container_ids: Native root folder ID per container, synced
            or not.
        is_folder_synced: Called with a native folder ID; returns whether
            that folder lies in a synced container.  Consulted for every
            change, so a setting changed later takes effect at once.
            Defaults to treating every folder as synced.
        push_timeout: Seconds a remote push may take before the change
            fails as retryable.  ``None`` waits indefinitely.
        new_tab_url: The platform's new-tab url.
        description_max_length: Limit for descriptions taken from page
            metadata.
    """

    def __init__(
        self,
        cache: CacheManager,
        id_mapper: BookmarkIdMapper,
        remote: RemoteStore,
        native_container_ids: dict[BookmarkContainer, str],
        *,
        is_folder_synced: Callable[[str | None], bool] | None = None,
        push_timeout: float | None = DEFAULT_PUSH_TIMEOUT,
        new_tab_url: str | None = None,
        description_max_length: int = DESCRIPTION_MAX_LENGTH,
    ) -> None:
        self.cache = cache
        self.id_mapper = id_mapper
        self.remote = remote
        self.push_timeout = push_timeout
        self.new_tab_url = new_tab_url
        self.description_max_length = description_max_length
        self._containers_by_native_id = {
            native_id: container
            for container, native_id in native_container_ids.items()
        }
        self._is_folder_synced = is_folder_synced

        self._queue: asyncio.Queue[_Job] = asyncio.Queue()
        self._records: list[ChangeRecord] = []
        self._sequence = itertools.count(1)
        self._submit_lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._worker: asyncio.Task | None = None

        self._handlers: dict[
            BookmarkChangeType, Callable[[Any, list[Folder | Leaf]], _Mutation]
        ] = {
            BookmarkChangeType.ADD: self._apply_add,
            BookmarkChangeType.MODIFY: self._apply_modify,
            BookmarkChangeType.MOVE: self._apply_move,
            BookmarkChangeType.REMOVE: self._apply_remove,
            BookmarkChangeType.REORDER: self._apply_reorder,
        }

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def queue_length(self) -> int:
        """Number of queued jobs not yet picked up by the worker."""
        return self._queue.qsize()

    @property
    def records(self) -> list[ChangeRecord]:
        """Every submitted change record, in submission order."""
        return list(self._records)

    def start(self) -> None:
        """Spawn the worker task on the running loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._worker = self._loop.create_task(
            self._run(), name="bookmark-sync-worker"
        )
        logger.info("Sync worker started")

    async def stop(self) -> None:
        """Cancel the worker.

        Queued changes stay pending.  Queued exclusive actions are dropped
        and their callers get a retryable :class:`RemoteSyncError`.
        """
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        dropped = self._drop_exclusive_jobs()
        logger.info(
            "Sync worker stopped with %d queued change(s), "
            "%d exclusive action(s) dropped",
            self.queue_length,
            dropped,
        )

    def _drop_exclusive_jobs(self) -> int:
        jobs: list[_Job] = []
        while True:
            try:
                jobs.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
        dropped = 0
        for job in jobs:
            if job.record is not None:
                self._queue.put_nowait(job)
            else:
                dropped += 1
                _settle_stopped(job.future)
        return dropped

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    def submit(self, change: Change) -> ChangeRecord:
        """Queue *change* and return its pending record.

        Never blocks and may be called from any thread; from a thread other
        than the worker's loop the change is handed over with
        ``call_soon_threadsafe``.  Submission order is application order.
        """
        with self._submit_lock:
            record = ChangeRecord.create(next(self._sequence), change)
            self._records.append(record)
            job = _Job(record=record)
            loop = self._loop
            if loop is not None and _running_loop() is not loop:
                loop.call_soon_threadsafe(self._queue.put_nowait, job)
            else:
                self._queue.put_nowait(job)
        logger.debug(
            "Queued %s change %d", change.type.value, record.sequence
        )
        return record

    async def run_exclusive(self, action: Callable[[], Awaitable[Any]]) -> Any:
        """Run *action* on the worker, between two changes.

        Without a running worker the action runs directly.
        """
        if not self.running:
            return await action()
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Job(action=action, future=future))
        return await future

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.record is not None:
                    await self._process(job.record)
                else:
                    await self._run_job_action(job)
            finally:
                self._queue.task_done()

    async def _process(self, record: ChangeRecord) -> None:
        record.mark_applying()
        try:
            applied = await self.apply_change(
                record.change, timeout=self.push_timeout
            )
        except asyncio.CancelledError:
            record.mark_failed(RemoteSyncError("Change cancelled."))
            raise
        except BookmarkSyncError as exc:
            record.mark_failed(exc)
            if exc.retryable:
                logger.warning(
                    "Change %d (%s) failed, retryable: %s",
                    record.sequence,
                    record.change.type.value,
                    exc,
                )
            else:
                logger.error(
                    "Change %d (%s) failed: %s",
                    record.sequence,
                    record.change.type.value,
                    exc,
                )
        except Exception as exc:
            record.mark_failed(exc)
            logger.exception(
                "Unexpected error applying change %d", record.sequence
            )
        else:
            record.mark_applied(skipped=not applied)
            if applied:
                logger.debug("Applied change %d", record.sequence)
            else:
                logger.debug(
                    "Skipped change %d: outside the synced containers",
                    record.sequence,
                )

    async def _run_job_action(self, job: _Job) -> None:
        future = job.future
        if future.done():
            # The caller gave up while the action was queued.
            return
        try:
            result = await job.action()
        except asyncio.CancelledError:
            _settle_stopped(future)
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)

    # ------------------------------------------------------------------
    # Applying changes
    # ------------------------------------------------------------------

    async def apply_change(
        self, change: Change, timeout: float | None = None
    ) -> bool:
        """Apply one change and push the result.

        The worker calls this for every queued change; calling it directly
        bypasses the queue and its ordering.

        Returns:
            ``False`` if the change was skipped because it lies outside the
            synced containers, else ``True``.

        Raises:
            IdMappingError: If a native ID in the change is not mapped.
            NotFoundError: If a mapped bookmark is missing from the tree.
            RemoteSyncError: If the push fails or times out.
            DecryptionError: If the cached bookmarks cannot be decrypted.
        """
        routed = await self._route(change)
        if routed is None:
            return False
        handler, data = routed
        entry = await self.cache.get_entry()
        mutation = handler(data, list(entry.bookmarks))
        encrypted = await run_sync(self.cache.encrypt, mutation.bookmarks)
        await self._push(encrypted, timeout)
        await self.cache.update(mutation.bookmarks, encrypted)
        if mutation.removed:
            await run_sync(
                self.id_mapper.remove, canonical_ids=mutation.removed
            )
        if mutation.added:
            await run_sync(self.id_mapper.add, mutation.added)
        return True

    async def _folder_synced(self, native_id: str | None) -> bool:
        if self._is_folder_synced is None:
            return True
        return await run_sync(self._is_folder_synced, native_id)

    async def _route(
        self, change: Change
    ) -> tuple[Callable[[Any, list[Folder | Leaf]], _Mutation], Any] | None:
        """Pick the handler and payload for *change*, or ``None`` to skip."""
        data = change.change_data
        handler = self._handlers[change.type]
        if isinstance(data, (AddChangeData, ModifyChangeData)):
            parent_id = data.native_bookmark.parent_id
        elif isinstance(data, MoveChangeData):
            return await self._route_move(data)
        else:
            parent_id = data.parent_id
        if not await self._folder_synced(parent_id):
            return None
        return handler, data

    async def _route_move(
        self, data: MoveChangeData
    ) -> tuple[Callable[[Any, list[Folder | Leaf]], _Mutation], Any] | None:
        source = await self._folder_synced(data.old_parent_id)
        target = await self._folder_synced(data.parent_id)
        if source and target:
            return self._apply_move, data
        if source:
            removal = RemoveChangeData(
                id=data.id, parent_id=data.old_parent_id, index=data.old_index
            )
            return self._apply_remove, removal
        if target and data.node is not None:
            native = data.node.model_copy(
                update={"parent_id": data.parent_id, "index": data.index}
            )
            return self._apply_add, AddChangeData(native_bookmark=native)
        if target:
            # Without a snapshot the node cannot be added; this fails on
            # the unmapped ID.
            return self._apply_move, data
        return None

    async def _push(self, encrypted: str, timeout: float | None) -> None:
        try:
            await asyncio.wait_for(
                run_sync_limited(self.remote.push_bookmarks, encrypted),
                timeout,
            )
        except asyncio.TimeoutError as exc:
            raise RemoteSyncError(
                f"Remote push timed out after {timeout}s."
            ) from exc
        except BookmarkSyncError:
            raise
        except Exception as exc:
            raise RemoteSyncError(f"Remote push failed: {exc}") from exc

    def _resolve_parent(
        self, native_parent_id: str | None, bookmarks: list[Folder | Leaf]
    ) -> int:
        container = self._containers_by_native_id.get(native_parent_id)
        if container is not None:
            # Appends the container to this working copy when missing.
            return get_container(container, bookmarks, create_if_missing=True).id
        return self.id_mapper.get_canonical(native_parent_id)

    def _apply_add(
        self, data: AddChangeData, bookmarks: list[Folder | Leaf]
    ) -> _Mutation:
        native = data.native_bookmark
        parent_id = self._resolve_parent(native.parent_id, bookmarks)
        bookmark, mappings = convert_native_bookmark(
            native, bookmarks, [], self.new_tab_url
        )
        metadata = data.metadata
        if (
            metadata is not None
            and isinstance(bookmark, Leaf)
            and not is_separator(bookmark, self.new_tab_url)
        ):
            bookmark = clean_bookmark(
                bookmark.model_copy(
                    update={
                        "title": metadata.title or bookmark.title,
                        "description": trim_to_nearest_word(
                            metadata.description, self.description_max_length
                        ),
                        "tags": metadata.tags,
                    }
                )
            )
        updated = insert_bookmark(bookmark, parent_id, native.index, bookmarks)
        return _Mutation(updated, added=mappings)

    def _apply_modify(
        self, data: ModifyChangeData, bookmarks: list[Folder | Leaf]
    ) -> _Mutation:
        native = data.native_bookmark
        bookmark_id = self.id_mapper.get_canonical(native.id)
        existing = find_by_id(bookmarks, bookmark_id)
        if existing is None:
            raise NotFoundError(f"Bookmark {bookmark_id} not found.")
        # Native bookmarks have no description or tags; keep the synced ones.
        metadata = BookmarkMetadata(
            title=native.title,
            url=native.url,
            description=getattr(existing, "description", None),
            tags=getattr(existing, "tags", None),
        )
        updated = modify_bookmark_by_id(
            bookmark_id, metadata, bookmarks, self.new_tab_url
        )
        return _Mutation(updated)

    def _apply_move(
        self, data: MoveChangeData, bookmarks: list[Folder | Leaf]
    ) -> _Mutation:
        bookmark_id = self.id_mapper.get_canonical(data.id)
        parent_id = self._resolve_parent(data.parent_id, bookmarks)
        updated = move_bookmark(bookmark_id, parent_id, data.index, bookmarks)
        return _Mutation(updated)

    def _apply_remove(
        self, data: RemoveChangeData, bookmarks: list[Folder | Leaf]
    ) -> _Mutation:
        bookmark_id = self.id_mapper.get_canonical(data.id)
        existing = find_by_id(bookmarks, bookmark_id)
        removed = [bookmark_id, *get_ids_from_descendants(existing)]
        updated = remove_bookmark_by_id(bookmark_id, bookmarks)
        return _Mutation(updated, removed=removed)

    def _apply_reorder(
        self, data: ReorderChangeData, bookmarks: list[Folder | Leaf]
    ) -> _Mutation:
        parent_id = self._resolve_parent(data.parent_id, bookmarks)
        child_ids = [self.id_mapper.get_canonical(c) for c in data.child_ids]
        updated = reorder_children(parent_id, child_ids, bookmarks)
        return _Mutation(updated)

    # ------------------------------------------------------------------
    # Whole-tree transfers
    # ------------------------------------------------------------------

    async def restore_from_remote(
        self,
        adapter: NativeBookmarkAdapter,
        detector: NativeChangeDetector | None = None,
    ) -> int:
        """Replace the native bookmarks with the remote copy.

        Fetches and decrypts the remote tree, upgrading legacy containers
        (and pushing the upgraded tree back when that changed anything).
        The native bookmarks are then cleared and recreated with
        *detector* paused, and the cache and ID mapper are replaced.  Runs
        on the worker so no change is applied halfway through.

        Returns:
            The number of native bookmarks created.
        """
        return await self.run_exclusive(
            lambda: self._restore_from_remote(adapter, detector)
        )

    async def _restore_from_remote(
        self,
        adapter: NativeBookmarkAdapter,
        detector: NativeChangeDetector | None,
    ) -> int:
        encrypted = await self.cache.fetch_remote()
        bookmarks = (
            await run_sync(self.cache.decrypt, encrypted) if encrypted else []
        )
        upgraded = upgrade_legacy_containers(bookmarks)
        if bookmarks_to_list(upgraded) != bookmarks_to_list(bookmarks):
            logger.info("Pushing bookmarks with upgraded containers")
            encrypted = await run_sync(self.cache.encrypt, upgraded)
            await self._push(encrypted, self.push_timeout)

        with detector.paused() if detector is not None else nullcontext():
            await run_sync(adapter.clear_native_bookmarks)
            count, mappings = await run_sync(
                adapter.create_native_bookmarks_from_bookmarks, upgraded
            )

        await self.cache.update(upgraded, encrypted)
        await run_sync(self.id_mapper.set, mappings)
        logger.info("Restored %d bookmarks from remote", count)
        return count

    async def upload_native_bookmarks(
        self, adapter: NativeBookmarkAdapter
    ) -> int:
        """Replace the remote copy with the native bookmarks.

        Used when sync is first enabled against an empty remote copy.
        Synced containers the browser lacks are added empty.  Runs on the
        worker like :meth:`restore_from_remote`.

        Returns:
            The number of bookmarks uploaded, containers excluded.
        """
        return await self.run_exclusive(
            lambda: self._upload_native_bookmarks(adapter)
        )

    async def _upload_native_bookmarks(
        self, adapter: NativeBookmarkAdapter
    ) -> int:
        bookmarks, mappings = await run_sync(
            adapter.get_native_bookmarks_as_bookmarks
        )
        bookmarks = ensure_containers_exist(
            bookmarks, adapter.sync_bookmarks_toolbar
        )
        encrypted = await run_sync(self.cache.encrypt, bookmarks)
        await self._push(encrypted, self.push_timeout)
        await self.cache.update(bookmarks, encrypted)
        await run_sync(self.id_mapper.set, mappings)
        logger.info("Uploaded %d native bookmarks", len(mappings))
        return len(mappings)
