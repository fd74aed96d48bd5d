"""Change queue and sync engine.

Public API for applying native bookmark changes to the encrypted,
remotely stored bookmark tree.

Architecture
------------
Native events become ``Change`` records that are applied strictly one at
a time by a single worker task.  The worker mutates a copy of the cached
tree, encrypts it, pushes it to the remote store and only then swaps the
new ``(encrypted, bookmarks)`` pair into the cache, so readers always see
either the old tree or the new one.

Modules:

- ``models``        -- ``Change``, its payloads and ``ChangeRecord``.
- ``cache``         -- ``CacheManager``: copy-on-write cache of the tree.
- ``id_mapper``     -- ``BookmarkIdMapper``: native <-> canonical IDs.
- ``orchestrator``  -- ``SyncOrchestrator``: the queue and its worker.

Usage example
-------------
::

    cache = CacheManager(store, crypto, remote)
    orchestrator = SyncOrchestrator(
        cache,
        BookmarkIdMapper(store),
        remote,
        adapter.get_native_container_ids(),
        is_folder_synced=adapter.is_native_folder_synced,
        new_tab_url=adapter.new_tab_url,
    )
    orchestrator.start()

    detector = NativeChangeDetector(host, orchestrator.submit)
    detector.enable()
"""

from .cache import CacheEntry, CacheManager
from .id_mapper import BookmarkIdMapper
from .models import (
    AddChangeData,
    BookmarkChangeType,
    Change,
    ChangeRecord,
    ChangeStatus,
    ModifyChangeData,
    MoveChangeData,
    RemoveChangeData,
    ReorderChangeData,
)
from .orchestrator import SyncOrchestrator

__all__ = [
    "AddChangeData",
    "BookmarkChangeType",
    "BookmarkIdMapper",
    "CacheEntry",
    "CacheManager",
    "Change",
    "ChangeRecord",
    "ChangeStatus",
    "ModifyChangeData",
    "MoveChangeData",
    "RemoveChangeData",
    "ReorderChangeData",
    "SyncOrchestrator",
]
