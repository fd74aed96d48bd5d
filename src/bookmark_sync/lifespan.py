"""Lifespan management for the sync service startup and shutdown."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from bookmark_sync.config import load_config
from bookmark_sync.config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from bookmark_sync.core.async_utils import init_semaphore, run_sync
from bookmark_sync.native.adapter import NativeBookmarkAdapter
from bookmark_sync.native.detector import NativeChangeDetector
from bookmark_sync.native.platforms import get_platform
from bookmark_sync.protocols import (
    CryptoService,
    NativeBookmarksHost,
    PageMetadataProvider,
    RemoteStore,
)
from bookmark_sync.remote import SyncApiClient
from bookmark_sync.service import BookmarkService
from bookmark_sync.store import FileStore, StoreKey
from bookmark_sync.sync.cache import CacheManager
from bookmark_sync.sync.id_mapper import BookmarkIdMapper
from bookmark_sync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def sync_lifespan(
    host: NativeBookmarksHost,
    crypto: CryptoService,
    page_metadata: PageMetadataProvider | None = None,
    config_overrides: dict[str, Any] | None = None,
    remote: RemoteStore | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage the sync engine's startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Merge all sources via load_config(): overrides > env vars > .env > YAML > defaults
    - Locate the native root folders, failing fast if one is missing
    - Start the orchestrator's worker and subscribe to native events

    On shutdown:
    - Unsubscribe from native events
    - Stop the worker; changes still queued stay pending

    Args:
        host: The browser's native bookmarks API.
        crypto: Cipher for the bookmarks plaintext.
        page_metadata: Source of the active page's metadata.
        config_overrides: ``sync`` config values given explicitly.
        remote: Remote store to use instead of a ``SyncApiClient`` built
            from the config.

    Yields:
        Dict with ``config``, ``store``, ``cache``, ``id_mapper``,
        ``adapter``, ``orchestrator``, ``detector`` and ``service``.

    Raises:
        RuntimeError: If configuration is invalid or a native root is missing.
    """
    logger.info("Bookmark sync starting...")

    try:
        load_dotenv()
        config_files = discover_config_files()
        if config_files:
            logger.info("Config file: %s", config_files[0])
        config = load_config(
            overrides=config_overrides,
            yaml_data=load_hierarchical_config(config_files),
            require_remote=remote is None,
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(
            f"Configuration error: {e}. "
            "Ensure BOOKMARK_SYNC_API_URL and BOOKMARK_SYNC_ID are set."
        ) from e

    settings = config.sync
    store = FileStore(Path(settings.state_dir))
    if remote is None:
        remote = SyncApiClient(settings.api_url, settings.sync_id)
        logger.info("Sync service: %s", settings.api_url)

    sync_toolbar = await run_sync(store.get, StoreKey.SYNC_BOOKMARKS_TOOLBAR)
    if sync_toolbar is None:
        sync_toolbar = settings.sync_bookmarks_toolbar

    adapter = NativeBookmarkAdapter(
        host, get_platform(settings.platform), bool(sync_toolbar)
    )
    try:
        container_ids = await run_sync(adapter.get_native_container_ids)
    except Exception as e:
        logger.error("Failed to locate native bookmark roots: %s", e)
        raise RuntimeError(f"Native bookmarks unavailable: {e}") from e

    init_semaphore(settings.max_parallel_requests)

    cache = CacheManager(store, crypto, remote)
    id_mapper = BookmarkIdMapper(store)
    orchestrator = SyncOrchestrator(
        cache,
        id_mapper,
        remote,
        container_ids,
        is_folder_synced=adapter.is_native_folder_synced,
        push_timeout=settings.push_timeout,
        new_tab_url=adapter.new_tab_url,
        description_max_length=settings.description_max_length,
    )
    detector = NativeChangeDetector(
        host, orchestrator.submit, page_metadata, adapter.new_tab_url
    )
    service = BookmarkService(cache, store, adapter, page_metadata)

    orchestrator.start()
    detector.enable()
    logger.info(
        "Bookmark sync ready (platform=%s, toolbar=%s)",
        settings.platform,
        bool(sync_toolbar),
    )

    try:
        yield {
            "config": config,
            "store": store,
            "cache": cache,
            "id_mapper": id_mapper,
            "adapter": adapter,
            "orchestrator": orchestrator,
            "detector": detector,
            "service": service,
        }
    finally:
        detector.disable()
        await orchestrator.stop()
        logger.info("Bookmark sync shut down")
