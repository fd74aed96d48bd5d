"""Bidirectional table between native and canonical bookmark IDs.

The table is held as two dicts that are rebuilt and swapped on every
change, never edited, so lookups from other threads always see a complete
table.  When a store is given the table is persisted under
``StoreKey.BOOKMARK_ID_MAPPINGS`` after each change.
"""

from __future__ import annotations

import logging
from typing import Iterable

from bookmark_sync.errors import IdMappingError
from bookmark_sync.native.models import IdMapping
from bookmark_sync.protocols import KeyValueStore
from bookmark_sync.store import StoreKey

logger = logging.getLogger(__name__)


class BookmarkIdMapper:
    """Map native IDs to canonical IDs and back.

    Args:
        store: Optional store to load the table from and persist it to.
    """

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self._store = store
        # (native -> canonical, canonical -> native), swapped as one value
        self._tables: tuple[dict[str, int], dict[int, str]] = ({}, {})
        if store is not None:
            self.load()

    def __len__(self) -> int:
        return len(self._tables[0])

    @property
    def mappings(self) -> list[IdMapping]:
        """All rows, ordered by canonical ID."""
        return [
            IdMapping(native_id=native_id, canonical_id=canonical_id)
            for canonical_id, native_id in sorted(self._tables[1].items())
        ]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_canonical(self, native_id: str | None) -> int | None:
        if native_id is None:
            return None
        return self._tables[0].get(native_id)

    def find_native(self, canonical_id: int | None) -> str | None:
        if canonical_id is None:
            return None
        return self._tables[1].get(canonical_id)

    def get_canonical(self, native_id: str | None) -> int:
        """Return the canonical ID for *native_id*.

        Raises:
            IdMappingError: If *native_id* is not mapped.
        """
        canonical_id = self.find_canonical(native_id)
        if canonical_id is None:
            raise IdMappingError(
                f"No bookmark ID mapping found for native ID {native_id}."
            )
        return canonical_id

    def get_native(self, canonical_id: int | None) -> str:
        """Return the native ID for *canonical_id*.

        Raises:
            IdMappingError: If *canonical_id* is not mapped.
        """
        native_id = self.find_native(canonical_id)
        if native_id is None:
            raise IdMappingError(
                f"No bookmark ID mapping found for bookmark {canonical_id}."
            )
        return native_id

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    def add(self, mappings: Iterable[IdMapping]) -> None:
        """Add rows, replacing any row sharing either ID."""
        by_native, by_canonical = (dict(t) for t in self._tables)
        for mapping in mappings:
            old_canonical = by_native.pop(mapping.native_id, None)
            if old_canonical is not None:
                by_canonical.pop(old_canonical, None)
            old_native = by_canonical.pop(mapping.canonical_id, None)
            if old_native is not None:
                by_native.pop(old_native, None)
            by_native[mapping.native_id] = mapping.canonical_id
            by_canonical[mapping.canonical_id] = mapping.native_id
        self._swap(by_native, by_canonical)

    def remove(
        self,
        canonical_ids: Iterable[int] = (),
        native_ids: Iterable[str] = (),
    ) -> None:
        """Remove the rows of the given IDs; unknown IDs are ignored."""
        by_native, by_canonical = (dict(t) for t in self._tables)
        for canonical_id in canonical_ids:
            native_id = by_canonical.pop(canonical_id, None)
            if native_id is not None:
                by_native.pop(native_id, None)
        for native_id in native_ids:
            canonical_id = by_native.pop(native_id, None)
            if canonical_id is not None:
                by_canonical.pop(canonical_id, None)
        self._swap(by_native, by_canonical)

    def set(self, mappings: Iterable[IdMapping]) -> None:
        """Replace the whole table."""
        by_native = {m.native_id: m.canonical_id for m in mappings}
        self._swap(by_native, {v: k for k, v in by_native.items()})

    def clear(self) -> None:
        self._swap({}, {})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the table with the persisted one."""
        if self._store is None:
            return
        rows = self._store.get(StoreKey.BOOKMARK_ID_MAPPINGS) or []
        by_native = {
            m.native_id: m.canonical_id
            for m in (IdMapping.model_validate(row) for row in rows)
        }
        self._tables = (by_native, {v: k for k, v in by_native.items()})
        logger.debug("Loaded %d bookmark ID mappings", len(by_native))

    def _swap(
        self, by_native: dict[str, int], by_canonical: dict[int, str]
    ) -> None:
        self._tables = (by_native, by_canonical)
        if self._store is not None:
            self._store.set(
                StoreKey.BOOKMARK_ID_MAPPINGS,
                [m.model_dump() for m in self.mappings],
            )
