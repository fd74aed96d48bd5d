"""Local key-value persistence.

``FileStore`` keeps every key in one JSON file inside the state directory
(``.bookmark_sync/`` by default).  It backs the encrypted bookmarks cache,
the sync settings flags and the bookmark ID mappings.

Key design choices:

* **Atomic writes** -- ``set()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Whole-file values** -- the file is small (one encrypted blob plus a
  mapping table), so each ``set()`` rewrites it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StoreKey(str, Enum):
    """Keys persisted in the local store."""

    BOOKMARKS = "bookmarks"
    SYNC_BOOKMARKS_TOOLBAR = "syncBookmarksToolbar"
    SYNC_ENABLED = "syncEnabled"
    BOOKMARK_ID_MAPPINGS = "bookmarkIdMappings"


def _key(key: StoreKey | str) -> str:
    return key.value if isinstance(key, StoreKey) else key


class FileStore:
    """JSON-file key-value store.

    Args:
        state_dir: Directory holding the store file; created on first write.
        name: File name inside *state_dir*.
    """

    def __init__(self, state_dir: Path, name: str = "store.json") -> None:
        self._state_dir = Path(state_dir)
        self._path = self._state_dir / name
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: StoreKey | str) -> Any:
        """Return the value stored under *key*, or ``None``."""
        with self._lock:
            return self._load().get(_key(key))

    def set(self, key: StoreKey | str, value: Any) -> None:
        """Store *value* under *key*; ``None`` removes the key."""
        with self._lock:
            data = self._load()
            if value is None:
                data.pop(_key(key), None)
            else:
                data[_key(key)] = value
            self._save(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, encoding="utf-8") as fh:
            return json.load(fh)

    def _save(self, data: dict[str, Any]) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Saved store %s (%d keys)", self._path, len(data))
