"""HTTP client for the remote bookmarks sync service.

The service stores one opaque encrypted blob per sync ID:

* ``GET  {api_url}/bookmarks/{sync_id}`` returns
  ``{"bookmarks": ..., "version": ..., "lastUpdated": ...}``.
* ``PUT  {api_url}/bookmarks/{sync_id}`` stores
  ``{"bookmarks": ..., "lastUpdated": ...}`` and returns the new
  ``lastUpdated``.

The last write wins; ``lastUpdated`` is sent so the service can refuse a
push based on a stale read, which surfaces as a retryable error.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from bookmark_sync.errors import PayloadTooLargeError, RemoteSyncError
from bookmark_sync.validators import (
    validate_api_url,
    validate_sync_id,
    validate_sync_payload,
)

logger = logging.getLogger(__name__)


class SyncApiClient:
    """Blocking client for the sync service.

    Each thread gets its own ``requests.Session``, so the client can be
    shared by the worker threads used through ``run_sync``.

    Args:
        api_url: Base url of the sync service.
        sync_id: 32-character hexadecimal sync ID.
        timeout: ``(connect, read)`` timeout in seconds for each request.

    Raises:
        ValueError: If *api_url* or *sync_id* is invalid.
    """

    def __init__(
        self,
        api_url: str,
        sync_id: str,
        timeout: tuple[float, float] = (10, 60),
    ) -> None:
        is_valid, error_msg = validate_api_url(api_url)
        if not is_valid:
            raise ValueError(f"Invalid API url: {error_msg}")
        is_valid, error_msg = validate_sync_id(sync_id)
        if not is_valid:
            raise ValueError(f"Invalid sync ID: {error_msg}")

        self.api_url = api_url.rstrip("/")
        self.sync_id = sync_id
        self.timeout = timeout
        self.last_updated: str | None = None
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.headers["Accept"] = "application/json"
            self._thread_local.session = session
        return self._thread_local.session

    def _bookmarks_url(self) -> str:
        return f"{self.api_url}/bookmarks/{self.sync_id}"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self._get_session().request(
                method, url, timeout=self.timeout, **kwargs
            )
            if response.status_code == 413:
                raise PayloadTooLargeError(
                    "Bookmarks data exceeds the service size limit."
                )
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.RequestException as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise RemoteSyncError(
                f"Sync service request failed: {exc}"
            ) from exc
        except ValueError as exc:
            raise RemoteSyncError(
                f"Sync service returned invalid JSON: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Remote store API
    # ------------------------------------------------------------------

    def get_bookmarks(self) -> dict[str, Any]:
        """Fetch the encrypted bookmarks.

        Returns:
            Dict with ``bookmarks`` (may be ``None`` for a new sync ID),
            ``version`` and ``lastUpdated``.

        Raises:
            RemoteSyncError: On network or HTTP errors.
        """
        data = self._request("GET", self._bookmarks_url())
        self.last_updated = data.get("lastUpdated")
        return data

    def push_bookmarks(self, encrypted: str) -> dict[str, Any]:
        """Store *encrypted* as the new remote bookmarks.

        Raises:
            PayloadTooLargeError: If *encrypted* exceeds the size limit.
            RemoteSyncError: On network or HTTP errors.
        """
        is_valid, error_msg = validate_sync_payload(encrypted)
        if not is_valid:
            if "exceeds" in error_msg:
                raise PayloadTooLargeError(error_msg)
            raise RemoteSyncError(error_msg)

        body: dict[str, Any] = {"bookmarks": encrypted}
        if self.last_updated:
            body["lastUpdated"] = self.last_updated
        data = self._request("PUT", self._bookmarks_url(), json=body)
        self.last_updated = data.get("lastUpdated", self.last_updated)
        logger.info("Pushed %d bytes of bookmarks", len(encrypted.encode()))
        return data
