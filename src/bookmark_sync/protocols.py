"""Interfaces of the collaborators the sync core depends on.

The core talks to the browser, the remote service, the cipher and local
storage only through these protocols.  All of them are synchronous; the
async orchestrator bridges blocking calls with
:func:`bookmark_sync.core.async_utils.run_sync`.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable


class RemoteStore(Protocol):
    """Remote copy of the encrypted bookmarks."""

    def get_bookmarks(self) -> dict[str, Any]:
        """Return a dict whose ``bookmarks`` key holds the encrypted blob."""
        ...

    def push_bookmarks(self, encrypted: str) -> dict[str, Any]:
        """Store *encrypted* remotely and return the acknowledgement."""
        ...


class CryptoService(Protocol):
    """Symmetric cipher for the bookmarks plaintext."""

    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> str: ...


class KeyValueStore(Protocol):
    """Persistent local key-value storage."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


@runtime_checkable
class NativeBookmarksHost(Protocol):
    """The browser's native bookmarks API.

    Nodes are plain dicts shaped like ``{id, parentId, title, url,
    children, type, index, dateAdded}``.  Event names are ``created``,
    ``changed``, ``moved``, ``removed`` and ``children_reordered``.
    """

    def get_tree(self) -> list[dict[str, Any]]: ...

    def get_subtree(self, native_id: str) -> list[dict[str, Any]]: ...

    def get_children(self, native_id: str) -> list[dict[str, Any]]: ...

    def create(self, details: dict[str, Any]) -> dict[str, Any]: ...

    def remove_tree(self, native_id: str) -> None: ...

    def add_listener(self, event: str, handler: Callable[..., Any]) -> None: ...

    def remove_listener(
        self, event: str, handler: Callable[..., Any]
    ) -> None: ...


class PageMetadataProvider(Protocol):
    """Access to the page in the browser's active tab."""

    def get_current_url(self) -> str | None: ...

    def get_page_metadata(self) -> dict[str, Any] | None:
        """Return ``{title, url, description, tags}`` for the active page."""
        ...
