"""Exception hierarchy for bookmark-sync.

Every error raised by the core derives from ``BookmarkSyncError`` and
carries a ``retryable`` flag.  The core only classifies failures; retry
scheduling and user messaging belong to the caller.

============================  =========  ==================================
Error                         Retryable  Raised when
============================  =========  ==================================
``NotFoundError``             no         an ID lookup misses in a tree op
``ContainerNotFoundError``    no         a required native root is missing
``DecryptionError``           no         ciphertext cannot be decrypted
``IdMappingError``            no         a native ID has no canonical ID
``RemoteSyncError``           yes        the remote push/fetch fails
``PayloadTooLargeError``      no         a push exceeds the size limit
============================  =========  ==================================
"""

from __future__ import annotations


class BookmarkSyncError(Exception):
    """Base class for all bookmark-sync errors."""

    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or "")
        self.message = str(self)


class NotFoundError(BookmarkSyncError):
    """Bookmark not found."""


class ContainerNotFoundError(BookmarkSyncError):
    """Native bookmark container not found."""


class DecryptionError(BookmarkSyncError):
    """Failed to decrypt bookmarks data."""


class IdMappingError(BookmarkSyncError):
    """No bookmark ID mapping found."""


class RemoteSyncError(BookmarkSyncError):
    """Remote bookmarks sync failed."""

    retryable = True


class PayloadTooLargeError(RemoteSyncError):
    """Bookmarks data exceeds the remote size limit."""

    retryable = False
