"""Canonical bookmark tree.

Modules:

- ``models``      -- ``Folder``, ``Leaf``, ``BookmarkContainer`` and the
  JSON helpers for the plaintext that gets encrypted.
- ``helpers``     -- traversal, ID allocation, construction and cleaning.
- ``operations``  -- copy-on-write add/modify/remove/move/reorder.
- ``containers``  -- reserved top-level folders and legacy migration.
- ``search``      -- keyword/url search and lookahead suggestions.
"""

from .models import (
    CONTAINER_ORDER,
    Bookmark,
    BookmarkContainer,
    BookmarkMetadata,
    BookmarkSearchResult,
    Folder,
    Leaf,
    bookmarks_from_json,
    bookmarks_from_list,
    bookmarks_to_json,
    bookmarks_to_list,
)

__all__ = [
    "CONTAINER_ORDER",
    "Bookmark",
    "BookmarkContainer",
    "BookmarkMetadata",
    "BookmarkSearchResult",
    "Folder",
    "Leaf",
    "bookmarks_from_json",
    "bookmarks_from_list",
    "bookmarks_to_json",
    "bookmarks_to_list",
]
