"""Copy-on-write mutations of the canonical bookmark tree.

Every function here takes a tree, works on a deep copy and returns the
updated copy.  The tree passed in is never modified, so a tree held by the
cache can be handed straight to these functions.

A missing bookmark or target folder raises
:class:`~bookmark_sync.errors.NotFoundError`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from bookmark_sync.bookmarks.helpers import (
    clean_bookmark,
    copy_bookmarks,
    find_by_id,
    get_supported_url,
    is_separator,
    locate,
    new_bookmark,
    new_separator,
)
from bookmark_sync.bookmarks.models import BookmarkMetadata, Folder, Leaf
from bookmark_sync.errors import NotFoundError

logger = logging.getLogger(__name__)


def _find_folder(bookmarks: list[Folder | Leaf], folder_id: int) -> Folder:
    parent = find_by_id(bookmarks, folder_id)
    if not isinstance(parent, Folder):
        raise NotFoundError(f"Bookmark folder {folder_id} not found.")
    return parent


def insert_bookmark(
    bookmark: Folder | Leaf,
    parent_id: int,
    index: int | None,
    bookmarks: list[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Insert *bookmark* into folder *parent_id* at *index*.

    ``None`` or an out-of-range index appends.

    Raises:
        NotFoundError: If *parent_id* is not a folder in the tree.
    """
    updated = copy_bookmarks(bookmarks)
    parent = _find_folder(updated, parent_id)
    position = len(parent.children) if index is None else max(index, 0)
    parent.children.insert(position, bookmark.model_copy(deep=True))
    return updated


def add_bookmark(
    metadata: BookmarkMetadata,
    parent_id: int,
    index: int | None,
    bookmarks: list[Folder | Leaf],
    new_tab_url: str | None = None,
) -> tuple[Folder | Leaf, list[Folder | Leaf]]:
    """Create a bookmark, folder or separator from *metadata* and insert it.

    Returns:
        ``(new_bookmark, updated_tree)``.

    Raises:
        NotFoundError: If *parent_id* is not a folder in the tree.
    """
    if is_separator(metadata, new_tab_url):
        created: Folder | Leaf = new_separator(bookmarks)
    else:
        created = new_bookmark(
            metadata.title,
            metadata.url,
            metadata.description,
            metadata.tags,
            bookmarks,
        )
    updated = insert_bookmark(created, parent_id, index, bookmarks)
    logger.debug("Added bookmark %s under %s", created.id, parent_id)
    return created, updated


def modify_bookmark_by_id(
    bookmark_id: int,
    metadata: BookmarkMetadata,
    bookmarks: list[Folder | Leaf],
    new_tab_url: str | None = None,
) -> list[Folder | Leaf]:
    """Apply *metadata* to bookmark *bookmark_id*.

    The title is always replaced; description and tags are replaced on
    leaves.  The url is kept when the new one is only the new-tab url
    standing in for an url the browser could not store.  A node that now
    looks like a separator is rewritten as a bare separator with the same
    ID.

    Raises:
        NotFoundError: If *bookmark_id* is not in the tree.
    """
    updated = copy_bookmarks(bookmarks)
    location = locate(updated, bookmark_id)
    if location is None:
        raise NotFoundError(f"Bookmark {bookmark_id} not found.")
    siblings, position = location
    node = siblings[position]

    if isinstance(node, Leaf):
        url = node.url
        if (
            metadata.url is not None
            and metadata.url != url
            and (
                metadata.url != new_tab_url
                or url == get_supported_url(url, new_tab_url)
            )
        ):
            url = metadata.url
        modified: Folder | Leaf = node.model_copy(
            update={
                "title": metadata.title,
                "url": url,
                "description": metadata.description,
                "tags": metadata.tags,
            }
        )
        if is_separator(modified, new_tab_url):
            modified = Leaf(id=node.id, title=new_separator().title)
    else:
        modified = node.model_copy(update={"title": metadata.title})

    siblings[position] = clean_bookmark(modified)
    return updated


def remove_bookmark_by_id(
    bookmark_id: int, bookmarks: list[Folder | Leaf]
) -> list[Folder | Leaf]:
    """Remove bookmark *bookmark_id* and its descendants.

    Raises:
        NotFoundError: If *bookmark_id* is not in the tree.
    """
    updated = copy_bookmarks(bookmarks)
    location = locate(updated, bookmark_id)
    if location is None:
        raise NotFoundError(f"Bookmark {bookmark_id} not found.")
    siblings, position = location
    del siblings[position]
    return updated


def move_bookmark(
    bookmark_id: int,
    parent_id: int,
    index: int | None,
    bookmarks: list[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Move bookmark *bookmark_id* to position *index* of *parent_id*.

    *index* is the position after removal from the old location and is
    clamped to the target folder's bounds.

    Raises:
        NotFoundError: If the bookmark or the target folder is missing, or
            the target lies inside the bookmark being moved.
    """
    updated = copy_bookmarks(bookmarks)
    location = locate(updated, bookmark_id)
    if location is None:
        raise NotFoundError(f"Bookmark {bookmark_id} not found.")
    siblings, position = location
    node = siblings.pop(position)

    # The target must still be reachable once the node is detached.
    parent = _find_folder(updated, parent_id)
    position = len(parent.children) if index is None else index
    position = min(max(position, 0), len(parent.children))
    parent.children.insert(position, node)
    return updated


def reorder_children(
    parent_id: int,
    child_ids: Iterable[int],
    bookmarks: list[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Reorder the children of *parent_id* to follow *child_ids*.

    Listed children come first in the listed order; children missing from
    the list keep their relative order after them.  Unknown IDs are ignored.

    Raises:
        NotFoundError: If *parent_id* is not a folder in the tree.
    """
    updated = copy_bookmarks(bookmarks)
    parent = _find_folder(updated, parent_id)
    by_id = {child.id: child for child in parent.children}
    ordered: list[Folder | Leaf] = []
    for child_id in child_ids:
        child = by_id.pop(child_id, None)
        if child is not None:
            ordered.append(child)
    ordered.extend(c for c in parent.children if c.id in by_id)
    parent.children = ordered
    return updated
