"""Reserved top-level container folders.

Containers are identified structurally: a top-level ``Folder`` whose
title is one of the :class:`BookmarkContainer` values.  This module finds
and creates them, prunes empty ones before export, and migrates trees
written with the legacy container names.
"""

from __future__ import annotations

import logging

from bookmark_sync.bookmarks.helpers import (
    copy_bookmarks,
    find_by_id,
    get_new_id,
)
from bookmark_sync.bookmarks.models import (
    CONTAINER_ORDER,
    BookmarkContainer,
    Folder,
    Leaf,
)
from bookmark_sync.constants import (
    LEGACY_OTHER_TITLE,
    LEGACY_TOOLBAR_TITLE,
    LEGACY_XBS_RELABELED_TITLE,
    LEGACY_XBS_TITLE,
)

logger = logging.getLogger(__name__)

_CONTAINER_TITLES = frozenset(c.value for c in BookmarkContainer)

# One-time migration table for trees synced by old clients.
_LEGACY_RENAMES = {
    LEGACY_OTHER_TITLE: BookmarkContainer.OTHER.value,
    LEGACY_TOOLBAR_TITLE: BookmarkContainer.TOOLBAR.value,
}


def bookmark_is_container(bookmark: Folder | Leaf | None) -> bool:
    """Return ``True`` if *bookmark* is titled like a container folder."""
    return isinstance(bookmark, Folder) and bookmark.title in _CONTAINER_TITLES


def get_container(
    name: BookmarkContainer | str,
    bookmarks: list[Folder | Leaf],
    create_if_missing: bool = False,
) -> Folder | None:
    """Return the top-level container titled *name*.

    When absent and *create_if_missing* is set, an empty container with a
    fresh ID is appended to *bookmarks* in place and returned.
    """
    title = BookmarkContainer(name).value
    for bookmark in bookmarks:
        if isinstance(bookmark, Folder) and bookmark.title == title:
            return bookmark

    if not create_if_missing:
        return None

    container = Folder(id=get_new_id(bookmarks), title=title)
    bookmarks.append(container)
    logger.debug("Created missing container %s (id %s)", title, container.id)
    return container


def get_container_by_bookmark_id(
    bookmark_id: int, bookmarks: list[Folder | Leaf]
) -> Folder | None:
    """Return the container holding *bookmark_id*, or the container itself."""
    for bookmark in bookmarks:
        if not bookmark_is_container(bookmark):
            continue
        if bookmark.id == bookmark_id or find_by_id(
            bookmark.children, bookmark_id
        ):
            return bookmark
    return None


def remove_empty_containers(
    bookmarks: list[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Return *bookmarks* without containers that have no children."""
    return [
        b
        for b in bookmarks
        if not (bookmark_is_container(b) and not b.children)
    ]


def ensure_containers_exist(
    bookmarks: list[Folder | Leaf], sync_toolbar: bool = True
) -> list[Folder | Leaf]:
    """Return a copy of *bookmarks* with the synced containers present.

    Menu and Other are always required; Toolbar only when toolbar sync is
    enabled.  Mobile is never created here.
    """
    updated = copy_bookmarks(bookmarks)
    for name in CONTAINER_ORDER:
        if name is BookmarkContainer.MOBILE:
            continue
        if name is BookmarkContainer.TOOLBAR and not sync_toolbar:
            continue
        get_container(name, updated, create_if_missing=True)
    return updated


def upgrade_legacy_containers(
    bookmarks: list[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Return a copy of *bookmarks* migrated from legacy container names.

    ``_other_`` and ``_toolbar_`` are renamed to Other and Toolbar.  A
    top-level ``_xBrowserSync_`` folder is moved to the start of Other,
    created if needed, under a relabelled title.  A tree without legacy
    names comes back unchanged.
    """
    updated = copy_bookmarks(bookmarks)
    for bookmark in updated:
        if isinstance(bookmark, Folder) and bookmark.title in _LEGACY_RENAMES:
            logger.info(
                "Renaming legacy container %s to %s",
                bookmark.title,
                _LEGACY_RENAMES[bookmark.title],
            )
            bookmark.title = _LEGACY_RENAMES[bookmark.title]

    legacy = next(
        (
            b
            for b in updated
            if isinstance(b, Folder) and b.title == LEGACY_XBS_TITLE
        ),
        None,
    )
    if legacy is not None:
        # Create Other while the legacy IDs still count towards get_new_id.
        other = get_container(
            BookmarkContainer.OTHER, updated, create_if_missing=True
        )
        updated.remove(legacy)
        legacy.title = LEGACY_XBS_RELABELED_TITLE
        other.children.insert(0, legacy)
        logger.info("Moved legacy %s folder into Other", LEGACY_XBS_TITLE)

    return updated
