"""Pydantic models for the canonical bookmark tree.

Defines the data contracts shared by every module that touches the
synced tree:

- ``Folder``: a node with ordered ``children`` (containers are Folders).
- ``Leaf``: a node with a ``url``; separators are Leaves too.
- ``Bookmark``: the tagged union of the two.  Dicts with a ``children`` key
  validate as ``Folder``, everything else as ``Leaf``, so no type tag is
  ever persisted.
- ``BookmarkContainer``: the reserved top-level folder titles.
- ``BookmarkMetadata``: the editable fields of a bookmark.
- ``BookmarkSearchResult``: a Leaf annotated with a search score.

Both node models forbid unknown fields, which keeps a Folder from carrying
a ``url`` and a Leaf from carrying ``children``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Iterable, Union

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter


class BookmarkContainer(str, Enum):
    """Reserved titles of the top-level container folders."""

    MENU = "Menu"
    MOBILE = "Mobile"
    OTHER = "Other"
    TOOLBAR = "Toolbar"


# Order in which containers are laid out and assigned IDs.
CONTAINER_ORDER = (
    BookmarkContainer.MENU,
    BookmarkContainer.MOBILE,
    BookmarkContainer.OTHER,
    BookmarkContainer.TOOLBAR,
)


class Leaf(BaseModel):
    """A bookmark with a url, or a separator.

    Attributes:
        id: Canonical ID, unique across the tree.
        title: Display title.
        url: Target url (absent only for separators).
        description: Optional description, word-trimmed on creation.
        tags: Optional ordered tags.
    """

    id: int | None = None
    title: str | None = None
    url: str | None = None
    description: str | None = None
    tags: list[str] | None = None

    model_config = {"extra": "forbid"}


class Folder(BaseModel):
    """A bookmark folder.

    Attributes:
        id: Canonical ID, unique across the tree.
        title: Folder title (a reserved title makes it a container).
        children: Ordered child bookmarks, possibly empty.
    """

    id: int | None = None
    title: str | None = None
    children: list[Bookmark] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


def _bookmark_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "folder" if "children" in value else "leaf"
    return "folder" if isinstance(value, Folder) else "leaf"


Bookmark = Annotated[
    Union[
        Annotated[Folder, Tag("folder")],
        Annotated[Leaf, Tag("leaf")],
    ],
    Discriminator(_bookmark_kind),
]

Folder.model_rebuild()


class BookmarkMetadata(BaseModel):
    """Editable fields of a bookmark, as supplied by a user or a web page."""

    title: str | None = None
    url: str | None = None
    description: str | None = None
    tags: list[str] | None = None


class BookmarkSearchResult(Leaf):
    """A matching leaf together with its keyword score."""

    score: int = 0


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

_BOOKMARK_LIST = TypeAdapter(list[Bookmark])


def bookmarks_to_list(bookmarks: Iterable[Folder | Leaf]) -> list[dict]:
    """Dump a tree to plain dicts, dropping unset fields."""
    return [b.model_dump(exclude_none=True) for b in bookmarks]


def bookmarks_to_json(bookmarks: Iterable[Folder | Leaf]) -> str:
    """Serialise a tree to the compact JSON that gets encrypted."""
    return json.dumps(
        bookmarks_to_list(bookmarks),
        ensure_ascii=False,
        separators=(",", ":"),
    )


def bookmarks_from_list(data: list[dict]) -> list[Folder | Leaf]:
    """Validate a list of plain dicts into a tree."""
    return _BOOKMARK_LIST.validate_python(data)


def bookmarks_from_json(text: str | None) -> list[Folder | Leaf]:
    """Parse serialised bookmarks; empty text is an empty tree.

    Raises:
        pydantic.ValidationError: If *text* is not a valid bookmark list.
    """
    if not text:
        return []
    return _BOOKMARK_LIST.validate_json(text)
