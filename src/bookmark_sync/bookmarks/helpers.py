"""Traversal, construction and cleaning helpers for bookmark trees.

All traversal is depth-first pre-order and iterative, so deep trees never
hit the recursion limit.  The helpers accept canonical nodes (``Folder`` /
``Leaf``) and, where noted, native nodes, which share the ``id``,
``title``, ``url`` and ``children`` attributes.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, Iterator, Sequence

from bookmark_sync.bookmarks.models import (
    BookmarkMetadata,
    Folder,
    Leaf,
)
from bookmark_sync.constants import (
    DESCRIPTION_MAX_LENGTH,
    HORIZONTAL_SEPARATOR_TITLE,
    SEPARATOR_TITLE,
    VERTICAL_SEPARATOR_TITLE,
)

_SEPARATOR_PATTERN = re.compile(r"^[-─]+$")
_WORD_SPLIT_PATTERN = re.compile(r"[\W_]+")
_QUOTES_PATTERN = re.compile(r"['\"’‘]")
_HTML_TAG_PATTERN = re.compile(r"<[^>]*>")
_SUPPORTED_URL_PATTERN = re.compile(
    r"^(?!chrome|opera|data|about|edge|moz-extension)[\w-]+:", re.IGNORECASE
)

# Fields emptied to None by clean_bookmark(); children is never touched.
_CLEANABLE_FIELDS = ("title", "url", "description", "tags")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_bookmarks(bookmarks: Iterable[Any]) -> Iterator[Any]:
    """Yield every node of *bookmarks* in depth-first pre-order."""
    stack = list(reversed(list(bookmarks)))
    while stack:
        node = stack.pop()
        yield node
        children = getattr(node, "children", None)
        if children:
            stack.extend(reversed(children))


def each_bookmark(
    bookmarks: Iterable[Any],
    visit: Callable[[Any], None],
    until: Callable[[], bool] | None = None,
) -> None:
    """Call *visit* on every node in pre-order.

    *until* is checked before each visit; once it returns ``True`` no
    further nodes are visited.  Visits already made are not undone.
    """
    for node in iter_bookmarks(bookmarks):
        if until is not None and until():
            return
        visit(node)


def find_by_id(bookmarks: Iterable[Any], bookmark_id: Any) -> Any | None:
    """Return the first node with *bookmark_id* in pre-order, or ``None``."""
    for node in iter_bookmarks(bookmarks):
        if node.id == bookmark_id:
            return node
    return None


def find_native_by_id(
    nodes: Sequence[Any], native_id: str
) -> tuple[Any | None, int | None]:
    """Find a native node and its position among its siblings.

    Native ``index`` values are unreliable, so the index returned here is
    the position observed in the parent's ``children`` list.

    Returns:
        ``(node, index)``, or ``(None, None)`` if no node has *native_id*.
    """
    stack: list[tuple[Any, int]] = [
        (node, i) for i, node in reversed(list(enumerate(nodes)))
    ]
    while stack:
        node, index = stack.pop()
        if node.id == native_id:
            return node, index
        children = getattr(node, "children", None) or []
        stack.extend(
            (child, i) for i, child in reversed(list(enumerate(children)))
        )
    return None, None


def find_parent(
    bookmarks: Iterable[Folder | Leaf], bookmark_id: int
) -> Folder | None:
    """Return the folder directly containing *bookmark_id*.

    Returns ``None`` for top-level nodes and for unknown IDs.
    """
    for node in iter_bookmarks(bookmarks):
        if isinstance(node, Folder) and any(
            child.id == bookmark_id for child in node.children
        ):
            return node
    return None


def locate(
    bookmarks: list[Folder | Leaf], bookmark_id: int
) -> tuple[list[Folder | Leaf], int] | None:
    """Return ``(siblings, index)`` for *bookmark_id*, or ``None``.

    *siblings* is the live list holding the node, so callers can replace
    or remove it in place.
    """
    for i, node in enumerate(bookmarks):
        if node.id == bookmark_id:
            return bookmarks, i
    parent = find_parent(bookmarks, bookmark_id)
    if parent is None:
        return None
    for i, child in enumerate(parent.children):
        if child.id == bookmark_id:
            return parent.children, i
    return None


def get_ids_from_descendants(bookmark: Any) -> list[int]:
    """Return the IDs of every descendant of *bookmark* in pre-order."""
    children = getattr(bookmark, "children", None)
    if not children:
        return []
    return [node.id for node in iter_bookmarks(children)]


def copy_bookmarks(
    bookmarks: Iterable[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Deep-copy a tree so the copy can be mutated freely."""
    return [b.model_copy(deep=True) for b in bookmarks]


# ---------------------------------------------------------------------------
# IDs
# ---------------------------------------------------------------------------


def get_new_id(
    bookmarks: Iterable[Any], reserved_ids: Iterable[int] = ()
) -> int:
    """Return an ID above every ID in the tree and in *reserved_ids*.

    *reserved_ids* holds IDs already handed out in the current batch but not
    yet present in the tree.
    """
    highest = max(
        (
            int(node.id)
            for node in iter_bookmarks(bookmarks)
            if node.id is not None
        ),
        default=0,
    )
    highest_reserved = max(reserved_ids, default=0)
    return max(highest, highest_reserved) + 1


class IdAllocator:
    """Hand out consecutive IDs above a tree and a reservation list.

    Scans the tree once instead of once per node when a whole batch of
    nodes needs IDs.  Every allocated ID is appended to ``reserved``.
    """

    def __init__(
        self,
        bookmarks: Iterable[Any],
        reserved_ids: list[int] | None = None,
    ) -> None:
        self.reserved = reserved_ids if reserved_ids is not None else []
        self._next = get_new_id(bookmarks, self.reserved)

    def allocate(self) -> int:
        new_id = max(self._next, max(self.reserved, default=0) + 1)
        self.reserved.append(new_id)
        self._next = new_id + 1
        return new_id


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def new_bookmark(
    title: str | None,
    url: str | None = None,
    description: str | None = None,
    tags: list[str] | None = None,
    bookmarks: Iterable[Any] | None = None,
    description_max_length: int = DESCRIPTION_MAX_LENGTH,
) -> Folder | Leaf:
    """Create a new bookmark, or a folder when *url* is empty.

    The title and url are trimmed, the description is trimmed to the
    nearest word within *description_max_length* characters and empty tags
    are dropped.  When *bookmarks* is given the node gets a fresh ID from
    that tree.
    """
    title = title.strip() if title else None
    url = url.strip() if url else None

    node: Folder | Leaf
    if url:
        node = Leaf(
            title=title,
            url=url,
            description=trim_to_nearest_word(
                description, description_max_length
            ),
            tags=list(tags) if tags else None,
        )
    else:
        node = Folder(title=title)

    if bookmarks is not None:
        node.id = get_new_id(bookmarks)

    return clean_bookmark(node)


def new_separator(bookmarks: Iterable[Any] | None = None) -> Leaf:
    """Create a separator leaf, with a fresh ID when *bookmarks* is given."""
    separator = Leaf(title=SEPARATOR_TITLE)
    if bookmarks is not None:
        separator.id = get_new_id(bookmarks)
    return separator


def is_separator(bookmark: Any, new_tab_url: str | None = None) -> bool:
    """Return ``True`` if *bookmark* is a separator.

    A node is a separator when its native ``type`` says so, or when its
    title is made of dashes or a separator marker, it has no url other than
    the browser's new-tab url, and it has no children.
    """
    if bookmark is None:
        return False

    if getattr(bookmark, "type", None) == "separator":
        return True

    title = getattr(bookmark, "title", None)
    if not title:
        return False
    if not (
        _SEPARATOR_PATTERN.match(title)
        or HORIZONTAL_SEPARATOR_TITLE in title
        or title == VERTICAL_SEPARATOR_TITLE
    ):
        return False

    url = getattr(bookmark, "url", None)
    if url and url != new_tab_url:
        return False

    return not getattr(bookmark, "children", None)


def clean_bookmark(bookmark: Folder | Leaf) -> Folder | Leaf:
    """Return a copy of *bookmark* with empty fields removed.

    Empty strings, empty lists and ``None`` become unset.  ``children`` is
    exempt: an empty list is meaningful for a folder.
    """
    updates = {
        name: None
        for name in _CLEANABLE_FIELDS
        if name in type(bookmark).model_fields
        and getattr(bookmark, name) in ("", [])
    }
    return bookmark.model_copy(update=updates, deep=True)


def clean_bookmarks(
    bookmarks: Iterable[Folder | Leaf],
) -> list[Folder | Leaf]:
    """Clean every node of a tree, as done before export."""
    cleaned: list[Folder | Leaf] = []
    for bookmark in bookmarks:
        node = clean_bookmark(bookmark)
        if isinstance(node, Folder):
            node.children = clean_bookmarks(node.children)
        cleaned.append(node)
    return cleaned


def extract_bookmark_metadata(bookmark: Any) -> BookmarkMetadata:
    """Return the editable fields of a canonical or native node."""
    return BookmarkMetadata(
        title=getattr(bookmark, "title", None),
        url=getattr(bookmark, "url", None),
        description=getattr(bookmark, "description", None),
        tags=getattr(bookmark, "tags", None),
    )


# ---------------------------------------------------------------------------
# Text and url utilities
# ---------------------------------------------------------------------------


def trim_to_nearest_word(text: str | None, limit: int) -> str | None:
    """Trim *text* to at most *limit* characters on a word boundary.

    A trimmed text ends with an ellipsis.  Empty input returns ``None``.
    """
    if not text:
        return None
    text = text.strip()
    if len(text) <= limit:
        return text
    cut = text.rfind(" ", 0, limit + 1)
    if cut <= 0:
        cut = limit
    return f"{text[:cut].strip()}…"


def split_text_into_words(text: str | None) -> list[str]:
    """Lower-case *text*, drop quotes and split it on non-word characters."""
    if not text:
        return []
    cleaned = _QUOTES_PATTERN.sub("", text.lower())
    return [word for word in _WORD_SPLIT_PATTERN.split(cleaned) if word]


def get_tags_from_text(text: str | None) -> list[str] | None:
    """Parse a comma-separated tag string into unique, sorted tags."""
    if not text:
        return None
    tags: list[str] = []
    for raw in text.split(","):
        tag = raw.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return sorted(tags, key=str.lower) or None


def strip_tags(text: str | None) -> str | None:
    """Remove html tags from *text*."""
    if text is None:
        return None
    return _HTML_TAG_PATTERN.sub("", text).strip()


def url_is_supported(url: str | None) -> bool:
    """Return ``True`` if a native bookmark can be created for *url*."""
    return bool(url) and bool(_SUPPORTED_URL_PATTERN.match(url))


def get_supported_url(url: str | None, new_tab_url: str | None) -> str | None:
    """Return *url* if it is supported natively, else the new-tab url."""
    return url if url_is_supported(url) else new_tab_url
