"""Keyword/url search and lookahead suggestions over a bookmark tree.

Only leaves are ever returned or mined for words; folders are descended
into.  Search results are :class:`BookmarkSearchResult` copies, so callers
can keep them without holding references into a cached tree.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Sequence

from bookmark_sync.bookmarks.helpers import iter_bookmarks, split_text_into_words
from bookmark_sync.bookmarks.models import BookmarkSearchResult, Folder, Leaf
from bookmark_sync.constants import LOOKAHEAD_MIN_LENGTH

_HOST_PATTERN = re.compile(r"^(?:https?://)?(www\.)?([^/:?#]+)")
_TITLE_SPLIT_PATTERN = re.compile(r"[\W_]")


def _leaves(bookmarks: Iterable[Folder | Leaf]) -> Iterable[Leaf]:
    for node in iter_bookmarks(bookmarks):
        if isinstance(node, Leaf) and node.url:
            yield node


def _to_result(leaf: Leaf, score: int = 0) -> BookmarkSearchResult:
    return BookmarkSearchResult(
        **leaf.model_dump(exclude={"score"}), score=score
    )


def search_by_url(
    bookmarks: Iterable[Folder | Leaf], url: str
) -> list[BookmarkSearchResult]:
    """Return leaves whose url contains *url*, ignoring case, in pre-order."""
    needle = url.lower()
    return [
        _to_result(leaf) for leaf in _leaves(bookmarks) if needle in leaf.url.lower()
    ]


def _keyword_words(leaf: Leaf) -> list[str]:
    words = split_text_into_words(leaf.title)
    words += split_text_into_words(leaf.description)
    if leaf.tags:
        words += split_text_into_words(" ".join(leaf.tags))
    return words


def search_by_keywords(
    bookmarks: Iterable[Folder | Leaf], keywords: Sequence[str]
) -> list[BookmarkSearchResult]:
    """Return leaves matching every keyword, with their scores.

    A keyword matches a leaf when it is a case-insensitive prefix of at
    least one word of the title, description or tags.  The score sums, per
    keyword, the number of words it prefixes.  With no keywords every leaf
    matches with score 0.
    """
    needles = [k.lower() for k in keywords if k]
    results: list[BookmarkSearchResult] = []
    for leaf in _leaves(bookmarks):
        words = _keyword_words(leaf)
        scores = [sum(1 for w in words if w.startswith(k)) for k in needles]
        if all(scores):
            results.append(_to_result(leaf, sum(scores)))
    return results


def search(
    bookmarks: Iterable[Folder | Leaf],
    url: str | None = None,
    keywords: Sequence[str] | None = None,
) -> list[BookmarkSearchResult]:
    """Search by url and/or keywords.

    When *url* is given the candidates are first narrowed to url matches,
    then filtered and scored by *keywords*.  Results are ordered by score,
    then by ID, both descending.
    """
    candidates: Iterable[Folder | Leaf] = bookmarks
    if url:
        candidates = search_by_url(bookmarks, url)
    results = search_by_keywords(candidates, keywords or [])
    return sorted(
        results, key=lambda r: (r.score, r.id or 0), reverse=True
    )


def _lookahead_words(leaf: Leaf, tags_only: bool) -> list[str]:
    if tags_only:
        return [tag.lower() for tag in leaf.tags or [] if tag]

    words: list[str] = []
    if leaf.title:
        title = leaf.title.replace("'", "").lower()
        words += [w for w in _TITLE_SPLIT_PATTERN.split(title) if w]
    for tag in leaf.tags or []:
        words += tag.lower().split()

    match = _HOST_PATTERN.match(leaf.url.lower())
    if match:
        www, host = match.groups()
        if www:
            words.append(www + host)
        words.append(host)
    return words


def get_lookahead(
    word: str | None,
    bookmarks: Iterable[Folder | Leaf],
    tags_only: bool = False,
    exclusions: Iterable[str] = (),
) -> str | None:
    """Suggest the most common word of the tree that starts with *word*.

    Candidates come from titles, tags and url hosts (or whole tags only
    with *tags_only*).  Candidates shorter than three characters and those
    in *exclusions* are dropped.  Ties go to the shorter candidate, then to
    the first one seen.

    Returns:
        The suggested word, or ``None`` when nothing matches.
    """
    if not word:
        return None

    prefix = word.lower()
    excluded = set(exclusions)
    candidates = [
        candidate
        for leaf in _leaves(bookmarks)
        for candidate in _lookahead_words(leaf, tags_only)
        if len(candidate) >= LOOKAHEAD_MIN_LENGTH
        and candidate.startswith(prefix)
        and candidate not in excluded
    ]
    if not candidates:
        return None

    # Counter keeps first-seen order, and max() keeps the first maximum.
    counts = Counter(sorted(candidates, key=len))
    return max(counts.items(), key=lambda item: item[1])[0]
