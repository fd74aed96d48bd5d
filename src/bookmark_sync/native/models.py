"""Pydantic models for the browser's native bookmark shapes.

The host API delivers camelCase dicts (``parentId``, ``dateAdded``); the
models accept those aliases and the snake_case field names alike.  Unknown
keys are ignored so vendor-specific extras do not break parsing.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class NativeBookmarkNode(BaseModel):
    """A node of the native tree as reported by the host.

    ``index`` is whatever the host reported and may be stale; use
    :func:`~bookmark_sync.bookmarks.helpers.find_native_by_id` when the
    real position matters.
    """

    id: str
    parent_id: str | None = Field(default=None, alias="parentId")
    title: str = ""
    url: str | None = None
    children: list[NativeBookmarkNode] | None = None
    type: str | None = None
    index: int | None = None
    date_added: float | None = Field(default=None, alias="dateAdded")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class NativeChangeInfo(BaseModel):
    """Payload of a native changed event."""

    title: str | None = None
    url: str | None = None


class NativeMoveInfo(BaseModel):
    """Payload of a native moved event."""

    parent_id: str = Field(alias="parentId")
    index: int
    old_parent_id: str = Field(alias="oldParentId")
    old_index: int = Field(alias="oldIndex")

    model_config = {"populate_by_name": True}


class NativeRemoveInfo(BaseModel):
    """Payload of a native removed event."""

    parent_id: str = Field(alias="parentId")
    index: int
    node: NativeBookmarkNode | None = None

    model_config = {"populate_by_name": True}


class NativeReorderInfo(BaseModel):
    """Payload of a native children-reordered event."""

    child_ids: list[str] = Field(alias="childIds")

    model_config = {"populate_by_name": True}


class WebpageMetadata(BaseModel):
    """Metadata scraped from the page the user is looking at.

    ``tags`` is raw comma-separated text, as found in a keywords meta tag.
    """

    title: str | None = None
    url: str | None = None
    description: str | None = None
    tags: str | None = None


class IdMapping(BaseModel):
    """One row of the native-to-canonical ID table."""

    native_id: str
    canonical_id: int

    model_config = {"frozen": True}


def to_native_node(value: Any) -> NativeBookmarkNode:
    """Coerce a host dict (or an existing node) into a ``NativeBookmarkNode``."""
    if isinstance(value, NativeBookmarkNode):
        return value
    return NativeBookmarkNode.model_validate(value)


def to_native_nodes(values: Any) -> list[NativeBookmarkNode]:
    """Coerce a host result that may be a single node or a list of nodes."""
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return [to_native_node(v) for v in values]
    return [to_native_node(values)]
