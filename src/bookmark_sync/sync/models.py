"""Pydantic models for the change queue.

Defines the data contracts passed from the change detector to the sync
orchestrator:

- ``BookmarkChangeType``: Enum of native mutations.
- ``AddChangeData`` .. ``ReorderChangeData``: per-type payloads, carrying
  native IDs only.
- ``Change``: a type plus its matching payload.
- ``ChangeStatus`` / ``ChangeRecord``: lifecycle of one submitted change.

Changes and their payloads are frozen; a ``ChangeRecord`` is the only
mutable model and only the orchestrator's worker moves it forward.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, model_validator

from bookmark_sync.bookmarks.models import BookmarkMetadata
from bookmark_sync.errors import BookmarkSyncError
from bookmark_sync.native.models import NativeBookmarkNode


class BookmarkChangeType(str, Enum):
    """Kinds of native bookmark mutation."""

    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"
    MOVE = "move"
    REORDER = "reorder"


class AddChangeData(BaseModel):
    """A native bookmark was created.

    Attributes:
        native_bookmark: The created node, children included if any.
        metadata: Page metadata to use instead of the native title, when
            the bookmark was made from the active page.
    """

    native_bookmark: NativeBookmarkNode
    metadata: BookmarkMetadata | None = None

    model_config = {"frozen": True}


class ModifyChangeData(BaseModel):
    """A native bookmark changed; holds a fresh snapshot of the node."""

    native_bookmark: NativeBookmarkNode

    model_config = {"frozen": True}


class MoveChangeData(BaseModel):
    """A native bookmark moved.

    ``node`` is a snapshot of the moved subtree, needed when it moves into
    a synced container from one that is not.
    """

    id: str
    old_parent_id: str
    parent_id: str
    old_index: int
    index: int
    node: NativeBookmarkNode | None = None

    model_config = {"frozen": True}


class RemoveChangeData(BaseModel):
    """A native bookmark and its descendants were removed."""

    id: str
    parent_id: str
    index: int
    node: NativeBookmarkNode | None = None

    model_config = {"frozen": True}


class ReorderChangeData(BaseModel):
    """The children of a native folder were reordered."""

    parent_id: str
    child_ids: list[str]

    model_config = {"frozen": True}


ChangeData = Union[
    AddChangeData,
    ModifyChangeData,
    MoveChangeData,
    RemoveChangeData,
    ReorderChangeData,
]

_PAYLOAD_TYPES: dict[BookmarkChangeType, type[BaseModel]] = {
    BookmarkChangeType.ADD: AddChangeData,
    BookmarkChangeType.MODIFY: ModifyChangeData,
    BookmarkChangeType.MOVE: MoveChangeData,
    BookmarkChangeType.REMOVE: RemoveChangeData,
    BookmarkChangeType.REORDER: ReorderChangeData,
}


class Change(BaseModel):
    """One native mutation awaiting application to the canonical tree.

    A dict payload is parsed as the model matching ``type``; a payload
    model of the wrong type is rejected.
    """

    type: BookmarkChangeType
    change_data: ChangeData

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _parse_change_data(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(
            data.get("change_data"), dict
        ):
            return data
        try:
            change_type = BookmarkChangeType(data.get("type"))
        except ValueError:
            return data
        payload = _PAYLOAD_TYPES[change_type].model_validate(
            data["change_data"]
        )
        return {**data, "change_data": payload}

    @model_validator(mode="after")
    def _check_change_data(self) -> Change:
        expected = _PAYLOAD_TYPES[self.type]
        if not isinstance(self.change_data, expected):
            raise ValueError(
                f"{self.type.value} change needs {expected.__name__}, "
                f"got {type(self.change_data).__name__}"
            )
        return self


class ChangeStatus(str, Enum):
    """Lifecycle of a submitted change."""

    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


_TRANSITIONS = {
    ChangeStatus.PENDING: {ChangeStatus.APPLYING, ChangeStatus.FAILED},
    ChangeStatus.APPLYING: {ChangeStatus.APPLIED, ChangeStatus.FAILED},
    ChangeStatus.APPLIED: set(),
    ChangeStatus.FAILED: set(),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChangeRecord(BaseModel):
    """A submitted change and how far it got.

    Attributes:
        sequence: Submission order, starting at 1.
        change: The change itself.
        status: ``pending`` -> ``applying`` -> ``applied`` | ``failed``.
        error: Error message when failed.
        error_type: Exception class name when failed.
        skipped: Whether an applied change was skipped because it lies
            outside the synced containers.
        retryable: Whether raising the change again may succeed.
        submitted_at: ISO 8601 timestamp of submission.
        completed_at: ISO 8601 timestamp of reaching a terminal status.
    """

    sequence: int
    change: Change
    status: ChangeStatus = ChangeStatus.PENDING
    error: str | None = None
    error_type: str | None = None
    retryable: bool = False
    skipped: bool = False
    submitted_at: str
    completed_at: str | None = None

    @classmethod
    def create(cls, sequence: int, change: Change) -> ChangeRecord:
        return cls(sequence=sequence, change=change, submitted_at=_now())

    @property
    def done(self) -> bool:
        """True once the record is applied or failed."""
        return self.status in (ChangeStatus.APPLIED, ChangeStatus.FAILED)

    def _advance(self, status: ChangeStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(
                f"Change {self.sequence} cannot go from "
                f"{self.status.value} to {status.value}"
            )
        self.status = status
        if self.done:
            self.completed_at = _now()

    def mark_applying(self) -> None:
        self._advance(ChangeStatus.APPLYING)

    def mark_applied(self, skipped: bool = False) -> None:
        self._advance(ChangeStatus.APPLIED)
        self.skipped = skipped

    def mark_failed(self, exc: BaseException) -> None:
        """Fail the record, keeping the error and its retry classification."""
        self._advance(ChangeStatus.FAILED)
        self.error = str(exc) or type(exc).__name__
        self.error_type = type(exc).__name__
        self.retryable = isinstance(exc, BookmarkSyncError) and exc.retryable
