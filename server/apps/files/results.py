"""Typed results returned by the files app entry points."""

import enum
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, Self, TypeVar, final

if TYPE_CHECKING:
    from server.apps.files.models import File, Folder

_DataT = TypeVar('_DataT')


@final
class ErrorKind(enum.StrEnum):
    """Failure categories a caller can tell apart."""

    NOT_FOUND_OR_FORBIDDEN = 'not_found_or_forbidden'
    CIRCULAR_REFERENCE = 'circular_reference'
    NESTING_DEPTH_EXCEEDED = 'nesting_depth_exceeded'
    NAME_COLLISION = 'name_collision'
    STORAGE_OPERATION_FAILED = 'storage_operation_failed'
    PARTIAL_BULK_FAILURE = 'partial_bulk_failure'
    QUOTA_EXCEEDED = 'quota_exceeded'
    INVALID_INPUT = 'invalid_input'
    OPERATION_FAILED = 'operation_failed'


@final
@dataclass(frozen=True, slots=True)
class Result(Generic[_DataT]):
    """Outcome of an operation: data on success, an error kind otherwise.

    A failed result may still carry data, e.g. the per-item report of a
    partially successful bulk deletion.
    """

    data: _DataT | None = None
    error: ErrorKind | None = None
    message: str = ''

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.error is None

    @classmethod
    def success(cls, data: _DataT | None = None) -> Self:
        """Build a successful result."""
        return cls(data=data)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        message: str,
        data: _DataT | None = None,
    ) -> Self:
        """Build a failed result."""
        return cls(data=data, error=error, message=message)


@final
@dataclass(frozen=True, slots=True)
class FailedItem:
    """One item a bulk operation could not process."""

    item_id: uuid.UUID
    name: str
    reason: str


@final
@dataclass(slots=True)
class BulkDeleteReport:
    """Per-item outcome of a bulk file deletion.

    `deleted_ids` lists files whose storage object is gone. Rows in
    `orphaned_ids` are among them: their storage is deleted but the row
    could not be removed and awaits reconciliation.
    """

    deleted_ids: list[uuid.UUID] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    orphaned_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def deleted_count(self) -> int:
        """Number of files whose storage object was deleted."""
        return len(self.deleted_ids)

    @property
    def failed_count(self) -> int:
        """Number of files left untouched."""
        return len(self.failed)


@final
@dataclass(slots=True)
class MixedDeleteReport:
    """Outcome of deleting a selection of files and folders."""

    files: BulkDeleteReport = field(default_factory=BulkDeleteReport)
    deleted_folder_ids: list[uuid.UUID] = field(default_factory=list)
    failed_folders: list[FailedItem] = field(default_factory=list)

    @property
    def deleted_file_count(self) -> int:
        """Number of deleted files."""
        return self.files.deleted_count

    @property
    def deleted_folder_count(self) -> int:
        """Number of deleted folders (descendants not counted)."""
        return len(self.deleted_folder_ids)

    @property
    def failed_count(self) -> int:
        """Number of files and folders that could not be deleted."""
        return self.files.failed_count + len(self.failed_folders)


@final
@dataclass(frozen=True, slots=True)
class MoveReport:
    """Outcome of moving a selection of files and folders."""

    moved_file_count: int
    moved_folder_count: int


@final
@dataclass(frozen=True, slots=True)
class DownloadArchive:
    """ZIP archive built for a download."""

    filename: str
    content: bytes
    entry_count: int


@final
@dataclass(frozen=True, slots=True)
class FolderContents:
    """Direct children of a folder or of the workspace root."""

    folders: list['Folder']
    files: list['File']
