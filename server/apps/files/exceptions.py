"""Exceptions for files app.

Every exception carries the `ErrorKind` it maps to at the entry-point
boundary (see logic/actions.py).
"""

import uuid
from typing import ClassVar

from server.apps.files.results import ErrorKind


class FilesError(Exception):
    """Base class for failures the caller is told about."""

    kind: ClassVar[ErrorKind] = ErrorKind.OPERATION_FAILED


class ResourceNotFoundError(FilesError):
    """Raised when a resource is missing or owned by another workspace.

    The two cases are deliberately indistinguishable to the caller.
    """

    kind = ErrorKind.NOT_FOUND_OR_FORBIDDEN

    def __init__(self, resource: str) -> None:
        """Initialize ResourceNotFoundError.

        Args:
            resource: Human readable resource type, e.g. 'Folder'.
        """
        self.resource = resource
        super().__init__(f'{resource} not found.')


class CircularReferenceError(FilesError):
    """Raised when a move would place a folder inside its own subtree."""

    kind = ErrorKind.CIRCULAR_REFERENCE

    def __init__(self, folder_id: uuid.UUID, target_id: uuid.UUID) -> None:
        """Initialize CircularReferenceError.

        Args:
            folder_id: Folder being moved.
            target_id: Requested new parent.
        """
        self.folder_id = folder_id
        self.target_id = target_id
        super().__init__(
            'Cannot move a folder into itself or one of its subfolders.',
        )


class NestingDepthExceededError(FilesError):
    """Raised when a create or move would breach the maximum depth."""

    kind = ErrorKind.NESTING_DEPTH_EXCEEDED

    def __init__(self, max_depth: int, attempted_depth: int) -> None:
        """Initialize NestingDepthExceededError.

        Args:
            max_depth: Configured maximum nesting depth.
            attempted_depth: Deepest level the operation would create.
        """
        self.max_depth = max_depth
        self.attempted_depth = attempted_depth
        super().__init__(
            f'Maximum nesting depth ({max_depth} levels) would be exceeded.',
        )


class NameCollisionError(FilesError):
    """Raised when a sibling with the same name already exists."""

    kind = ErrorKind.NAME_COLLISION

    def __init__(self, name: str, parent_id: uuid.UUID | None) -> None:
        """Initialize NameCollisionError.

        Args:
            name: Conflicting name.
            parent_id: Destination parent folder (None for root).
        """
        self.name = name
        self.parent_id = parent_id
        super().__init__(f'"{name}" already exists in this location.')


class InvalidNameError(FilesError):
    """Raised when a folder name or filename is unusable."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, name: str, reason: str) -> None:
        """Initialize InvalidNameError.

        Args:
            name: Rejected name.
            reason: Why it was rejected.
        """
        self.name = name
        self.reason = reason
        super().__init__(f'Invalid name "{name}": {reason}')


class StorageOperationError(FilesError):
    """Raised when a storage call failed or did not finish in time.

    Retryable: the storage object is assumed to be unchanged.
    """

    kind = ErrorKind.STORAGE_OPERATION_FAILED

    def __init__(self, storage_path: str, reason: str) -> None:
        """Initialize StorageOperationError.

        Args:
            storage_path: Object key the call was about.
            reason: Short description of the failure.
        """
        self.storage_path = storage_path
        self.reason = reason
        super().__init__(
            f'Storage operation failed for {storage_path}: {reason}. '
            'Please try again.',
        )


class QuotaExceededError(FilesError):
    """Raised when upload would exceed the workspace's storage quota."""

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = quota_bytes - used_bytes
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )


class InvalidStoragePathError(FilesError):
    """Raised when a storage path is outside the workspace or taken."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        storage_path: str,
        reason: str = 'outside the workspace',
    ) -> None:
        """Initialize InvalidStoragePathError.

        Args:
            storage_path: Rejected object key.
            reason: Why the key was rejected.
        """
        self.storage_path = storage_path
        self.reason = reason
        super().__init__(f'Invalid storage path {storage_path}: {reason}')


class InvalidFileSizeError(FilesError):
    """Raised when a reported file size is negative."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, file_size: int) -> None:
        """Initialize InvalidFileSizeError.

        Args:
            file_size: Rejected size in bytes.
        """
        self.file_size = file_size
        super().__init__(f'Invalid file size: {file_size} bytes')
