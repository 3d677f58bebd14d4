"""Name and metadata utilities for files and folders."""

import mimetypes
import unicodedata
import uuid
from collections.abc import Collection
from typing import Final

from django.conf import settings

from server.apps.files.exceptions import (
    InvalidNameError,
    InvalidStoragePathError,
)

_FORBIDDEN_CHARACTERS: Final = frozenset('/\\\x00')
_RESERVED_NAMES: Final = frozenset(('.', '..'))
_MAX_SUFFIX_ATTEMPTS: Final = 1000


def normalize_name(name: str) -> str:
    """Normalize a folder name or filename for storage and comparison.

    Names are stripped and converted to Unicode NFC. Comparison after
    normalization is exact (case-sensitive), for folders and files alike.

    Args:
        name: Raw name as given by the caller.

    Returns:
        Normalized name.
    """
    return unicodedata.normalize('NFC', name.strip())


def validate_name(name: str) -> str:
    """Normalize a name and reject unusable ones.

    Args:
        name: Raw name as given by the caller.

    Returns:
        Normalized name.

    Raises:
        InvalidNameError: If the name is empty, too long, reserved or
            contains a path separator.
    """
    normalized = normalize_name(name)
    if not normalized:
        raise InvalidNameError(name, 'name is required')
    if len(normalized) > settings.FILES_NAME_MAX_LENGTH:
        raise InvalidNameError(
            name,
            f'must be at most {settings.FILES_NAME_MAX_LENGTH} characters',
        )
    if normalized in _RESERVED_NAMES:
        raise InvalidNameError(name, 'name is reserved')
    if _FORBIDDEN_CHARACTERS.intersection(normalized):
        raise InvalidNameError(name, 'must not contain path separators')
    return normalized


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return 'application/octet-stream'
    return mime_type


def build_storage_path(workspace_id: uuid.UUID, filename: str) -> str:
    """Build a fresh, never-reused object key for a new file.

    The random segment keeps keys unique even when a filename is reused
    after a delete, so a key always maps to a single file row.

    Args:
        workspace_id: Owning workspace.
        filename: Normalized filename.

    Returns:
        Object key: {workspace_id}/{uuid}/{filename}.
    """
    return f'{workspace_id}/{uuid.uuid4().hex}/{filename}'


def split_extension(name: str) -> tuple[str, str]:
    """Split a name into stem and extension.

    Dotfiles ('.env') and trailing dots ('name.') have no extension.

    Args:
        name: File or folder name.

    Returns:
        Tuple of stem and extension without dot ('' if none).
    """
    stem, dot, extension = name.rpartition('.')
    if not dot or not stem or not extension:
        return name, ''
    return stem, extension


def generate_unique_name(name: str, taken: Collection[str]) -> str:
    """Pick a name not in `taken` by appending a counter.

    Example: 'report.pdf' -> 'report (1).pdf' -> 'report (2).pdf'

    Args:
        name: Preferred name.
        taken: Names already used in the target location.

    Returns:
        `name` itself if free, otherwise the first free numbered variant.
    """
    if name not in taken:
        return name

    stem, extension = split_extension(name)
    suffix = f'.{extension}' if extension else ''
    for counter in range(1, _MAX_SUFFIX_ATTEMPTS + 1):
        candidate = f'{stem} ({counter}){suffix}'
        if candidate not in taken:
            return candidate

    return f'{stem}-{uuid.uuid4().hex[:8]}{suffix}'


def validate_storage_path(workspace_id: uuid.UUID, storage_path: str) -> None:
    """Check that an object key lives under the workspace prefix.

    Args:
        workspace_id: Owning workspace.
        storage_path: Object key supplied by the caller.

    Raises:
        InvalidStoragePathError: If the key is outside the workspace
            prefix or tries to climb out of it.
    """
    segments = storage_path.split('/')
    if (
        len(segments) < 2
        or segments[0] != str(workspace_id)
        or any(
            not segment or segment in _RESERVED_NAMES for segment in segments
        )
    ):
        raise InvalidStoragePathError(storage_path)
