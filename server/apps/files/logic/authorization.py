"""Ownership checks guarding every workspace resource.

All checks fail closed: a resource that does not exist and a resource
owned by another workspace produce the same ResourceNotFoundError, so
callers cannot discover other users' ids.
"""

import logging
import uuid
from collections.abc import Iterable
from typing import Any

from django.core.exceptions import ValidationError

from server.apps.files.exceptions import ResourceNotFoundError
from server.apps.files.models import File, Folder, Workspace

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('server.security')

# Malformed ids surface as one of these from the ORM
_BAD_ID_ERRORS = (ValueError, TypeError, ValidationError)


def resolve_workspace(user_id: Any) -> Workspace:
    """Get the workspace owned by an authenticated user.

    Args:
        user_id: Opaque id supplied by the authentication layer.

    Returns:
        The user's workspace.

    Raises:
        ResourceNotFoundError: If the user has no workspace.
    """
    try:
        return Workspace.objects.get(user_id=user_id)
    except (Workspace.DoesNotExist, *_BAD_ID_ERRORS) as error:
        logger.warning('No workspace for user %s', user_id)
        raise ResourceNotFoundError('Workspace') from error


def verify_folder_ownership(
    folder_id: Any,
    workspace: Workspace,
    action: str = '',
) -> Folder:
    """Load a folder and confirm it belongs to the workspace.

    Args:
        folder_id: Requested folder id.
        workspace: Caller's workspace.
        action: Name of the calling operation, for the security log.

    Returns:
        The folder.

    Raises:
        ResourceNotFoundError: If missing or owned by another workspace.
    """
    try:
        folder = Folder.objects.filter(pk=folder_id).first()
    except _BAD_ID_ERRORS as error:
        raise ResourceNotFoundError('Folder') from error

    if folder is None:
        raise ResourceNotFoundError('Folder')

    if folder.workspace_id != workspace.id:
        security_logger.warning(
            'Cross-workspace folder access in %s: folder=%s workspace=%s',
            action or 'unknown action',
            folder_id,
            workspace.id,
        )
        raise ResourceNotFoundError('Folder')

    return folder


def verify_file_ownership(
    file_id: Any,
    workspace: Workspace,
    action: str = '',
) -> File:
    """Load a file record and confirm it belongs to the workspace.

    Args:
        file_id: Requested file id.
        workspace: Caller's workspace.
        action: Name of the calling operation, for the security log.

    Returns:
        The file record.

    Raises:
        ResourceNotFoundError: If missing or owned by another workspace.
    """
    try:
        file_instance = File.objects.filter(pk=file_id).first()
    except _BAD_ID_ERRORS as error:
        raise ResourceNotFoundError('File') from error

    if file_instance is None:
        raise ResourceNotFoundError('File')

    if file_instance.workspace_id != workspace.id:
        security_logger.warning(
            'Cross-workspace file access in %s: file=%s workspace=%s',
            action or 'unknown action',
            file_id,
            workspace.id,
        )
        raise ResourceNotFoundError('File')

    return file_instance


def verify_files_ownership(
    file_ids: Iterable[Any],
    workspace: Workspace,
    action: str = '',
) -> list[File]:
    """Batch ownership check: every requested file or none.

    Args:
        file_ids: Requested file ids (duplicates are collapsed).
        workspace: Caller's workspace.
        action: Name of the calling operation, for the security log.

    Returns:
        File records in request order.

    Raises:
        ResourceNotFoundError: If any id is missing or not owned.
    """
    requested = _unique_ids(file_ids, 'File')
    found = {
        file_instance.id: file_instance
        for file_instance in File.objects.filter(
            pk__in=requested,
            workspace=workspace,
        )
    }
    missing = [file_id for file_id in requested if file_id not in found]
    if missing:
        security_logger.warning(
            'Batch file check failed in %s: %d of %d ids not found '
            'in workspace %s: %s',
            action or 'unknown action',
            len(missing),
            len(requested),
            workspace.id,
            missing,
        )
        raise ResourceNotFoundError('File')

    return [found[file_id] for file_id in requested]


def verify_folders_ownership(
    folder_ids: Iterable[Any],
    workspace: Workspace,
    action: str = '',
) -> list[Folder]:
    """Batch ownership check: every requested folder or none.

    Args:
        folder_ids: Requested folder ids (duplicates are collapsed).
        workspace: Caller's workspace.
        action: Name of the calling operation, for the security log.

    Returns:
        Folders in request order.

    Raises:
        ResourceNotFoundError: If any id is missing or not owned.
    """
    requested = _unique_ids(folder_ids, 'Folder')
    found = {
        folder.id: folder
        for folder in Folder.objects.filter(
            pk__in=requested,
            workspace=workspace,
        )
    }
    missing = [folder_id for folder_id in requested if folder_id not in found]
    if missing:
        security_logger.warning(
            'Batch folder check failed in %s: %d of %d ids not found '
            'in workspace %s: %s',
            action or 'unknown action',
            len(missing),
            len(requested),
            workspace.id,
            missing,
        )
        raise ResourceNotFoundError('Folder')

    return [found[folder_id] for folder_id in requested]


def parse_folder_id(raw_id: Any) -> uuid.UUID | None:
    """Normalize an optional parent folder id.

    None and '' both mean the workspace root.

    Args:
        raw_id: Folder id as received from the caller.

    Returns:
        Parsed folder id, or None for the root.

    Raises:
        ResourceNotFoundError: If the id is malformed.
    """
    if raw_id is None or raw_id == '':
        return None
    return _parse_id(raw_id, 'Folder')


def _unique_ids(raw_ids: Iterable[Any], resource: str) -> list[uuid.UUID]:
    unique: dict[uuid.UUID, None] = {}
    for raw_id in raw_ids:
        unique[_parse_id(raw_id, resource)] = None
    return list(unique)


def _parse_id(raw_id: Any, resource: str) -> uuid.UUID:
    if isinstance(raw_id, uuid.UUID):
        return raw_id
    try:
        return uuid.UUID(str(raw_id))
    except _BAD_ID_ERRORS as error:
        raise ResourceNotFoundError(resource) from error
