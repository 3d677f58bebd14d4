"""Business logic for file operations.

Files move and rename by metadata only; `storage_path` never changes
after the row is created.
"""

import logging
import uuid
from typing import Any, BinaryIO, Final

from django.core.files.base import File as DjangoFile
from django.db import IntegrityError, transaction

from server.apps.files.exceptions import (
    InvalidFileSizeError,
    InvalidStoragePathError,
    NameCollisionError,
    StorageOperationError,
)
from server.apps.files.infrastructure.metadata import (
    build_storage_path,
    detect_mime_type,
    validate_storage_path,
)
from server.apps.files.infrastructure.storage import get_storage
from server.apps.files.logic.authorization import (
    parse_folder_id,
    verify_file_ownership,
)
from server.apps.files.logic.quota_operations import (
    check_quota,
    increment_usage,
)
from server.apps.files.logic.validation import (
    validate_file_create,
    validate_file_move,
    validate_file_rename,
)
from server.apps.files.models import File, Folder, Link, Workspace

_PATH_TAKEN: Final = 'already recorded for another file'

logger = logging.getLogger(__name__)


def upload_file(  # noqa: WPS211
    workspace: Workspace,
    filename: str,
    file_obj: BinaryIO | DjangoFile,
    parent_id: Any = None,
    link: Link | None = None,
    uploader_email: str | None = None,
    uploader_name: str | None = None,
    uploader_message: str | None = None,
) -> File:
    """Upload file to storage and create database record.

    Transaction safety: Upload to storage first, then create DB record.
    If DB transaction fails, the uploaded file is deleted from storage
    (rollback).

    Args:
        workspace: Owning workspace.
        filename: Name shown to the user.
        file_obj: File-like object to upload.
        parent_id: Parent folder id, None for the root.
        link: Upload link the file came through, if any.
        uploader_email: Uploader's email for link uploads.
        uploader_name: Uploader's name for link uploads.
        uploader_message: Note left by the uploader.

    Returns:
        Created File instance.

    Raises:
        InvalidNameError: If the filename is unusable.
        ResourceNotFoundError: If the parent is not in the workspace.
        NameCollisionError: If a sibling file has the same name.
        QuotaExceededError: If the upload does not fit in the quota.
        StorageOperationError: If the storage upload fails.
    """
    normalized, parent = validate_file_create(workspace, filename, parent_id)
    file_size = _get_file_size(file_obj)
    check_quota(workspace, file_size)

    storage = get_storage()
    storage_path = build_storage_path(workspace.id, normalized)

    # Step 1: Upload to storage first
    try:
        saved_name = storage.save(storage_path, file_obj)
    except Exception as error:
        raise StorageOperationError(storage_path, 'upload failed') from error

    # Step 2: Create database record (in transaction)
    try:
        file_instance = _insert_record(
            workspace,
            parent,
            filename=normalized,
            file_size=file_size,
            mime_type=detect_mime_type(normalized),
            storage_path=saved_name,
            link=link,
            uploader_email=uploader_email,
            uploader_name=uploader_name,
            uploader_message=uploader_message,
        )
    except Exception:
        # Rollback: Delete file from storage since DB transaction failed
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            saved_name,
        )
        storage.rollback_upload(saved_name)
        raise

    return file_instance


def create_file_record(  # noqa: WPS211
    workspace: Workspace,
    filename: str,
    file_size: int,
    storage_path: str,
    parent_id: Any = None,
    mime_type: str | None = None,
    link: Link | None = None,
    uploader_email: str | None = None,
    uploader_name: str | None = None,
    uploader_message: str | None = None,
) -> File:
    """Create the row for an object a client already uploaded.

    Args:
        workspace: Owning workspace.
        filename: Name shown to the user.
        file_size: Object size in bytes.
        storage_path: Object key, under the workspace prefix.
        parent_id: Parent folder id, None for the root.
        mime_type: MIME type; guessed from the filename if None.
        link: Upload link the file came through, if any.
        uploader_email: Uploader's email for link uploads.
        uploader_name: Uploader's name for link uploads.
        uploader_message: Note left by the uploader.

    Returns:
        Created File instance.

    Raises:
        InvalidStoragePathError: If the key is outside the workspace or
            already recorded for another file.
        InvalidFileSizeError: If the size is negative.
        InvalidNameError: If the filename is unusable.
        ResourceNotFoundError: If the parent is not in the workspace.
        NameCollisionError: If a sibling file has the same name.
        QuotaExceededError: If the file does not fit in the quota.
    """
    if file_size < 0:
        raise InvalidFileSizeError(file_size)
    validate_storage_path(workspace.id, storage_path)
    if File.objects.filter(storage_path=storage_path).exists():
        raise InvalidStoragePathError(storage_path, _PATH_TAKEN)
    normalized, parent = validate_file_create(workspace, filename, parent_id)
    check_quota(workspace, file_size)

    return _insert_record(
        workspace,
        parent,
        filename=normalized,
        file_size=file_size,
        mime_type=mime_type or detect_mime_type(normalized),
        storage_path=storage_path,
        link=link,
        uploader_email=uploader_email,
        uploader_name=uploader_name,
        uploader_message=uploader_message,
    )


def rename_file(
    workspace: Workspace,
    file_id: Any,
    new_filename: str,
) -> File:
    """Rename a file; the storage object keeps its key.

    Renaming to the current filename is a no-op.

    Args:
        workspace: Owning workspace.
        file_id: File to rename.
        new_filename: Requested filename.

    Returns:
        The file with its new name.

    Raises:
        ResourceNotFoundError: If the file is not in the workspace.
        InvalidNameError: If the filename is unusable.
        NameCollisionError: If a sibling file has the same name.
    """
    file_instance = verify_file_ownership(file_id, workspace, 'rename_file')
    normalized = validate_file_rename(workspace, file_instance, new_filename)
    if normalized == file_instance.filename:
        return file_instance

    old_filename = file_instance.filename
    file_instance.filename = normalized
    file_instance.mime_type = detect_mime_type(normalized)
    save_file(file_instance, ['filename', 'mime_type'])
    logger.info(
        'File renamed: "%s" -> "%s" (ID: %s)',
        old_filename,
        normalized,
        file_instance.id,
    )
    return file_instance


def move_file(
    workspace: Workspace,
    file_id: Any,
    new_parent_id: Any,
) -> File:
    """Move a file to another folder or to the root.

    Moving a file to the folder it is already in is a no-op.

    Args:
        workspace: Owning workspace.
        file_id: File to move.
        new_parent_id: Destination folder id, None for the root.

    Returns:
        The moved file.

    Raises:
        ResourceNotFoundError: If file or destination is not owned.
        NameCollisionError: If a sibling file has the same name.
    """
    file_instance = verify_file_ownership(file_id, workspace, 'move_file')
    if not validate_file_move(workspace, file_instance, new_parent_id):
        logger.debug(
            'File %s already in %s',
            file_instance.id,
            new_parent_id,
        )
        return file_instance

    apply_file_move(file_instance, parse_folder_id(new_parent_id))
    return file_instance


def apply_file_move(
    file_instance: File,
    target_id: uuid.UUID | None,
) -> None:
    """Write an already validated file move.

    Args:
        file_instance: File to move.
        target_id: Destination folder id, None for the root.

    Raises:
        NameCollisionError: If a sibling took the name meanwhile.
    """
    old_parent_id = file_instance.parent_folder_id
    file_instance.parent_folder_id = target_id
    save_file(file_instance, ['parent_folder'])
    logger.info(
        'File moved: %s from %s to %s',
        file_instance.id,
        old_parent_id,
        target_id,
    )


def save_file(file_instance: File, fields: list[str]) -> None:
    """Persist changed file fields as a single-row update.

    Args:
        file_instance: File with modified attributes.
        fields: Names of the modified fields.

    Raises:
        NameCollisionError: If the write hits a sibling name constraint.
    """
    try:
        with transaction.atomic():
            file_instance.save(update_fields=[*fields, 'updated_at'])
    except IntegrityError as error:
        logger.warning(
            'Filename taken concurrently: "%s" in %s',
            file_instance.filename,
            file_instance.parent_folder_id,
        )
        raise NameCollisionError(
            file_instance.filename,
            file_instance.parent_folder_id,
        ) from error


def _insert_record(
    workspace: Workspace,
    parent: Folder | None,
    **fields: Any,
) -> File:
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                workspace=workspace,
                parent_folder=parent,
                **fields,
            )
            increment_usage(workspace, file_instance.file_size)
    except IntegrityError as error:
        storage_path = fields['storage_path']
        if File.objects.filter(storage_path=storage_path).exists():
            logger.warning(
                'Storage path recorded concurrently: %s',
                storage_path,
            )
            raise InvalidStoragePathError(storage_path, _PATH_TAKEN) from error
        logger.warning(
            'Filename taken concurrently: "%s" in workspace %s',
            fields['filename'],
            workspace.id,
        )
        raise NameCollisionError(
            fields['filename'],
            parent.id if parent else None,
        ) from error

    logger.info(
        'File record created in database: %s (ID: %s)',
        file_instance.storage_path,
        file_instance.id,
    )
    return file_instance


def _get_file_size(file_obj: BinaryIO | DjangoFile) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size
