"""Business logic for folder operations.

Every write here is a single-row update inside its own transaction,
preceded by validation outside of it. Folder deletion is the one
multi-row write and involves no storage calls.
"""

import logging
import uuid
from typing import Any

from django.db import IntegrityError, transaction

from server.apps.files.exceptions import NameCollisionError
from server.apps.files.infrastructure.metadata import generate_unique_name
from server.apps.files.logic.authorization import (
    parse_folder_id,
    verify_folder_ownership,
)
from server.apps.files.logic.folder_queries import get_subtree
from server.apps.files.logic.validation import (
    validate_folder_create,
    validate_folder_move,
    validate_folder_rename,
)
from server.apps.files.models import File, Folder, Link, Workspace

logger = logging.getLogger(__name__)


def create_folder(  # noqa: WPS211
    workspace: Workspace,
    name: str,
    parent_id: Any = None,
    link: Link | None = None,
    uploader_email: str | None = None,
    uploader_name: str | None = None,
) -> Folder:
    """Create a folder at the root or inside a parent folder.

    Args:
        workspace: Owning workspace.
        name: Folder name.
        parent_id: Parent folder id, None for the root.
        link: Upload link the folder was created through, if any.
        uploader_email: Uploader's email for link uploads.
        uploader_name: Uploader's name for link uploads.

    Returns:
        Created Folder instance.

    Raises:
        InvalidNameError: If the name is unusable.
        ResourceNotFoundError: If the parent is not in the workspace.
        NestingDepthExceededError: If the folder would be too deep.
        NameCollisionError: If a sibling folder has the same name.
    """
    normalized, parent = validate_folder_create(workspace, name, parent_id)

    try:
        with transaction.atomic():
            folder = Folder.objects.create(
                workspace=workspace,
                name=normalized,
                parent=parent,
                link=link,
                uploader_email=uploader_email,
                uploader_name=uploader_name,
            )
    except IntegrityError as error:
        logger.warning(
            'Folder name taken concurrently: "%s" in workspace %s',
            normalized,
            workspace.id,
        )
        raise NameCollisionError(
            normalized,
            parent.id if parent else None,
        ) from error

    logger.info(
        'Folder created: %s (ID: %s, parent: %s)',
        folder.name,
        folder.id,
        folder.parent_id,
    )
    return folder


def rename_folder(
    workspace: Workspace,
    folder_id: Any,
    new_name: str,
) -> Folder:
    """Rename a folder in place.

    Renaming to the current name is a no-op.

    Args:
        workspace: Owning workspace.
        folder_id: Folder to rename.
        new_name: Requested name.

    Returns:
        The folder with its new name.

    Raises:
        ResourceNotFoundError: If the folder is not in the workspace.
        InvalidNameError: If the name is unusable.
        NameCollisionError: If a sibling folder has the same name.
    """
    folder = verify_folder_ownership(folder_id, workspace, 'rename_folder')
    normalized = validate_folder_rename(workspace, folder, new_name)
    if normalized == folder.name:
        return folder

    old_name = folder.name
    folder.name = normalized
    save_folder(folder, ['name'])
    logger.info(
        'Folder renamed: "%s" -> "%s" (ID: %s)',
        old_name,
        normalized,
        folder.id,
    )
    return folder


def move_folder(
    workspace: Workspace,
    folder_id: Any,
    new_parent_id: Any,
) -> Folder:
    """Move a folder, with its whole subtree, under another parent.

    Moving a folder to its current parent is a no-op.

    Args:
        workspace: Owning workspace.
        folder_id: Folder to move.
        new_parent_id: Destination folder id, None for the root.

    Returns:
        The moved folder.

    Raises:
        ResourceNotFoundError: If folder or destination is not owned.
        CircularReferenceError: If the folder would end up in its subtree.
        NestingDepthExceededError: If the subtree would end up too deep.
        NameCollisionError: If a sibling folder has the same name.
    """
    folder = verify_folder_ownership(folder_id, workspace, 'move_folder')
    if not validate_folder_move(workspace, folder, new_parent_id):
        logger.debug('Folder %s already under %s', folder.id, new_parent_id)
        return folder

    apply_folder_move(folder, parse_folder_id(new_parent_id))
    return folder


def apply_folder_move(folder: Folder, target_id: uuid.UUID | None) -> None:
    """Write an already validated folder move.

    Args:
        folder: Folder to move.
        target_id: Destination folder id, None for the root.

    Raises:
        NameCollisionError: If a sibling took the name meanwhile.
    """
    old_parent_id = folder.parent_id
    folder.parent_id = target_id
    save_folder(folder, ['parent'])
    logger.info(
        'Folder moved: %s from %s to %s',
        folder.id,
        old_parent_id,
        target_id,
    )


def save_folder(folder: Folder, fields: list[str]) -> None:
    """Persist changed folder fields as a single-row update.

    Args:
        folder: Folder with modified attributes.
        fields: Names of the modified fields.

    Raises:
        NameCollisionError: If the write hits a sibling name constraint.
    """
    try:
        with transaction.atomic():
            folder.save(update_fields=[*fields, 'updated_at'])
    except IntegrityError as error:
        logger.warning(
            'Folder name taken concurrently: "%s" under %s',
            folder.name,
            folder.parent_id,
        )
        raise NameCollisionError(folder.name, folder.parent_id) from error


def delete_folder(workspace: Workspace, folder_id: Any) -> int:
    """Delete a folder and its descendants, keeping their files.

    In one transaction: files in the subtree move to the workspace root
    (renamed 'name (1).ext' on collision), the folder's upload link is
    deactivated, and the folder row is deleted, cascading to
    subfolders. Storage is not touched.

    Args:
        workspace: Owning workspace.
        folder_id: Folder to delete.

    Returns:
        Number of files moved to the root.

    Raises:
        ResourceNotFoundError: If the folder is not in the workspace.
    """
    folder = verify_folder_ownership(folder_id, workspace, 'delete_folder')

    with transaction.atomic():
        subtree_ids = [node.folder.id for node in get_subtree(folder)]
        detached = _detach_files(workspace, subtree_ids)
        if folder.link_id is not None:
            Link.objects.filter(pk=folder.link_id).update(is_active=False)
            logger.info('Link %s deactivated with its folder', folder.link_id)
        folder.delete()

    logger.info(
        'Folder deleted: %s (ID: %s), %d subfolders, %d files detached',
        folder.name,
        folder_id,
        len(subtree_ids) - 1,
        detached,
    )
    return detached


def _detach_files(workspace: Workspace, folder_ids: list[uuid.UUID]) -> int:
    files = File.objects.filter(
        workspace=workspace,
        parent_folder_id__in=folder_ids,
    ).order_by('created_at')
    taken = set(
        File.objects.filter(
            workspace=workspace,
            parent_folder__isnull=True,
        ).values_list('filename', flat=True),
    )

    detached = 0
    for file_instance in files:
        filename = generate_unique_name(file_instance.filename, taken)
        if filename != file_instance.filename:
            logger.info(
                'Renaming detached file "%s" to "%s" (ID: %s)',
                file_instance.filename,
                filename,
                file_instance.id,
            )
        taken.add(filename)
        file_instance.filename = filename
        file_instance.parent_folder = None
        file_instance.save(
            update_fields=['filename', 'parent_folder', 'updated_at'],
        )
        detached += 1
    return detached
