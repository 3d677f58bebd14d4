"""Structural checks run before any folder or file mutation.

Validation reads the hierarchy outside of any transaction. The write
that follows relies on the database unique constraints to catch a
sibling name taken in between.
"""

import logging
import uuid
from typing import Any, NoReturn

from django.conf import settings

from server.apps.files.exceptions import (
    CircularReferenceError,
    NameCollisionError,
    NestingDepthExceededError,
)
from server.apps.files.infrastructure.metadata import validate_name
from server.apps.files.logic.authorization import (
    parse_folder_id,
    verify_folder_ownership,
)
from server.apps.files.logic.file_queries import is_filename_available
from server.apps.files.logic.folder_queries import (
    get_ancestor_chain,
    get_depth,
    get_subtree_height,
    is_folder_name_available,
)
from server.apps.files.models import File, Folder, Workspace

security_logger = logging.getLogger('server.security')


def validate_folder_create(
    workspace: Workspace,
    name: str,
    parent_id: Any,
) -> tuple[str, Folder | None]:
    """Check that a new folder can be created.

    Args:
        workspace: Owning workspace.
        name: Requested folder name.
        parent_id: Parent folder id, None for the root.

    Returns:
        Normalized name and the verified parent folder (None for root).

    Raises:
        InvalidNameError: If the name is unusable.
        ResourceNotFoundError: If the parent is not in the workspace.
        NestingDepthExceededError: If the folder would be too deep.
        NameCollisionError: If a sibling folder has the same name.
    """
    normalized = validate_name(name)
    parent = _resolve_parent(workspace, parent_id, 'create_folder')

    if parent is not None:
        _check_depth(workspace, get_depth(parent.id) + 1)

    parent_pk = parent.id if parent else None
    if not is_folder_name_available(workspace, normalized, parent_pk):
        raise NameCollisionError(normalized, parent_pk)

    return normalized, parent


def validate_folder_move(
    workspace: Workspace,
    folder: Folder,
    new_parent_id: Any,
) -> bool:
    """Run the folder move decision procedure.

    Checks, in order: no-op, self-move, destination ownership, cycle,
    depth of the whole moving subtree, name collision.

    Args:
        workspace: Owning workspace.
        folder: Folder to move, already ownership-verified.
        new_parent_id: Requested parent id, None for the root.

    Returns:
        False if the folder already sits under that parent.

    Raises:
        CircularReferenceError: If the folder would end up in its subtree.
        ResourceNotFoundError: If the destination is not in the workspace.
        NestingDepthExceededError: If the subtree would end up too deep.
        NameCollisionError: If a sibling folder has the same name.
    """
    target_id = parse_folder_id(new_parent_id)
    if target_id == folder.parent_id:
        return False

    if target_id == folder.id:
        _reject_cycle(workspace, folder.id, target_id)

    target = _resolve_parent(workspace, target_id, 'move_folder')

    if target is not None:
        chain = get_ancestor_chain(target.id)
        if any(ancestor.id == folder.id for ancestor in chain):
            _reject_cycle(workspace, folder.id, target.id)

        # The chain runs root..target, one entry per level
        target_depth = len(chain) - 1
        _check_depth(
            workspace,
            target_depth + 1 + get_subtree_height(folder.id),
        )

    if not is_folder_name_available(
        workspace,
        folder.name,
        target_id,
        exclude_id=folder.id,
    ):
        raise NameCollisionError(folder.name, target_id)

    return True


def validate_folder_rename(
    workspace: Workspace,
    folder: Folder,
    new_name: str,
) -> str:
    """Check that a folder can take a new name.

    Args:
        workspace: Owning workspace.
        folder: Folder to rename, already ownership-verified.
        new_name: Requested name.

    Returns:
        Normalized name; equal to the current name for a no-op.

    Raises:
        InvalidNameError: If the name is unusable.
        NameCollisionError: If a sibling folder has the same name.
    """
    normalized = validate_name(new_name)
    if normalized != folder.name and not is_folder_name_available(
        workspace,
        normalized,
        folder.parent_id,
        exclude_id=folder.id,
    ):
        raise NameCollisionError(normalized, folder.parent_id)
    return normalized


def validate_file_create(
    workspace: Workspace,
    filename: str,
    parent_id: Any,
) -> tuple[str, Folder | None]:
    """Check that a new file record can be created.

    Args:
        workspace: Owning workspace.
        filename: Requested filename.
        parent_id: Parent folder id, None for the root.

    Returns:
        Normalized filename and the verified parent (None for root).

    Raises:
        InvalidNameError: If the filename is unusable.
        ResourceNotFoundError: If the parent is not in the workspace.
        NameCollisionError: If a sibling file has the same name.
    """
    normalized = validate_name(filename)
    parent = _resolve_parent(workspace, parent_id, 'create_file')
    parent_pk = parent.id if parent else None
    if not is_filename_available(workspace, normalized, parent_pk):
        raise NameCollisionError(normalized, parent_pk)
    return normalized, parent


def validate_file_move(
    workspace: Workspace,
    file_instance: File,
    new_parent_id: Any,
) -> bool:
    """Check that a file can move to another folder.

    Args:
        workspace: Owning workspace.
        file_instance: File to move, already ownership-verified.
        new_parent_id: Requested parent id, None for the root.

    Returns:
        False if the file already sits in that folder.

    Raises:
        ResourceNotFoundError: If the destination is not in the workspace.
        NameCollisionError: If a sibling file has the same name.
    """
    target_id = parse_folder_id(new_parent_id)
    if target_id == file_instance.parent_folder_id:
        return False

    _resolve_parent(workspace, target_id, 'move_file')

    if not is_filename_available(
        workspace,
        file_instance.filename,
        target_id,
        exclude_id=file_instance.id,
    ):
        raise NameCollisionError(file_instance.filename, target_id)

    return True


def validate_file_rename(
    workspace: Workspace,
    file_instance: File,
    new_filename: str,
) -> str:
    """Check that a file can take a new filename.

    Args:
        workspace: Owning workspace.
        file_instance: File to rename, already ownership-verified.
        new_filename: Requested filename.

    Returns:
        Normalized filename; equal to the current one for a no-op.

    Raises:
        InvalidNameError: If the filename is unusable.
        NameCollisionError: If a sibling file has the same name.
    """
    normalized = validate_name(new_filename)
    if normalized != file_instance.filename and not is_filename_available(
        workspace,
        normalized,
        file_instance.parent_folder_id,
        exclude_id=file_instance.id,
    ):
        raise NameCollisionError(normalized, file_instance.parent_folder_id)
    return normalized


def _resolve_parent(
    workspace: Workspace,
    parent_id: Any,
    action: str,
) -> Folder | None:
    folder_id = parse_folder_id(parent_id)
    if folder_id is None:
        return None
    return verify_folder_ownership(folder_id, workspace, action)


def _check_depth(workspace: Workspace, attempted_depth: int) -> None:
    max_depth = settings.FILES_MAX_NESTING_DEPTH
    if attempted_depth >= max_depth:
        security_logger.warning(
            'Nesting depth rejected in workspace %s: depth %d, max %d',
            workspace.id,
            attempted_depth,
            max_depth,
        )
        raise NestingDepthExceededError(max_depth, attempted_depth)


def _reject_cycle(
    workspace: Workspace,
    folder_id: uuid.UUID,
    target_id: uuid.UUID,
) -> NoReturn:
    security_logger.warning(
        'Circular move rejected in workspace %s: folder %s into %s',
        workspace.id,
        folder_id,
        target_id,
    )
    raise CircularReferenceError(folder_id, target_id)
