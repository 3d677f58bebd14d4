"""Moving a selection of files and folders at once."""

import logging
from collections import Counter
from collections.abc import Iterable
from typing import Any

from django.db import transaction

from server.apps.files.exceptions import NameCollisionError
from server.apps.files.logic.authorization import (
    parse_folder_id,
    verify_files_ownership,
    verify_folder_ownership,
    verify_folders_ownership,
)
from server.apps.files.logic.file_operations import apply_file_move
from server.apps.files.logic.folder_operations import apply_folder_move
from server.apps.files.logic.validation import (
    validate_file_move,
    validate_folder_move,
)
from server.apps.files.models import Workspace
from server.apps.files.results import MoveReport

logger = logging.getLogger(__name__)


def move_items(
    workspace: Workspace,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    target_folder_id: Any,
) -> MoveReport:
    """Move files and folders into one destination.

    Every item is validated before the first write, and the writes
    share one transaction, so either all moves apply or none do. Items
    already in the destination are skipped and not counted.

    Args:
        workspace: Owning workspace.
        file_ids: Files to move.
        folder_ids: Folders to move, each with its subtree.
        target_folder_id: Destination folder id, None for the root.

    Returns:
        Number of files and folders actually moved.

    Raises:
        ResourceNotFoundError: If the destination or any item is not owned.
        CircularReferenceError: If a folder would end up in its subtree.
        NestingDepthExceededError: If a subtree would end up too deep.
        NameCollisionError: If a name is taken in the destination, or two
            moved items share a name.
    """
    target_id = parse_folder_id(target_folder_id)
    if target_id is not None:
        verify_folder_ownership(target_id, workspace, 'move_items')
    files = verify_files_ownership(file_ids, workspace, 'move_items')
    folders = verify_folders_ownership(folder_ids, workspace, 'move_items')

    moving_folders = [
        folder for folder in folders
        if validate_folder_move(workspace, folder, target_id)
    ]
    moving_files = [
        file_instance for file_instance in files
        if validate_file_move(workspace, file_instance, target_id)
    ]
    _check_unique_names(
        [folder.name for folder in moving_folders],
        target_id,
    )
    _check_unique_names(
        [file_instance.filename for file_instance in moving_files],
        target_id,
    )

    with transaction.atomic():
        for folder in moving_folders:
            apply_folder_move(folder, target_id)
        for file_instance in moving_files:
            apply_file_move(file_instance, target_id)

    logger.info(
        'Moved %d files and %d folders to %s in workspace %s',
        len(moving_files),
        len(moving_folders),
        target_id,
        workspace.id,
    )
    return MoveReport(
        moved_file_count=len(moving_files),
        moved_folder_count=len(moving_folders),
    )


def _check_unique_names(names: list[str], target_id: Any) -> None:
    duplicates = [name for name, count in Counter(names).items() if count > 1]
    if duplicates:
        raise NameCollisionError(duplicates[0], target_id)
