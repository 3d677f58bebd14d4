"""Entry points of the files app.

Each function takes the authenticated caller's `user_id`, resolves the
caller's workspace and returns a `Result`. Nothing here raises: known
failures become their `ErrorKind`, anything else is logged with its
traceback and reported as OPERATION_FAILED.
"""

import logging
import uuid
from collections.abc import Callable, Iterable
from typing import Any, BinaryIO, Concatenate, Final, ParamSpec, TypeVar

import httpx
from django.core.files.base import File as DjangoFile

from server.apps.files.exceptions import FilesError
from server.apps.files.logic import (
    archive_operations,
    deletion_operations,
    file_operations,
    file_queries,
    folder_operations,
    folder_queries,
    move_operations,
)
from server.apps.files.logic.authorization import (
    parse_folder_id,
    resolve_workspace,
    verify_folder_ownership,
)
from server.apps.files.models import File, Folder, Workspace
from server.apps.files.results import (
    BulkDeleteReport,
    DownloadArchive,
    ErrorKind,
    FolderContents,
    MixedDeleteReport,
    MoveReport,
    Result,
)

_P = ParamSpec('_P')
_T = TypeVar('_T')

_UNEXPECTED_MESSAGE: Final = 'Something went wrong. Please try again.'

logger = logging.getLogger(__name__)


# Folders


def create_folder(
    user_id: Any,
    name: str,
    parent_id: Any = None,
) -> Result[Folder]:
    """Create a folder at the root or inside `parent_id`."""
    return _run(user_id, folder_operations.create_folder, name, parent_id)


def rename_folder(
    user_id: Any,
    folder_id: Any,
    new_name: str,
) -> Result[Folder]:
    """Rename a folder; same name is a no-op."""
    return _run(user_id, folder_operations.rename_folder, folder_id, new_name)


def move_folder(
    user_id: Any,
    folder_id: Any,
    new_parent_id: Any,
) -> Result[Folder]:
    """Move a folder with its subtree; current parent is a no-op."""
    return _run(
        user_id,
        folder_operations.move_folder,
        folder_id,
        new_parent_id,
    )


def delete_folder(user_id: Any, folder_id: Any) -> Result[int]:
    """Delete a folder and its subfolders; data is the detached file count."""
    return _run(user_id, folder_operations.delete_folder, folder_id)


def list_folder(user_id: Any, folder_id: Any = None) -> Result[FolderContents]:
    """List subfolders and files of a folder, or of the workspace root."""
    return _run(user_id, _list_folder, folder_id)


def get_breadcrumbs(user_id: Any, folder_id: Any) -> Result[list[Folder]]:
    """Get the folders from the root down to `folder_id`."""
    return _run(user_id, _get_breadcrumbs, folder_id)


# Files


def upload_file(  # noqa: WPS211
    user_id: Any,
    filename: str,
    file_obj: BinaryIO | DjangoFile,
    parent_id: Any = None,
    **attribution: Any,
) -> Result[File]:
    """Upload bytes to storage and create the file row.

    `attribution` accepts link, uploader_email, uploader_name and
    uploader_message for uploads made through a link.
    """
    return _run(
        user_id,
        file_operations.upload_file,
        filename,
        file_obj,
        parent_id,
        **attribution,
    )


def create_file_record(  # noqa: WPS211
    user_id: Any,
    filename: str,
    file_size: int,
    storage_path: str,
    parent_id: Any = None,
    **attribution: Any,
) -> Result[File]:
    """Create the row for an object the client uploaded directly."""
    return _run(
        user_id,
        file_operations.create_file_record,
        filename,
        file_size,
        storage_path,
        parent_id,
        **attribution,
    )


def rename_file(user_id: Any, file_id: Any, new_filename: str) -> Result[File]:
    """Rename a file; the storage object keeps its key."""
    return _run(user_id, file_operations.rename_file, file_id, new_filename)


def move_file(user_id: Any, file_id: Any, new_parent_id: Any) -> Result[File]:
    """Move a file; its current folder is a no-op."""
    return _run(user_id, file_operations.move_file, file_id, new_parent_id)


def delete_file(user_id: Any, file_id: Any) -> Result[bool]:
    """Delete one file, storage first.

    Data is False when the row stayed behind as an orphan; the call
    still succeeded since the billed object is gone.
    """
    return _run(user_id, deletion_operations.delete_file, file_id)


def bulk_delete_files(
    user_id: Any,
    file_ids: Iterable[Any],
) -> Result[BulkDeleteReport]:
    """Delete many files, keeping per-file outcomes.

    PARTIAL_BULK_FAILURE when some files failed, STORAGE_OPERATION_FAILED
    when none was deleted. The report is attached either way.
    """
    outcome = _run(user_id, deletion_operations.bulk_delete_files, file_ids)
    if not outcome.ok or outcome.data is None:
        return outcome
    return _bulk_outcome(
        outcome.data,
        succeeded=outcome.data.deleted_count,
        failed=outcome.data.failed_count,
    )


def get_files_by_email(
    user_id: Any,
    uploader_email: str,
) -> Result[list[File]]:
    """List files one uploader sent through links."""
    return _run(user_id, _get_files_by_email, uploader_email)


def list_workspace_files(user_id: Any) -> Result[list[File]]:
    """List every file of the caller's workspace, newest first."""
    return _run(user_id, _list_workspace_files)


def get_files(user_id: Any, file_ids: Iterable[Any]) -> Result[list[File]]:
    """Get the caller's files among `file_ids`; unknown ids are left out."""
    return _run(user_id, _get_files, file_ids)


# Mixed selections


def move_items(
    user_id: Any,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    target_folder_id: Any,
) -> Result[MoveReport]:
    """Move files and folders together; all or nothing."""
    return _run(
        user_id,
        move_operations.move_items,
        file_ids,
        folder_ids,
        target_folder_id,
    )


def delete_items(
    user_id: Any,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
) -> Result[MixedDeleteReport]:
    """Delete files and folders together, accepting partial success."""
    outcome = _run(
        user_id,
        deletion_operations.delete_items,
        file_ids,
        folder_ids,
    )
    if not outcome.ok or outcome.data is None:
        return outcome
    report = outcome.data
    return _bulk_outcome(
        report,
        succeeded=report.deleted_file_count + report.deleted_folder_count,
        failed=report.failed_count,
    )


def download_items(
    user_id: Any,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    client: httpx.Client | None = None,
) -> Result[DownloadArchive]:
    """Build a ZIP of the selection; any unreadable entry aborts it."""
    return _run(
        user_id,
        archive_operations.download_items,
        file_ids,
        folder_ids,
        client,
    )


def download_folder(
    user_id: Any,
    folder_id: Any,
    client: httpx.Client | None = None,
) -> Result[DownloadArchive]:
    """Build a ZIP of one folder's subtree."""
    return _run(user_id, archive_operations.download_folder, folder_id, client)


def stream_items(  # noqa: WPS211
    user_id: Any,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    output: BinaryIO,
    client: httpx.Client | None = None,
) -> Result[int]:
    """Write a ZIP of the selection into `output`.

    Data is the number of entries written. On failure the stream may
    hold a partial archive and must be discarded.
    """
    return _run(
        user_id,
        archive_operations.stream_items,
        file_ids,
        folder_ids,
        output,
        client,
    )


def _run(
    user_id: Any,
    operation: Callable[Concatenate[Workspace, _P], _T],
    *args: _P.args,
    **kwargs: _P.kwargs,
) -> Result[_T]:
    try:
        workspace = resolve_workspace(user_id)
        return Result.success(operation(workspace, *args, **kwargs))
    except FilesError as error:
        logger.info(
            '%s rejected for user %s: %s',
            operation.__name__,
            user_id,
            error,
        )
        return Result.failure(error.kind, str(error))
    except Exception:
        logger.exception(
            '%s failed unexpectedly for user %s',
            operation.__name__,
            user_id,
        )
        return Result.failure(ErrorKind.OPERATION_FAILED, _UNEXPECTED_MESSAGE)


def _bulk_outcome(report: _T, succeeded: int, failed: int) -> Result[_T]:
    if not failed:
        return Result.success(report)
    if not succeeded:
        return Result.failure(
            ErrorKind.STORAGE_OPERATION_FAILED,
            f'None of {failed} items could be deleted. Please try again.',
            data=report,
        )
    return Result.failure(
        ErrorKind.PARTIAL_BULK_FAILURE,
        f'{succeeded} items deleted, {failed} failed.',
        data=report,
    )


def _list_folder(workspace: Workspace, folder_id: Any) -> FolderContents:
    parent_id = parse_folder_id(folder_id)
    if parent_id is not None:
        verify_folder_ownership(parent_id, workspace, 'list_folder')
    folders = folder_queries.get_folders_by_parent(workspace, parent_id)
    files = file_queries.get_files_by_parent(workspace, parent_id)
    return FolderContents(folders=list(folders), files=list(files))


def _get_breadcrumbs(workspace: Workspace, folder_id: Any) -> list[Folder]:
    folder = verify_folder_ownership(folder_id, workspace, 'get_breadcrumbs')
    return folder_queries.get_ancestor_chain(folder.id)


def _get_files_by_email(
    workspace: Workspace,
    uploader_email: str,
) -> list[File]:
    return list(file_queries.get_files_by_email(workspace, uploader_email))


def _list_workspace_files(workspace: Workspace) -> list[File]:
    return list(file_queries.get_workspace_files(workspace))


def _get_files(workspace: Workspace, file_ids: Iterable[Any]) -> list[File]:
    parsed_ids = []
    for raw_id in file_ids:
        try:
            parsed_ids.append(uuid.UUID(str(raw_id)))
        except ValueError:
            # Malformed ids cannot match any file
            continue
    return list(file_queries.get_files_by_ids(parsed_ids, workspace))
