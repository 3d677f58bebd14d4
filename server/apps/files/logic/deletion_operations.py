"""Business logic for deleting files and folders.

Files are deleted storage first: the object is removed before its row,
so a failure can leave a stale row behind but never a billed object
without a row. Folders have no storage objects and are deleted in a
single transaction (see folder_operations.delete_folder).
"""

import logging
import uuid
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Sum

from server.apps.files.exceptions import FilesError, StorageOperationError
from server.apps.files.infrastructure.storage import get_storage
from server.apps.files.logic.authorization import (
    verify_file_ownership,
    verify_files_ownership,
    verify_folders_ownership,
)
from server.apps.files.logic.folder_operations import delete_folder
from server.apps.files.logic.folder_queries import has_selected_ancestor
from server.apps.files.logic.quota_operations import decrement_usage
from server.apps.files.models import File, Workspace
from server.apps.files.results import (
    BulkDeleteReport,
    FailedItem,
    MixedDeleteReport,
)

logger = logging.getLogger(__name__)

_TIMED_OUT = 'storage call timed out'


def delete_file(workspace: Workspace, file_id: Any) -> bool:
    """Delete one file: its storage object, then its row.

    Args:
        workspace: Owning workspace.
        file_id: File to delete.

    Returns:
        False if the object is gone but the row stayed behind as an
        orphan awaiting reconciliation.

    Raises:
        ResourceNotFoundError: If the file is not in the workspace.
        StorageOperationError: If the object could not be deleted in
            time; the row is left untouched and the call can be retried.
    """
    file_instance = verify_file_ownership(file_id, workspace, 'delete_file')

    reason = _delete_objects([file_instance])[file_instance.id]
    if reason is not None:
        raise StorageOperationError(file_instance.storage_path, reason)

    orphaned = _delete_rows(workspace.id, [file_instance])
    if not orphaned:
        logger.info(
            'File deleted: %s (ID: %s)',
            file_instance.filename,
            file_instance.id,
        )
    return not orphaned


def bulk_delete_files(
    workspace: Workspace,
    file_ids: Iterable[Any],
) -> BulkDeleteReport:
    """Delete many files, accepting partial success.

    Ownership of every id is checked before any storage call. Storage
    deletes then run concurrently and each outcome is kept on its own;
    only files whose object is gone lose their row.

    Args:
        workspace: Owning workspace.
        file_ids: Files to delete (duplicates are collapsed).

    Returns:
        Per-file report. No file was deleted if `deleted_count` is 0.

    Raises:
        ResourceNotFoundError: If any id is not in the workspace.
    """
    files = verify_files_ownership(file_ids, workspace, 'bulk_delete_files')
    report = BulkDeleteReport()
    if not files:
        return report

    outcomes = _delete_objects(files)
    succeeded = []
    for file_instance in files:
        reason = outcomes[file_instance.id]
        if reason is None:
            succeeded.append(file_instance)
            report.deleted_ids.append(file_instance.id)
        else:
            report.failed.append(
                FailedItem(
                    item_id=file_instance.id,
                    name=file_instance.filename,
                    reason=reason,
                ),
            )

    if succeeded:
        report.orphaned_ids.extend(_delete_rows(workspace.id, succeeded))

    logger.info(
        'Bulk delete in workspace %s: %d deleted, %d failed, %d orphaned',
        workspace.id,
        report.deleted_count,
        report.failed_count,
        len(report.orphaned_ids),
    )
    return report


def delete_items(
    workspace: Workspace,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
) -> MixedDeleteReport:
    """Delete a selection of files and folders.

    Files go through the bulk protocol first. Folders are then deleted
    one by one; a failing folder is reported and the rest continue.
    Folders nested inside another selected folder go with their
    ancestor and are not deleted separately.

    Args:
        workspace: Owning workspace.
        file_ids: Selected files.
        folder_ids: Selected folders.

    Returns:
        Combined report for files and folders.

    Raises:
        ResourceNotFoundError: If any id is not in the workspace.
    """
    folders = verify_folders_ownership(folder_ids, workspace, 'delete_items')
    file_id_list = list(file_ids)

    report = MixedDeleteReport()
    if file_id_list:
        report.files = bulk_delete_files(workspace, file_id_list)

    selected = {folder.id for folder in folders}
    for folder in folders:
        if has_selected_ancestor(folder.id, selected):
            logger.debug('Folder %s goes with a selected ancestor', folder.id)
            continue
        try:
            delete_folder(workspace, folder.id)
        except (FilesError, DatabaseError) as error:
            logger.warning(
                'Failed to delete folder %s: %s',
                folder.id,
                error,
                exc_info=True,
            )
            report.failed_folders.append(
                FailedItem(
                    item_id=folder.id,
                    name=folder.name,
                    reason=str(error),
                ),
            )
        else:
            report.deleted_folder_ids.append(folder.id)

    return report


def remove_orphaned_record(file_instance: File) -> bool:
    """Delete a row whose storage object no longer exists.

    Args:
        file_instance: Row to remove; its usage is released too.

    Returns:
        False if the row could not be deleted.
    """
    removed = not _delete_rows(file_instance.workspace_id, [file_instance])
    if removed:
        logger.info(
            'Orphaned record removed: %s (ID: %s)',
            file_instance.storage_path,
            file_instance.id,
        )
    return removed


def _delete_objects(files: list[File]) -> dict[uuid.UUID, str | None]:
    """Delete storage objects concurrently.

    Workers only talk to storage, never to the database.

    Returns:
        Failure reason per file id, None where the object was deleted.
    """
    storage = get_storage()
    workers = min(settings.FILES_STORAGE_CONCURRENCY, len(files))
    executor = ThreadPoolExecutor(
        max_workers=max(1, workers),
        thread_name_prefix='storage-delete',
    )
    futures: dict[Future[None], File] = {}
    try:
        for file_instance in files:
            future = executor.submit(storage.delete, file_instance.storage_path)
            futures[future] = file_instance
        _, pending = wait(futures, timeout=settings.FILES_STORAGE_TIMEOUT)
    finally:
        # Calls still running are abandoned, not awaited
        executor.shutdown(wait=False, cancel_futures=True)

    outcomes: dict[uuid.UUID, str | None] = {}
    for future, file_instance in futures.items():
        if future in pending:
            logger.warning(
                'Storage delete timed out, possible orphan if it still '
                'completes: %s (ID: %s)',
                file_instance.storage_path,
                file_instance.id,
                extra={'requires_cleanup': True},
            )
            outcomes[file_instance.id] = _TIMED_OUT
            continue
        error = future.exception()
        if error is None:
            outcomes[file_instance.id] = None
        else:
            outcomes[file_instance.id] = str(error) or type(error).__name__
    return outcomes


def _delete_rows(
    workspace_id: uuid.UUID,
    files: list[File],
) -> list[uuid.UUID]:
    """Delete rows whose storage object is already gone.

    Returns:
        Ids of rows that could not be deleted (orphans).
    """
    file_ids = [file_instance.id for file_instance in files]
    try:
        with transaction.atomic():
            rows = File.objects.filter(pk__in=file_ids)
            released = rows.aggregate(total=Sum('file_size'))['total'] or 0
            rows.delete()
            decrement_usage(workspace_id, released)
    except DatabaseError:
        logger.warning(
            'Orphaned records require cleanup (storage deleted, rows kept): '
            '%s',
            [str(file_id) for file_id in file_ids],
            exc_info=True,
            extra={'requires_cleanup': True},
        )
        return file_ids
    return []
