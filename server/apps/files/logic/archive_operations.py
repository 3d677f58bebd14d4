"""Business logic for ZIP downloads of files and folders.

Selected files land at the archive root; a selected folder contributes
its whole subtree under its own name. Bytes never pass through the
database layer: each entry is fetched from a short-lived signed URL.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, BinaryIO, Final

import httpx
from django.conf import settings

from server.apps.files.exceptions import StorageOperationError
from server.apps.files.infrastructure.archive import (
    ArchiveEntry,
    build_archive,
    write_archive,
)
from server.apps.files.infrastructure.metadata import generate_unique_name
from server.apps.files.infrastructure.storage import get_storage
from server.apps.files.logic.authorization import (
    verify_files_ownership,
    verify_folders_ownership,
)
from server.apps.files.logic.file_queries import get_files_in_folders
from server.apps.files.logic.folder_queries import (
    get_subtree,
    has_selected_ancestor,
)
from server.apps.files.models import File, Folder, Workspace
from server.apps.files.results import DownloadArchive

_DEFAULT_ARCHIVE_NAME: Final = 'download.zip'

logger = logging.getLogger(__name__)


def download_items(
    workspace: Workspace,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    client: httpx.Client | None = None,
) -> DownloadArchive:
    """Build a ZIP of selected files and folders.

    Args:
        workspace: Owning workspace.
        file_ids: Files placed at the archive root.
        folder_ids: Folders included with their full subtree.
        client: HTTP client for signed URL fetches (created if None).

    Returns:
        The archive with a suggested filename.

    Raises:
        ResourceNotFoundError: If any id is not in the workspace.
        StorageOperationError: If any entry cannot be signed or fetched.
    """
    entries = prepare_entries(workspace, file_ids, folder_ids)
    try:
        content = build_archive(entries, client)
    except httpx.HTTPError as error:
        raise _fetch_failed(error) from error
    return DownloadArchive(
        filename=_DEFAULT_ARCHIVE_NAME,
        content=content,
        entry_count=len(entries),
    )


def download_folder(
    workspace: Workspace,
    folder_id: Any,
    client: httpx.Client | None = None,
) -> DownloadArchive:
    """Build a ZIP of one folder's subtree.

    Args:
        workspace: Owning workspace.
        folder_id: Folder to archive; its name is the top-level entry.
        client: HTTP client for signed URL fetches (created if None).

    Returns:
        The archive, named after the folder.

    Raises:
        ResourceNotFoundError: If the folder is not in the workspace.
        StorageOperationError: If any entry cannot be signed or fetched.
    """
    folder = verify_folders_ownership([folder_id], workspace, 'download')[0]
    archive = download_items(workspace, [], [folder.id], client)
    return DownloadArchive(
        filename=f'{folder.name}.zip',
        content=archive.content,
        entry_count=archive.entry_count,
    )


def stream_items(
    workspace: Workspace,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
    output: BinaryIO,
    client: httpx.Client | None = None,
) -> int:
    """Stream a ZIP of selected files and folders into `output`.

    Signed URLs for every entry are obtained before the first byte is
    written. A fetch failing midway leaves `output` incomplete and the
    caller must discard it.

    Args:
        workspace: Owning workspace.
        file_ids: Files placed at the archive root.
        folder_ids: Folders included with their full subtree.
        output: Writable binary stream.
        client: HTTP client for signed URL fetches (created if None).

    Returns:
        Number of entries written.

    Raises:
        ResourceNotFoundError: If any id is not in the workspace.
        StorageOperationError: If any entry cannot be signed or fetched.
    """
    entries = prepare_entries(workspace, file_ids, folder_ids)
    try:
        return write_archive(entries, output, client)
    except httpx.HTTPError as error:
        raise _fetch_failed(error) from error


def prepare_entries(
    workspace: Workspace,
    file_ids: Iterable[Any],
    folder_ids: Iterable[Any],
) -> list[ArchiveEntry]:
    """Verify the selection, lay out archive paths and sign every entry.

    Args:
        workspace: Owning workspace.
        file_ids: Files placed at the archive root.
        folder_ids: Folders included with their full subtree.

    Returns:
        Archive entries in archive order.

    Raises:
        ResourceNotFoundError: If any id is not in the workspace.
        StorageOperationError: If any entry cannot be signed.
    """
    files = verify_files_ownership(file_ids, workspace, 'download')
    folders = verify_folders_ownership(folder_ids, workspace, 'download')
    layout = _layout(files, folders)
    return _sign(layout)


def _layout(
    files: list[File],
    folders: list[Folder],
) -> list[tuple[str, File]]:
    """Assign a unique archive path to every file.

    Within one archive directory, subfolder names are reserved first and
    clashing names get the 'name (1).ext' treatment. Folders inside
    another selected folder, and files inside any selected subtree, are
    written once, under the outermost selected folder.
    """
    taken: defaultdict[str, set[str]] = defaultdict(set)
    layout: list[tuple[str, File]] = []
    covered: set[Any] = set()
    selected = {folder.id for folder in folders}

    def claim(directory: str, name: str) -> str:  # noqa: WPS430
        unique = generate_unique_name(name, taken[directory])
        taken[directory].add(unique)
        return f'{directory}/{unique}' if directory else unique

    for folder in folders:
        if has_selected_ancestor(folder.id, selected):
            continue
        directories: dict[Any, str] = {}
        for node in get_subtree(folder):
            if node.folder.id == folder.id:
                parent_dir = ''
            else:
                parent_dir = directories[node.folder.parent_id]
            directories[node.folder.id] = claim(parent_dir, node.folder.name)
        covered.update(directories)

        for file_instance in get_files_in_folders(directories):
            directory = directories[file_instance.parent_folder_id]
            arcname = claim(directory, file_instance.filename)
            layout.append((arcname, file_instance))

    root_files = [
        (claim('', file_instance.filename), file_instance)
        for file_instance in files
        if file_instance.parent_folder_id not in covered
    ]
    return root_files + layout


def _sign(layout: list[tuple[str, File]]) -> list[ArchiveEntry]:
    """Generate signed URLs concurrently; any failure aborts the archive."""
    if not layout:
        return []

    storage = get_storage()
    expiry = settings.FILES_SIGNED_URL_EXPIRY
    workers = min(settings.FILES_STORAGE_CONCURRENCY, len(layout))
    executor = ThreadPoolExecutor(
        max_workers=max(1, workers),
        thread_name_prefix='signed-url',
    )
    futures: list[Future[str]] = []
    try:
        for _, file_instance in layout:
            futures.append(
                executor.submit(
                    storage.generate_signed_url,
                    file_instance.storage_path,
                    expiry,
                ),
            )
        _, pending = wait(futures, timeout=settings.FILES_STORAGE_TIMEOUT)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    entries = []
    for (arcname, file_instance), future in zip(layout, futures, strict=True):
        if future in pending:
            raise StorageOperationError(
                file_instance.storage_path,
                'signed URL generation timed out',
            )
        error = future.exception()
        if isinstance(error, FileNotFoundError):
            raise StorageOperationError(
                file_instance.storage_path,
                'object is missing from storage',
            ) from error
        if error is not None:
            raise StorageOperationError(
                file_instance.storage_path,
                'signed URL generation failed',
            ) from error
        entries.append(
            ArchiveEntry(arcname=arcname, signed_url=future.result()),
        )
    return entries


def _fetch_failed(error: httpx.HTTPError) -> StorageOperationError:
    logger.exception('Archive fetch failed')
    return StorageOperationError(
        'archive',
        f'fetching file bytes failed: {error}',
    )
