"""Read queries over file records."""

import uuid
from collections.abc import Iterable

from django.db.models import QuerySet

from server.apps.files.infrastructure.metadata import normalize_name
from server.apps.files.models import File, Workspace


def get_workspace_files(workspace: Workspace) -> QuerySet[File]:
    """List every file of a workspace, newest first.

    Args:
        workspace: Owning workspace.

    Returns:
        QuerySet of files.
    """
    return File.objects.filter(workspace=workspace).order_by('-created_at')


def get_files_by_parent(
    workspace: Workspace,
    parent_id: uuid.UUID | None,
) -> QuerySet[File]:
    """List files directly inside a folder, or at the root.

    Args:
        workspace: Owning workspace.
        parent_id: Parent folder id, None for root files.

    Returns:
        QuerySet of files ordered by filename.
    """
    return File.objects.filter(
        workspace=workspace,
        parent_folder_id=parent_id,
    ).order_by('filename')


def get_files_by_ids(
    file_ids: Iterable[uuid.UUID],
    workspace: Workspace,
) -> QuerySet[File]:
    """Get the files among `file_ids` that belong to the workspace.

    Args:
        file_ids: Requested ids.
        workspace: Owning workspace.

    Returns:
        QuerySet of matching files; foreign or unknown ids are left out.
    """
    return File.objects.filter(pk__in=list(file_ids), workspace=workspace)


def get_files_by_email(
    workspace: Workspace,
    uploader_email: str,
) -> QuerySet[File]:
    """List files uploaded through links by one uploader.

    Args:
        workspace: Owning workspace.
        uploader_email: Uploader's email address (case-insensitive).

    Returns:
        QuerySet of files, newest first.
    """
    return File.objects.filter(
        workspace=workspace,
        uploader_email__iexact=uploader_email,
    ).order_by('-created_at')


def get_files_in_folders(folder_ids: Iterable[uuid.UUID]) -> QuerySet[File]:
    """List files directly inside any of the given folders.

    Args:
        folder_ids: Parent folder ids.

    Returns:
        QuerySet of files ordered by filename.
    """
    return File.objects.filter(
        parent_folder_id__in=list(folder_ids),
    ).order_by('filename')


def is_filename_available(
    workspace: Workspace,
    filename: str,
    parent_id: uuid.UUID | None,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    """Check that no sibling file already uses a filename.

    Args:
        workspace: Owning workspace.
        filename: Candidate name (normalized before comparing).
        parent_id: Parent folder id, None for the root.
        exclude_id: File to ignore, i.e. the one being renamed or moved.

    Returns:
        True if the filename is free in that location.
    """
    siblings = File.objects.filter(
        workspace=workspace,
        parent_folder_id=parent_id,
        filename=normalize_name(filename),
    )
    if exclude_id is not None:
        siblings = siblings.exclude(pk=exclude_id)
    return not siblings.exists()
