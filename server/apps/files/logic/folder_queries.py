"""Read queries over the folder hierarchy.

Ancestor and subtree walks run as recursive CTEs with a bounded number
of hops. A move committed while a walk is running can make the answer
stale, never unbounded; validation re-reads right before each write.
"""

import uuid
from dataclasses import dataclass
from typing import Any, final

from django.conf import settings
from django.db import connection
from django.db.models import QuerySet

from server.apps.files.infrastructure.metadata import normalize_name
from server.apps.files.models import Folder, Workspace

_ANCESTORS_CTE = """
    WITH RECURSIVE chain (id, parent_id, hops) AS (
        SELECT id, parent_id, 0 FROM {table} WHERE id = %s
        UNION ALL
        SELECT folder.id, folder.parent_id, chain.hops + 1
        FROM {table} AS folder
        INNER JOIN chain ON folder.id = chain.parent_id
        WHERE chain.hops < %s
    )
"""

_SUBTREE_CTE = """
    WITH RECURSIVE subtree (id, hops) AS (
        SELECT id, 0 FROM {table} WHERE id = %s
        UNION ALL
        SELECT folder.id, subtree.hops + 1
        FROM {table} AS folder
        INNER JOIN subtree ON folder.parent_id = subtree.id
        WHERE subtree.hops < %s
    )
"""


@final
@dataclass(frozen=True, slots=True)
class SubtreeFolder:
    """Folder inside a subtree, with its path from the subtree root.

    The root's path is just its own name: ('F',), a child is ('F', 'G').
    """

    folder: Folder
    path: tuple[str, ...]
    depth: int


def get_root_folders(workspace: Workspace) -> QuerySet[Folder]:
    """List root folders (no parent) of a workspace.

    Args:
        workspace: Owning workspace.

    Returns:
        QuerySet of root folders ordered by name.
    """
    return get_folders_by_parent(workspace, None)


def get_folders_by_parent(
    workspace: Workspace,
    parent_id: uuid.UUID | None,
) -> QuerySet[Folder]:
    """List folders directly inside a parent, or at the root.

    Args:
        workspace: Owning workspace.
        parent_id: Parent folder id, None for root folders.

    Returns:
        QuerySet of child folders ordered by name.
    """
    return Folder.objects.filter(
        workspace=workspace,
        parent_id=parent_id,
    ).order_by('name')


def get_ancestor_chain(folder_id: uuid.UUID) -> list[Folder]:
    """Get the path from the root down to a folder.

    Args:
        folder_id: Folder to start from.

    Returns:
        Folders ordered root first, the folder itself last.
        Empty if the folder does not exist.
    """
    table = Folder._meta.db_table
    query = _ANCESTORS_CTE.format(table=table) + f"""
        SELECT folder.* FROM {table} AS folder
        INNER JOIN chain ON folder.id = chain.id
        ORDER BY chain.hops DESC
    """  # noqa: S608
    return list(Folder.objects.raw(query, [_db_id(folder_id), _scan_limit()]))


def get_depth(folder_id: uuid.UUID) -> int:
    """Get the depth of a folder; root folders are at depth 0.

    Args:
        folder_id: Folder to measure.

    Returns:
        Number of ancestors of the folder (0 if it does not exist).
    """
    query = _ANCESTORS_CTE.format(table=Folder._meta.db_table) + """
        SELECT MAX(hops) FROM chain
    """
    return _fetch_int(query, [_db_id(folder_id), _scan_limit()])


def get_subtree_height(folder_id: uuid.UUID) -> int:
    """Get how many levels of subfolders hang below a folder.

    Args:
        folder_id: Subtree root.

    Returns:
        0 for a folder without subfolders, 1 if it only has children, ...
    """
    query = _SUBTREE_CTE.format(table=Folder._meta.db_table) + """
        SELECT MAX(hops) FROM subtree
    """
    return _fetch_int(query, [_db_id(folder_id), _scan_limit()])


def get_subtree(folder: Folder) -> list[SubtreeFolder]:
    """Get a folder and all its descendants with their relative paths.

    Args:
        folder: Subtree root.

    Returns:
        The root first, then descendants level by level.
    """
    table = Folder._meta.db_table
    query = _SUBTREE_CTE.format(table=table) + f"""
        SELECT folder.*, subtree.hops AS subtree_depth FROM {table} AS folder
        INNER JOIN subtree ON folder.id = subtree.id
        ORDER BY subtree.hops, folder.name
    """  # noqa: S608
    rows = Folder.objects.raw(query, [_db_id(folder.id), _scan_limit()])

    paths: dict[uuid.UUID, tuple[str, ...]] = {}
    subtree: list[SubtreeFolder] = []
    for row in rows:
        if row.id == folder.id:
            path: tuple[str, ...] = (row.name,)
        else:
            path = (*paths[row.parent_id], row.name)
        paths[row.id] = path
        subtree.append(
            SubtreeFolder(folder=row, path=path, depth=row.subtree_depth),
        )
    return subtree


def has_selected_ancestor(
    folder_id: uuid.UUID,
    selected: set[uuid.UUID],
) -> bool:
    """Check whether any strict ancestor of a folder is in a selection.

    Args:
        folder_id: Folder to check.
        selected: Ids of the selected folders.

    Returns:
        True if the folder is already covered by a selected ancestor.
    """
    ancestors = get_ancestor_chain(folder_id)[:-1]
    return any(ancestor.id in selected for ancestor in ancestors)


def is_folder_name_available(
    workspace: Workspace,
    name: str,
    parent_id: uuid.UUID | None,
    exclude_id: uuid.UUID | None = None,
) -> bool:
    """Check that no sibling folder already uses a name.

    Args:
        workspace: Owning workspace.
        name: Candidate name (normalized before comparing).
        parent_id: Parent folder id, None for the root.
        exclude_id: Folder to ignore, i.e. the one being renamed or moved.

    Returns:
        True if the name is free in that location.
    """
    siblings = Folder.objects.filter(
        workspace=workspace,
        parent_id=parent_id,
        name=normalize_name(name),
    )
    if exclude_id is not None:
        siblings = siblings.exclude(pk=exclude_id)
    return not siblings.exists()


def _scan_limit() -> int:
    # Valid trees never need more hops than the depth limit
    return settings.FILES_MAX_NESTING_DEPTH + 1


def _db_id(folder_id: uuid.UUID) -> Any:
    return Folder._meta.pk.get_db_prep_value(folder_id, connection)


def _fetch_int(query: str, params: list[Any]) -> int:
    with connection.cursor() as cursor:
        cursor.execute(query, params)
        row = cursor.fetchone()
    if row is None or row[0] is None:
        return 0
    return int(row[0])
