"""Business logic for storage usage accounting.

`StorageQuota.used_bytes` mirrors the sum of the workspace's file rows.
Increments and decrements are meant to run inside the same transaction
as the row insert or delete they account for.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import BigIntegerField, F, Sum, Value  # noqa: WPS347
from django.db.models.functions import Greatest

from server.apps.files.exceptions import QuotaExceededError
from server.apps.files.models import File, StorageQuota, Workspace

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


def get_or_create_quota(workspace: Workspace) -> StorageQuota:
    """Get or create quota for a workspace (on-demand creation).

    Args:
        workspace: Workspace to get quota for.

    Returns:
        StorageQuota instance for the workspace.
    """
    quota, created = StorageQuota.objects.get_or_create(
        workspace=workspace,
        defaults={'quota_bytes': settings.FILES_DEFAULT_QUOTA_BYTES},
    )
    if created:
        logger.info(
            'Created quota for workspace %s: %d bytes',
            workspace.id,
            quota.quota_bytes,
        )
    return quota


def check_quota(workspace: Workspace, size_bytes: int) -> None:
    """Check if a workspace has enough quota for an upload.

    Creates quota on-demand if it doesn't exist.

    Args:
        workspace: Workspace to check quota for.
        size_bytes: Size of the upload in bytes.

    Raises:
        QuotaExceededError: If upload would exceed quota.
    """
    quota = get_or_create_quota(workspace)

    if not quota.has_space_for(size_bytes):
        logger.warning(
            'Quota exceeded for workspace %s: need %d, have %d available',
            workspace.id,
            size_bytes,
            quota.available_bytes(),
        )
        raise QuotaExceededError(
            quota_bytes=quota.quota_bytes,
            used_bytes=quota.used_bytes,
            required_bytes=size_bytes,
        )


def increment_usage(workspace: Workspace, size_bytes: int) -> None:
    """Atomically increment a workspace's storage usage.

    Args:
        workspace: Workspace to increment usage for.
        size_bytes: Bytes to add to usage.
    """
    with transaction.atomic():
        updated = StorageQuota.objects.filter(workspace=workspace).update(
            used_bytes=F(_USED_BYTES_FIELD) + size_bytes,
        )

        if updated == 0:
            quota = get_or_create_quota(workspace)
            quota.used_bytes = size_bytes
            quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Incremented usage for workspace %s by %d bytes',
        workspace.id,
        size_bytes,
    )


def decrement_usage(workspace_id: object, size_bytes: int) -> None:
    """Atomically decrement a workspace's storage usage.

    Clamps at 0. A missing quota row means nothing to release.

    Args:
        workspace_id: Workspace to decrement usage for.
        size_bytes: Bytes to subtract from usage.
    """
    updated = StorageQuota.objects.filter(workspace_id=workspace_id).update(
        used_bytes=Greatest(
            F(_USED_BYTES_FIELD) - size_bytes,
            Value(0),
            output_field=BigIntegerField(),
        ),
    )
    if updated == 0:
        logger.debug(
            'No quota exists for workspace %s, skipping decrement',
            workspace_id,
        )
        return

    logger.debug(
        'Decremented usage for workspace %s by %d bytes',
        workspace_id,
        size_bytes,
    )


def recalculate_usage(workspace: Workspace) -> int:
    """Recalculate a workspace's storage usage from its file rows.

    Args:
        workspace: Workspace to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    total = File.objects.filter(workspace=workspace).aggregate(
        total=Sum('file_size'),
    )['total'] or 0

    with transaction.atomic():
        quota = get_or_create_quota(workspace)
        old_usage = quota.used_bytes
        quota.used_bytes = total
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.info(
        'Recalculated usage for workspace %s: %d -> %d bytes',
        workspace.id,
        old_usage,
        total,
    )

    return total
