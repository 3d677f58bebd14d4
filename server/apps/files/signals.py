"""Signal handlers for files app."""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from server.apps.files.models import StorageQuota, Workspace

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_workspace_for_user(
    sender: type,
    instance: object,
    created: bool,  # noqa: FBT001
    **kwargs: object,
) -> None:
    """Create the user's workspace and quota when a user is created.

    Every user owns exactly one workspace, so the rest of the app can
    resolve it without checking for its absence.

    Args:
        sender: The user model class.
        instance: The user that was saved.
        created: Whether the user row was just inserted.
        **kwargs: Additional signal arguments.
    """
    if not created or kwargs.get('raw'):
        return

    username = instance.get_username()  # type: ignore[attr-defined]
    workspace = Workspace.objects.create(
        user=instance,
        name=f"{username}'s workspace",
    )
    StorageQuota.objects.create(
        workspace=workspace,
        quota_bytes=settings.FILES_DEFAULT_QUOTA_BYTES,
    )
    logger.info(
        'Workspace created for user %s (ID: %s)',
        username,
        workspace.id,
    )
