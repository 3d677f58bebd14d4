"""Database models for files app."""

import uuid
from typing import Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_PATH_MAX_LENGTH: Final = 1024
_SLUG_MAX_LENGTH: Final = 100
_UPLOADER_MESSAGE_MAX_LENGTH: Final = 1000

# Default quota: 10 GB in bytes
_DEFAULT_QUOTA_BYTES: Final = 10 * 1024 * 1024 * 1024


@final
class Workspace(models.Model):
    """Per-user root container for all folders and files.

    Exactly one workspace exists per user. It is created automatically
    when the user is created (see signals.py).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='workspace',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Workspace'  # type: ignore[mutable-override]
        verbose_name_plural = 'Workspaces'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name or str(self.id)


@final
class Link(models.Model):
    """Shareable upload link owned by a workspace.

    Folders and files only reference links weakly: deleting a link
    clears the reference instead of removing the content.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='links',
    )

    slug = models.SlugField(max_length=_SLUG_MAX_LENGTH, unique=True)

    title = models.CharField(max_length=_NAME_MAX_LENGTH, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Link'  # type: ignore[mutable-override]
        verbose_name_plural = 'Links'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.slug


@final
class Folder(models.Model):
    """Pure-metadata node of the workspace hierarchy.

    Folders have no storage representation. Root folders have no parent
    and sit at depth 0. Deleting a folder cascades to its subfolders;
    files inside are detached by the deletion logic before that happens.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='folders',
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='subfolders',
    )

    link = models.ForeignKey(
        Link,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='folders',
    )

    # Set when the folder was created by an upload through a link
    uploader_email = models.EmailField(null=True, blank=True)
    uploader_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

        indexes = [
            models.Index(
                fields=['workspace', 'parent'],
                name='folders_workspace_parent_idx',
            ),
        ]

        constraints = [
            # Sibling names are unique under a parent folder
            models.UniqueConstraint(
                fields=['workspace', 'parent', 'name'],
                condition=models.Q(parent__isnull=False),
                name='folders_sibling_name_unique',
            ),
            # NULL parents never collide in a unique index
            models.UniqueConstraint(
                fields=['workspace', 'name'],
                condition=models.Q(parent__isnull=True),
                name='folders_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class File(models.Model):
    """Metadata row for exactly one object in S3-compatible storage.

    `storage_path` is assigned once at creation and never changes: moving
    or renaming a file only touches this row, never the storage object.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    workspace = models.ForeignKey(
        Workspace,
        on_delete=models.CASCADE,
        related_name='files',
    )

    filename = models.CharField(max_length=_NAME_MAX_LENGTH)

    file_size = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='MIME type guessed from the filename',
    )

    storage_path = models.CharField(
        max_length=_STORAGE_PATH_MAX_LENGTH,
        unique=True,
        editable=False,
        help_text='Object key in storage: {workspace_id}/{uuid}/{filename}',
    )

    parent_folder = models.ForeignKey(
        Folder,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='files',
    )

    link = models.ForeignKey(
        Link,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='files',
    )

    uploader_email = models.EmailField(null=True, blank=True)
    uploader_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        null=True,
        blank=True,
    )
    uploader_message = models.TextField(
        max_length=_UPLOADER_MESSAGE_MAX_LENGTH,
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['filename']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['workspace', 'parent_folder'],
                name='files_workspace_parent_idx',
            ),
            models.Index(
                fields=['workspace', 'uploader_email'],
                name='files_workspace_uploader_idx',
            ),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=['workspace', 'parent_folder', 'filename'],
                condition=models.Q(parent_folder__isnull=False),
                name='files_sibling_name_unique',
            ),
            models.UniqueConstraint(
                fields=['workspace', 'filename'],
                condition=models.Q(parent_folder__isnull=True),
                name='files_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.filename

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        stem, dot, extension = self.filename.rpartition('.')
        if not dot or not stem:
            return ''
        return extension.lower()


@final
class StorageQuota(models.Model):
    """Storage quota for a workspace.

    `used_bytes` tracks the sum of the workspace's file rows: it grows
    when a row is created and shrinks in the same transaction that
    deletes a row.
    """

    workspace = models.OneToOneField(
        Workspace,
        on_delete=models.CASCADE,
        related_name='quota',
        primary_key=True,
    )

    quota_bytes = models.BigIntegerField(
        default=_DEFAULT_QUOTA_BYTES,
        help_text='Storage quota limit in bytes',
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storage Quotas'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(quota_bytes__gte=0),
                name='quota_bytes_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.workspace}: {self.used_bytes}/{self.quota_bytes}'

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.quota_bytes

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        available = self.quota_bytes - self.used_bytes
        return max(0, available)
