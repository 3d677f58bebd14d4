"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.files.models import File, Folder, Link, StorageQuota, Workspace

_WARNING_PERCENT = 90


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    size = float(size_bytes)
    for unit in ('B', 'KB', 'MB'):
        if size < 1024:
            return f'{size:.0f} {unit}' if unit == 'B' else f'{size:.1f} {unit}'
        size /= 1024
    return f'{size:.1f} GB'


@admin.register(Workspace)
class WorkspaceAdmin(admin.ModelAdmin[Workspace]):
    """Admin interface for Workspace model."""

    list_display = ['name', 'user', 'folder_count', 'file_count', 'created_at']
    search_fields = ['name', 'user__username', 'user__email']
    readonly_fields = ['id', 'user', 'created_at']

    @admin.display(description='Folders')
    def folder_count(self, obj: Workspace) -> int:
        """Number of folders in the workspace."""
        return obj.folders.count()

    @admin.display(description='Files')
    def file_count(self, obj: Workspace) -> int:
        """Number of files in the workspace."""
        return obj.files.count()

    def get_queryset(self, request: HttpRequest) -> QuerySet[Workspace]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user')


@admin.register(Link)
class LinkAdmin(admin.ModelAdmin[Link]):
    """Admin interface for Link model."""

    list_display = ['slug', 'title', 'workspace', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['slug', 'title']
    readonly_fields = ['id', 'created_at']


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model.

    Structure is edited through the files logic only, so the hierarchy
    fields are read-only here.
    """

    list_display = ['name', 'workspace', 'parent', 'link', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'uploader_email']
    readonly_fields = ['id', 'workspace', 'parent', 'created_at', 'updated_at']

    fieldsets = (
        ('Folder', {
            'fields': ('id', 'name', 'workspace', 'parent', 'link'),
        }),
        ('Uploader', {
            'fields': ('uploader_email', 'uploader_name'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'workspace',
            'parent',
        )


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'filename',
        'workspace',
        'parent_folder',
        'size_display',
        'mime_type',
        'uploader_email',
        'created_at',
    ]

    list_filter = [
        'mime_type',
        'created_at',
    ]

    search_fields = [
        'filename',
        'storage_path',
        'uploader_email',
    ]

    readonly_fields = [
        'id',
        'workspace',
        'parent_folder',
        'storage_path',
        'file_size',
        'mime_type',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('id', 'filename', 'workspace', 'parent_folder', 'link'),
        }),
        ('Storage', {
            'fields': ('storage_path', 'file_size', 'mime_type'),
        }),
        ('Uploader', {
            'fields': ('uploader_email', 'uploader_name', 'uploader_message'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    @admin.display(description='Size', ordering='file_size')
    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string.
        """
        return _format_bytes(obj.file_size)

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'workspace',
            'parent_folder',
        )


@admin.register(StorageQuota)
class StorageQuotaAdmin(admin.ModelAdmin[StorageQuota]):
    """Admin interface for StorageQuota model.

    `used_bytes` is maintained by the files logic and shown read-only.
    """

    list_display = [
        'workspace',
        'quota_display',
        'used_display',
        'status_display',
    ]

    search_fields = [
        'workspace__name',
        'workspace__user__username',
    ]

    readonly_fields = [
        'workspace',
        'used_bytes',
    ]

    @admin.display(description='Quota')
    def quota_display(self, obj: StorageQuota) -> str:
        """Display quota in human-readable format."""
        return _format_bytes(obj.quota_bytes)

    @admin.display(description='Used')
    def used_display(self, obj: StorageQuota) -> str:
        """Display used bytes in human-readable format."""
        return _format_bytes(obj.used_bytes)

    @admin.display(description='Status')
    def status_display(self, obj: StorageQuota) -> str:
        """Display usage percentage with a status color.

        Args:
            obj: StorageQuota instance.

        Returns:
            HTML formatted status indicator.
        """
        if obj.quota_bytes:
            percentage = obj.used_bytes * 100 / obj.quota_bytes
        else:
            percentage = 0.0

        if percentage >= 100:
            color = '#dc3545'  # Red - over quota
        elif percentage >= _WARNING_PERCENT:
            color = '#ffc107'  # Yellow - warning
        else:
            color = '#28a745'  # Green - ok

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{percentage}%</span>',
            color=color,
            percentage=f'{percentage:.1f}',
        )

    def get_queryset(self, request: HttpRequest) -> QuerySet[StorageQuota]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('workspace')
