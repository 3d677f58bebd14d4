"""Management command to remove file rows whose storage object is gone."""

import logging
from typing import Any, Final

from django.core.management.base import BaseCommand

from server.apps.files.infrastructure.storage import get_storage
from server.apps.files.logic.deletion_operations import remove_orphaned_record
from server.apps.files.models import File

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete orphaned file records and release their storage usage.

    A row becomes orphaned when its storage object was deleted but the
    row delete that should have followed failed.
    """

    help = 'Remove file records whose storage object no longer exists'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be removed without removing',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max records to remove (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reconciliation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        storage = get_storage()

        self.stdout.write('Checking file records against storage')

        count = 0
        failed = 0

        records = File.objects.order_by('created_at').iterator()
        for file_instance in records:
            if count + failed >= batch_size:
                break

            try:
                missing = not storage.exists(file_instance.storage_path)
            except Exception as exc:
                self.stderr.write(
                    f'Failed to check {file_instance.id}: {exc}',
                )
                logger.exception(
                    'Failed to check storage for file: %s',
                    file_instance.id,
                )
                failed += 1
                continue

            if not missing:
                continue

            if dry_run:
                self.stdout.write(
                    f'Would remove: {file_instance.filename} '
                    f'(workspace: {file_instance.workspace_id}, '
                    f'path: {file_instance.storage_path})',
                )
                count += 1
                continue

            if remove_orphaned_record(file_instance):
                count += 1
            else:
                self.stderr.write(f'Failed to remove {file_instance.id}')
                failed += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would remove {count} orphaned records'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Removed {count} orphaned records, {failed} failed',
                ),
            )
