"""Tests for reconcile_orphaned_files management command."""

from io import StringIO

import pytest
from django.core.management import call_command

from server.apps.files.infrastructure.storage import FileStorage
from server.apps.files.models import File, StorageQuota


@pytest.mark.django_db
class TestReconcileOrphanedFilesCommand:
    """Tests for reconcile_orphaned_files management command."""

    def test_removes_orphaned_records(
        self,
        workspace,
        mock_s3,
        make_file,
        make_stored_file,
    ):
        """Test rows without storage object are removed."""
        orphan = make_file('orphan.txt', size=100)
        kept = make_stored_file('kept.txt')

        out = StringIO()
        call_command('reconcile_orphaned_files', stdout=out)

        assert not File.objects.filter(id=orphan.id).exists()
        assert File.objects.filter(id=kept.id).exists()

        # Usage of the orphan is released
        quota = StorageQuota.objects.get(workspace=workspace)
        assert quota.used_bytes == kept.file_size

        assert 'Removed 1 orphaned records, 0 failed' in out.getvalue()

    def test_dry_run(self, mock_s3, make_file):
        """Test dry run reports without removing."""
        orphan = make_file('orphan.txt')

        out = StringIO()
        call_command('reconcile_orphaned_files', '--dry-run', stdout=out)

        assert File.objects.filter(id=orphan.id).exists()
        assert 'Would remove: orphan.txt' in out.getvalue()
        assert 'Would remove 1 orphaned records' in out.getvalue()

    def test_batch_size(self, mock_s3, make_file):
        """Test no more than batch-size records are processed."""
        for index in range(3):
            make_file(f'orphan-{index}.txt')

        out = StringIO()
        call_command(
            'reconcile_orphaned_files',
            '--batch-size',
            '2',
            stdout=out,
        )

        assert File.objects.count() == 1
        assert 'Removed 2 orphaned records' in out.getvalue()

    def test_check_failure_counted(self, mock_s3, make_file, monkeypatch):
        """Test records whose check fails are kept and counted."""
        def failing_exists(self, name):
            raise ConnectionError('storage unreachable')

        monkeypatch.setattr(FileStorage, 'exists', failing_exists)
        orphan = make_file('orphan.txt')

        out = StringIO()
        err = StringIO()
        call_command('reconcile_orphaned_files', stdout=out, stderr=err)

        assert File.objects.filter(id=orphan.id).exists()
        assert 'Removed 0 orphaned records, 1 failed' in out.getvalue()
        assert f'Failed to check {orphan.id}' in err.getvalue()

    def test_nothing_to_do(self, mock_s3):
        """Test an empty table reports zero removals."""
        out = StringIO()
        call_command('reconcile_orphaned_files', stdout=out)

        assert 'Removed 0 orphaned records, 0 failed' in out.getvalue()
