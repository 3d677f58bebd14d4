"""Tests for storage usage accounting."""

import pytest

from server.apps.files.exceptions import QuotaExceededError
from server.apps.files.logic.quota_operations import (
    check_quota,
    decrement_usage,
    get_or_create_quota,
    increment_usage,
    recalculate_usage,
)
from server.apps.files.models import StorageQuota


@pytest.mark.django_db
class TestGetOrCreateQuota:
    """Tests for get_or_create_quota."""

    def test_quota_created_with_workspace(self, workspace, settings):
        """Test every new workspace starts with the default quota."""
        quota = get_or_create_quota(workspace)

        assert quota.quota_bytes == settings.FILES_DEFAULT_QUOTA_BYTES
        assert quota.used_bytes == 0

    def test_missing_quota_is_created(self, workspace, settings):
        """Test quota is created on demand if it was removed."""
        settings.FILES_DEFAULT_QUOTA_BYTES = 1024
        StorageQuota.objects.filter(workspace=workspace).delete()

        quota = get_or_create_quota(workspace)

        assert quota.quota_bytes == 1024


@pytest.mark.django_db
class TestCheckQuota:
    """Tests for check_quota."""

    def test_within_quota(self, workspace):
        """Test an upload that fits passes."""
        StorageQuota.objects.filter(workspace=workspace).update(
            quota_bytes=1000,
            used_bytes=500,
        )

        check_quota(workspace, 500)

    def test_exceeds_quota(self, workspace):
        """Test an upload that does not fit is rejected."""
        StorageQuota.objects.filter(workspace=workspace).update(
            quota_bytes=1000,
            used_bytes=500,
        )

        with pytest.raises(QuotaExceededError) as exc_info:
            check_quota(workspace, 501)

        assert exc_info.value.required_bytes == 501
        assert exc_info.value.used_bytes == 500


@pytest.mark.django_db
class TestUsageUpdates:
    """Tests for increment_usage and decrement_usage."""

    def test_increment(self, workspace):
        """Test usage grows by the given size."""
        increment_usage(workspace, 100)
        increment_usage(workspace, 50)

        quota = StorageQuota.objects.get(workspace=workspace)
        assert quota.used_bytes == 150

    def test_increment_without_quota_row(self, workspace):
        """Test the first increment creates the quota row."""
        StorageQuota.objects.filter(workspace=workspace).delete()

        increment_usage(workspace, 100)

        assert StorageQuota.objects.get(workspace=workspace).used_bytes == 100

    def test_decrement(self, workspace):
        """Test usage shrinks by the given size."""
        increment_usage(workspace, 100)

        decrement_usage(workspace.id, 40)

        assert StorageQuota.objects.get(workspace=workspace).used_bytes == 60

    def test_decrement_clamps_at_zero(self, workspace):
        """Test usage never goes negative."""
        increment_usage(workspace, 10)

        decrement_usage(workspace.id, 100)

        assert StorageQuota.objects.get(workspace=workspace).used_bytes == 0

    def test_decrement_without_quota_row(self, workspace):
        """Test releasing usage of a workspace without quota is a no-op."""
        StorageQuota.objects.filter(workspace=workspace).delete()

        decrement_usage(workspace.id, 100)

        assert not StorageQuota.objects.filter(workspace=workspace).exists()


@pytest.mark.django_db
def test_recalculate_usage(workspace, other_workspace, make_file):
    """Test usage is rebuilt from the workspace's own file rows."""
    make_file('a.txt', size=100)
    make_file('b.txt', size=250)
    make_file('c.txt', size=999, owner=other_workspace)
    StorageQuota.objects.filter(workspace=workspace).update(used_bytes=7)

    total = recalculate_usage(workspace)

    assert total == 350
    assert StorageQuota.objects.get(workspace=workspace).used_bytes == 350
