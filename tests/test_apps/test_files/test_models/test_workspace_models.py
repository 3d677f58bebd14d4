"""Tests for the workspace, folder and file models."""

import pytest
from django.db import IntegrityError, transaction

from server.apps.files.models import (
    File,
    Folder,
    Link,
    StorageQuota,
    Workspace,
)


@pytest.mark.django_db
def test_workspace_created_with_user(user):
    """Test every new user gets a workspace and a quota."""
    workspace = Workspace.objects.get(user=user)

    assert str(workspace) == "testuser's workspace"
    assert StorageQuota.objects.filter(workspace=workspace).exists()


@pytest.mark.django_db
def test_workspace_not_recreated_on_save(user):
    """Test saving an existing user keeps its single workspace."""
    user.first_name = 'Test'
    user.save()

    assert Workspace.objects.filter(user=user).count() == 1


@pytest.mark.django_db
class TestFolderModel:
    """Tests for Folder constraints."""

    def test_str(self, make_folder):
        """Test Folder __str__ method."""
        assert str(make_folder('Taxes')) == 'Taxes'

    def test_root_names_unique(self, make_folder):
        """Test two root folders cannot share a name."""
        make_folder('Taxes')

        with pytest.raises(IntegrityError), transaction.atomic():
            make_folder('Taxes')

    def test_sibling_names_unique(self, make_folder):
        """Test two folders under one parent cannot share a name."""
        parent = make_folder('Parent')
        make_folder('Child', parent=parent)

        with pytest.raises(IntegrityError), transaction.atomic():
            make_folder('Child', parent=parent)

    def test_same_name_under_different_parents(self, make_folder):
        """Test names only need to be unique among siblings."""
        make_folder('Child', parent=make_folder('One'))

        assert make_folder('Child', parent=make_folder('Two')).name == 'Child'

    def test_delete_cascades_to_subfolders(self, make_folder):
        """Test deleting a folder deletes its subfolders."""
        parent = make_folder('Parent')
        child = make_folder('Child', parent=parent)

        parent.delete()

        assert not Folder.objects.filter(id=child.id).exists()

    def test_link_delete_keeps_folder(self, workspace, make_folder):
        """Test deleting a link only clears the reference."""
        link = Link.objects.create(workspace=workspace, slug='inbox')
        folder = make_folder('Inbox')
        folder.link = link
        folder.save()

        link.delete()

        folder.refresh_from_db()
        assert folder.link is None


@pytest.mark.django_db
class TestFileModel:
    """Tests for File model."""

    def test_str(self, make_file):
        """Test File __str__ method."""
        assert str(make_file('report.pdf')) == 'report.pdf'

    @pytest.mark.parametrize(('filename', 'extension'), [
        ('report.PDF', 'pdf'),
        ('archive.tar.gz', 'gz'),
        ('README', ''),
        ('.env', ''),
    ])
    def test_get_extension(self, make_file, filename, extension):
        """Test get_extension returns the lowercase extension."""
        assert make_file(filename).get_extension() == extension

    def test_root_filenames_unique(self, workspace, make_file):
        """Test two root files cannot share a name."""
        make_file('a.txt')

        with pytest.raises(IntegrityError), transaction.atomic():
            File.objects.create(
                workspace=workspace,
                filename='a.txt',
                file_size=1,
                mime_type='text/plain',
                storage_path='other/key/a.txt',
            )

    def test_storage_path_unique(self, workspace, make_file):
        """Test one storage object maps to a single row."""
        existing = make_file('a.txt')

        with pytest.raises(IntegrityError), transaction.atomic():
            File.objects.create(
                workspace=workspace,
                filename='b.txt',
                file_size=1,
                mime_type='text/plain',
                storage_path=existing.storage_path,
            )


@pytest.mark.django_db
class TestStorageQuotaModel:
    """Tests for StorageQuota."""

    def test_has_space_for(self, workspace):
        """Test the check includes the exact remaining space."""
        quota = StorageQuota(workspace=workspace, quota_bytes=100)
        quota.used_bytes = 60

        assert quota.has_space_for(40)
        assert not quota.has_space_for(41)

    def test_available_bytes_never_negative(self, workspace):
        """Test available space is clamped at zero."""
        quota = StorageQuota(
            workspace=workspace,
            quota_bytes=100,
            used_bytes=150,
        )

        assert quota.available_bytes() == 0

    def test_used_bytes_non_negative(self, workspace):
        """Test the database rejects negative usage."""
        with pytest.raises(IntegrityError), transaction.atomic():
            StorageQuota.objects.filter(workspace=workspace).update(
                used_bytes=-1,
            )
