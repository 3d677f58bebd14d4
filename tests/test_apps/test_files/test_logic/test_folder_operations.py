"""Tests for folder operations business logic."""

import pytest

from server.apps.files.exceptions import (
    CircularReferenceError,
    NameCollisionError,
    NestingDepthExceededError,
    ResourceNotFoundError,
)
from server.apps.files.logic.folder_operations import (
    create_folder,
    delete_folder,
    move_folder,
    rename_folder,
)
from server.apps.files.models import File, Folder, Link


@pytest.mark.django_db
class TestCreateFolder:
    """Tests for create_folder."""

    def test_create_root_folder(self, workspace):
        """Test creating a folder at the workspace root."""
        folder = create_folder(workspace, 'Taxes')

        assert folder.workspace == workspace
        assert folder.parent is None
        assert folder.name == 'Taxes'

    def test_create_nested_folder(self, workspace):
        """Test creating a folder inside another folder."""
        parent = create_folder(workspace, 'Taxes')

        child = create_folder(workspace, '2024', parent_id=str(parent.id))

        assert child.parent == parent

    def test_link_attribution(self, workspace):
        """Test link uploads record the link and the uploader."""
        link = Link.objects.create(workspace=workspace, slug='inbox')

        folder = create_folder(
            workspace,
            'From Ann',
            link=link,
            uploader_email='ann@example.com',
            uploader_name='Ann',
        )

        assert folder.link == link
        assert folder.uploader_email == 'ann@example.com'

    def test_duplicate_name(self, workspace):
        """Test a second root folder with the same name is rejected."""
        create_folder(workspace, 'Taxes')

        with pytest.raises(NameCollisionError):
            create_folder(workspace, 'Taxes')

        assert Folder.objects.filter(workspace=workspace).count() == 1

    def test_same_name_in_other_workspace(self, workspace, other_workspace):
        """Test workspaces do not share a namespace."""
        create_folder(workspace, 'Taxes')

        assert create_folder(other_workspace, 'Taxes').name == 'Taxes'

    def test_constraint_race_maps_to_collision(
        self,
        workspace,
        make_folder,
        monkeypatch,
    ):
        """Test a sibling inserted after validation is a name collision."""
        make_folder('Taxes')
        # Pretend validation ran before the sibling was inserted
        monkeypatch.setattr(
            'server.apps.files.logic.validation.is_folder_name_available',
            lambda *args, **kwargs: True,
        )

        with pytest.raises(NameCollisionError):
            create_folder(workspace, 'Taxes')

    def test_depth_limit(self, workspace, settings):
        """Test the maximum nesting depth is enforced on create."""
        settings.FILES_MAX_NESTING_DEPTH = 2
        parent = create_folder(workspace, 'Level 0')
        child = create_folder(workspace, 'Level 1', parent_id=parent.id)

        with pytest.raises(NestingDepthExceededError):
            create_folder(workspace, 'Level 2', parent_id=child.id)

    def test_foreign_parent(self, workspace, other_workspace):
        """Test a parent in another workspace is not found."""
        foreign = create_folder(other_workspace, 'Private')

        with pytest.raises(ResourceNotFoundError):
            create_folder(workspace, 'Mine', parent_id=foreign.id)

        assert not Folder.objects.filter(name='Mine').exists()


@pytest.mark.django_db
class TestRenameFolder:
    """Tests for rename_folder."""

    def test_rename(self, workspace, make_folder):
        """Test renaming a folder keeps its id and parent."""
        folder = make_folder('Old')

        renamed = rename_folder(workspace, folder.id, 'New')

        folder.refresh_from_db()
        assert renamed.id == folder.id
        assert folder.name == 'New'

    def test_rename_to_same_name_is_noop(self, workspace, make_folder):
        """Test renaming to the current name changes nothing."""
        folder = make_folder('Same')
        updated_at = folder.updated_at

        rename_folder(workspace, folder.id, 'Same')

        folder.refresh_from_db()
        assert folder.updated_at == updated_at

    def test_rename_collision(self, workspace, make_folder):
        """Test renaming onto a sibling's name is rejected."""
        make_folder('Taken')
        folder = make_folder('Free')

        with pytest.raises(NameCollisionError):
            rename_folder(workspace, folder.id, 'Taken')

        folder.refresh_from_db()
        assert folder.name == 'Free'


@pytest.mark.django_db
class TestMoveFolder:
    """Tests for move_folder."""

    def test_move_subtree(self, workspace, make_folder, make_file):
        """Test the subtree and its files follow the moved folder."""
        source = make_folder('Source')
        child = make_folder('Child', parent=source)
        file_instance = make_file('a.txt', parent=child)
        target = make_folder('Target')

        move_folder(workspace, source.id, target.id)

        source.refresh_from_db()
        child.refresh_from_db()
        file_instance.refresh_from_db()
        assert source.parent == target
        assert child.parent == source
        assert file_instance.parent_folder == child

    def test_move_to_root(self, workspace, make_folder):
        """Test moving a nested folder to the root."""
        parent = make_folder('Parent')
        child = make_folder('Child', parent=parent)

        move_folder(workspace, child.id, None)

        child.refresh_from_db()
        assert child.parent is None

    def test_move_to_current_parent_is_noop(self, workspace, make_folder):
        """Test moving a folder to its current parent changes nothing."""
        parent = make_folder('Parent')
        child = make_folder('Child', parent=parent)
        updated_at = child.updated_at

        move_folder(workspace, child.id, parent.id)

        child.refresh_from_db()
        assert child.parent == parent
        assert child.updated_at == updated_at

    def test_cycle_rejected(self, workspace, make_folder):
        """Test moving a folder below its own child fails."""
        parent = make_folder('Parent')
        child = make_folder('Child', parent=parent)

        with pytest.raises(CircularReferenceError):
            move_folder(workspace, parent.id, child.id)

        parent.refresh_from_db()
        assert parent.parent is None

    def test_move_collision(self, workspace, make_folder):
        """Test a same-named folder in the destination blocks the move."""
        target = make_folder('Target')
        make_folder('Docs', parent=target)
        docs = make_folder('Docs')

        with pytest.raises(NameCollisionError):
            move_folder(workspace, docs.id, target.id)


@pytest.mark.django_db
class TestDeleteFolder:
    """Tests for delete_folder."""

    def test_cascade_keeps_files(self, workspace, make_folder, make_file):
        """Test subfolders are deleted and files move to the root."""
        folder = make_folder('F')
        make_folder('F1', parent=folder)
        sub = make_folder('F2', parent=folder)
        direct = make_file('x.txt', parent=folder)
        nested = make_file('y.txt', parent=sub)

        detached = delete_folder(workspace, folder.id)

        assert detached == 2
        assert not Folder.objects.filter(workspace=workspace).exists()
        direct.refresh_from_db()
        nested.refresh_from_db()
        assert direct.parent_folder is None
        assert nested.parent_folder is None

    def test_detached_files_renamed_on_collision(
        self,
        workspace,
        make_folder,
        make_file,
    ):
        """Test detached files never collide with root files."""
        make_file('report.pdf')
        folder = make_folder('F')
        sub = make_folder('G', parent=folder)
        make_file('report.pdf', parent=folder)
        make_file('report.pdf', parent=sub)

        delete_folder(workspace, folder.id)

        root_names = set(
            File.objects.filter(
                workspace=workspace,
                parent_folder__isnull=True,
            ).values_list('filename', flat=True),
        )
        assert root_names == {
            'report.pdf',
            'report (1).pdf',
            'report (2).pdf',
        }

    def test_storage_paths_unchanged(self, workspace, make_folder, make_file):
        """Test detaching a file leaves its storage path alone."""
        folder = make_folder('F')
        file_instance = make_file('a.txt', parent=folder)
        storage_path = file_instance.storage_path

        delete_folder(workspace, folder.id)

        file_instance.refresh_from_db()
        assert file_instance.storage_path == storage_path

    def test_link_deactivated(self, workspace, make_folder):
        """Test the folder's upload link stops accepting uploads."""
        link = Link.objects.create(workspace=workspace, slug='inbox')
        folder = make_folder('Inbox')
        folder.link = link
        folder.save()

        delete_folder(workspace, folder.id)

        link.refresh_from_db()
        assert not link.is_active

    def test_foreign_folder(self, workspace, other_workspace, make_folder):
        """Test another workspace's folder cannot be deleted."""
        foreign = make_folder('Private', owner=other_workspace)

        with pytest.raises(ResourceNotFoundError):
            delete_folder(workspace, foreign.id)

        assert Folder.objects.filter(id=foreign.id).exists()
