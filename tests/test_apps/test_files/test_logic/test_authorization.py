"""Tests for workspace ownership checks."""

import uuid

import pytest

from server.apps.files.exceptions import ResourceNotFoundError
from server.apps.files.logic.authorization import (
    parse_folder_id,
    resolve_workspace,
    verify_file_ownership,
    verify_files_ownership,
    verify_folder_ownership,
    verify_folders_ownership,
)


@pytest.mark.django_db
class TestResolveWorkspace:
    """Tests for resolve_workspace."""

    def test_returns_users_workspace(self, user):
        """Test the workspace created with the user is found."""
        assert resolve_workspace(user.id) == user.workspace

    def test_unknown_user(self, user):
        """Test an unknown user id has no workspace."""
        with pytest.raises(ResourceNotFoundError):
            resolve_workspace(user.id + 100)

    def test_malformed_user_id(self, user):
        """Test a malformed user id is treated as not found."""
        with pytest.raises(ResourceNotFoundError):
            resolve_workspace('not-a-number')


@pytest.mark.django_db
class TestVerifyFolderOwnership:
    """Tests for verify_folder_ownership."""

    def test_own_folder(self, workspace, make_folder):
        """Test an owned folder is returned."""
        folder = make_folder('Docs')

        assert verify_folder_ownership(folder.id, workspace) == folder

    def test_accepts_string_id(self, workspace, make_folder):
        """Test ids given as strings are accepted."""
        folder = make_folder('Docs')

        assert verify_folder_ownership(str(folder.id), workspace) == folder

    def test_foreign_folder_logged(
        self,
        workspace,
        other_workspace,
        make_folder,
        security_log,
    ):
        """Test another workspace's folder looks missing and is logged."""
        foreign = make_folder('Private', owner=other_workspace)

        with pytest.raises(ResourceNotFoundError) as exc_info:
            verify_folder_ownership(foreign.id, workspace, 'rename')

        assert str(exc_info.value) == 'Folder not found.'
        assert 'Cross-workspace folder access in rename' in security_log.text

    def test_missing_and_foreign_are_indistinguishable(
        self,
        workspace,
        other_workspace,
        make_folder,
    ):
        """Test missing and foreign folders produce the same error."""
        foreign = make_folder('Private', owner=other_workspace)

        with pytest.raises(ResourceNotFoundError) as missing:
            verify_folder_ownership(uuid.uuid4(), workspace)
        with pytest.raises(ResourceNotFoundError) as forbidden:
            verify_folder_ownership(foreign.id, workspace)

        assert str(missing.value) == str(forbidden.value)
        assert missing.value.kind == forbidden.value.kind

    def test_malformed_id(self, workspace):
        """Test a malformed id is treated as not found."""
        with pytest.raises(ResourceNotFoundError):
            verify_folder_ownership('not-a-uuid', workspace)


@pytest.mark.django_db
class TestVerifyFileOwnership:
    """Tests for verify_file_ownership."""

    def test_own_file(self, workspace, make_file):
        """Test an owned file is returned."""
        file_instance = make_file('a.txt')

        assert verify_file_ownership(file_instance.id, workspace) == (
            file_instance
        )

    def test_foreign_file(self, workspace, other_workspace, make_file):
        """Test another workspace's file looks missing."""
        foreign = make_file('a.txt', owner=other_workspace)

        with pytest.raises(ResourceNotFoundError) as exc_info:
            verify_file_ownership(foreign.id, workspace)

        assert str(exc_info.value) == 'File not found.'


@pytest.mark.django_db
class TestBatchOwnership:
    """Tests for the batch ownership checks."""

    def test_files_in_request_order(self, workspace, make_file):
        """Test files come back in request order, duplicates collapsed."""
        first = make_file('a.txt')
        second = make_file('b.txt')

        files = verify_files_ownership(
            [second.id, str(first.id), second.id],
            workspace,
        )

        assert files == [second, first]

    def test_files_all_or_nothing(
        self,
        workspace,
        other_workspace,
        make_file,
        security_log,
    ):
        """Test one foreign file rejects the whole batch."""
        own = make_file('a.txt')
        foreign = make_file('b.txt', owner=other_workspace)

        with pytest.raises(ResourceNotFoundError):
            verify_files_ownership([own.id, foreign.id], workspace)

        assert '1 of 2 ids not found' in security_log.text

    def test_empty_batch(self, workspace):
        """Test an empty selection verifies trivially."""
        assert verify_files_ownership([], workspace) == []
        assert verify_folders_ownership([], workspace) == []

    def test_folders_all_or_nothing(self, workspace, make_folder):
        """Test an unknown folder id rejects the whole batch."""
        folder = make_folder('Docs')

        with pytest.raises(ResourceNotFoundError):
            verify_folders_ownership([folder.id, uuid.uuid4()], workspace)

    def test_malformed_id_in_batch(self, workspace, make_folder):
        """Test a malformed id rejects the whole batch."""
        folder = make_folder('Docs')

        with pytest.raises(ResourceNotFoundError):
            verify_folders_ownership([folder.id, 'oops'], workspace)


class TestParseFolderId:
    """Tests for parse_folder_id."""

    @pytest.mark.parametrize('raw_id', [None, ''])
    def test_root(self, raw_id):
        """Test None and empty string both mean the root."""
        assert parse_folder_id(raw_id) is None

    def test_uuid_string(self):
        """Test a UUID string is parsed."""
        folder_id = uuid.uuid4()

        assert parse_folder_id(str(folder_id)) == folder_id

    def test_malformed(self):
        """Test a malformed id is reported as a missing folder."""
        with pytest.raises(ResourceNotFoundError):
            parse_folder_id('../etc')
