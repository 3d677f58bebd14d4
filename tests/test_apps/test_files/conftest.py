"""Shared fixtures for files app tests."""

import copy
import logging
from urllib.parse import unquote

import boto3
import httpx
import pytest
from botocore.exceptions import ClientError
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from server.apps.files.infrastructure.metadata import (
    build_storage_path,
    detect_mime_type,
)
from server.apps.files.infrastructure.storage import FileStorage
from server.apps.files.logic.quota_operations import increment_usage
from server.apps.files.models import File, Folder

User = get_user_model()


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials so nothing reaches real AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def workspace(user):
    """Workspace created for the test user by the post_save signal."""
    return user.workspace


@pytest.fixture
def other_workspace(other_user):
    """Workspace of the second test user."""
    return other_user.workspace


@pytest.fixture
def bucket_name(settings):
    """Name of the uploads bucket."""
    return settings.STORAGES['default']['OPTIONS']['bucket_name']


@pytest.fixture
def mock_s3(settings, bucket_name):
    """Mock S3 service with the uploads bucket.

    The storages setting is reassigned inside the mock so the default
    storage is rebuilt against it, without any custom endpoint.

    Yields:
        boto3 S3 resource with the uploads bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=bucket_name)

        storages = copy.deepcopy(settings.STORAGES)
        storages['default']['OPTIONS'].update(
            endpoint_url=None,
            access_key='testing',
            secret_key='testing',
            region_name='us-east-1',
        )
        settings.STORAGES = storages

        yield conn


@pytest.fixture
def failing_delete(monkeypatch):
    """Make storage deletes fail for keys containing 'fail'."""
    original_delete = FileStorage.delete

    def delete(self, name):
        if 'fail' in name:
            raise ConnectionError('storage unreachable')
        original_delete(self, name)

    monkeypatch.setattr(FileStorage, 'delete', delete)


@pytest.fixture
def security_log(caplog, monkeypatch):
    """Capture records of the security logger.

    The logger does not propagate to the root logger by configuration,
    so it is reconnected for the duration of the test.
    """
    security_logger = logging.getLogger('server.security')
    monkeypatch.setattr(security_logger, 'propagate', True)
    caplog.set_level(logging.WARNING, logger='server.security')
    return caplog


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def make_folder(workspace):
    """Factory creating folders directly, bypassing validation."""
    def factory(name, parent=None, owner=None):
        return Folder.objects.create(
            workspace=owner or workspace,
            name=name,
            parent=parent,
        )
    return factory


@pytest.fixture
def make_file(workspace):
    """Factory creating file rows with their usage accounted for.

    No storage object is written; see `make_stored_file` for that.
    """
    def factory(filename, parent=None, size=17, owner=None):
        target = owner or workspace
        file_instance = File.objects.create(
            workspace=target,
            filename=filename,
            file_size=size,
            mime_type=detect_mime_type(filename),
            storage_path=build_storage_path(target.id, filename),
            parent_folder=parent,
        )
        increment_usage(target, size)
        return file_instance
    return factory


@pytest.fixture
def make_stored_file(make_file, mock_s3, bucket_name):
    """Factory creating file rows backed by an object in the mock bucket."""
    bucket = mock_s3.Bucket(bucket_name)

    def factory(filename, content=b'test file content', parent=None):
        file_instance = make_file(filename, parent=parent, size=len(content))
        bucket.put_object(Key=file_instance.storage_path, Body=content)
        return file_instance
    return factory


@pytest.fixture
def archive_client(mock_s3, bucket_name):
    """HTTP client answering signed URL fetches from the mock bucket.

    Yields:
        httpx client whose transport reads objects straight from moto.
    """
    bucket = mock_s3.Bucket(bucket_name)

    def handler(request):
        key = unquote(request.url.path).lstrip('/')
        if key.startswith(f'{bucket_name}/'):
            key = key[len(bucket_name) + 1:]
        try:
            body = bucket.Object(key).get()['Body'].read()
        except ClientError:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client
