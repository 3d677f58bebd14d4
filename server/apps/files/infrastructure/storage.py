"""Object storage backend holding the bytes of workspace files."""

import logging
from typing import Any, final, override

from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """S3-compatible storage for workspace file objects.

    Adds to django-storages S3Storage:
    - Logged writes, deletes and existence checks
    - Best-effort removal of an object whose row was never written
    - Signed download URLs for existing objects only

    Each method is one network round trip. The database is never
    touched here; callers decide what a failure means for their rows.
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Write an object under the given key.

        Args:
            name: Object key, `<workspace_id>/<token>/<filename>`.
            content: File-like object with the bytes.
            max_length: Optional maximum key length.

        Returns:
            Key actually written.

        Raises:
            Exception: If the upload fails.
        """
        try:
            stored_key = super().save(name, content, max_length)
        except Exception:
            logger.exception('Object write failed for %s', name)
            raise
        logger.info('Stored object %s', stored_key)
        return stored_key

    @override
    def delete(self, name: str) -> None:
        """Remove an object.

        A key that is already gone is not an error, so a retried delete
        reports success.

        Args:
            name: Object key.

        Raises:
            Exception: If storage cannot be reached or refuses the delete.
        """
        try:
            super().delete(name)
        except Exception:
            logger.exception('Object delete failed for %s', name)
            raise
        logger.info('Removed object %s', name)

    @override
    def exists(self, name: str) -> bool:
        """Check whether an object is present.

        Args:
            name: Object key.

        Returns:
            True if storage holds the object.

        Raises:
            Exception: If storage cannot be reached.
        """
        try:
            present = super().exists(name)
        except Exception:
            logger.exception('Existence check failed for %s', name)
            raise
        logger.debug('Object %s present: %s', name, present)
        return present

    def rollback_upload(self, name: str) -> None:
        """Remove an object whose file row could not be written.

        Never raises: the row is already gone, and an object left behind
        is only wasted space.

        Args:
            name: Object key.
        """
        logger.warning('Removing object %s after failed row insert', name)
        try:
            self.delete(name)
        except Exception:
            logger.exception('Object %s left without a file row', name)

    def generate_signed_url(self, name: str, expires_in: int) -> str:
        """Sign a temporary download URL for an existing object.

        Args:
            name: Object key.
            expires_in: URL lifetime in seconds.

        Returns:
            URL that grants read access until it expires.

        Raises:
            FileNotFoundError: If the object does not exist.
            Exception: If the existence check or signing fails.
        """
        if not self.exists(name):
            logger.warning('Refusing to sign URL for missing object %s', name)
            raise FileNotFoundError(name)
        try:
            signed_url = self.url(name, expire=expires_in)
        except Exception:
            logger.exception('URL signing failed for %s', name)
            raise
        logger.debug('Signed URL for %s valid %ds', name, expires_in)
        return signed_url


def get_storage() -> FileStorage:
    """Get the backend configured in STORAGES['default'].

    Returns:
        The shared FileStorage instance.
    """
    return default_storage  # type: ignore[return-value]
