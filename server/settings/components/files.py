"""Workspace file/folder engine settings."""

from server.settings.components import config

# Folders may nest at depths 0..FILES_MAX_NESTING_DEPTH - 1
FILES_MAX_NESTING_DEPTH = config(
    'FILES_MAX_NESTING_DEPTH',
    cast=int,
    default=20,
)
FILES_NAME_MAX_LENGTH = config('FILES_NAME_MAX_LENGTH', cast=int, default=255)

# Signed URL lifetime for archive downloads, seconds
FILES_SIGNED_URL_EXPIRY = config(
    'FILES_SIGNED_URL_EXPIRY',
    cast=int,
    default=3600,
)
FILES_ARCHIVE_FETCH_TIMEOUT = config(
    'FILES_ARCHIVE_FETCH_TIMEOUT',
    cast=float,
    default=60.0,
)

# Fan-out for bulk storage calls
FILES_STORAGE_CONCURRENCY = config(
    'FILES_STORAGE_CONCURRENCY',
    cast=int,
    default=8,
)
# Storage calls still running after this many seconds count as failed
FILES_STORAGE_TIMEOUT = config(
    'FILES_STORAGE_TIMEOUT',
    cast=float,
    default=30.0,
)

# Default workspace quota: 10 GB in bytes
FILES_DEFAULT_QUOTA_BYTES = config(
    'FILES_DEFAULT_QUOTA_BYTES',
    cast=int,
    default=10 * 1024 * 1024 * 1024,
)
