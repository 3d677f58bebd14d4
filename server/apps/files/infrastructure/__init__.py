"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Custom storage backend (S3/MinIO and other S3-compatible providers)
- Name normalization and metadata helpers
- ZIP archive streaming from signed URLs

Keep infrastructure concerns separate from business logic.
"""
