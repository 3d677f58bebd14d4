"""Business logic layer for files app.

This package contains all business logic for the workspace hierarchy:
- Ownership checks and structural validation
- Folder create, rename, move and delete
- File upload, record creation, rename, move and delete
- Bulk moves, bulk deletes and ZIP downloads

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
Callers outside the app go through `actions`, which returns `Result`
objects instead of raising.
"""
