"""Remote object store access and module synchronization."""

from .store import DeleteFailure, ObjectNotFound, ObjectStore, ObjectStoreError, S3ObjectStore
from .sync import DeleteSummary, RemoteSync, SyncResult, UploadSummary, compute_stale, flatten

__all__ = [
    "DeleteFailure",
    "DeleteSummary",
    "ObjectNotFound",
    "ObjectStore",
    "ObjectStoreError",
    "RemoteSync",
    "S3ObjectStore",
    "SyncResult",
    "UploadSummary",
    "compute_stale",
    "flatten",
]
