"""Storage backend selection."""

from trainarchive.core.config import settings
from trainarchive.storage.base import ObjectStorage
from trainarchive.storage.gcs import gcs_backend
from trainarchive.storage.local import local_backend


def get_object_storage() -> ObjectStorage:
    """Return the object storage backend configured by STORAGE_BACKEND.

    Raises:
        ValueError: If the configured backend is unknown
    """
    if settings.STORAGE_BACKEND == "gcs":
        return gcs_backend
    if settings.STORAGE_BACKEND == "local":
        return local_backend
    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
