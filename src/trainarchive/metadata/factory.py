"""Metadata store selection."""

from functools import lru_cache

from trainarchive.core.config import settings
from trainarchive.metadata.base import MetadataStore
from trainarchive.metadata.memory import memory_store
from trainarchive.metadata.rest import RestMetadataStore


@lru_cache(maxsize=1)
def _rest_store() -> RestMetadataStore:
    return RestMetadataStore()


def get_metadata_store() -> MetadataStore:
    """Return the metadata store configured by METADATA_BACKEND.

    Raises:
        ValueError: If the configured backend is unknown
    """
    if settings.METADATA_BACKEND == "memory":
        return memory_store
    if settings.METADATA_BACKEND == "rest":
        return _rest_store()
    raise ValueError(f"Unknown metadata backend: {settings.METADATA_BACKEND}")
