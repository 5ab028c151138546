"""Read side of the photo/document archive."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel

from trainarchive.core.config import settings
from trainarchive.metadata.base import MetadataStore
from trainarchive.storage.base import ObjectStorage
from trainarchive.uploads.buckets import BucketName, is_image, resolve_bucket
from trainarchive.uploads.events import CACHE_INVALIDATED, Event, TaskEventBus
from trainarchive.uploads.models import StoredObjectDescriptor

logger = logging.getLogger(__name__)


class ArchiveStats(BaseModel):
    """Archive-wide upload counters."""

    total: int
    sessions_with_uploads: int
    recent_uploads: int


class ArchiveService:
    """Lists, counts and serves committed uploads."""

    def __init__(
        self,
        store: MetadataStore,
        storage: ObjectStorage,
        events: Optional[TaskEventBus] = None,
        table: Optional[str] = None,
    ):
        self.store = store
        self.storage = storage
        self.table = table or settings.UPLOADS_TABLE
        self._stats_cache: Optional[ArchiveStats] = None
        if events is not None:
            events.subscribe(CACHE_INVALIDATED, self._on_invalidated)

    def _on_invalidated(self, event: Event) -> None:
        logger.debug("Archive stats cache invalidated", extra={"session_id": event.payload.get("session_id")})
        self._stats_cache = None

    async def list_uploads(
        self,
        session_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[StoredObjectDescriptor]:
        """Descriptors newest first, optionally for one session.

        ``search`` matches caption or file name, case-insensitively.
        """
        filters = {"training_session_id": session_id} if session_id else None
        rows = await self.store.select(self.table, filters)
        descriptors = [StoredObjectDescriptor.from_row(row) for row in rows]

        if search:
            needle = search.lower()
            descriptors = [
                d
                for d in descriptors
                if needle in d.file_name.lower() or (d.caption and needle in d.caption.lower())
            ]

        descriptors.sort(key=lambda d: d.created_at, reverse=True)
        return descriptors

    async def get(self, descriptor_id: str) -> Optional[StoredObjectDescriptor]:
        rows = await self.store.select(self.table, {"id": descriptor_id})
        return StoredObjectDescriptor.from_row(rows[0]) if rows else None

    @staticmethod
    def split_by_kind(
        descriptors: List[StoredObjectDescriptor],
    ) -> Tuple[List[StoredObjectDescriptor], List[StoredObjectDescriptor]]:
        """Split descriptors into (images, documents), keeping order."""
        images = [d for d in descriptors if is_image(d.mime_type)]
        documents = [d for d in descriptors if not is_image(d.mime_type)]
        return images, documents

    async def stats(self, now: Optional[datetime] = None) -> ArchiveStats:
        """Total uploads, sessions having uploads, uploads in the recent window."""
        if self._stats_cache is not None and now is None:
            return self._stats_cache

        descriptors = await self.list_uploads()
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=settings.RECENT_UPLOADS_DAYS)
        stats = ArchiveStats(
            total=len(descriptors),
            sessions_with_uploads=len({d.owning_session_id for d in descriptors}),
            recent_uploads=sum(1 for d in descriptors if _as_utc(d.created_at) >= cutoff),
        )
        if now is None:
            self._stats_cache = stats
        return stats

    @staticmethod
    def bucket_for(descriptor: StoredObjectDescriptor) -> str:
        bucket = BucketName.PHOTOS if is_image(descriptor.mime_type) else BucketName.DOCUMENTS
        return resolve_bucket(bucket)

    def public_url(self, descriptor: StoredObjectDescriptor) -> str:
        return self.storage.get_public_url(self.bucket_for(descriptor), descriptor.storage_key)

    async def download(self, descriptor: StoredObjectDescriptor) -> bytes:
        """Fetch the stored bytes of a committed upload.

        Raises:
            StorageError: If the object cannot be read
        """
        return await self.storage.get(self.bucket_for(descriptor), descriptor.storage_key)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
