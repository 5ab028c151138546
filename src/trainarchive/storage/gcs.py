"""Google Cloud Storage backend."""

import asyncio
import logging
from typing import BinaryIO, Dict, Optional

from google.api_core import retry
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import storage

from trainarchive.core.config import settings
from trainarchive.storage.base import ObjectStorage, ProgressCallback
from trainarchive.uploads.exceptions import StorageError

logger = logging.getLogger(__name__)


class GCSObjectStorage(ObjectStorage):
    """Google Cloud Storage backend.

    Blocking SDK calls run in a worker thread so concurrent uploads keep
    interleaving on the event loop.
    """

    def __init__(self):
        self._client: Optional[storage.Client] = None
        self._buckets: Dict[str, storage.Bucket] = {}

        # Object writes are keyed by a unique name, so retrying them is safe.
        # Only transient errors (429, 5xx, connection resets) are retried;
        # 4xx such as Forbidden or NotFound fail the task right away.
        self.retry_policy = retry.Retry(
            initial=1.0,
            maximum=10.0,
            multiplier=2.0,
            deadline=60.0,
            predicate=retry.if_transient_error,
        )

    def _get_bucket(self, bucket_name: str) -> storage.Bucket:
        """Lazy-load and cache GCS buckets."""
        if not bucket_name:
            raise StorageError("Bucket name not configured")

        if self._client is None:
            self._client = storage.Client(project=settings.GCP_PROJECT_ID or None)

        if bucket_name not in self._buckets:
            self._buckets[bucket_name] = self._client.bucket(bucket_name)
        return self._buckets[bucket_name]

    async def put(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        blob = self._get_bucket(bucket).blob(self._sanitize_key(key))
        try:
            await asyncio.to_thread(
                blob.upload_from_file,
                data,
                rewind=True,
                content_type=content_type,
                retry=self.retry_policy,
            )
        except GoogleAPIError as e:
            logger.error(
                f"Failed to upload gs://{bucket}/{key}: {e}",
                extra={"bucket": bucket, "key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to upload gs://{bucket}/{key}: {e}") from e

        logger.debug("Uploaded object", extra={"bucket": bucket, "key": key, "content_type": content_type})

    async def get(self, bucket: str, key: str) -> bytes:
        blob = self._get_bucket(bucket).blob(self._sanitize_key(key))
        try:
            return await asyncio.to_thread(blob.download_as_bytes, retry=self.retry_policy)
        except NotFound as e:
            raise StorageError(f"File not found: gs://{bucket}/{key}") from e
        except GoogleAPIError as e:
            raise StorageError(f"Failed to download gs://{bucket}/{key}: {e}") from e

    async def exists(self, bucket: str, key: str) -> bool:
        blob = self._get_bucket(bucket).blob(self._sanitize_key(key))
        return await asyncio.to_thread(blob.exists)

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"https://storage.googleapis.com/{bucket}/{self._sanitize_key(key)}"

    def get_backend_name(self) -> str:
        return "gcs"


# Singleton instance
gcs_backend = GCSObjectStorage()
