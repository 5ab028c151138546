"""Local filesystem storage backend."""

import asyncio
from pathlib import Path
from typing import BinaryIO, Optional

from trainarchive.core.config import settings
from trainarchive.storage.base import ObjectStorage, ProgressCallback
from trainarchive.uploads.exceptions import StorageError

CHUNK_SIZE = 65536  # 64KB chunks


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files under ``{base_path}/{bucket}/{key}``."""

    def __init__(self, base_path: Optional[str] = None, public_base_url: Optional[str] = None):
        self.base_path = Path(base_path or settings.LOCAL_STORAGE_PATH)
        self.public_base_url = (public_base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def _object_path(self, bucket: str, key: str) -> Path:
        return self.base_path / self._sanitize_key(bucket) / self._sanitize_key(key)

    async def put(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        target_path = self._object_path(bucket, key)
        total = 0
        if data.seekable():
            data.seek(0, 2)
            total = data.tell()
            data.seek(0)

        # Chunk writes run in a worker thread so sibling uploads interleave
        try:
            await asyncio.to_thread(target_path.parent.mkdir, parents=True, exist_ok=True)
            sent = 0
            with open(target_path, "wb") as f:
                while chunk := data.read(CHUNK_SIZE):
                    await asyncio.to_thread(f.write, chunk)
                    sent += len(chunk)
                    if on_progress:
                        on_progress(sent, total)
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{key}: {e}") from e

    async def get(self, bucket: str, key: str) -> bytes:
        try:
            return self._object_path(bucket, key).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {bucket}/{key}: {e}") from e

    async def exists(self, bucket: str, key: str) -> bool:
        return self._object_path(bucket, key).is_file()

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{self._sanitize_key(bucket)}/{self._sanitize_key(key)}"

    def get_backend_name(self) -> str:
        return "local"


# Singleton instance
local_backend = LocalObjectStorage()
