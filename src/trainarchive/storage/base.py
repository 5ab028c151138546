"""Abstract object storage interface."""

import re
from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Optional

# Called with (bytes_sent, total_bytes) while an object is being written
ProgressCallback = Callable[[int, int], None]


class ObjectStorage(ABC):
    """Abstract base class for object storage backends."""

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        data: BinaryIO,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Store an object.

        Args:
            bucket: Bucket (namespace) name
            key: Object key inside the bucket
            data: Object content stream, read from the start
            content_type: MIME type
            on_progress: Optional transfer progress callback

        Raises:
            StorageError: If the write is not acknowledged
        """
        pass

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Read an object's content.

        Raises:
            StorageError: If the object cannot be read
        """
        pass

    @abstractmethod
    async def exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists."""
        pass

    @abstractmethod
    def get_public_url(self, bucket: str, key: str) -> str:
        """Return a URL the object can be fetched from."""
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass

    @staticmethod
    def _sanitize_key(key: str) -> str:
        """Remove path traversal and dangerous characters, keeping folders."""
        parts = [p for p in key.replace("\\", "/").split("/") if p not in ("", ".", "..")]
        safe_parts = [re.sub(r"[^a-zA-Z0-9._-]", "_", p)[:255] for p in parts]
        return "/".join(safe_parts)
