"""File admission rules applied before any upload starts."""

import logging
from typing import BinaryIO, Iterable, List, Optional

from trainarchive.core.config import settings
from trainarchive.uploads.buckets import (
    GENERIC_MIME_TYPES,
    get_supported_mime_types,
    guess_mime_type,
    normalize_mime_type,
)
from trainarchive.uploads.exceptions import ErrorKind
from trainarchive.uploads.models import IntakeRejection, IntakeResult, RawFile, UploadCandidate

logger = logging.getLogger(__name__)


def measure_size(data: BinaryIO) -> int:
    """Size of a seekable stream, leaving it rewound."""
    data.seek(0, 2)
    size_bytes = data.tell()
    data.seek(0)
    return size_bytes


class FileIntake:
    """Admits raw files against a MIME allow-list and a size ceiling."""

    def __init__(
        self,
        allowed_mime_types: Optional[Iterable[str]] = None,
        max_size_bytes: Optional[int] = None,
    ):
        self.allowed_mime_types = frozenset(
            normalize_mime_type(mt) for mt in (allowed_mime_types or get_supported_mime_types())
        )
        self.max_size_bytes = max_size_bytes if max_size_bytes is not None else settings.max_upload_bytes

    def resolve_mime_type(self, raw: RawFile) -> Optional[str]:
        """Declared MIME type, falling back to the extension for generic ones."""
        mime_type = normalize_mime_type(raw.content_type)
        if mime_type in GENERIC_MIME_TYPES:
            return guess_mime_type(raw.file_name)
        return mime_type

    def admit(self, files: List[RawFile]) -> IntakeResult:
        """Split raw files into admitted candidates and rejections.

        Candidates keep the input order. The type check runs before the size
        check, so a file failing both is reported as unsupported.

        Args:
            files: Files selected or dropped by the user

        Returns:
            IntakeResult with candidates and per-file rejections
        """
        result = IntakeResult()

        for raw in files:
            file_name = raw.file_name or "unnamed"
            mime_type = self.resolve_mime_type(raw)

            if mime_type is None or mime_type not in self.allowed_mime_types:
                rejection = IntakeRejection(
                    file_name=file_name,
                    reason=ErrorKind.UNSUPPORTED_TYPE,
                    detail=f"Content type {raw.content_type or 'unknown'} not allowed",
                )
                result.rejections.append(rejection)
                logger.info(
                    "File rejected at intake",
                    extra={"file_name": file_name, "reason": rejection.reason.value},
                )
                continue

            size_bytes = raw.size_bytes if raw.size_bytes is not None else measure_size(raw.data)
            if size_bytes > self.max_size_bytes:
                rejection = IntakeRejection(
                    file_name=file_name,
                    reason=ErrorKind.TOO_LARGE,
                    detail=(
                        f"File size exceeds maximum allowed size of "
                        f"{self.max_size_bytes // (1024 * 1024)}MB"
                    ),
                )
                result.rejections.append(rejection)
                logger.info(
                    "File rejected at intake",
                    extra={
                        "file_name": file_name,
                        "reason": rejection.reason.value,
                        "size_bytes": size_bytes,
                    },
                )
                continue

            result.candidates.append(
                UploadCandidate(
                    file_name=file_name,
                    mime_type=mime_type,
                    size_bytes=size_bytes,
                    data=raw.data,
                    caption=raw.caption,
                )
            )

        return result


def admit(files: List[RawFile]) -> IntakeResult:
    """Admit files with the configured allow-list and size ceiling."""
    return FileIntake().admit(files)
