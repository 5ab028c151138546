"""
Bucket routing for uploaded files.

Images go to the photos bucket, everything else admitted at intake goes to
the documents bucket:
- training-photos: JPEG, PNG, GIF, WebP
- training-documents: PDF, Word (.doc, .docx)
"""

from enum import Enum
from typing import Dict, List, Optional

from trainarchive.core.config import settings
from trainarchive.uploads.models import UploadCandidate


class BucketName(str, Enum):
    """Logical storage namespaces."""

    PHOTOS = "training-photos"
    DOCUMENTS = "training-documents"


# Admissible MIME types and the namespace they belong to
MIME_BUCKET_MAP: Dict[str, BucketName] = {
    "image/jpeg": BucketName.PHOTOS,
    "image/png": BucketName.PHOTOS,
    "image/gif": BucketName.PHOTOS,
    "image/webp": BucketName.PHOTOS,
    "application/pdf": BucketName.DOCUMENTS,
    "application/msword": BucketName.DOCUMENTS,  # .doc
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": BucketName.DOCUMENTS,  # .docx
}

# Used when the client did not declare a usable content type
EXTENSION_MIME_MAP: Dict[str, str] = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

GENERIC_MIME_TYPES = {"", "application/octet-stream"}


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lowercase a MIME type and strip its parameters.

    Args:
        mime_type: Declared content type, e.g. ``"Image/PNG; charset=binary"``

    Returns:
        Bare lowercase type such as ``"image/png"``, or ``""`` when missing
    """
    return (mime_type or "").lower().split(";")[0].strip()


def guess_mime_type(file_name: str) -> Optional[str]:
    """Guess an admissible MIME type from a file extension.

    Args:
        file_name: Original file name

    Returns:
        The MIME type for a known extension, None otherwise
    """
    if "." not in file_name:
        return None
    return EXTENSION_MIME_MAP.get(file_name.rsplit(".", 1)[-1].lower())


def is_image(mime_type: Optional[str]) -> bool:
    """Check whether a MIME type belongs to the image family.

    Args:
        mime_type: MIME type, parameters allowed

    Returns:
        True for any ``image/*`` type
    """
    return normalize_mime_type(mime_type).startswith("image/")


def route(candidate: UploadCandidate) -> BucketName:
    """
    Map an admitted candidate to its storage namespace.

    Routing depends only on the MIME type, never on size or name.

    Args:
        candidate: File admitted by intake

    Returns:
        BucketName.PHOTOS for images, BucketName.DOCUMENTS otherwise

    Examples:
        image/png        -> BucketName.PHOTOS
        application/pdf  -> BucketName.DOCUMENTS
    """
    if is_image(candidate.mime_type):
        return BucketName.PHOTOS
    return BucketName.DOCUMENTS


def resolve_bucket(bucket: BucketName) -> str:
    """Physical bucket name configured for a namespace.

    Args:
        bucket: Logical namespace chosen by ``route()``

    Returns:
        PHOTOS_BUCKET or DOCUMENTS_BUCKET from settings
    """
    if bucket == BucketName.PHOTOS:
        return settings.PHOTOS_BUCKET
    return settings.DOCUMENTS_BUCKET


def get_supported_mime_types() -> List[str]:
    """Get the list of MIME types accepted at intake.

    Returns:
        List of MIME type strings, images first
    """
    return list(MIME_BUCKET_MAP.keys())
