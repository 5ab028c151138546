"""Error taxonomy for the upload pipeline."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Named failure modes surfaced to callers."""

    UNSUPPORTED_TYPE = "unsupported-type"
    TOO_LARGE = "too-large"
    UPLOAD_ERROR = "upload-error"
    METADATA_ERROR = "metadata-error"
    MISSING_SESSION = "missing-session"
    MISSING_UPLOADER = "missing-uploader"


class UploadPipelineError(Exception):
    """Base exception for the upload pipeline."""

    kind: Optional[ErrorKind] = None


class AdmissionError(UploadPipelineError):
    """Raised when a file is refused at intake."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class UploadError(UploadPipelineError):
    """Exception raised when the binary transfer to storage fails."""

    kind = ErrorKind.UPLOAD_ERROR


class StorageError(UploadError):
    """Exception raised when an object storage operation fails."""
    pass


class MetadataError(UploadPipelineError):
    """Exception raised when the descriptor write fails.

    The binary object referenced by ``storage_key`` stays in storage.
    """

    kind = ErrorKind.METADATA_ERROR

    def __init__(self, message: str, storage_key: Optional[str] = None, bucket: Optional[str] = None):
        super().__init__(message)
        self.storage_key = storage_key
        self.bucket = bucket


class MetadataStoreError(UploadPipelineError):
    """Exception raised by a metadata store backend."""
    pass


class MissingSessionError(UploadPipelineError):
    """Exception raised when a batch has no owning session."""

    kind = ErrorKind.MISSING_SESSION


class MissingUploaderError(UploadPipelineError):
    """Exception raised when a batch is submitted without a signed-in uploader."""

    kind = ErrorKind.MISSING_UPLOADER


class InvalidTransitionError(UploadPipelineError):
    """Exception raised on an illegal upload task state transition."""
    pass
