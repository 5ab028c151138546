"""Smoke tests for upload pipeline exceptions."""

import pytest

from trainarchive.uploads.exceptions import (
    AdmissionError,
    ErrorKind,
    InvalidTransitionError,
    MetadataError,
    MetadataStoreError,
    MissingSessionError,
    MissingUploaderError,
    StorageError,
    UploadError,
    UploadPipelineError,
)


def test_exception_hierarchy():
    """All exceptions inherit from UploadPipelineError."""
    for exc_type in (
        AdmissionError,
        UploadError,
        StorageError,
        MetadataError,
        MetadataStoreError,
        MissingSessionError,
        MissingUploaderError,
        InvalidTransitionError,
    ):
        assert issubclass(exc_type, UploadPipelineError)

    assert issubclass(StorageError, UploadError)


def test_error_kinds():
    assert StorageError("x").kind == ErrorKind.UPLOAD_ERROR
    assert MetadataError("x").kind == ErrorKind.METADATA_ERROR
    assert MissingSessionError("x").kind == ErrorKind.MISSING_SESSION
    assert MissingUploaderError("x").kind == ErrorKind.MISSING_UPLOADER
    assert AdmissionError(ErrorKind.TOO_LARGE, "x").kind == ErrorKind.TOO_LARGE


def test_error_kind_values():
    assert [k.value for k in ErrorKind] == [
        "unsupported-type",
        "too-large",
        "upload-error",
        "metadata-error",
        "missing-session",
        "missing-uploader",
    ]


def test_metadata_error_keeps_orphan_location():
    error = MetadataError("insert failed", storage_key="session-1/a.png", bucket="training-photos")

    assert error.storage_key == "session-1/a.png"
    assert error.bucket == "training-photos"
    assert str(error) == "insert failed"


def test_exceptions_can_be_caught_as_base():
    with pytest.raises(UploadPipelineError):
        raise StorageError("disk full")

    with pytest.raises(UploadError):
        raise StorageError("disk full")
