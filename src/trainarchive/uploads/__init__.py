"""
Upload pipeline

Admits selected files, routes each to the photos or documents bucket,
uploads them concurrently and records a descriptor per stored object.
"""

from trainarchive.uploads.buckets import BucketName, route
from trainarchive.uploads.committer import MetadataCommitter
from trainarchive.uploads.intake import FileIntake, admit
from trainarchive.uploads.models import BatchResult, UploadBatch, UploadState
from trainarchive.uploads.orchestrator import UploadOrchestrator
from trainarchive.uploads.progress import ProgressBoard, project
from trainarchive.uploads.task import UploadTask

__all__ = [
    "BatchResult",
    "BucketName",
    "FileIntake",
    "MetadataCommitter",
    "ProgressBoard",
    "UploadBatch",
    "UploadOrchestrator",
    "UploadState",
    "UploadTask",
    "admit",
    "project",
    "route",
]
