"""Upload API data models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from trainarchive.uploads.models import (
    BatchResult,
    IntakeRejection,
    StoredObjectDescriptor,
    TaskView,
    UploadState,
)
from trainarchive.uploads.task import UploadTask


class TaskOutcome(BaseModel):
    """Terminal outcome of one file in a batch."""

    task_id: str
    file_name: str
    bucket: str
    storage_key: Optional[str] = None
    state: UploadState
    progress: int
    error_kind: Optional[str] = None
    error: Optional[str] = None
    descriptor: Optional[StoredObjectDescriptor] = None

    @classmethod
    def from_task(cls, task: UploadTask) -> "TaskOutcome":
        return cls(
            task_id=task.task_id,
            file_name=task.file_name,
            bucket=task.bucket.value,
            storage_key=task.storage_key,
            state=task.state,
            progress=task.progress,
            error_kind=task.error.kind.value if task.error else None,
            error=task.error.message if task.error else None,
            descriptor=task.descriptor,
        )


class RejectionResponse(BaseModel):
    """A file refused before upload."""

    file_name: str
    reason: str
    detail: str

    @classmethod
    def from_rejection(cls, rejection: IntakeRejection) -> "RejectionResponse":
        return cls(file_name=rejection.file_name, reason=rejection.reason.value, detail=rejection.detail)


class BatchResponse(BaseModel):
    """Response model for a batch upload."""

    batch_id: str
    session_id: str
    succeeded: int
    failed: int
    outcomes: List[TaskOutcome]
    rejections: List[RejectionResponse]
    orphaned_keys: List[str]

    @classmethod
    def from_result(
        cls,
        result: BatchResult,
        outcomes: List[TaskOutcome],
        rejections: List[IntakeRejection],
    ) -> "BatchResponse":
        return cls(
            batch_id=result.batch_id,
            session_id=result.session_id,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
            outcomes=outcomes,
            rejections=[RejectionResponse.from_rejection(r) for r in rejections],
            orphaned_keys=result.orphaned_keys,
        )


class BatchProgressResponse(BaseModel):
    """Latest projected state of a batch."""

    batch_id: str
    settled: bool
    tasks: List[TaskView]


class UploadListItem(BaseModel):
    """Archive listing entry."""

    id: str
    session_id: str
    uploaded_by: str
    file_name: str
    file_size: int
    size_label: str
    mime_type: str
    caption: Optional[str] = None
    is_image: bool
    url: str
    created_at: datetime


class UploadListResponse(BaseModel):
    """Archive listing split into images and documents."""

    images: List[UploadListItem]
    documents: List[UploadListItem]
