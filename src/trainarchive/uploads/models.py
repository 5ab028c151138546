"""Upload pipeline data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from trainarchive.uploads.exceptions import ErrorKind

if TYPE_CHECKING:
    from trainarchive.uploads.task import UploadTask


def _new_id() -> str:
    return str(uuid4())


@dataclass
class RawFile:
    """A file as handed over by a picker, a drop zone or a multipart form."""

    file_name: str
    content_type: str
    data: BinaryIO
    size_bytes: Optional[int] = None
    caption: Optional[str] = None


@dataclass
class UploadCandidate:
    """A file that passed intake and may become an upload task."""

    file_name: str
    mime_type: str
    size_bytes: int
    data: BinaryIO
    caption: Optional[str] = None
    client_id: str = field(default_factory=_new_id)


@dataclass
class IntakeRejection:
    """A file refused at intake, with the reason it was refused."""

    file_name: str
    reason: ErrorKind
    detail: str


@dataclass
class IntakeResult:
    """Outcome of admitting a set of raw files."""

    candidates: List[UploadCandidate] = field(default_factory=list)
    rejections: List[IntakeRejection] = field(default_factory=list)


class UploadState(str, Enum):
    """Upload task lifecycle states."""

    PENDING = "pending"  # Created, not started
    UPLOADING = "uploading"  # Binary transfer in progress
    COMMITTING = "committing"  # Bytes stored, descriptor write in progress
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCEEDED, UploadState.FAILED)


@dataclass(frozen=True)
class TaskError:
    """Why a task ended in the failed state."""

    kind: ErrorKind
    message: str
    cause: Optional[BaseException] = None


class StoredObjectDescriptor(BaseModel):
    """Durable record of a committed upload."""

    id: str = Field(default_factory=_new_id, description="Descriptor identifier")
    owning_session_id: str = Field(..., description="Training session the object belongs to")
    uploaded_by: str = Field(..., description="Uploader user id")
    file_name: str = Field(..., description="Original file name")
    storage_key: str = Field(..., description="Object key inside its bucket")
    file_size: int = Field(..., description="File size in bytes")
    mime_type: str = Field(..., description="Declared MIME type")
    caption: Optional[str] = Field(None, description="Optional caption")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> Dict[str, Any]:
        """Serialize into the ``photos`` table row shape."""
        return {
            "id": self.id,
            "training_session_id": self.owning_session_id,
            "uploaded_by": self.uploaded_by,
            "file_name": self.file_name,
            "file_path": self.storage_key,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "caption": self.caption,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "StoredObjectDescriptor":
        """Build a descriptor from a ``photos`` table row."""
        return cls(
            id=str(row["id"]),
            owning_session_id=row["training_session_id"],
            uploaded_by=row["uploaded_by"],
            file_name=row["file_name"],
            storage_key=row["file_path"],
            file_size=row.get("file_size") or 0,
            mime_type=row.get("mime_type") or "application/octet-stream",
            caption=row.get("caption"),
            created_at=row["created_at"],
        )


@dataclass
class UploadBatch:
    """Upload tasks submitted together against one training session."""

    session_id: str
    tasks: List["UploadTask"] = field(default_factory=list)
    default_caption: Optional[str] = None
    batch_id: str = field(default_factory=_new_id)


@dataclass
class BatchResult:
    """Terminal outcome of every task in a batch."""

    batch_id: str
    session_id: str
    succeeded: List["UploadTask"] = field(default_factory=list)
    failed: List["UploadTask"] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def partial_success(self) -> bool:
        """True when some, but not all, tasks failed."""
        return bool(self.succeeded) and bool(self.failed)

    @property
    def orphaned_keys(self) -> List[str]:
        """Storage keys whose bytes were stored without a descriptor."""
        return [
            task.storage_key
            for task in self.failed
            if task.error is not None and task.error.kind == ErrorKind.METADATA_ERROR
        ]


class TaskView(BaseModel):
    """Display projection of an upload task."""

    task_id: str
    file_name: str
    size_label: str
    state: UploadState
    label: str
    progress: int
    is_image: bool
    error: Optional[str] = None
