"""Per-file upload state machine."""

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import uuid4

from trainarchive.core.config import settings
from trainarchive.uploads.buckets import BucketName, route
from trainarchive.uploads.exceptions import ErrorKind, InvalidTransitionError
from trainarchive.uploads.models import StoredObjectDescriptor, TaskError, UploadCandidate, UploadState

# Progress shown as soon as the transfer starts
UPLOAD_START_PROGRESS = 10

ALLOWED_TRANSITIONS: Dict[UploadState, FrozenSet[UploadState]] = {
    UploadState.PENDING: frozenset({UploadState.UPLOADING}),
    UploadState.UPLOADING: frozenset({UploadState.COMMITTING, UploadState.FAILED}),
    UploadState.COMMITTING: frozenset({UploadState.SUCCEEDED, UploadState.FAILED}),
    UploadState.SUCCEEDED: frozenset(),
    UploadState.FAILED: frozenset(),
}


def generate_storage_key(session_id: str, file_name: str) -> str:
    """Build a fresh object key: ``{session_id}/{epoch_ms}-{token}.{ext}``.

    Args:
        session_id: Owning training session, used as the key folder
        file_name: Original file name; its extension is kept, ``bin`` if none

    Returns:
        A key that is new on every call, even for the same file
    """
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
    return f"{session_id}/{int(time.time() * 1000)}-{secrets.token_urlsafe(8)}.{extension}"


@dataclass(frozen=True)
class TaskSnapshot:
    """Immutable copy of a task's observable fields."""

    task_id: str
    batch_id: Optional[str]
    file_name: str
    mime_type: str
    size_bytes: int
    bucket: BucketName
    storage_key: Optional[str]
    state: UploadState
    progress: int
    error: Optional[TaskError]


TaskListener = Callable[["UploadTask", UploadState], None]


class UploadTask:
    """One file moving from pending to a terminal state.

    Only the orchestrator driving the task calls the transition methods.
    Listeners are invoked after every state change with the task and its
    previous state.
    """

    def __init__(
        self,
        candidate: UploadCandidate,
        caption: Optional[str] = None,
        batch_id: Optional[str] = None,
    ):
        self.task_id = str(uuid4())
        self.candidate = candidate
        self.bucket: BucketName = route(candidate)
        self.caption = caption or None
        self.batch_id = batch_id
        self.state = UploadState.PENDING
        self.progress = 0
        self.storage_key: Optional[str] = None
        self.error: Optional[TaskError] = None
        self.descriptor: Optional[StoredObjectDescriptor] = None
        self.history: List[UploadState] = [UploadState.PENDING]
        self._listeners: List[TaskListener] = []

    def __repr__(self) -> str:
        return f"UploadTask({self.candidate.file_name!r}, state={self.state.value}, progress={self.progress})"

    @property
    def file_name(self) -> str:
        return self.candidate.file_name

    @property
    def mime_type(self) -> str:
        return self.candidate.mime_type

    @property
    def size_bytes(self) -> int:
        return self.candidate.size_bytes

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def add_listener(self, listener: TaskListener) -> None:
        """Register a callable invoked with (task, previous_state) on every change."""
        self._listeners.append(listener)

    def snapshot(self) -> TaskSnapshot:
        """Immutable copy of the observable fields, safe to hand to observers."""
        return TaskSnapshot(
            task_id=self.task_id,
            batch_id=self.batch_id,
            file_name=self.file_name,
            mime_type=self.mime_type,
            size_bytes=self.size_bytes,
            bucket=self.bucket,
            storage_key=self.storage_key,
            state=self.state,
            progress=self.progress,
            error=self.error,
        )

    def _transition(self, new_state: UploadState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move task {self.task_id} from {self.state.value} to {new_state.value}"
            )
        previous = self.state
        self.state = new_state
        self.history.append(new_state)
        self._notify(previous)

    def _notify(self, previous: UploadState) -> None:
        for listener in list(self._listeners):
            listener(self, previous)

    def _set_progress(self, value: int) -> None:
        self.progress = max(self.progress, min(100, max(0, int(value))))

    def start(self, session_id: str) -> str:
        """Enter UPLOADING and assign the storage key the bytes will go to.

        Args:
            session_id: Owning training session

        Returns:
            The storage key generated for this attempt

        Raises:
            InvalidTransitionError: If the task already left PENDING
        """
        if self.state != UploadState.PENDING:
            raise InvalidTransitionError(f"Task {self.task_id} was already started")
        self.storage_key = generate_storage_key(session_id, self.file_name)
        self._set_progress(UPLOAD_START_PROGRESS)
        self._transition(UploadState.UPLOADING)
        return self.storage_key

    def advance(self, value: int) -> None:
        """Report transfer progress while uploading.

        Values are capped at the commit checkpoint and lower values than the
        current progress are ignored. Listeners hear about actual changes only.

        Args:
            value: Progress percentage derived from bytes sent

        Raises:
            InvalidTransitionError: If the task is not uploading
        """
        if self.state != UploadState.UPLOADING:
            raise InvalidTransitionError(f"Task {self.task_id} is not uploading")
        ceiling = settings.COMMIT_PROGRESS_CHECKPOINT
        before = self.progress
        self._set_progress(min(value, ceiling))
        if self.progress != before:
            self._notify(self.state)

    def mark_uploaded(self) -> None:
        """Bytes acknowledged by storage; the descriptor write comes next."""
        self._set_progress(settings.COMMIT_PROGRESS_CHECKPOINT)
        self._transition(UploadState.COMMITTING)

    def mark_committed(self, descriptor: StoredObjectDescriptor) -> None:
        """Descriptor recorded; the task is complete.

        Args:
            descriptor: The row written for this task
        """
        self.descriptor = descriptor
        self._set_progress(100)
        self._transition(UploadState.SUCCEEDED)

    def fail(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None) -> None:
        """Enter FAILED, recording why.

        Args:
            kind: upload-error before the bytes were stored, metadata-error after
            message: Human readable reason shown to the user
            cause: Underlying exception, if any
        """
        self.error = TaskError(kind=kind, message=message, cause=cause)
        self._transition(UploadState.FAILED)

    def retry(self) -> "UploadTask":
        """Create a fresh pending task for the same candidate and caption.

        The new task gets its own id and, once started, its own storage key.
        An object stored by this attempt is left where it is.

        Returns:
            New UploadTask in PENDING

        Raises:
            InvalidTransitionError: If this task has not failed
        """
        if self.state != UploadState.FAILED:
            raise InvalidTransitionError(f"Only failed tasks can be retried, task {self.task_id} is {self.state.value}")
        self.candidate.data.seek(0)
        return UploadTask(self.candidate, caption=self.caption, batch_id=self.batch_id)
