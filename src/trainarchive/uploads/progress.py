"""Display projection of upload task state."""

from typing import Dict, Iterable, List, Optional, Union

from trainarchive.uploads.buckets import is_image
from trainarchive.uploads.events import TASK_STATE_CHANGED, Event, TaskEventBus
from trainarchive.uploads.models import TaskView, UploadState
from trainarchive.uploads.task import TaskSnapshot, UploadTask

STATE_LABELS: Dict[UploadState, str] = {
    UploadState.PENDING: "Pending",
    UploadState.UPLOADING: "Uploading…",
    UploadState.COMMITTING: "Uploading…",
    UploadState.SUCCEEDED: "Completed",
    UploadState.FAILED: "Failed",
}

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size_bytes: Optional[int]) -> str:
    """Human readable size, e.g. ``1.5 MB``.

    Units step by 1024 up to GB; values are rounded to 2 decimals.

    Args:
        size_bytes: Size in bytes, None treated as 0

    Returns:
        Size label such as ``"512 Bytes"`` or ``"1.5 KB"``

    Examples:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if not size_bytes:
        return "0 Bytes"
    value = float(size_bytes)
    exponent = 0
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {SIZE_UNITS[exponent]}"


def project_one(task: Union[UploadTask, TaskSnapshot]) -> TaskView:
    """Derive the display view of one task.

    Uploading and committing share the same label; the progress value
    tells them apart.

    Args:
        task: Live task or a snapshot received from an event

    Returns:
        TaskView with label, progress, size label and error message
    """
    return TaskView(
        task_id=task.task_id,
        file_name=task.file_name,
        size_label=format_file_size(task.size_bytes),
        state=task.state,
        label=STATE_LABELS[task.state],
        progress=task.progress,
        is_image=is_image(task.mime_type),
        error=task.error.message if task.error else None,
    )


def project(tasks: Iterable[Union[UploadTask, TaskSnapshot]]) -> List[TaskView]:
    """Derive views for tasks in the given order. Never mutates a task.

    Args:
        tasks: Tasks or snapshots to project

    Returns:
        One TaskView per task, same order
    """
    return [project_one(task) for task in tasks]


class ProgressBoard:
    """Keeps the latest view of every task it has been notified about.

    Subscribes to task-state-changed events and only reads their snapshots.
    An optional ``batch_id`` restricts the board to one batch.
    """

    def __init__(self, events: TaskEventBus, batch_id: Optional[str] = None):
        self.batch_id = batch_id
        self._snapshots: Dict[str, TaskSnapshot] = {}
        self._unsubscribe = events.subscribe(TASK_STATE_CHANGED, self._on_state_changed)

    def _on_state_changed(self, event: Event) -> None:
        snapshot: TaskSnapshot = event.payload["snapshot"]
        if self.batch_id is not None and snapshot.batch_id != self.batch_id:
            return
        self._snapshots[snapshot.task_id] = snapshot

    @property
    def views(self) -> List[TaskView]:
        """Latest view of every tracked task, in first-seen order."""
        return project(self._snapshots.values())

    @property
    def is_settled(self) -> bool:
        """True once every tracked task reached a terminal state."""
        return bool(self._snapshots) and all(s.state.is_terminal for s in self._snapshots.values())

    def close(self) -> None:
        """Stop listening for further notifications."""
        self._unsubscribe()
