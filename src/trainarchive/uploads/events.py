"""In-process notifications emitted by the upload pipeline."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

TASK_STATE_CHANGED = "task.state_changed"
BATCH_COMPLETED = "batch.completed"
CACHE_INVALIDATED = "cache.invalidated"


@dataclass(frozen=True)
class Event:
    topic: str
    payload: Dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


EventHandler = Callable[[Event], None]


class TaskEventBus:
    """In-memory publish/subscribe bus.

    Handlers run synchronously in publish order. A handler that raises is
    logged and skipped so observers can never break an upload.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it again."""
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for handler in list(self._subscribers.get(event.topic, [])):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={"topic": event.topic, "event_id": event.event_id},
                )
