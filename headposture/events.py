"""
Event fan-out to presentation collaborators.

Subscribers register per event type (or for all events). Publishing is
fire-and-forget: a failing subscriber is logged and skipped, and never
interrupts the sample pipeline. A bounded buffer of recent events is kept
for late-joining displays.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import time

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Notifications emitted by the posture monitor."""
    ORIENTATION = "orientation"
    CALIBRATION_PROGRESS = "calibration_progress"
    CALIBRATION_RESULT = "calibration_result"
    POSTURE = "posture"
    MOVEMENT = "movement"
    STILLNESS_REMINDER = "stillness_reminder"
    SESSION_STATS = "session_stats"
    CONNECTION = "connection"


@dataclass(frozen=True)
class Event:
    event_id: int
    event_type: EventType
    payload: Any
    timestamp: float


Subscriber = Callable[[Event], None]


class EventBus:
    """
    Observer registry with per-type subscriptions.

    Features:
    - Subscribe to one event type or to every event
    - Exception isolation per subscriber
    - In-memory buffer of recent events
    """

    def __init__(self, buffer_size: int = 100, buffered_types: Optional[set] = None):
        """
        Args:
            buffer_size: Number of recent events to keep in memory
            buffered_types: Event types to buffer. High-rate orientation and
                movement updates are left out by default.
        """
        self._subscribers: Dict[Optional[EventType], List[Subscriber]] = {}
        self.event_buffer = deque(maxlen=buffer_size)
        self.buffered_types = buffered_types if buffered_types is not None else {
            EventType.CALIBRATION_RESULT,
            EventType.STILLNESS_REMINDER,
            EventType.CONNECTION,
        }
        self.event_counter = 0

    def subscribe(self, callback: Subscriber, event_type: Optional[EventType] = None) -> None:
        """Register ``callback`` for ``event_type``, or for all events when None."""
        callbacks = self._subscribers.setdefault(event_type, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self, callback: Subscriber, event_type: Optional[EventType] = None) -> None:
        """Remove a subscription. Unknown callbacks are ignored."""
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def publish(self, event_type: EventType, payload: Any = None) -> Event:
        self.event_counter += 1
        event = Event(
            event_id=self.event_counter,
            event_type=event_type,
            payload=payload,
            timestamp=time.time(),
        )

        if event_type in self.buffered_types:
            self.event_buffer.append(event)

        # Copy so subscribers may unsubscribe while being notified
        targets = list(self._subscribers.get(event_type, [])) + list(self._subscribers.get(None, []))
        for callback in targets:
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s event", callback, event_type.value)

        return event

    def recent(self, n: int = 10, event_type: Optional[EventType] = None) -> List[Event]:
        """Most recent buffered events, oldest first."""
        events = [e for e in self.event_buffer if event_type is None or e.event_type == event_type]
        return events[-n:] if n > 0 else []

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        return len(self._subscribers.get(event_type, []))

    def clear(self) -> None:
        self._subscribers.clear()
        self.event_buffer.clear()
