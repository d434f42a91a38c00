"""
Event Sinks for the WorkerSet Controller

This module defines the abstract sink through which the reconciliation core
reports semantic events (instance created, create failed, ...) and numeric
observations, plus two implementations: one that writes to the log and one that
records in memory.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple

# Logging setup
logger = logging.getLogger(__name__)


class EventType:
    """Event types."""
    NORMAL = "Normal"
    WARNING = "Warning"


# Event reasons
FAILED_CREATE_REASON = "FailedCreate"
SUCCESSFUL_CREATE_REASON = "SuccessfulCreate"
FAILED_DELETE_REASON = "FailedDelete"
SUCCESSFUL_DELETE_REASON = "SuccessfulDelete"
INVALID_SELECTOR_REASON = "InvalidSelector"

# Observation names
DELETION_AGE_RATIO = "deletion_age_ratio"


def _describe(obj: Any) -> Dict[str, str]:
    metadata = getattr(obj, "metadata", None)
    return {
        "kind": getattr(obj, "kind", type(obj).__name__),
        "namespace": getattr(metadata, "namespace", ""),
        "name": getattr(metadata, "name", ""),
    }


class RecordedEvent(NamedTuple):
    kind: str
    namespace: str
    name: str
    type: str
    reason: str
    message: str
    timestamp: float


class EventSink(ABC):
    """Destination for controller events and observations."""

    @abstractmethod
    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        """
        Report an event about an object.

        Args:
            obj: Object the event is about
            event_type: EventType.NORMAL or EventType.WARNING
            reason: Short, machine understandable reason
            message: Human-readable description
        """
        pass

    def observe(self, name: str, value: float) -> None:
        """Report a numeric sample; ignored unless a sink cares"""
        pass


class LoggingEventSink(EventSink):
    """Writes events and observations to the log."""

    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        ref = _describe(obj)
        level = logging.WARNING if event_type == EventType.WARNING else logging.INFO
        logger.log(level, f"{ref['kind']} {ref['namespace']}/{ref['name']}: {reason}: {message}")

    def observe(self, name: str, value: float) -> None:
        logger.debug(f"observation {name}={value:.3f}")


class RecordingEventSink(EventSink):
    """Keeps events and observations in memory. Safe to share across threads."""

    def __init__(self):
        self.events: List[RecordedEvent] = []
        self.observations: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        ref = _describe(obj)
        with self._lock:
            self.events.append(RecordedEvent(
                kind=ref["kind"],
                namespace=ref["namespace"],
                name=ref["name"],
                type=event_type,
                reason=reason,
                message=message,
                timestamp=time.time()
            ))

    def observe(self, name: str, value: float) -> None:
        with self._lock:
            self.observations.setdefault(name, []).append(value)

    def reasons(self) -> List[str]:
        with self._lock:
            return [e.reason for e in self.events]
