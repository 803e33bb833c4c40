"""Event publisher - hands committed domain events to in-process listeners."""
from concurrent.futures import Executor
from datetime import date, datetime
import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

EventListener = Callable[[str, Dict[str, Any]], None]


class Event(Protocol):
    """Protocol for event types."""

    event_name: str

    def to_dict(self) -> Dict[str, Any]:
        ...


class EventPublisher(Protocol):
    """Fire-and-forget, at-most-once delivery of a named event."""

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        ...


def serialize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Convert datetime values to ISO strings so payloads are JSON-safe."""
    serialized: Dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, (datetime, date)):
            serialized[key] = value.isoformat()
        else:
            serialized[key] = value
    return serialized


def publish_event(publisher: EventPublisher, event: Event) -> None:
    """Publish a typed event, logging instead of raising on failure."""
    try:
        publisher.publish(event.event_name, serialize_payload(event.to_dict()))
    except Exception:
        logger.exception("Failed to publish %s", event.event_name)


class InProcessEventPublisher:
    """
    Routes events to listeners subscribed by event name.

    Listeners are subscribed once at startup. With an executor, each
    delivery runs in the background and ``publish`` returns immediately;
    without one, listeners run inline (used by tests and scripts). A
    failing listener is logged and never affects the publisher's caller.
    """

    def __init__(self, executor: Optional[Executor] = None):
        self._executor = executor
        self._listeners: Dict[str, List[EventListener]] = {}
        self._lock = Lock()

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        with self._lock:
            self._listeners.setdefault(event_name, []).append(listener)

    def unsubscribe(self, event_name: str, listener: EventListener) -> None:
        with self._lock:
            self._listeners[event_name] = [
                existing for existing in self._listeners.get(event_name, []) if existing is not listener
            ]

    def listeners(self, event_name: str) -> List[EventListener]:
        with self._lock:
            return list(self._listeners.get(event_name, []))

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        listeners = self.listeners(event_name)
        if not listeners:
            logger.debug("No listeners for %s", event_name)
            return
        for listener in listeners:
            if self._executor is not None:
                self._executor.submit(self._deliver, listener, event_name, payload)
            else:
                self._deliver(listener, event_name, payload)

    @staticmethod
    def _deliver(listener: EventListener, event_name: str, payload: Dict[str, Any]) -> None:
        try:
            listener(event_name, payload)
        except Exception:
            logger.exception("Event listener %r failed for %s", listener, event_name)

    def shutdown(self, wait: bool = True) -> None:
        shutdown = getattr(self._executor, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=wait)
