"""Ledger events.

Every committed mutation produces a ``LedgerEvent`` for audit trails,
indexers, and UIs. Events are emitted after the transaction commits and
delivery is fire-and-forget: a sink that raises is logged and skipped, so a
consumer can never fail or roll back the mutation that produced the event.

Sinks:
- InMemoryEventSink: keeps events in a list (tests, embedding)
- LoggingEventSink: writes one structured log line per event
- QueuedEventSink: hands events to a background thread for slow consumers
"""

import json
import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from timebank.models import format_datetime, utc_now

logger = logging.getLogger(__name__)


class LedgerEventType(str, Enum):
    """Kinds of ledger events."""

    ACCOUNT_REGISTERED = "account.registered"
    OFFER_CREATED = "offer.created"
    OFFER_DEACTIVATED = "offer.deactivated"
    REQUEST_CREATED = "request.created"
    REQUEST_COMPLETED = "request.completed"


@dataclass
class LedgerEvent:
    """A structured record of one committed ledger mutation."""

    event_type: LedgerEventType
    actor: str
    identity: Optional[str] = None
    offer_id: Optional[int] = None
    request_id: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "actor": self.actor,
            "identity": self.identity,
            "offer_id": self.offer_id,
            "request_id": self.request_id,
            "payload": dict(self.payload),
            "timestamp": format_datetime(self.timestamp),
        }


@runtime_checkable
class EventSink(Protocol):
    """Consumer of ledger events."""

    def emit(self, event: LedgerEvent) -> None:
        ...


class InMemoryEventSink:
    """Collects events in memory."""

    def __init__(self):
        self.events: List[LedgerEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: LedgerEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: LedgerEventType) -> List[LedgerEvent]:
        with self._lock:
            return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


class LoggingEventSink:
    """Writes each event as a JSON log line."""

    def __init__(self, event_logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = event_logger or logging.getLogger("timebank.audit")
        self.level = level

    def emit(self, event: LedgerEvent) -> None:
        self.logger.log(self.level, json.dumps(event.to_dict(), sort_keys=True))


class QueuedEventSink:
    """Delivers events to another sink from a daemon worker thread.

    The caller only pays for a queue put. If the queue is full the event is
    dropped with a warning rather than making the caller wait.
    """

    def __init__(self, sink: EventSink, maxsize: int = 10000):
        self.sink = sink
        self._queue: "queue.Queue[Optional[LedgerEvent]]" = queue.Queue(maxsize=maxsize)
        self._worker = threading.Thread(
            target=self._run, name="timebank-event-sink", daemon=True
        )
        self._worker.start()

    def emit(self, event: LedgerEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning(f"Event queue full, dropping {event.event_type.value} {event.id}")

    def flush(self) -> None:
        """Block until every queued event has been handed to the sink."""
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        """Drain the queue and stop the worker."""
        self._queue.put(None)
        self._worker.join(timeout)

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self.sink.emit(event)
            except Exception:
                logger.exception("Event sink failed in worker thread")
            finally:
                self._queue.task_done()


class EventDispatcher:
    """Fans events out to sinks without letting a sink failure escape."""

    def __init__(self, sinks: Iterable[EventSink] = ()):
        self._sinks: List[EventSink] = list(sinks)

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    @property
    def sinks(self) -> List[EventSink]:
        return list(self._sinks)

    def emit(self, event: LedgerEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception(
                    f"Event sink {type(sink).__name__} failed on {event.event_type.value}"
                )
