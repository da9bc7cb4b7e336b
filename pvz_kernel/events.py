"""
Domain events emitted by the workflow services.

Emits one event per committed state change so log pipelines or an external
metrics exporter can count them:
- pvz_created, reception_created, reception_closed
- product_added, product_deleted

Events are emitted only after the unit of work that produced them has
committed.  A step that joins a caller's transaction emits as soon as its
own work is done; if the caller later rolls back, the event has already
been delivered.

Usage:
    from pvz_kernel.events import LoggingEventSink, RecordingEventSink

    sink = RecordingEventSink()
    service = ReceptionService(..., events=sink)
    service.create_reception(ctx, pvz_id)
    assert sink.names() == ["reception_created"]
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable

from pvz_kernel.logging_config import get_logger

logger = get_logger("events")

EVENT_PVZ_CREATED = "pvz_created"
EVENT_RECEPTION_CREATED = "reception_created"
EVENT_RECEPTION_CLOSED = "reception_closed"
EVENT_PRODUCT_ADDED = "product_added"
EVENT_PRODUCT_DELETED = "product_deleted"


@dataclass(frozen=True)
class DomainEvent:
    name: str
    occurred_at: datetime
    attributes: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class DomainEventSink(Protocol):
    """Receives domain events.  Implementations must be thread-safe."""

    def emit(self, event: DomainEvent) -> None: ...


class LoggingEventSink:
    """Default sink: one ``domain_event`` log record per event."""

    def emit(self, event: DomainEvent) -> None:
        logger.info(
            "domain_event",
            extra={
                "event_name": event.name,
                "occurred_at": event.occurred_at,
                **event.attributes,
            },
        )


class RecordingEventSink:
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[DomainEvent] = []

    def emit(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[DomainEvent]:
        with self._lock:
            return list(self._events)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
