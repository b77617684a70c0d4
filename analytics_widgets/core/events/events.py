"""
Domain event models.

These events represent immutable facts observed while a merger runs its
cycles. They are consumed by loggers, recorders, and metrics sinks.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from typing import Any


@dataclass(slots=True)
class CycleStartedEvent:
    widget_id: str
    generation: int

    range_from: int
    range_to: int

    identities: tuple[str, ...]
    queries: tuple[str, ...]


@dataclass(slots=True)
class CycleStateTransitionEvent:
    widget_id: str
    generation: int
    prev_state: str | None
    next_state: str


@dataclass(slots=True)
class DeliveryReceivedEvent:
    widget_id: str
    generation: int
    identity: str

    rows: int
    arrivals: int


@dataclass(slots=True)
class DeliveryDiscardedEvent:
    widget_id: str
    generation: int | None
    identity: str

    kind: str  # result | error
    reason: str


@dataclass(slots=True)
class CycleMergedEvent:
    widget_id: str
    generation: int
    rows: int


@dataclass(slots=True)
class CycleFailedEvent:
    widget_id: str
    generation: int
    identity: str
    error: str


@dataclass(slots=True)
class MergerTornDownEvent:
    widget_id: str
    generation: int


def event_to_record(event: Any) -> dict[str, Any]:
    """Return a JSON-compatible dict for an event, tagged with its type."""
    if is_dataclass(event) and not isinstance(event, type):
        record = asdict(event)
    else:
        record = {"event": str(event)}
    record["event_type"] = type(event).__name__
    return record
