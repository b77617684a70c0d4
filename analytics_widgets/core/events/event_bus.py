"""
Simple synchronous event bus.

Events are dispatched on the caller's thread, in sink registration order,
before the emitting merger callback returns.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from analytics_widgets.core.events.event_sink import EventSink

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches merger events to registered sinks."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        """Register a new sink."""
        self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        """Emit an event to all sinks (dropped once the bus is closed)."""
        if self._closed:
            LOGGER.debug("Event emitted on closed bus", extra={"event_type": type(event).__name__})
            return

        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """
        Finalize all sinks that expose a close() method.
        """
        if self._closed:
            return

        for sink in self._sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()

        self._closed = True
