"""
Event sink interface.

Sinks consume the domain events a merger emits while it runs cycles.
"""
from __future__ import annotations

from typing import Any, Protocol


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a merger domain event."""
