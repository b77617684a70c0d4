"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

from analytics_widgets.core.events.events import DeliveryDiscardedEvent, event_to_record


class LoggingEventSink:
    """Logs merger events using the standard logging module.

    Discarded deliveries are expected during re-selection and are logged at
    DEBUG; everything else is logged at INFO.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        level = logging.DEBUG if isinstance(event, DeliveryDiscardedEvent) else logging.INFO
        self._logger.log(level, "domain_event", extra={"event": event_to_record(event)})
