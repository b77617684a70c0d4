from __future__ import annotations

import json
import logging
import os
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway

from analytics_widgets.core.events.events import (
    CycleFailedEvent,
    CycleMergedEvent,
    CycleStartedEvent,
    DeliveryDiscardedEvent,
)

LOGGER = logging.getLogger(__name__)

_NAMESPACE = "analytics_widgets"


class PrometheusEventSink:
    """Event sink counting merge cycle outcomes with prometheus_client.

    Metrics (all labelled by ``widget_id``):
    - analytics_widgets_cycles_started_total
    - analytics_widgets_cycles_merged_total
    - analytics_widgets_cycles_failed_total
    - analytics_widgets_deliveries_discarded_total (extra label ``reason``)
    - analytics_widgets_last_merged_rows

    Optional environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to a Pushgateway for batch-style runs
      such as the replay CLI.
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key.

    Metrics are a side effect: callers should never fail a cycle because of
    metrics delivery.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()

        self._cycles_started = Counter(
            "cycles_started",
            "Dual query cycles started by a selection",
            labelnames=["widget_id"],
            namespace=_NAMESPACE,
            registry=self._registry,
        )
        self._cycles_merged = Counter(
            "cycles_merged",
            "Dual query cycles that emitted a merged result",
            labelnames=["widget_id"],
            namespace=_NAMESPACE,
            registry=self._registry,
        )
        self._cycles_failed = Counter(
            "cycles_failed",
            "Dual query cycles aborted by a provider error",
            labelnames=["widget_id"],
            namespace=_NAMESPACE,
            registry=self._registry,
        )
        self._deliveries_discarded = Counter(
            "deliveries_discarded",
            "Provider deliveries discarded without touching the current cycle",
            labelnames=["widget_id", "reason"],
            namespace=_NAMESPACE,
            registry=self._registry,
        )
        self._last_merged_rows = Gauge(
            "last_merged_rows",
            "Number of rows in the last merged result",
            labelnames=["widget_id"],
            namespace=_NAMESPACE,
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def is_push_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def on_event(self, event: Any) -> None:
        if isinstance(event, CycleStartedEvent):
            self._cycles_started.labels(widget_id=event.widget_id).inc()
        elif isinstance(event, CycleMergedEvent):
            self._cycles_merged.labels(widget_id=event.widget_id).inc()
            self._last_merged_rows.labels(widget_id=event.widget_id).set(event.rows)
        elif isinstance(event, CycleFailedEvent):
            self._cycles_failed.labels(widget_id=event.widget_id).inc()
        elif isinstance(event, DeliveryDiscardedEvent):
            self._deliveries_discarded.labels(
                widget_id=event.widget_id,
                reason=event.reason,
            ).inc()

    def push_all(self, *, job: str) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
