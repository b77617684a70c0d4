"""
Semantic test: cycle outcomes are counted.

Invariant:
Every started, merged and failed cycle, and every discarded delivery, is
counted once per widget.
"""

from __future__ import annotations

from conftest import WIDGET_ID, RecordingRenderTarget, make_config
from prometheus_client import CollectorRegistry

from analytics_widgets.core.events.event_bus import EventBus
from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger
from analytics_widgets.runtime.in_memory_channel import InMemoryQueryChannel
from analytics_widgets.runtime.prometheus_metrics import PrometheusEventSink

PRIMARY = WIDGET_ID
SECONDARY = WIDGET_ID + "2"


def _sample(registry: CollectorRegistry, name: str, **labels: str) -> float | None:
    return registry.get_sample_value(name, {"widget_id": WIDGET_ID, **labels})


def test_cycle_outcomes_are_counted(monkeypatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    registry = CollectorRegistry()
    sink = PrometheusEventSink(registry)
    channel = InMemoryQueryChannel()
    merger = DualQueryMerger(make_config(), channel, RecordingRenderTarget(), event_bus=EventBus([sink]))

    merger.on_selection_changed({"from": 100, "to": 200})
    stale_primary = channel.history[0]
    channel.deliver(PRIMARY, None, [{"k": "a"}])
    channel.deliver(SECONDARY, None, [{"k": "b"}, {"k": "c"}])

    merger.on_selection_changed({"from": 300, "to": 400})
    stale_primary.on_result(None, [{"k": "late"}])
    channel.fail(SECONDARY, "boom")

    assert _sample(registry, "analytics_widgets_cycles_started_total") == 2.0
    assert _sample(registry, "analytics_widgets_cycles_merged_total") == 1.0
    assert _sample(registry, "analytics_widgets_cycles_failed_total") == 1.0
    assert _sample(registry, "analytics_widgets_last_merged_rows") == 3.0
    assert _sample(
        registry,
        "analytics_widgets_deliveries_discarded_total",
        reason="stale_generation",
    ) == 1.0
    assert not sink.is_push_enabled()
