"""
Semantic test: re-selection discards the superseded cycle.

Invariant:
Calling on_selection_changed before the first cycle completes drops its
partial state, and late deliveries through the first cycle's subscriptions
are never concatenated into the second cycle's result.
"""

from __future__ import annotations

from conftest import WIDGET_ID, RecordingRenderTarget, RecordingSink, make_config

from analytics_widgets.core.domain.errors import DiscardReason
from analytics_widgets.core.events.event_bus import EventBus
from analytics_widgets.core.events.events import DeliveryDiscardedEvent
from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger
from analytics_widgets.runtime.in_memory_channel import InMemoryQueryChannel

PRIMARY = WIDGET_ID
SECONDARY = WIDGET_ID + "2"


def test_partial_batch_of_superseded_cycle_is_dropped(merger, channel, target) -> None:
    merger.on_selection_changed({"from": 100, "to": 200})
    channel.deliver(PRIMARY, None, [{"k": "old-a"}])

    merger.on_selection_changed({"from": 300, "to": 400})
    assert merger.arrivals == 0

    channel.deliver(SECONDARY, None, [{"k": "new-b"}])
    assert target.results == []

    channel.deliver(PRIMARY, None, [{"k": "new-a"}])

    assert len(target.results) == 1
    assert [row["k"] for row in target.results[0].rows] == ["new-a", "new-b"]
    assert target.results[0].generation == 2


def test_late_delivery_through_old_subscription_is_ignored() -> None:
    sink = RecordingSink()
    channel = InMemoryQueryChannel()
    target = RecordingRenderTarget()
    merger = DualQueryMerger(make_config(), channel, target, event_bus=EventBus([sink]))

    merger.on_selection_changed({"from": 100, "to": 200})
    old_primary, old_secondary = channel.history

    merger.on_selection_changed({"from": 300, "to": 400})
    channel.deliver(PRIMARY, None, [{"k": "new-a"}])

    # The provider delivers late on the superseded pair.
    old_secondary.on_result(None, [{"k": "old-b"}])
    old_primary.on_result(None, [{"k": "old-a"}])

    assert target.results == []
    assert merger.arrivals == 1

    channel.deliver(SECONDARY, None, [{"k": "new-b"}])

    assert [row["k"] for row in target.results[0].rows] == ["new-a", "new-b"]

    discarded = sink.of_type(DeliveryDiscardedEvent)
    assert [(event.identity, event.generation, event.reason) for event in discarded] == [
        (SECONDARY, 1, DiscardReason.STALE_GENERATION),
        (PRIMARY, 1, DiscardReason.STALE_GENERATION),
    ]


def test_late_error_through_old_subscription_is_ignored(merger, channel, target) -> None:
    merger.on_selection_changed({"from": 100, "to": 200})
    old_primary = channel.history[0]

    merger.on_selection_changed({"from": 300, "to": 400})
    old_primary.on_error("timeout")

    assert target.errors == []
    assert channel.active_identities == (PRIMARY, SECONDARY)


def test_delivery_for_unknown_identity_is_ignored(merger, channel, target) -> None:
    merger.on_selection_changed({"from": 100, "to": 200})

    merger.on_result("someone-else", None, [{"k": "x"}])
    channel.deliver(PRIMARY, None, [{"k": "a"}])

    assert target.results == []
    assert merger.arrivals == 1


def test_delivery_before_any_selection_is_ignored(merger, target) -> None:
    merger.on_result(PRIMARY, None, [{"k": "a"}])
    merger.on_result(SECONDARY, None, [{"k": "b"}])

    assert target.results == []
    assert merger.arrivals == 0
