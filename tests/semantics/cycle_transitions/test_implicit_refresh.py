"""
Semantic test: deliveries after a merge start an implicit refresh.

Invariant:
When the live subscription pair delivers again after a merge (no new
selection), the deliveries form a fresh cycle within the same generation:
rows of the previous merge are never carried over, and the refresh renders
only once both queries delivered again.
"""

from __future__ import annotations

from conftest import WIDGET_ID

from analytics_widgets.core.domain.cycle_state_machine import CYCLE_MERGED, CYCLE_ONE_ARRIVED

PRIMARY = WIDGET_ID
SECONDARY = WIDGET_ID + "2"


def test_third_delivery_starts_a_refresh_without_rendering(merger, channel, target) -> None:
    merger.on_selection_changed({"from": 100, "to": 200})
    channel.deliver(PRIMARY, None, [{"duration": "0-5", "count1": 3}])
    channel.deliver(SECONDARY, None, [{"duration": "5-10", "count1": 7}])

    channel.deliver(SECONDARY, None, [{"duration": "5-10", "count1": 8}])

    assert len(target.results) == 1
    assert merger.state == CYCLE_ONE_ARRIVED
    assert merger.arrivals == 1
    assert merger.generation == 1


def test_refresh_merges_only_the_new_rows(merger, channel, target) -> None:
    merger.on_selection_changed({"from": 100, "to": 200})
    channel.deliver(PRIMARY, None, [{"duration": "0-5", "count1": 3}])
    channel.deliver(SECONDARY, None, [{"duration": "5-10", "count1": 7}])

    channel.deliver(SECONDARY, None, [{"duration": "5-10", "count1": 8}])
    channel.deliver(PRIMARY, None, [{"duration": "0-5", "count1": 4}])

    assert len(target.results) == 2
    assert target.results[1].rows == [
        {"duration": "0-5", "count1": 4},
        {"duration": "5-10", "count1": 8},
    ]
    assert target.results[1].generation == 1
    assert merger.state == CYCLE_MERGED
