"""Shared fixtures for merger semantic tests."""

from __future__ import annotations

from typing import Any

import pytest

from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger
from analytics_widgets.core.merger.merger_config import MergerConfig
from analytics_widgets.runtime.in_memory_channel import InMemoryQueryChannel

WIDGET_ID = "IsAnalyticsSessionCount-1"

QUERY_1 = "select count(*) where t>{{from}} and t<{{to}} and now={{now}}"
QUERY_2 = "select count(*), duration where t>{{from}} and t<{{to}} and now={{now}} group by duration"


class FixedClock:
    """Clock returning a fixed, optionally advancing, millisecond timestamp."""

    def __init__(self, start_ms: int = 1_700_000_000_000, step_ms: int = 0) -> None:
        self._now = start_ms
        self._step = step_ms
        self.reads = 0

    def now_ms(self) -> int:
        value = self._now
        self._now += self._step
        self.reads += 1
        return value


class RecordingRenderTarget:
    """Render target that records every merged result and error."""

    def __init__(self) -> None:
        self.results: list[Any] = []
        self.errors: list[Any] = []

    def on_merged_result(self, result: Any) -> None:
        self.results.append(result)

    def on_error(self, error: Any) -> None:
        self.errors.append(error)


class RecordingSink:
    """Event sink that keeps every event in order."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]


def make_config(**overrides: Any) -> MergerConfig:
    data: dict[str, Any] = {
        "widget_id": WIDGET_ID,
        "query_templates": {"query": QUERY_1, "query2": QUERY_2},
    }
    data.update(overrides)
    return MergerConfig.from_json_obj(data)


@pytest.fixture
def channel() -> InMemoryQueryChannel:
    return InMemoryQueryChannel()


@pytest.fixture
def target() -> RecordingRenderTarget:
    return RecordingRenderTarget()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def merger(
    channel: InMemoryQueryChannel,
    target: RecordingRenderTarget,
    clock: FixedClock,
) -> DualQueryMerger:
    return DualQueryMerger(make_config(), channel, target, clock=clock)
