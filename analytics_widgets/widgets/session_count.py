"""Session-count dashboard widget.

The widget is a thin host shell: it owns the chart configuration and the
dataset the chart renders, and drives a DualQueryMerger from its lifecycle
hooks. Rendering itself belongs to the charting layer, which reads
``chart_config``, ``metadata`` and ``data`` from the widget.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Mapping

from analytics_widgets.core.domain.errors import TemplateSubstitutionError, WidgetError
from analytics_widgets.core.domain.types import ResultMetadata
from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger

if TYPE_CHECKING:
    from analytics_widgets.core.domain.errors import ProviderDeliveryError
    from analytics_widgets.core.domain.results import MergedResult, Row
    from analytics_widgets.core.events.event_bus import EventBus
    from analytics_widgets.core.merger.merger_config import MergerConfig
    from analytics_widgets.core.ports.clock import Clock
    from analytics_widgets.core.ports.query_channel import QueryChannel
    from analytics_widgets.core.ports.selection_source import SelectionSource

LOGGER = logging.getLogger(__name__)

SESSION_COUNT_CHART_CONFIG: dict[str, Any] = {
    "x": "duration",
    "charts": [
        {
            "type": "bar",
            "y": "count1",
            "fill": "#00e600",
            "mode": "stacked",
        },
    ],
    "yAxisLabel": "Session count",
    "xAxisLabel": "Duration",
    "pagination": True,
    "maxLength": 10,
    "legend": False,
}

SESSION_COUNT_METADATA = ResultMetadata(
    names=["duration", "count1"],
    types=["ordinal", "linear"],
)


class SessionCountWidget:
    """Bar chart of session counts per duration bucket.

    Session counts come from two provider queries (one per aggregation
    window) whose rows are shown as one dataset.
    """

    def __init__(
        self,
        config: MergerConfig,
        channel: QueryChannel,
        selection_source: SelectionSource,
        *,
        clock: Clock | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.chart_config: dict[str, Any] = copy.deepcopy(SESSION_COUNT_CHART_CONFIG)
        self.metadata: ResultMetadata = SESSION_COUNT_METADATA.model_copy(deep=True)
        self.data: list[Row] = []
        self.last_error: WidgetError | None = None
        self.render_count = 0

        self._selection_source = selection_source
        self._merger = DualQueryMerger(
            config,
            channel,
            self,
            clock=clock,
            event_bus=event_bus,
        )
        self._mounted = False

    @property
    def merger(self) -> DualQueryMerger:
        return self._merger

    @property
    def mounted(self) -> bool:
        return self._mounted

    # ---- Host lifecycle ----
    def mount(self) -> None:
        """Start listening to time-range selections."""
        if self._mounted:
            return
        self._selection_source.subscribe(self.handle_selection)
        self._mounted = True

    def unmount(self) -> None:
        """Stop listening and release the provider subscriptions."""
        if not self._mounted:
            return
        self._selection_source.unsubscribe(self.handle_selection)
        self._merger.teardown()
        self._mounted = False

    def handle_selection(self, message: Mapping[str, Any]) -> None:
        try:
            self._merger.on_selection_changed(message)
        except TemplateSubstitutionError as exc:
            LOGGER.warning(
                "Selection rejected",
                extra={"widget_id": self._merger.widget_id, "error": str(exc)},
            )
            self.last_error = exc

    # ---- RenderTarget ----
    def on_merged_result(self, result: MergedResult) -> None:
        if result.metadata.names:
            self.metadata = result.metadata
        self.data = list(result.rows)
        self.last_error = None
        self.render_count += 1

    def on_error(self, error: ProviderDeliveryError) -> None:
        # Keep showing the last complete dataset.
        self.last_error = error
