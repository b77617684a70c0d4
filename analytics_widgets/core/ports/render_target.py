from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from analytics_widgets.core.domain.errors import ProviderDeliveryError
    from analytics_widgets.core.domain.results import MergedResult


class RenderTarget(Protocol):
    """Consumer of merged datasets, typically the chart of a host widget."""

    def on_merged_result(self, result: MergedResult) -> None:
        """Receive the merged dataset of a completed cycle (at most once per cycle)."""

    def on_error(self, error: ProviderDeliveryError) -> None:
        """Receive the failure of an aborted cycle."""
