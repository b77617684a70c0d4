"""Public API for the analytics_widgets package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from analytics_widgets.core.domain.errors import (
    MergerClosedError,
    ProviderDeliveryError,
    TemplateSubstitutionError,
    WidgetError,
)
from analytics_widgets.core.domain.results import ConcreteQuery, MergedResult
from analytics_widgets.core.domain.types import QueryTemplate, ResultMetadata, TimeRange

# ----------------------------------------------------------------------
# Merger API
# ----------------------------------------------------------------------
from analytics_widgets.core.merger.dual_query_merger import DualQueryMerger
from analytics_widgets.core.merger.merger_config import MergerConfig

# ----------------------------------------------------------------------
# Ports (implemented by hosts)
# ----------------------------------------------------------------------
from analytics_widgets.core.ports.clock import Clock, SystemClock
from analytics_widgets.core.ports.query_channel import QueryChannel
from analytics_widgets.core.ports.render_target import RenderTarget
from analytics_widgets.core.ports.selection_source import SelectionSource

# ----------------------------------------------------------------------
# Widgets
# ----------------------------------------------------------------------
from analytics_widgets.widgets.session_count import SessionCountWidget

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Merger
    "DualQueryMerger",
    "MergerConfig",

    # Widgets
    "SessionCountWidget",

    # Ports
    "QueryChannel",
    "RenderTarget",
    "SelectionSource",
    "Clock",
    "SystemClock",

    # Domain API
    "TimeRange",
    "QueryTemplate",
    "ResultMetadata",
    "ConcreteQuery",
    "MergedResult",

    # Errors
    "WidgetError",
    "TemplateSubstitutionError",
    "ProviderDeliveryError",
    "MergerClosedError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("analytics-widgets")
except PackageNotFoundError:
    __version__ = "0.0.0"
