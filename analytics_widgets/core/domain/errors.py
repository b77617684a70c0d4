"""Widget error types and delivery discard reasons."""

from __future__ import annotations


class WidgetError(Exception):
    """Base class for all errors raised by analytics widgets."""


class TemplateSubstitutionError(WidgetError, ValueError):
    """A query could not be built from its template and the selected range.

    Raised synchronously from ``on_selection_changed`` before any subscription
    is touched.
    """

    def __init__(self, message: str, *, template: str | None = None) -> None:
        super().__init__(message)
        self.template = template


class ProviderDeliveryError(WidgetError):
    """The provider reported a failure for one query of the current cycle."""

    def __init__(
        self,
        *,
        identity: str,
        generation: int,
        cause: BaseException | str | None = None,
    ) -> None:
        detail = "" if cause is None else f": {cause}"
        super().__init__(f"query {identity!r} failed in cycle {generation}{detail}")
        self.identity = identity
        self.generation = generation
        self.cause = cause


class MergerClosedError(WidgetError, RuntimeError):
    """A selection was received after the merger was torn down."""


class DiscardReason:
    """Reasons for silently discarding a provider delivery."""

    STALE_GENERATION = "stale_generation"
    UNKNOWN_IDENTITY = "unknown_identity"
    MERGER_CLOSED = "merger_closed"
    CYCLE_FAILED = "cycle_failed"
