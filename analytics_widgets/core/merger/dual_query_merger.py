"""Dual-query subscription and merge orchestration.

A DualQueryMerger turns one user-selected time range into two provider
subscriptions, accumulates their deliveries independently, and hands a single
merged dataset to its render target once both queries have delivered.

Every selection starts a new cycle with a higher generation. The callbacks
given to the provider are bound to the generation they were issued for, so a
late delivery from a superseded subscription pair is discarded instead of
being merged into the current cycle.
"""

# pylint: disable=too-many-instance-attributes
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from pydantic import ValidationError

from analytics_widgets.core.domain.cycle import Cycle
from analytics_widgets.core.domain.cycle_state_machine import (
    CYCLE_FAILED,
    CYCLE_IDLE,
    CYCLE_MERGED,
)
from analytics_widgets.core.domain.errors import (
    DiscardReason,
    MergerClosedError,
    ProviderDeliveryError,
    TemplateSubstitutionError,
)
from analytics_widgets.core.domain.results import ConcreteQuery, Row
from analytics_widgets.core.domain.types import ResultMetadata, TimeRange
from analytics_widgets.core.events.events import (
    CycleFailedEvent,
    CycleMergedEvent,
    CycleStartedEvent,
    CycleStateTransitionEvent,
    DeliveryDiscardedEvent,
    DeliveryReceivedEvent,
    MergerTornDownEvent,
)
from analytics_widgets.core.events.sinks.null_event_bus import NullEventBus
from analytics_widgets.core.ports.clock import SystemClock
from analytics_widgets.core.query.template import render_query

if TYPE_CHECKING:
    from analytics_widgets.core.events.event_bus import EventBus
    from analytics_widgets.core.merger.merger_config import MergerConfig
    from analytics_widgets.core.ports.clock import Clock
    from analytics_widgets.core.ports.query_channel import (
        ErrorCallback,
        QueryChannel,
        ResultCallback,
    )
    from analytics_widgets.core.ports.render_target import RenderTarget

LOGGER = logging.getLogger(__name__)


class DualQueryMerger:
    """Two-party join over a pair of provider subscriptions.

    The merger is driven by three kinds of callbacks, which the host must
    deliver serially:
    - selections (``on_selection_changed``) start a new cycle;
    - provider deliveries (``on_result`` / ``on_error``) advance it;
    - ``teardown`` ends the merger for good.

    Either query may deliver first. The merged rows are always the primary
    query's rows followed by the secondary query's rows.
    """

    def __init__(
        self,
        config: MergerConfig,
        channel: QueryChannel,
        render_target: RenderTarget,
        *,
        clock: Clock | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config
        self._channel = channel
        self._render_target = render_target
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._event_bus: EventBus = event_bus if event_bus is not None else NullEventBus()

        self._pair = config.pair_identity()
        self._cycle = Cycle(generation=0)

        # Identities subscribed on the channel; filled one by one while a pair opens.
        self._active: tuple[str, ...] = ()
        self._closed = False

    # ---- Introspection ----
    @property
    def widget_id(self) -> str:
        return self._config.widget_id

    @property
    def generation(self) -> int:
        return self._cycle.generation

    @property
    def state(self) -> str:
        return self._cycle.state

    @property
    def arrivals(self) -> int:
        return self._cycle.arrivals

    @property
    def time_range(self) -> TimeRange | None:
        return self._cycle.time_range

    @property
    def queries(self) -> tuple[ConcreteQuery, ...]:
        return self._cycle.queries

    @property
    def active_identities(self) -> tuple[str, ...]:
        return self._active

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- Selection ----
    def on_selection_changed(self, selection: TimeRange | Mapping[str, Any]) -> None:
        """Start a new cycle for ``selection``.

        Both queries are built before any subscription is touched: if either
        cannot be resolved, TemplateSubstitutionError is raised and the
        previous cycle stays as it was.
        """
        if self._closed:
            raise MergerClosedError(f"merger for widget {self.widget_id!r} has been torn down")

        time_range = self._coerce_time_range(selection)
        queries = self._build_queries(time_range)

        self._unsubscribe_pair()

        self._cycle = Cycle(
            generation=self._cycle.generation + 1,
            time_range=time_range,
            queries=queries,
        )
        generation = self._cycle.generation

        self._event_bus.emit(
            CycleStartedEvent(
                widget_id=self.widget_id,
                generation=generation,
                range_from=time_range.from_,
                range_to=time_range.to,
                identities=tuple(query.identity for query in queries),
                queries=tuple(query.query for query in queries),
            )
        )
        self._emit_transition(None, CYCLE_IDLE)

        self._subscribe_pair(queries, generation)

        LOGGER.info(
            "Dual query cycle started",
            extra={
                "widget_id": self.widget_id,
                "generation": generation,
                "range_from": time_range.from_,
                "range_to": time_range.to,
            },
        )

    def _coerce_time_range(self, selection: TimeRange | Mapping[str, Any]) -> TimeRange:
        if isinstance(selection, TimeRange):
            return selection
        if not isinstance(selection, Mapping):
            raise TemplateSubstitutionError(
                f"selection must be a time range, got {type(selection).__name__}"
            )
        try:
            return TimeRange.from_selection(selection)
        except ValidationError as exc:
            raise TemplateSubstitutionError(f"invalid time range selection: {exc}") from exc

    def _build_queries(self, time_range: TimeRange) -> tuple[ConcreteQuery, ...]:
        shared_now = self._clock.now_ms() if self._config.now_policy == "shared" else None

        queries: list[ConcreteQuery] = []
        for slot, (identity, template) in enumerate(
            zip(self._pair.identities(), self._config.query_templates.entries)
        ):
            now_ms = shared_now if shared_now is not None else self._clock.now_ms()
            queries.append(
                ConcreteQuery(
                    identity=identity,
                    slot=slot,
                    query=render_query(
                        template,
                        time_range,
                        now_ms,
                        required=self._config.required_placeholders,
                    ),
                    now_ms=now_ms,
                )
            )
        return tuple(queries)

    # ---- Subscriptions ----
    def _subscribe_pair(self, queries: Sequence[ConcreteQuery], generation: int) -> None:
        opened: list[str] = []
        try:
            for query in queries:
                # The provider may deliver before subscribe() returns.
                self._active = (*opened, query.identity)
                self._channel.subscribe(
                    query.identity,
                    query.query,
                    self._result_callback(query.identity, generation),
                    self._error_callback(query.identity, generation),
                )
                opened.append(query.identity)
                if self._cycle.state == CYCLE_FAILED:
                    # on_error already closed what was opened.
                    return
        except Exception:
            # Never leave half a pair open.
            for identity in opened:
                self._channel.unsubscribe(identity)
            self._active = ()
            raise

    def _unsubscribe_pair(self) -> None:
        for identity in self._active:
            self._channel.unsubscribe(identity)
        self._active = ()

    def _result_callback(self, identity: str, generation: int) -> ResultCallback:
        def _deliver(metadata: Any, rows: Sequence[Mapping[str, Any]]) -> None:
            self.on_result(identity, metadata, rows, generation=generation)

        return _deliver

    def _error_callback(self, identity: str, generation: int) -> ErrorCallback:
        def _fail(error: Any) -> None:
            self.on_error(identity, error, generation=generation)

        return _fail

    # ---- Deliveries ----
    def _discard_reason(self, identity: str, generation: int | None) -> str | None:
        if self._closed:
            return DiscardReason.MERGER_CLOSED
        if generation is not None and generation != self._cycle.generation:
            return DiscardReason.STALE_GENERATION
        if self._pair.slot_of(identity) is None or identity not in self._active:
            if self._cycle.state == CYCLE_FAILED:
                return DiscardReason.CYCLE_FAILED
            return DiscardReason.UNKNOWN_IDENTITY
        return None

    def _discard(self, identity: str, generation: int | None, *, kind: str, reason: str) -> None:
        LOGGER.debug(
            "Delivery discarded",
            extra={
                "widget_id": self.widget_id,
                "identity": identity,
                "generation": generation,
                "current_generation": self._cycle.generation,
                "kind": kind,
                "reason": reason,
            },
        )
        self._event_bus.emit(
            DeliveryDiscardedEvent(
                widget_id=self.widget_id,
                generation=generation,
                identity=identity,
                kind=kind,
                reason=reason,
            )
        )

    def on_result(
        self,
        identity: str,
        metadata: ResultMetadata | Mapping[str, Any] | None,
        rows: Sequence[Mapping[str, Any]],
        *,
        generation: int | None = None,
    ) -> None:
        """Accumulate one delivery and merge once both queries delivered.

        ``generation`` is the tag bound to the subscription callback; None
        means the delivery belongs to the current cycle.
        """
        reason = self._discard_reason(identity, generation)
        slot = self._pair.slot_of(identity)
        if reason is not None or slot is None:
            self._discard(
                identity,
                generation,
                kind="result",
                reason=reason or DiscardReason.UNKNOWN_IDENTITY,
            )
            return

        cycle = self._cycle

        try:
            batch: list[Row] = [dict(row) for row in rows or ()]
            result_metadata = ResultMetadata.coerce(metadata)
        except (TypeError, ValueError) as exc:
            # A malformed delivery fails the cycle like a provider error.
            self.on_error(identity, exc, generation=generation)
            return

        if cycle.state == CYCLE_MERGED:
            # The live pair delivered again without a new selection.
            cycle.begin_refresh()
            self._emit_transition(CYCLE_MERGED, CYCLE_IDLE)

        prev_state = cycle.state
        complete = cycle.record_arrival(slot, result_metadata, batch)
        self._emit_transition(prev_state, cycle.state)

        self._event_bus.emit(
            DeliveryReceivedEvent(
                widget_id=self.widget_id,
                generation=cycle.generation,
                identity=identity,
                rows=len(batch),
                arrivals=cycle.arrivals,
            )
        )

        if not complete:
            return

        prev_state = cycle.state
        result = cycle.merge()
        self._emit_transition(prev_state, cycle.state)

        self._event_bus.emit(
            CycleMergedEvent(
                widget_id=self.widget_id,
                generation=result.generation,
                rows=len(result.rows),
            )
        )
        LOGGER.info(
            "Dual query cycle merged",
            extra={
                "widget_id": self.widget_id,
                "generation": result.generation,
                "rows": len(result.rows),
            },
        )

        self._render_target.on_merged_result(result)

    def on_error(self, identity: str, error: Any, *, generation: int | None = None) -> None:
        """Abort the current cycle because one of its queries failed.

        The subscription pair is closed and the error is surfaced through the
        render target; the partial batch is never merged.
        """
        reason = self._discard_reason(identity, generation)
        if reason is not None:
            self._discard(identity, generation, kind="error", reason=reason)
            return

        cycle = self._cycle
        failure = (
            error
            if isinstance(error, ProviderDeliveryError)
            else ProviderDeliveryError(identity=identity, generation=cycle.generation, cause=error)
        )

        prev_state = cycle.state
        cycle.fail()
        self._emit_transition(prev_state, cycle.state)
        self._unsubscribe_pair()

        self._event_bus.emit(
            CycleFailedEvent(
                widget_id=self.widget_id,
                generation=cycle.generation,
                identity=identity,
                error=str(failure),
            )
        )
        LOGGER.warning(
            "Dual query cycle failed",
            extra={
                "widget_id": self.widget_id,
                "generation": cycle.generation,
                "identity": identity,
                "error": str(failure),
            },
        )

        self._render_target.on_error(failure)

    # ---- Lifecycle ----
    def teardown(self) -> None:
        """Unsubscribe the active pair and release all cycle state.

        Idempotent. Deliveries received afterwards never reach the render
        target.
        """
        if self._closed:
            return

        self._unsubscribe_pair()
        self._cycle = Cycle(generation=self._cycle.generation + 1)
        self._closed = True

        self._event_bus.emit(
            MergerTornDownEvent(widget_id=self.widget_id, generation=self._cycle.generation)
        )
        LOGGER.info(
            "Dual query merger torn down",
            extra={"widget_id": self.widget_id, "generation": self._cycle.generation},
        )

    def _emit_transition(self, prev_state: str | None, next_state: str) -> None:
        if prev_state == next_state:
            return
        self._event_bus.emit(
            CycleStateTransitionEvent(
                widget_id=self.widget_id,
                generation=self._cycle.generation,
                prev_state=prev_state,
                next_state=next_state,
            )
        )
