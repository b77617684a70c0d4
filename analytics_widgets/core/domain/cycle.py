"""Per-cycle merge state.

A Cycle is the value object that replaces a bare arrival counter on the
widget: it carries the generation token of its subscription pair, the two
pending batches, and the number of queries that have delivered so far.
A new selection creates a new Cycle with a higher generation; deliveries
tagged with any other generation are never applied to it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from analytics_widgets.core.domain.cycle_state_machine import (
    CYCLE_FAILED,
    CYCLE_IDLE,
    CYCLE_MERGED,
    CYCLE_ONE_ARRIVED,
    is_valid_transition,
)
from analytics_widgets.core.domain.identities import PRIMARY_SLOT, SECONDARY_SLOT
from analytics_widgets.core.domain.results import (
    ConcreteQuery,
    MergedResult,
    PendingBatch,
    Row,
)
from analytics_widgets.core.domain.types import ResultMetadata, TimeRange

LOGGER = logging.getLogger(__name__)

# Number of distinct queries that must deliver before a merge.
REQUIRED_ARRIVALS: int = 2


def _empty_batches() -> tuple[PendingBatch, PendingBatch]:
    return (PendingBatch(slot=PRIMARY_SLOT), PendingBatch(slot=SECONDARY_SLOT))


@dataclass(slots=True)
class Cycle:
    """Accumulation state of one selection-to-merge cycle."""

    generation: int
    time_range: TimeRange | None = None
    queries: tuple[ConcreteQuery, ...] = ()

    state: str = CYCLE_IDLE
    batches: tuple[PendingBatch, PendingBatch] = field(default_factory=_empty_batches)

    # Distinct queries that delivered in this cycle, range [0, REQUIRED_ARRIVALS].
    arrivals: int = 0

    # Metadata of the most recent delivery; the completing delivery wins.
    last_metadata: ResultMetadata | None = None

    def _transition(self, next_state: str) -> None:
        if not is_valid_transition(self.state, next_state):
            LOGGER.warning(
                "Unexpected cycle transition",
                extra={
                    "generation": self.generation,
                    "prev_state": self.state,
                    "next_state": next_state,
                },
            )
        self.state = next_state

    def reset(self) -> None:
        """Clear both batches and the arrival counter together."""
        for batch in self.batches:
            batch.clear()
        self.arrivals = 0
        self.last_metadata = None

    def begin_refresh(self) -> None:
        """Start an implicit refresh after a merge within the same generation."""
        self.reset()
        self._transition(CYCLE_IDLE)

    def record_arrival(self, slot: int, metadata: ResultMetadata, rows: list[Row]) -> bool:
        """Append a delivery to its batch.

        Returns True once every query of the pair has delivered, i.e. the
        cycle is ready to merge. A repeated delivery from a query that already
        delivered extends its batch without advancing the counter.
        """
        batch = self.batches[slot]
        first_delivery = batch.deliveries == 0
        batch.append(rows)
        self.last_metadata = metadata

        if first_delivery:
            self.arrivals += 1

        if self.arrivals >= REQUIRED_ARRIVALS:
            return True

        self._transition(CYCLE_ONE_ARRIVED)
        return False

    def merge(self) -> MergedResult:
        """Assemble the merged result and reset accumulation state."""
        rows: list[Row] = []
        for batch in self.batches:
            rows.extend(batch.rows)

        result = MergedResult(
            generation=self.generation,
            time_range=self.time_range,
            metadata=self.last_metadata if self.last_metadata is not None else ResultMetadata(),
            rows=rows,
        )

        self.reset()
        self._transition(CYCLE_MERGED)
        return result

    def fail(self) -> None:
        """Abort the cycle, dropping any partial batch."""
        self.reset()
        self._transition(CYCLE_FAILED)
