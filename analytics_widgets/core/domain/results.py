"""Internal query and result models.

These models are intentionally NOT part of the configuration schema. They hold
runtime data of a single merge cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from analytics_widgets.core.domain.types import ResultMetadata, TimeRange

Row = dict[str, Any]


@dataclass(frozen=True, slots=True)
class ConcreteQuery:
    """A query template with all placeholders resolved for one cycle."""

    identity: str
    slot: int
    query: str
    now_ms: int


@dataclass(slots=True)
class PendingBatch:
    """Rows received for one query since the current cycle began."""

    slot: int
    rows: list[Row] = field(default_factory=list)
    deliveries: int = 0

    def append(self, rows: list[Row]) -> None:
        self.rows.extend(rows)
        self.deliveries += 1

    def clear(self) -> None:
        self.rows = []
        self.deliveries = 0


@dataclass(frozen=True, slots=True)
class MergedResult:
    """Combined dataset of a completed cycle.

    ``rows`` holds the primary batch followed by the secondary batch, each in
    arrival order. ``metadata`` is the metadata of the delivery that completed
    the cycle.
    """

    generation: int
    time_range: TimeRange | None
    metadata: ResultMetadata
    rows: list[Row]

    def to_json_obj(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "time_range": None
            if self.time_range is None
            else self.time_range.model_dump(by_alias=True),
            "metadata": self.metadata.model_dump(),
            "rows": list(self.rows),
        }
