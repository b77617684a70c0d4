"""Core shared data models.

This module defines the canonical Pydantic models exchanged with the host
dashboard: the user-selected time range, the pair of query templates read
from the provider configuration, and the metadata attached to a result batch.
These types are treated as schema definitions and intentionally prioritize
structural clarity over minimal class size.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Selection models
# ---------------------------------------------------------------------------


class TimeRange(BaseModel):
    """Time range selected by the user, in epoch milliseconds.

    The JSON key ``from`` is a Python keyword, so the field is exposed as
    ``from_`` and aliased. A new selection replaces the previous range
    entirely; ranges are never merged.
    """

    from_: int = Field(..., ge=0, alias="from")
    to: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def validate_ordering(self) -> TimeRange:
        if self.from_ > self.to:
            raise ValueError(f"range start {self.from_} is after range end {self.to}")
        return self

    @classmethod
    def from_selection(cls, message: Mapping[str, Any]) -> TimeRange:
        """Create a TimeRange from a selection-source message ``{from, to}``."""
        return cls.model_validate(dict(message))


# ---------------------------------------------------------------------------
# Query templates
# ---------------------------------------------------------------------------


class QueryTemplate(BaseModel):
    """The two query templates of a dual-query widget.

    Field names follow the dashboard provider config (``queryData.query`` and
    ``queryData.query2``).
    """

    query: str = Field(..., min_length=1)
    query2: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def entries(self) -> tuple[str, str]:
        return (self.query, self.query2)


# ---------------------------------------------------------------------------
# Result metadata
# ---------------------------------------------------------------------------


class ResultMetadata(BaseModel):
    """Column metadata delivered alongside a batch of rows.

    Providers may attach additional keys; they are preserved as-is.
    """

    names: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def validate_columns(self) -> ResultMetadata:
        if self.types and len(self.types) != len(self.names):
            raise ValueError("metadata names and types must have the same length")
        return self

    @classmethod
    def coerce(cls, value: ResultMetadata | Mapping[str, Any] | None) -> ResultMetadata:
        """Return ``value`` as a ResultMetadata (``None`` yields empty metadata)."""
        if isinstance(value, ResultMetadata):
            return value
        if value is None:
            return cls()
        return cls.model_validate(dict(value))
