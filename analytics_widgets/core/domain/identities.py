"""Deterministic query identities for a dual-query widget."""

from __future__ import annotations

from dataclasses import dataclass

# Slot indices of the two queries of a pair.
PRIMARY_SLOT: int = 0
SECONDARY_SLOT: int = 1


@dataclass(frozen=True, slots=True)
class QueryPairIdentity:
    """Identities under which the two queries of a widget are subscribed.

    The primary query uses the widget id itself, the secondary query the
    widget id followed by a suffix. The same identities are reused across
    cycles, so they must be unsubscribed before being subscribed again.
    """

    widget_id: str
    suffix: str

    @property
    def primary(self) -> str:
        return self.widget_id

    @property
    def secondary(self) -> str:
        return f"{self.widget_id}{self.suffix}"

    def identities(self) -> tuple[str, str]:
        return (self.primary, self.secondary)

    def slot_of(self, identity: str) -> int | None:
        """Return the slot index for ``identity`` or None if it is not ours."""
        if identity == self.primary:
            return PRIMARY_SLOT
        if identity == self.secondary:
            return SECONDARY_SLOT
        return None


def query_pair_identity(widget_id: str, suffix: str) -> QueryPairIdentity:
    """Return the identity pair for a widget.

    Both parts must be non-empty so that the two identities are distinct.
    """
    if not widget_id:
        raise ValueError("widget_id must be non-empty")
    if not suffix:
        raise ValueError("identity suffix must be non-empty")
    return QueryPairIdentity(widget_id=widget_id, suffix=suffix)
