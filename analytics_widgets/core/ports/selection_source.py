from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

SelectionCallback = Callable[[Mapping[str, Any]], None]


class SelectionSource(Protocol):
    """Publisher of user time-range selections (``{"from": ms, "to": ms}``)."""

    def subscribe(self, callback: SelectionCallback) -> None:
        """Register ``callback`` to receive every selection."""

    def unsubscribe(self, callback: SelectionCallback) -> None:
        """Stop delivering selections to ``callback``."""
