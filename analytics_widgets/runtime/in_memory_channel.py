"""In-process query channel and selection source.

These adapters implement the provider and selection ports without a
dashboard: results are pushed explicitly with ``deliver`` / ``fail``. They
back the replay CLI and the test suite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from analytics_widgets.core.ports.query_channel import ErrorCallback, ResultCallback
    from analytics_widgets.core.ports.selection_source import SelectionCallback

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SubscriptionHandle:
    """One subscription issued on the channel."""

    identity: str
    query: str
    on_result: ResultCallback
    on_error: ErrorCallback
    active: bool = True


class InMemoryQueryChannel:
    """QueryChannel that delivers only what the caller pushes into it.

    Every handle ever issued is kept in ``history`` (closed handles included),
    so callers can replay a delivery through a superseded subscription.
    """

    def __init__(self) -> None:
        self._active: dict[str, SubscriptionHandle] = {}
        self.history: list[SubscriptionHandle] = []

    @property
    def active_identities(self) -> tuple[str, ...]:
        return tuple(self._active)

    def subscribe(
        self,
        identity: str,
        query: str,
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        if identity in self._active:
            raise ValueError(f"identity already subscribed: {identity}")

        handle = SubscriptionHandle(
            identity=identity,
            query=query,
            on_result=on_result,
            on_error=on_error,
        )
        self._active[identity] = handle
        self.history.append(handle)
        return handle

    def unsubscribe(self, identity: str) -> None:
        handle = self._active.pop(identity, None)
        if handle is not None:
            handle.active = False

    def query_for(self, identity: str) -> str | None:
        """Return the query of the active subscription for ``identity``."""
        handle = self._active.get(identity)
        return None if handle is None else handle.query

    def deliver(
        self,
        identity: str,
        metadata: Mapping[str, Any] | None,
        rows: Sequence[Mapping[str, Any]],
    ) -> bool:
        """Deliver a result batch; returns False if nothing is subscribed."""
        handle = self._active.get(identity)
        if handle is None:
            LOGGER.debug("No active subscription", extra={"identity": identity})
            return False
        handle.on_result(metadata, rows)
        return True

    def fail(self, identity: str, error: Any) -> bool:
        """Report a provider failure; returns False if nothing is subscribed."""
        handle = self._active.get(identity)
        if handle is None:
            LOGGER.debug("No active subscription", extra={"identity": identity})
            return False
        handle.on_error(error)
        return True


class InMemorySelectionSource:
    """SelectionSource that publishes selections on demand."""

    def __init__(self) -> None:
        self._callbacks: list[SelectionCallback] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: SelectionCallback) -> None:
        self._callbacks.append(callback)

    def unsubscribe(self, callback: SelectionCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def publish(self, range_from: int, range_to: int) -> None:
        message = {"from": range_from, "to": range_to}
        for callback in list(self._callbacks):
            callback(message)
