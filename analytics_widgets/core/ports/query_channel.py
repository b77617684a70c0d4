"""Provider query-channel protocol.

This module defines the boundary between a merger and the dashboard's data
provider transport. Concrete implementations adapt a specific provider
(websocket channel manager, in-memory replay) to this protocol.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, Sequence

# on_result(metadata, rows): one delivery of a result batch.
ResultCallback = Callable[[Any, Sequence[Mapping[str, Any]]], None]

# on_error(error): the provider failed to execute the query.
ErrorCallback = Callable[[Any], None]


class QueryChannel(Protocol):
    """Provider-facing subscription boundary.

    The merger must not depend on provider-specific APIs. It always opens and
    closes its two subscriptions as a pair and unsubscribes by the same
    identities it subscribed with.
    """

    def subscribe(
        self,
        identity: str,
        query: str,
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> Any:
        """Start delivering results of ``query`` tagged with ``identity``.

        Returns a provider-defined subscription handle.
        """

    def unsubscribe(self, identity: str) -> None:
        """Stop deliveries for ``identity``. Unknown identities are a no-op."""
