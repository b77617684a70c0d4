"""
Merge cycle state machine definitions.

This module defines the canonical cycle states and the allowed transitions
between them. It is intentionally passive and validation-only: the merger
consults it to report transitions, it never raises.

A cycle starts IDLE when a selection issues a new subscription pair and
advances as deliveries arrive. MERGED and FAILED end the cycle. A new selection
starts a new cycle; the live pair may still refresh or fail a merged cycle.
"""

from __future__ import annotations

CYCLE_IDLE = "idle"
CYCLE_ONE_ARRIVED = "one_arrived"
CYCLE_MERGED = "merged"
CYCLE_FAILED = "failed"

# Terminal cycle states: once reached, the cycle emitted its outcome.
CYCLE_TERMINAL_STATES: frozenset[str] = frozenset(
    {
        CYCLE_MERGED,
        CYCLE_FAILED,
    }
)


# Allowed cycle state transitions.
#
# Key   : previous state (or None for a freshly created cycle)
# Value : set of allowed next states
#
# Notes:
# - one_arrived -> one_arrived: the query that already delivered sent another batch.
# - merged -> idle: implicit refresh, the live subscription pair delivered again.
# - merged -> failed: the live subscription pair reported an error after a merge.
ALLOWED_CYCLE_TRANSITIONS: dict[str | None, frozenset[str]] = {
    None: frozenset({CYCLE_IDLE}),

    CYCLE_IDLE: frozenset(
        {
            CYCLE_ONE_ARRIVED,
            CYCLE_FAILED,
        }
    ),

    CYCLE_ONE_ARRIVED: frozenset(
        {
            CYCLE_ONE_ARRIVED,
            CYCLE_MERGED,
            CYCLE_FAILED,
        }
    ),

    CYCLE_MERGED: frozenset(
        {
            CYCLE_IDLE,
            CYCLE_FAILED,
        }
    ),
}


def is_terminal_state(state: str) -> bool:
    """Return True if the given cycle state is terminal."""
    return state in CYCLE_TERMINAL_STATES


def is_valid_transition(prev_state: str | None, next_state: str) -> bool:
    """Return True if the transition prev_state -> next_state is allowed."""
    allowed = ALLOWED_CYCLE_TRANSITIONS.get(prev_state)
    if allowed is None:
        return False
    return next_state in allowed
