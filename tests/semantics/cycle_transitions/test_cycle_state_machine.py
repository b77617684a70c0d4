"""
Semantic test: cycle transition table.

Invariant:
A cycle runs idle -> one_arrived -> merged; a failure may end it from idle
or one_arrived, or the live pair may fail a merged cycle; only a refresh
returns merged to idle, and nothing leaves failed.
"""

from __future__ import annotations

import pytest

from analytics_widgets.core.domain.cycle_state_machine import (
    CYCLE_FAILED,
    CYCLE_IDLE,
    CYCLE_MERGED,
    CYCLE_ONE_ARRIVED,
    is_terminal_state,
    is_valid_transition,
)


@pytest.mark.parametrize(
    "prev_state, next_state",
    [
        (None, CYCLE_IDLE),
        (CYCLE_IDLE, CYCLE_ONE_ARRIVED),
        (CYCLE_IDLE, CYCLE_FAILED),
        (CYCLE_ONE_ARRIVED, CYCLE_ONE_ARRIVED),
        (CYCLE_ONE_ARRIVED, CYCLE_MERGED),
        (CYCLE_ONE_ARRIVED, CYCLE_FAILED),
        (CYCLE_MERGED, CYCLE_IDLE),
        (CYCLE_MERGED, CYCLE_FAILED),
    ],
)
def test_allowed_transitions(prev_state, next_state) -> None:
    assert is_valid_transition(prev_state, next_state)


@pytest.mark.parametrize(
    "prev_state, next_state",
    [
        (None, CYCLE_MERGED),
        (CYCLE_IDLE, CYCLE_MERGED),
        (CYCLE_MERGED, CYCLE_ONE_ARRIVED),
        (CYCLE_FAILED, CYCLE_IDLE),
        (CYCLE_FAILED, CYCLE_MERGED),
    ],
)
def test_rejected_transitions(prev_state, next_state) -> None:
    assert not is_valid_transition(prev_state, next_state)


def test_terminal_states() -> None:
    assert is_terminal_state(CYCLE_MERGED)
    assert is_terminal_state(CYCLE_FAILED)
    assert not is_terminal_state(CYCLE_IDLE)
    assert not is_terminal_state(CYCLE_ONE_ARRIVED)
