"""Wall-clock port used to resolve the ``{{now}}`` placeholder."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        """Return the current wall-clock time in epoch milliseconds."""


class SystemClock:
    """Clock backed by the system wall clock."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000
