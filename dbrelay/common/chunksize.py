"""Latency driven batch size tuning."""
from __future__ import annotations

import math
import time
from typing import Callable, Tuple, TypeVar

from ..config import DEFAULT_MAX_CHUNKSIZE, DEFAULT_MIN_CHUNKSIZE, TransferConfig

T = TypeVar("T")


class ChunksizeAdvisor:
    """Propose the next page size from how long the last page took.

    Each call to :meth:`next` runs one network operation and times it. The
    elapsed time falls into one of four bands:

    * below ``fast_seconds``: the size grows by ``growth``;
    * up to ``slow_seconds``: the size is kept;
    * up to ``critical_seconds``: the size shrinks by ``decay``;
    * beyond ``critical_seconds``: the size collapses by ``collapse``.

    ``growth >= 1 >= decay >= collapse`` makes the proposal non-increasing in
    the elapsed time, and every proposal is clamped into
    ``[min_size, max_size]``.
    """

    def __init__(
        self,
        *,
        min_size: int = DEFAULT_MIN_CHUNKSIZE,
        max_size: int = DEFAULT_MAX_CHUNKSIZE,
        fast_seconds: float = 0.8,
        slow_seconds: float = 1.1,
        critical_seconds: float = 3.0,
        growth: float = 2.0,
        decay: float = 0.75,
        collapse: float = 1 / 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_size < 1:
            raise ValueError("min_size must be at least 1")
        if max_size < min_size:
            raise ValueError("max_size must not be smaller than min_size")
        if not 0 < fast_seconds <= slow_seconds <= critical_seconds:
            raise ValueError("thresholds must satisfy 0 < fast <= slow <= critical")
        if not growth >= 1.0 >= decay >= collapse > 0:
            raise ValueError("factors must satisfy growth >= 1 >= decay >= collapse > 0")
        self.min_size = min_size
        self.max_size = max_size
        self.fast_seconds = fast_seconds
        self.slow_seconds = slow_seconds
        self.critical_seconds = critical_seconds
        self.growth = growth
        self.decay = decay
        self.collapse = collapse
        self._clock = clock

    def clamp(self, size: int) -> int:
        return max(self.min_size, min(self.max_size, int(size)))

    def propose(self, current: int, elapsed: float) -> int:
        """Return the size to use after a page of *current* rows took *elapsed*."""

        size = self.clamp(current)
        if elapsed < self.fast_seconds:
            factor = self.growth
        elif elapsed <= self.slow_seconds:
            factor = 1.0
        elif elapsed <= self.critical_seconds:
            factor = self.decay
        else:
            factor = self.collapse
        return self.clamp(math.floor(size * factor))

    def next(self, current: int, operation: Callable[[], T]) -> Tuple[int, T]:
        """Run *operation* once and return ``(next_size, operation_result)``.

        Exceptions raised by *operation* propagate unchanged; no size is
        proposed for a failed call.
        """

        started = self._clock()
        result = operation()
        elapsed = self._clock() - started
        return self.propose(current, elapsed), result

    @classmethod
    def from_config(cls, config: TransferConfig) -> "ChunksizeAdvisor":
        return cls(
            min_size=config.min_chunksize,
            max_size=config.max_chunksize,
            fast_seconds=config.fast_seconds,
            slow_seconds=config.slow_seconds,
            critical_seconds=config.critical_seconds,
        )


__all__ = ["ChunksizeAdvisor"]
