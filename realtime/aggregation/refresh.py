"""When to recompute the expensive top pages / top features aggregates.

The cheap snapshot fields are rebuilt on every push; the top lists need a
full time-windowed scan, so a policy decides which pushes pay for it.
"""

import random
from typing import Callable, Protocol


class RefreshPolicy(Protocol):
    def should_refresh(self, now: float) -> bool: ...

    def mark_refreshed(self, now: float) -> None: ...


class IntervalRefresh:
    """Refresh on the first push, then at most once per ``interval`` seconds."""

    def __init__(self, interval: float):
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self.last_refresh: float | None = None

    def should_refresh(self, now: float) -> bool:
        return self.last_refresh is None or now - self.last_refresh >= self.interval

    def mark_refreshed(self, now: float) -> None:
        self.last_refresh = now


class ProbabilisticRefresh:
    """Refresh each push independently with the given probability.

    Under low push volume the top lists may stay stale for a long time.
    """

    def __init__(self, probability: float, rng: Callable[[], float] = random.random):
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be within [0, 1]")
        self.probability = probability
        self._rng = rng

    def should_refresh(self, now: float) -> bool:
        return self._rng() < self.probability

    def mark_refreshed(self, now: float) -> None:
        return None
