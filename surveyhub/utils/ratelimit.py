from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(0, math.ceil(self.reset_at - now))


class FixedWindowLimiter:
    """
    Per-key request counter over fixed windows.
    In-process only; one instance per limited surface.
    """

    def __init__(self, limit: int, window_seconds: int) -> None:
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: dict[str, tuple[float, int]] = {}  # key -> (window_start, hits)

    def _window_start(self, now: float) -> float:
        return now - (now % self.window_seconds)

    def hit(self, key: str, now: float) -> RateDecision:
        start = self._window_start(now)
        cur_start, hits = self._windows.get(key, (start, 0))
        if cur_start != start:
            hits = 0

        hits += 1
        self._windows[key] = (start, hits)

        reset_at = start + self.window_seconds
        return RateDecision(
            allowed=hits <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - hits),
            reset_at=reset_at,
        )

    def sweep(self, now: float) -> int:
        """Drop counters of finished windows. Returns how many were dropped."""
        start = self._window_start(now)
        stale = [k for k, (ws, _) in self._windows.items() if ws < start]
        for k in stale:
            del self._windows[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._windows)
