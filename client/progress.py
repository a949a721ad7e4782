"""Progress percentage and ETA derived from periodic job snapshots."""
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from api.schemas.responses import BatchCheckSummary

CALCULATING = "Calculating…"
ALMOST_DONE = "almost done"


@dataclass(frozen=True)
class ProgressSample:
    timestamp: float
    processed: int


def format_eta(remaining_seconds: Optional[float]) -> str:
    """Render a remaining time, rounded up so it never looks shorter than it is."""
    if remaining_seconds is None:
        return CALCULATING
    if remaining_seconds <= 0:
        return ALMOST_DONE
    if remaining_seconds < 60:
        return f"about {math.ceil(remaining_seconds)} seconds"
    return f"about {math.ceil(remaining_seconds / 60)} minutes"


class ProgressEstimator:
    """Tracks one job's snapshots and turns them into percentage and ETA.

    The percentage always comes from the server, because the client only
    knows an approximate total. It is held non-decreasing until ``reset``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.first_successful_sample_at: Optional[float] = None
        self.sample_history: List[ProgressSample] = []
        self._percentage = 0.0

    def reset(self):
        self.first_successful_sample_at = None
        self.sample_history = []
        self._percentage = 0.0

    @property
    def percentage(self) -> float:
        return self._percentage

    def record(self, summary: BatchCheckSummary, now: float = None) -> float:
        """Record a successful snapshot and return the current percentage."""
        now = self.clock() if now is None else now
        if self.first_successful_sample_at is None:
            self.first_successful_sample_at = now

        self.sample_history.append(ProgressSample(timestamp=now, processed=summary.total_processed))

        reported = summary.progress_percentage
        if reported is None or math.isnan(reported):
            reported = 0.0
        self._percentage = max(self._percentage, min(100.0, max(0.0, reported)))
        return self._percentage

    def remaining_seconds(self, now: float = None) -> Optional[float]:
        """Seconds left, or None while there is not enough signal to tell."""
        if self.first_successful_sample_at is None or self._percentage < 1:
            return None

        now = self.clock() if now is None else now
        elapsed = now - self.first_successful_sample_at
        if elapsed <= 0:
            return None

        estimated_total_time = elapsed / (self._percentage / 100)
        return max(0.0, estimated_total_time - elapsed)

    def eta(self, now: float = None) -> str:
        return format_eta(self.remaining_seconds(now))

    def throughput(self) -> Optional[float]:
        """Credentials processed per second across the sample history."""
        if len(self.sample_history) < 2:
            return None
        first, last = self.sample_history[0], self.sample_history[-1]
        span = last.timestamp - first.timestamp
        if span <= 0:
            return None
        return max(0.0, (last.processed - first.processed) / span)
