"""
Signal Aggregator — keeps a time-bounded buffer of attention samples coming
from the vision collaborator and smooths them into a rolling average.

Scores arrive on the camera's 0-1 scale and stay on that scale here; the
conversion to percent happens when a SignalSnapshot is built.
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from ..errors import SignalError

logger = logging.getLogger(__name__)

# Returned when the window holds no samples: "assume moderate attention".
NEUTRAL_ATTENTION = 0.5


@dataclass(frozen=True)
class AttentionSample:
    score: float         # 0-1, as produced by the vision pipeline
    timestamp: float     # session monotonic clock


def _check_score(score) -> float:
    # bool is an int subclass; a True/False score is a caller bug, not 1.0/0.0
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise SignalError(f"non-numeric attention score: {score!r}")
    value = float(score)
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise SignalError(f"attention score out of range: {score!r}")
    return value


class SignalAggregator:
    """
    Sliding window of attention samples.

    Usage:
        agg = SignalAggregator(horizon_seconds=90)
        agg.record_sample(0.8)
        avg = agg.rolling_average(60)
    """

    def __init__(
        self,
        horizon_seconds: float = 90.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.horizon_seconds = horizon_seconds
        self._clock = clock
        self._samples: Deque[AttentionSample] = deque()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def record_sample(
        self,
        score,
        now: Optional[float] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """
        Append a sample. Invalid input is dropped without touching the buffer
        and reported by returning False; nothing is raised to the caller.

        *now* is the ingestion time; *timestamp* lets a caller back-date the
        sample (it is clamped to *now*). Both are session monotonic seconds.
        """
        try:
            value = _check_score(score)
        except SignalError as e:
            logger.debug("Dropped attention sample: %s", e)
            return False

        ts = self._clock() if now is None else now
        sample_ts = ts if timestamp is None else min(timestamp, ts)
        self._samples.append(AttentionSample(score=value, timestamp=sample_ts))
        self._evict_stale(ts)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def rolling_average(self, window_seconds: float = 60.0, now: Optional[float] = None) -> float:
        ts = self._clock() if now is None else now
        self._evict_stale(ts)
        cutoff = ts - window_seconds
        recent = [s.score for s in self._samples if s.timestamp > cutoff]
        if not recent:
            return NEUTRAL_ATTENTION
        return sum(recent) / len(recent)

    def samples(self) -> list[AttentionSample]:
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evict_stale(self, now: float) -> None:
        # samples may arrive slightly out of order, so filter rather than popleft-only
        cutoff = now - self.horizon_seconds
        if any(s.timestamp <= cutoff for s in self._samples):
            self._samples = deque(s for s in self._samples if s.timestamp > cutoff)
