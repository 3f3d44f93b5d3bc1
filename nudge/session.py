"""
Focus sessions — explicit per-session state owned by the orchestrator.

A Session bundles everything the engine mutates for one user: the attention
buffer, the intervention counters, outcome history, the in-flight flag that
enforces one outstanding reasoning call, and the cancellable decision loop.
All of it is measured against a single monotonic clock.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Dict, Optional

from .actions.dispatch import OutcomeTracker
from .router.decision_gate import CooldownPolicy, SessionCounters
from .telemetry.aggregator import SignalAggregator
from .telemetry.snapshot import SignalReport

logger = logging.getLogger(__name__)


class Session:

    def __init__(
        self,
        session_id: Optional[str] = None,
        max_per_session: int = 10,
        horizon_seconds: float = 90.0,
        session_goal: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.session_goal = session_goal
        self.clock = clock
        self.aggregator = SignalAggregator(horizon_seconds=horizon_seconds, clock=clock)
        self.counters = SessionCounters(session_start=clock(), max_per_session=max_per_session)
        self.outcomes = OutcomeTracker()
        self.lock = asyncio.Lock()
        self.in_flight = False
        self.generation = 0
        self.last_report: Optional[SignalReport] = None
        self._loop_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear counters, cooldown and buffers. Any in-flight reply becomes stale."""
        self.generation += 1
        self.in_flight = False
        self.aggregator.clear()
        self.outcomes.clear()
        self.last_report = None
        self.counters = SessionCounters(
            session_start=self.clock(),
            max_per_session=self.counters.max_per_session,
        )
        logger.info("[%s] Session reset (generation %d)", self.id, self.generation)

    def attach_loop(self, task: asyncio.Task) -> None:
        self.cancel_loop()
        self._loop_task = task

    def cancel_loop(self) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None

    # ------------------------------------------------------------------
    # Time helpers
    # ------------------------------------------------------------------

    def elapsed_seconds(self) -> float:
        return max(0.0, self.clock() - self.counters.session_start)

    def from_wall_clock(self, timestamp: Optional[float]) -> Optional[float]:
        """Map a wall-clock timestamp onto the session clock, preserving its age."""
        if timestamp is None:
            return None
        age = max(0.0, time.time() - timestamp)
        return self.clock() - age

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def diagnostics(self, policy: CooldownPolicy, rolling_window_s: float = 60.0) -> dict:
        now = self.clock()
        c = self.counters
        return {
            "session_id": self.id,
            "session_goal": self.session_goal,
            "session_duration_seconds": round(self.elapsed_seconds(), 1),
            "rolling_attention": round(self.aggregator.rolling_average(rolling_window_s), 4),
            "sample_count": len(self.aggregator),
            "intervention_count": c.intervention_count,
            "max_interventions": c.max_per_session,
            "in_flight": self.in_flight,
            "seconds_since_last_intervention": (
                None if c.last_intervention_at is None else round(now - c.last_intervention_at, 1)
            ),
            "cooldown_remaining_seconds": round(c.cooldown_remaining_s(now, policy), 1),
            "outcomes": self.outcomes.summary(),
        }


class SessionRegistry:
    """In-memory map of active sessions."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def add(self, session: Session) -> Session:
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.cancel_loop()
            session.reset()
        return session

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
