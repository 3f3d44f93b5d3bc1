"""
Periodic decision loop — re-evaluates a session on a timer using the rolling
camera average and the most recent behavioural context reported for it.

One task per session, cancelled when the session stops.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging

from ..session import Session
from ..telemetry.snapshot import SignalReport
from .intervention_engine import InterventionEngine

logger = logging.getLogger(__name__)


def _timer_report(session: Session) -> SignalReport:
    # attention and session time come from the session itself on timer ticks
    base = session.last_report or SignalReport()
    return dataclasses.replace(base, attention_score=None, session_time_seconds=None)


async def decision_loop(engine: InterventionEngine, session: Session, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        result = await engine.process_signals(session, _timer_report(session))
        if result.should_intervene:
            logger.info("[%s] Timer cycle dispatched %s", session.id, result.action)


def start_decision_loop(engine: InterventionEngine, session: Session, interval_s: float) -> asyncio.Task:
    task = asyncio.create_task(decision_loop(engine, session, interval_s), name=f"decision-loop-{session.id}")
    session.attach_loop(task)
    return task
