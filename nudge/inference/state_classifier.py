"""
State Classifier — maps fused signal scores to a discrete (UserState, Intensity).

States, in priority order (first match wins):
  FATIGUED    — sleepiness signal present and above 60
  DISTRACTED  — distraction above 60
  WANDERING   — attention below 40
  FOCUSED     — everything else

All inputs are percentages on the 0-100 scale and are clamped before use.
Intensity is then adjusted upward, never downward:
  - a session longer than 45 whole minutes with attention below 60 is at least HIGH
  - attention below 20 is always CRITICAL, so the gate's direct-break route
    (attention below 20) always carries an intensity that bypasses cooldown
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..telemetry.snapshot import SignalSnapshot, clamp_percent

FATIGUE_THRESHOLD = 60.0
FATIGUE_CRITICAL = 80.0
DISTRACTION_THRESHOLD = 60.0
DISTRACTION_CRITICAL = 80.0
WANDERING_THRESHOLD = 40.0
ATTENTION_CRITICAL = 20.0

LONG_SESSION_MINUTES = 45.0
LONG_SESSION_ATTENTION = 60.0


class UserState(str, Enum):
    FOCUSED = "focused"
    DISTRACTED = "distracted"
    FATIGUED = "fatigued"
    WANDERING = "wandering"


class Intensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def at_least(self, other: "Intensity") -> "Intensity":
        return self if self.rank >= other.rank else other


_RANK = {
    Intensity.LOW: 0,
    Intensity.MEDIUM: 1,
    Intensity.HIGH: 2,
    Intensity.CRITICAL: 3,
}


@dataclass(frozen=True)
class Classification:
    state: UserState
    intensity: Intensity
    attention: float
    distraction: float
    sleepiness: Optional[float]
    session_minutes: float


def classify(
    attention: float,
    distraction: float,
    sleepiness: Optional[float] = None,
    session_seconds: float = 0.0,
) -> Classification:
    attention = clamp_percent(attention)
    distraction = clamp_percent(distraction)
    if sleepiness is not None:
        sleepiness = clamp_percent(sleepiness)
    # whole minutes: 45m59s is still "45 minutes"
    session_minutes = float(max(session_seconds, 0.0) // 60)

    if sleepiness is not None and sleepiness > FATIGUE_THRESHOLD:
        state = UserState.FATIGUED
        intensity = Intensity.CRITICAL if sleepiness > FATIGUE_CRITICAL else Intensity.HIGH
    elif distraction > DISTRACTION_THRESHOLD:
        state = UserState.DISTRACTED
        intensity = Intensity.CRITICAL if distraction > DISTRACTION_CRITICAL else Intensity.HIGH
    elif attention < WANDERING_THRESHOLD:
        state = UserState.WANDERING
        intensity = Intensity.CRITICAL if attention < ATTENTION_CRITICAL else Intensity.MEDIUM
    else:
        state = UserState.FOCUSED
        intensity = Intensity.LOW

    if session_minutes > LONG_SESSION_MINUTES and attention < LONG_SESSION_ATTENTION:
        intensity = intensity.at_least(Intensity.HIGH)
    if attention < ATTENTION_CRITICAL:
        intensity = Intensity.CRITICAL

    return Classification(
        state=state,
        intensity=intensity,
        attention=attention,
        distraction=distraction,
        sleepiness=sleepiness,
        session_minutes=session_minutes,
    )


def classify_snapshot(snapshot: SignalSnapshot) -> Classification:
    return classify(
        attention=snapshot.attention,
        distraction=snapshot.distraction,
        sleepiness=snapshot.sleepiness,
        session_seconds=snapshot.session_seconds,
    )
