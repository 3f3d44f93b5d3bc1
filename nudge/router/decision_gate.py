"""
Decision Gate — cooldown, cap and threshold policy deciding locally whether a
classified state should do nothing, go straight to a break, or consult the
reasoning service.

`evaluate` is a pure function of its arguments. Rejection reasons are for the
log only and are never shown to the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..errors import GateRejection
from ..inference.state_classifier import Classification, Intensity, UserState

SCORE_HIGH_THRESHOLD = 75.0
DIRECT_BREAK_THRESHOLD = 20.0

# Rejection reasons
COOLDOWN = "cooldown"
SESSION_CAP = "session_cap"
SCORE_HIGH = "score_high"
FOCUSED = "focused"


@dataclass(frozen=True)
class CooldownPolicy:
    min_interval_ms: int = 120_000
    critical_bypass: bool = True


@dataclass
class SessionCounters:
    """Per-session intervention bookkeeping. Times are session monotonic seconds."""
    session_start: float
    max_per_session: int = 10
    last_intervention_at: Optional[float] = None
    intervention_count: int = 0

    def elapsed_ms(self, now: float) -> Optional[float]:
        if self.last_intervention_at is None:
            return None
        return (now - self.last_intervention_at) * 1000.0

    def cooldown_active(self, now: float, policy: CooldownPolicy) -> bool:
        elapsed = self.elapsed_ms(now)
        return elapsed is not None and elapsed < policy.min_interval_ms

    def cooldown_remaining_s(self, now: float, policy: CooldownPolicy) -> float:
        elapsed = self.elapsed_ms(now)
        if elapsed is None:
            return 0.0
        return max(0.0, (policy.min_interval_ms - elapsed) / 1000.0)

    def cap_reached(self) -> bool:
        return self.intervention_count >= self.max_per_session


class Route(str, Enum):
    DIRECT_BREAK = "direct_break"   # eligible without asking the reasoning service
    CONSULT = "consult"             # ambiguous band: ask the reasoning service


@dataclass(frozen=True)
class GateDecision:
    route: Route
    reason: str = ""


GateResult = Union[GateDecision, GateRejection]


def bypasses_cooldown(intensity: Intensity, policy: CooldownPolicy) -> bool:
    return policy.critical_bypass and intensity == Intensity.CRITICAL


def evaluate(
    classification: Classification,
    counters: SessionCounters,
    policy: CooldownPolicy,
    now: float,
) -> GateResult:
    """Checks run in order: score_high, cooldown, session_cap, focused; then route."""
    # high attention settles it locally, whatever the other signals say
    if classification.attention >= SCORE_HIGH_THRESHOLD:
        return GateRejection(SCORE_HIGH)

    if counters.cooldown_active(now, policy) and not bypasses_cooldown(
        classification.intensity, policy
    ):
        return GateRejection(COOLDOWN)

    if counters.cap_reached():
        return GateRejection(SESSION_CAP)

    if classification.state == UserState.FOCUSED and classification.intensity == Intensity.LOW:
        return GateRejection(FOCUSED)

    if classification.attention < DIRECT_BREAK_THRESHOLD:
        return GateDecision(Route.DIRECT_BREAK, reason="score_critical")

    return GateDecision(Route.CONSULT, reason=f"{classification.state.value}_{classification.intensity.value}")
