"""
Dispatch / Outcome Tracker — the only code that mutates SessionCounters.

Cooldown starts when a validated record is dispatched, not when the
presentation collaborator confirms it rendered. Outcomes reported by the
user are kept for diagnostics and never feed back into the cooldown.
"""

from __future__ import annotations

import logging
import time
from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Dict, List, Protocol

from ..inference.state_classifier import Intensity
from ..router.decision_gate import CooldownPolicy, SessionCounters, bypasses_cooldown
from ..router.response_validator import InterventionRecord, InterventionType

logger = logging.getLogger(__name__)

OUTCOME_HISTORY_SIZE = 50


class Presenter(Protocol):
    def present(self, session_id: str, record: InterventionRecord) -> None: ...


class UserAction(str, Enum):
    ACCEPTED = "accepted"
    DISMISSED = "dismissed"
    QUIZ_CORRECT = "quiz_correct"
    QUIZ_INCORRECT = "quiz_incorrect"
    IGNORED = "ignored"


@dataclass(frozen=True)
class OutcomeRecord:
    intervention_type: InterventionType
    user_action: UserAction
    recorded_at: float        # wall clock, for diagnostics only


class Dispatcher:
    """Applies a validated record to the session counters and hands it off."""

    def __init__(self, presenter: Presenter, policy: CooldownPolicy):
        self._presenter = presenter
        self._policy = policy

    def dispatch(
        self,
        session_id: str,
        counters: SessionCounters,
        record: InterventionRecord,
        intensity: Intensity,
        now: float,
    ) -> bool:
        """
        Re-check cap and cooldown, then commit. Returns False when the record
        was dropped. Caller must hold the session lock.
        """
        if counters.cap_reached():
            logger.info("[%s] Dropped %s: session cap reached", session_id, record.type.value)
            return False
        if counters.cooldown_active(now, self._policy) and not bypasses_cooldown(intensity, self._policy):
            logger.info("[%s] Dropped %s: cooldown active", session_id, record.type.value)
            return False

        counters.last_intervention_at = now
        counters.intervention_count += 1
        logger.info(
            "[%s] Intervention %d/%d dispatched: %s",
            session_id, counters.intervention_count, counters.max_per_session, record.type.value,
        )

        # fire-and-forget: a presenter failure must not undo the commit above
        try:
            self._presenter.present(session_id, record)
        except Exception:
            logger.exception("[%s] Presenter failed for %s", session_id, record.type.value)
        return True


class OutcomeTracker:
    """Bounded history of what users did with the interventions they saw."""

    def __init__(self, size: int = OUTCOME_HISTORY_SIZE, clock: Callable[[], float] = time.time):
        self._history: Deque[OutcomeRecord] = deque(maxlen=size)
        self._clock = clock

    def record(self, intervention_type: InterventionType, user_action: UserAction) -> OutcomeRecord:
        outcome = OutcomeRecord(
            intervention_type=InterventionType(intervention_type),
            user_action=UserAction(user_action),
            recorded_at=self._clock(),
        )
        self._history.append(outcome)
        logger.debug("Intervention outcome: %s → %s", outcome.intervention_type.value, outcome.user_action.value)
        return outcome

    def history(self) -> List[OutcomeRecord]:
        return list(self._history)

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Counts of user actions per intervention type."""
        by_type: Dict[str, Counter] = {}
        for o in self._history:
            by_type.setdefault(o.intervention_type.value, Counter())[o.user_action.value] += 1
        return {k: dict(v) for k, v in by_type.items()}

    def clear(self) -> None:
        self._history.clear()
