"""
Intervention Engine — runs one decision cycle per call:

    Aggregating → Classifying → Gating → {Rejected
                                         | DirectBreak → Validating → Dispatch
                                         | Escalating → Validating → Dispatch}

`process_signals` always returns a well-formed DecisionResult. The only
exception it lets through is ConfigurationError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..actions.dispatch import Dispatcher, OutcomeRecord, Presenter, UserAction
from ..config import Config
from ..errors import ConfigurationError, ExternalTransportError, GateRejection
from ..inference.state_classifier import Classification, classify_snapshot
from ..reasoning.client import ReasoningClient
from ..session import Session
from ..telemetry.snapshot import SignalReport, SignalSnapshot, build_snapshot
from .context_builder import build_prompt
from .decision_gate import CooldownPolicy, Route, evaluate
from .response_validator import (
    InterventionRecord,
    InterventionType,
    ValidationResult,
    validate_candidate,
    validate_reply,
)

logger = logging.getLogger(__name__)

# Non-gate rejection reasons
IN_FLIGHT = "in_flight"
TIMEOUT = "timeout"
TRANSPORT_ERROR = "transport_error"
STALE = "stale"
ERROR = "error"


@dataclass(frozen=True)
class DecisionResult:
    should_intervene: bool
    action: str = "none"
    reason: str = ""
    state: Optional[str] = None
    intensity: Optional[str] = None
    intervention: Optional[InterventionRecord] = None

    @classmethod
    def rejected(cls, reason: str, classification: Optional[Classification] = None) -> "DecisionResult":
        return cls(
            should_intervene=False,
            reason=reason,
            state=classification.state.value if classification else None,
            intensity=classification.intensity.value if classification else None,
        )


class InterventionEngine:

    def __init__(
        self,
        client: ReasoningClient,
        presenter: Presenter,
        policy: Optional[CooldownPolicy] = None,
        reasoning_timeout_s: float = 10.0,
        rolling_window_s: float = 60.0,
        excerpt_max_chars: int = 500,
    ):
        self.client = client
        self.policy = policy or CooldownPolicy()
        self.reasoning_timeout_s = reasoning_timeout_s
        self.rolling_window_s = rolling_window_s
        self.excerpt_max_chars = excerpt_max_chars
        self._dispatcher = Dispatcher(presenter, self.policy)

    @classmethod
    def from_config(cls, cfg: Config, client: ReasoningClient, presenter: Presenter) -> "InterventionEngine":
        return cls(
            client=client,
            presenter=presenter,
            policy=CooldownPolicy(
                min_interval_ms=cfg.min_interval_ms,
                critical_bypass=cfg.critical_bypass,
            ),
            reasoning_timeout_s=cfg.reasoning_timeout_s,
            rolling_window_s=cfg.rolling_window_s,
            excerpt_max_chars=cfg.excerpt_max_chars,
        )

    # ------------------------------------------------------------------
    # Inbound interfaces
    # ------------------------------------------------------------------

    def record_attention_score(self, session: Session, value, timestamp: Optional[float] = None) -> bool:
        """Ingest a 0-1 camera score. *timestamp* is wall-clock seconds, if known."""
        return session.aggregator.record_sample(value, timestamp=session.from_wall_clock(timestamp))

    def handle_outcome(
        self,
        session: Session,
        intervention_type: InterventionType,
        user_action: UserAction,
    ) -> OutcomeRecord:
        return session.outcomes.record(intervention_type, user_action)

    async def process_signals(self, session: Session, report: SignalReport) -> DecisionResult:
        try:
            return await self._cycle(session, report)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception("[%s] Decision cycle failed", session.id)
            return DecisionResult.rejected(ERROR)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def snapshot(self, session: Session, report: SignalReport) -> SignalSnapshot:
        return build_snapshot(
            report,
            rolling_attention=session.aggregator.rolling_average(self.rolling_window_s),
            session_seconds=session.elapsed_seconds(),
        )

    async def _cycle(self, session: Session, report: SignalReport) -> DecisionResult:
        session.last_report = report
        snapshot = self.snapshot(session, report)
        classification = classify_snapshot(snapshot)

        async with session.lock:
            if session.in_flight:
                logger.debug("[%s] Cycle dropped: reasoning call already outstanding", session.id)
                return DecisionResult.rejected(IN_FLIGHT, classification)

            gate = evaluate(classification, session.counters, self.policy, session.clock())
            if isinstance(gate, GateRejection):
                logger.debug(
                    "[%s] Gate rejected %s/%s: %s", session.id,
                    classification.state.value, classification.intensity.value, gate.reason,
                )
                return DecisionResult.rejected(gate.reason, classification)

            if gate.route == Route.DIRECT_BREAK:
                result = validate_candidate(
                    {"type": InterventionType.BREAK.value, "reasoning": gate.reason},
                    session.clock(),
                )
                return self._dispatch(session, result, classification)

            session.in_flight = True
            generation = session.generation

        try:
            text = await self._consult(session, snapshot, classification)
        except _CallFailed as e:
            return DecisionResult.rejected(e.reason, classification)
        finally:
            if session.generation == generation:
                session.in_flight = False

        async with session.lock:
            if session.generation != generation:
                logger.info("[%s] Discarded reply from a previous session generation", session.id)
                return DecisionResult.rejected(STALE, classification)
            result = validate_reply(text, session.clock())
            return self._dispatch(session, result, classification)

    async def _consult(
        self,
        session: Session,
        snapshot: SignalSnapshot,
        classification: Classification,
    ) -> str:
        prompt = build_prompt(
            snapshot,
            classification,
            session_goal=session.session_goal,
            excerpt_max_chars=self.excerpt_max_chars,
        )
        logger.debug("[%s] Consulting reasoning service (%s/%s)", session.id,
                     classification.state.value, classification.intensity.value)
        try:
            return await asyncio.wait_for(self.client.generate(prompt), timeout=self.reasoning_timeout_s)
        except asyncio.TimeoutError:
            logger.warning("[%s] Reasoning call timed out after %.1fs", session.id, self.reasoning_timeout_s)
            raise _CallFailed(TIMEOUT)
        except ExternalTransportError as e:
            logger.warning("[%s] Reasoning call failed: %s", session.id, e)
            raise _CallFailed(TRANSPORT_ERROR)

    def _dispatch(
        self,
        session: Session,
        result: ValidationResult,
        classification: Classification,
    ) -> DecisionResult:
        if not result.accepted:
            return DecisionResult.rejected(result.reason, classification)
        record = result.record
        committed = self._dispatcher.dispatch(
            session.id, session.counters, record, classification.intensity, session.clock(),
        )
        if not committed:
            return DecisionResult.rejected("dropped", classification)
        return DecisionResult(
            should_intervene=True,
            action=record.type.value,
            reason="dispatched",
            state=classification.state.value,
            intensity=classification.intensity.value,
            intervention=record,
        )


class _CallFailed(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
