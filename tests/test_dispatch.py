"""Tests for the dispatcher, outcome tracker and intervention feed."""

import pytest

from nudge.actions.dispatch import Dispatcher, OutcomeTracker, UserAction
from nudge.actions.feed import InterventionFeed
from nudge.inference.state_classifier import Intensity
from nudge.router.decision_gate import CooldownPolicy, SessionCounters
from nudge.router.response_validator import InterventionType, validate_candidate

from conftest import RecordingPresenter

POLICY = CooldownPolicy(min_interval_ms=120_000)


def _record(kind="break", now=0.0):
    return validate_candidate({"type": kind, "message": "hi", "reason": "off topic"}, now).record


class TestDispatcher:
    def test_commit_updates_counters(self):
        presenter = RecordingPresenter()
        counters = SessionCounters(session_start=0.0)
        assert Dispatcher(presenter, POLICY).dispatch("s", counters, _record(), Intensity.MEDIUM, now=10.0)
        assert counters.intervention_count == 1
        assert counters.last_intervention_at == 10.0
        assert len(presenter.shown) == 1

    def test_drops_when_cap_reached(self):
        counters = SessionCounters(session_start=0.0, max_per_session=1, intervention_count=1)
        assert not Dispatcher(RecordingPresenter(), POLICY).dispatch("s", counters, _record(), Intensity.CRITICAL, 0.0)
        assert counters.intervention_count == 1

    def test_drops_inside_cooldown(self):
        counters = SessionCounters(session_start=0.0, last_intervention_at=0.0)
        dispatcher = Dispatcher(RecordingPresenter(), POLICY)
        assert not dispatcher.dispatch("s", counters, _record(), Intensity.HIGH, now=30.0)
        assert dispatcher.dispatch("s", counters, _record(), Intensity.CRITICAL, now=30.0)


class TestOutcomeTracker:
    def test_summary_counts_per_type(self):
        tracker = OutcomeTracker(clock=lambda: 123.0)
        tracker.record(InterventionType.QUIZ, UserAction.QUIZ_CORRECT)
        tracker.record(InterventionType.QUIZ, UserAction.QUIZ_CORRECT)
        tracker.record(InterventionType.MESSAGE, "dismissed")
        assert tracker.summary() == {
            "quiz": {"quiz_correct": 2},
            "message": {"dismissed": 1},
        }
        assert tracker.history()[0].recorded_at == 123.0

    def test_history_bounded(self):
        tracker = OutcomeTracker(size=3)
        for _ in range(5):
            tracker.record(InterventionType.BREAK, UserAction.ACCEPTED)
        assert len(tracker.history()) == 3

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            OutcomeTracker().record(InterventionType.BREAK, "exploded")


class TestInterventionFeed:
    def test_drain_returns_then_clears(self):
        feed = InterventionFeed()
        feed.present("a", _record())
        feed.present("b", _record("message"))
        assert feed.pending("a") == 1
        assert [r.type.value for r in feed.drain("a")] == ["break"]
        assert feed.drain("a") == []
        assert feed.pending("b") == 1

    def test_bounded_per_session(self):
        feed = InterventionFeed(size=2)
        for i in range(4):
            feed.present("a", _record(now=float(i)))
        assert [r.created_at for r in feed.drain("a")] == [2.0, 3.0]
