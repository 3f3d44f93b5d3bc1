"""Tests for the rule-based state classifier."""

import pytest

from nudge.inference.state_classifier import Intensity, UserState, classify


class TestClassify:
    def test_focused_low(self):
        c = classify(attention=85, distraction=10, session_seconds=300)
        assert (c.state, c.intensity) == (UserState.FOCUSED, Intensity.LOW)

    def test_fatigue_takes_priority(self):
        c = classify(attention=30, distraction=90, sleepiness=70)
        assert (c.state, c.intensity) == (UserState.FATIGUED, Intensity.HIGH)

    def test_fatigue_critical(self):
        c = classify(attention=70, distraction=0, sleepiness=85)
        assert (c.state, c.intensity) == (UserState.FATIGUED, Intensity.CRITICAL)

    def test_distracted_before_wandering(self):
        c = classify(attention=30, distraction=65)
        assert (c.state, c.intensity) == (UserState.DISTRACTED, Intensity.HIGH)

    def test_distracted_critical(self):
        c = classify(attention=60, distraction=81)
        assert (c.state, c.intensity) == (UserState.DISTRACTED, Intensity.CRITICAL)

    def test_wandering_medium(self):
        c = classify(attention=30, distraction=10)
        assert (c.state, c.intensity) == (UserState.WANDERING, Intensity.MEDIUM)

    def test_attention_floor_is_always_critical(self):
        c = classify(attention=15, distraction=70, session_seconds=50 * 60)
        assert c.state == UserState.DISTRACTED
        assert c.intensity == Intensity.CRITICAL

    def test_long_session_raises_intensity(self):
        c = classify(attention=50, distraction=10, session_seconds=46 * 60)
        assert c.state == UserState.FOCUSED
        assert c.intensity == Intensity.HIGH

    @pytest.mark.parametrize("seconds,intensity", [
        (2700, Intensity.LOW),
        (2759, Intensity.LOW),
        (2760, Intensity.HIGH),
    ])
    def test_long_session_counts_whole_minutes(self, seconds, intensity):
        c = classify(attention=50, distraction=10, session_seconds=seconds)
        assert c.intensity == intensity
        assert c.session_minutes == seconds // 60

    def test_long_session_never_lowers_intensity(self):
        c = classify(attention=50, distraction=90, session_seconds=46 * 60)
        assert c.intensity == Intensity.CRITICAL

    def test_sleepiness_at_threshold_is_not_fatigue(self):
        c = classify(attention=80, distraction=0, sleepiness=60)
        assert c.state == UserState.FOCUSED

    def test_out_of_range_inputs_clamped(self):
        c = classify(attention=250, distraction=-30)
        assert c.attention == 100.0
        assert c.distraction == 0.0

    @pytest.mark.parametrize("args", [(85, 10, None, 0), (15, 70, None, 3000), (50, 50, 90, 60)])
    def test_pure(self, args):
        assert classify(*args) == classify(*args)

    def test_intensity_ordering(self):
        assert Intensity.MEDIUM.at_least(Intensity.HIGH) == Intensity.HIGH
        assert Intensity.CRITICAL.at_least(Intensity.HIGH) == Intensity.CRITICAL
