"""Tests for the head gesture classifier."""

import pytest

from headnav.classifier import GestureClassifier, Signal
from headnav.config import ClassifierConfig
from headnav.pipeline import replay_signals
from headnav.pose import Pose, PoseSample

DT = 0.01


def stream(segments, start=0.0, dt=DT):
    """Build a 100 Hz sample stream.

    segments: list of (duration_s, yaw_rate, pitch_rate) in deg/s.
    """
    yaw = pitch = 0.0
    samples = []
    i = 0
    for duration, yaw_rate, pitch_rate in segments:
        for _ in range(round(duration / dt)):
            yaw += yaw_rate * dt
            pitch += pitch_rate * dt
            samples.append(PoseSample(Pose(yaw=yaw, pitch=pitch), instant=start + i * dt))
            i += 1
    return samples


def classify_all(samples, config=None):
    classifier = GestureClassifier(config)
    return [classifier.process(s) for s in samples]


def emitted(signals):
    return [s for s in signals if s is not Signal.NOP]


class TestWarmUp:
    def test_no_signal_before_min_history(self):
        signals = classify_all(stream([(0.3, 50, 0)]))
        assert all(s is Signal.NOP for s in signals[:15])
        assert signals[15] is Signal.LEFT_COLUMN

    def test_custom_min_history(self):
        config = ClassifierConfig(min_history=40)
        signals = classify_all(stream([(0.6, 50, 0)]), config)
        assert all(s is Signal.NOP for s in signals[:39])
        assert signals[39] is Signal.LEFT_COLUMN

    def test_idle_stream_is_silent(self):
        assert emitted(classify_all(stream([(2.0, 0, 0)]))) == []


class TestDiscontinuity:
    def test_gap_clears_history(self):
        classifier = GestureClassifier()
        for s in stream([(0.2, 0, 0)]):
            classifier.process(s)
        assert len(classifier.history) == 20

        last = classifier.history.latest.instant
        classifier.process(PoseSample(Pose(), instant=last + 1.5))
        assert len(classifier.history) == 1
        assert classifier.history.resets == 1

        classifier.process(PoseSample(Pose(), instant=last + 1.51))
        assert len(classifier.history) == 2

    def test_gap_of_exactly_max_delta_keeps_history(self):
        classifier = GestureClassifier()
        classifier.process(PoseSample(Pose(), instant=0.0))
        classifier.process(PoseSample(Pose(), instant=1.0))
        assert len(classifier.history) == 2

    def test_warm_up_restarts_after_gap(self):
        before = stream([(0.5, 0, 0)])
        after = stream([(0.3, 50, 0)], start=before[-1].instant + 2.0)
        signals = classify_all(before + after)[len(before):]
        assert all(s is Signal.NOP for s in signals[:15])
        assert signals[15] is Signal.LEFT_COLUMN

    def test_time_running_backwards_resets(self):
        classifier = GestureClassifier()
        for s in stream([(0.2, 0, 0)], start=10.0):
            classifier.process(s)
        classifier.process(PoseSample(Pose(), instant=5.0))
        assert len(classifier.history) == 1

    def test_first_record_after_gap_has_zero_velocity(self):
        classifier = GestureClassifier()
        classifier.process(PoseSample(Pose(yaw=0.0), instant=0.0))
        classifier.process(PoseSample(Pose(yaw=90.0), instant=3.0))
        assert classifier.history.latest.velocity == Pose()


class TestYawGestures:
    def test_left_turn_from_idle(self):
        samples = stream([(0.5, 0, 0), (0.6, 50, 0)])
        signals = emitted(classify_all(samples))
        assert signals
        assert set(signals) == {Signal.LEFT_COLUMN}

    def test_left_turn_dispatches_exactly_once(self):
        samples = stream([(0.5, 0, 0), (0.6, 50, 0)])
        issued = [r.signal for r in replay_signals(samples) if r.issued]
        assert issued == [Signal.LEFT_COLUMN]

    def test_right_turn_from_idle(self):
        signals = emitted(classify_all(stream([(0.5, 0, 0), (0.6, -50, 0)])))
        assert signals
        assert set(signals) == {Signal.RIGHT_COLUMN}

    def test_opposite_lead_in_suppresses_spike(self):
        samples = stream([(0.3, 0, 0), (0.4, -50, 0), (0.1, 50, 0)])
        signals = classify_all(samples)
        spike = signals[-10:]
        assert all(s is Signal.NOP for s in spike)
        assert Signal.LEFT_COLUMN not in signals

    def test_same_direction_lead_in_passes(self):
        samples = stream([(0.3, 0, 0), (0.4, 30, 0), (0.1, 50, 0)])
        assert Signal.LEFT_COLUMN in classify_all(samples)[-10:]

    def test_opposite_motion_older_than_idle_window_is_ignored(self):
        samples = stream([(0.3, 0, 0), (0.4, -50, 0), (0.6, 0, 0), (0.2, 50, 0)])
        signals = classify_all(samples)
        assert Signal.LEFT_COLUMN in signals[-20:]

    def test_slow_opposite_motion_does_not_block(self):
        samples = stream([(0.3, 0, 0), (0.4, -20, 0), (0.2, 50, 0)])
        assert Signal.LEFT_COLUMN in classify_all(samples)[-20:]


class TestThresholds:
    def test_yaw_just_below_threshold(self):
        samples = stream([(0.5, 0, 0), (0.6, 35.999, 0)])
        assert emitted(classify_all(samples)) == []

    def test_yaw_above_threshold(self):
        samples = stream([(0.5, 0, 0), (0.6, 36.5, 0)])
        assert Signal.LEFT_COLUMN in classify_all(samples)

    def test_pitch_positive_is_down(self):
        signals = emitted(classify_all(stream([(0.5, 0, 0), (0.4, 0, 60)])))
        assert signals
        assert set(signals) == {Signal.DOWN}

    def test_pitch_negative_is_up(self):
        signals = emitted(classify_all(stream([(0.5, 0, 0), (0.4, 0, -40)])))
        assert signals
        assert set(signals) == {Signal.UP}

    @pytest.mark.parametrize("rate", [49.999, -31.999, 45.0, -30.0])
    def test_pitch_below_thresholds(self, rate):
        assert emitted(classify_all(stream([(0.5, 0, 0), (0.4, 0, rate)]))) == []

    @pytest.mark.parametrize("rate,expected", [(50.5, Signal.DOWN), (-32.5, Signal.UP)])
    def test_pitch_just_above_thresholds(self, rate, expected):
        assert expected in classify_all(stream([(0.5, 0, 0), (0.4, 0, rate)]))

    def test_custom_yaw_threshold(self):
        config = ClassifierConfig(yaw_threshold=80.0)
        samples = stream([(0.5, 0, 0), (0.6, 50, 0)])
        assert emitted(classify_all(samples, config)) == []


class TestPriority:
    def test_yaw_wins_over_pitch(self):
        samples = stream([(0.5, 0, 0), (0.3, 60, 80)])
        signals = emitted(classify_all(samples))
        assert signals
        assert set(signals) == {Signal.LEFT_COLUMN}

    def test_pitch_used_when_yaw_lead_in_fails(self):
        samples = stream([(0.3, 0, 0), (0.4, -50, 0), (0.1, 50, 60)])
        spike = classify_all(samples)[-10:]
        assert Signal.DOWN in spike
        assert Signal.LEFT_COLUMN not in spike

    def test_one_signal_per_sample(self):
        classifier = GestureClassifier()
        for s in stream([(0.5, 0, 0), (0.3, 60, 80)]):
            result = classifier.process(s)
            assert isinstance(result, Signal)


class TestMonitorGestures:
    def test_disabled_by_default(self):
        signals = emitted(classify_all(stream([(0.5, 0, 0), (0.3, 200, 0)])))
        assert Signal.LEFT_MONITOR not in signals
        assert Signal.LEFT_COLUMN in signals

    def test_fast_yaw_switches_monitor(self):
        config = ClassifierConfig(monitor_yaw_threshold=120.0)
        left = emitted(classify_all(stream([(0.5, 0, 0), (0.3, 200, 0)]), config))
        right = emitted(classify_all(stream([(0.5, 0, 0), (0.3, -200, 0)]), config))
        assert Signal.LEFT_MONITOR in left
        assert Signal.RIGHT_MONITOR in right

    def test_moderate_yaw_still_switches_column(self):
        config = ClassifierConfig(monitor_yaw_threshold=120.0)
        signals = emitted(classify_all(stream([(0.5, 0, 0), (0.3, 60, 0)]), config))
        assert set(signals) == {Signal.LEFT_COLUMN}


class TestDegenerateInput:
    def test_duplicate_timestamp_skipped(self):
        classifier = GestureClassifier()
        classifier.process(PoseSample(Pose(yaw=0.0), instant=1.0))
        classifier.process(PoseSample(Pose(yaw=1.0), instant=1.01))
        result = classifier.process(PoseSample(Pose(yaw=5.0), instant=1.01))
        assert result is Signal.NOP
        assert len(classifier.history) == 2
        assert classifier.history.latest.pose.yaw == 1.0

    def test_reset_clears_history(self):
        classifier = GestureClassifier()
        for s in stream([(0.3, 0, 0)]):
            classifier.process(s)
        classifier.reset()
        assert len(classifier.history) == 0
