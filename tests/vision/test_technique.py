"""Tests for the hold-the-position technique coach."""

from __future__ import annotations

import pytest

from src.exceptions import ConfigError, SessionStateError
from src.state.constants import PunchClass
from src.vision.technique import TechniqueCoach, TechniqueConfig

from tests.vision.conftest import make_frame

# Finished positions of the lead (left) arm
JAB_POSE = dict(left_elbow=(0.30, 0.40), left_wrist=(0.20, 0.41))
HOOK_POSE = dict(left_elbow=(0.28, 0.42), left_wrist=(0.30, 0.30))
UPPERCUT_POSE = dict(left_elbow=(0.42, 0.50), left_wrist=(0.44, 0.35))
BODY_POSE = dict(left_elbow=(0.35, 0.55), left_wrist=(0.45, 0.60))


@pytest.fixture
def coach() -> TechniqueCoach:
    return TechniqueCoach(TechniqueConfig(hold_time=0.8))


class TestChecks:
    @pytest.mark.parametrize(
        "punch, pose, message",
        [
            (PunchClass.JAB, JAB_POSE, "PERFECT! HOLD IT!"),
            (PunchClass.LEFT_HOOK, HOOK_POSE, "LOCKED IN! HOLD IT!"),
            (PunchClass.LEFT_UPPERCUT, UPPERCUT_POSE, "NAILED IT! HOLD!"),
            (PunchClass.LEFT_BODY, BODY_POSE, "SOLID! HOLD IT!"),
        ],
    )
    def test_correct_form_passes(self, coach, punch, pose, message):
        coach.start(punch)
        analysis = coach.analyze(make_frame(0.0, **pose))
        assert analysis.passed
        assert analysis.feedback == message
        assert analysis.errors == []
        assert analysis.hold_progress == 0.0

    def test_hook_angle(self, coach):
        coach.start("lhook")
        analysis = coach.analyze(make_frame(0.0, **HOOK_POSE))
        assert analysis.angle == pytest.approx(71.1, abs=0.5)

    def test_straight_arm_hook_is_a_slap(self, coach):
        coach.start(PunchClass.LEFT_HOOK)
        analysis = coach.analyze(make_frame(0.0, **JAB_POSE))
        assert not analysis.passed
        assert analysis.feedback == "Don't slap! Bend arm (90°)"

    def test_guard_is_not_a_jab(self, coach):
        coach.start(PunchClass.JAB)
        analysis = coach.analyze(make_frame(0.0))
        assert not analysis.passed
        assert analysis.feedback == "Extend arm fully!"

    def test_body_shot_too_high(self, coach):
        coach.start(PunchClass.LEFT_BODY)
        analysis = coach.analyze(make_frame(0.0, left_elbow=(0.35, 0.45), left_wrist=(0.45, 0.35)))
        assert "Aim between chest and hip" in analysis.errors

    def test_missing_landmarks(self, coach):
        coach.start(PunchClass.JAB)
        analysis = coach.analyze(make_frame(0.0, left_wrist=None))
        assert not analysis.passed
        assert analysis.feedback == "Step into view"


class TestHold:
    def test_hold_completes_after_hold_time(self, coach):
        coach.start(PunchClass.JAB)
        first = coach.analyze(make_frame(0.0, **JAB_POSE))
        middle = coach.analyze(make_frame(0.4, **JAB_POSE))
        last = coach.analyze(make_frame(0.8, **JAB_POSE))

        assert first.hold_progress == 0.0
        assert middle.hold_progress == pytest.approx(0.5)
        assert not middle.completed
        assert last.completed
        assert last.feedback == "Passed: Jab"
        assert not coach.active

    def test_bad_frame_restarts_hold(self, coach):
        coach.start(PunchClass.JAB)
        coach.analyze(make_frame(0.0, **JAB_POSE))
        coach.analyze(make_frame(0.4))
        resumed = coach.analyze(make_frame(0.6, **JAB_POSE))
        later = coach.analyze(make_frame(1.0, **JAB_POSE))
        assert resumed.hold_progress == 0.0
        assert later.hold_progress == pytest.approx(0.5)
        assert coach.active

    def test_idle_coach_returns_none(self, coach):
        assert coach.analyze(make_frame(0.0)) is None

    def test_stop(self, coach):
        coach.start(PunchClass.JAB)
        coach.stop()
        assert not coach.active
        assert coach.analyze(make_frame(0.0, **JAB_POSE)) is None


class TestCoachSetup:
    def test_unknown_punch(self, coach):
        with pytest.raises(SessionStateError, match="haymaker"):
            coach.start("haymaker")

    def test_to_dict(self, coach):
        coach.start(PunchClass.JAB)
        data = coach.analyze(make_frame(0.0, **JAB_POSE)).to_dict()
        assert data["punch"] == "Jab"
        assert data["passed"] is True
        assert data["completed"] is False

    def test_hold_time_must_be_positive(self):
        with pytest.raises(ConfigError):
            TechniqueConfig(hold_time=0)
