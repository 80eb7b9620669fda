"""Tests for punch scoring: sub-score curves, grades, feedback, multipliers, bonuses."""

from __future__ import annotations

import random

import pytest

from src.exceptions import ConfigError
from src.state.constants import PunchCategory, PunchClass
from src.state.types import ScoreResult
from src.trainer.scoring import (
    NO_PUNCH_FEEDBACK,
    CategoryProfile,
    FormCurve,
    ScoringConfig,
    ScoringEngine,
    SpeedCurve,
    form_score,
    speed_score,
)


def _score_result(total: int, perfect: bool = False, great: bool = False) -> ScoreResult:
    return ScoreResult(
        punch=PunchClass.JAB, speed_score=total, form_score=total, total_score=total, grade="A",
        feedback="", is_perfect=perfect, is_great=great or perfect, is_good=True,
    )


# ---------------------------------------------------------------------------
# Curves
# ---------------------------------------------------------------------------

class TestSpeedCurve:
    @pytest.mark.parametrize(
        "ratio, expected",
        [(0.0, 0.0), (0.25, 30.0), (0.5, 60.0), (0.75, 80.0), (1.0, 100.0), (1.5, 100.0), (2.0, 70.0), (3.0, 40.0)],
    )
    def test_values(self, ratio, expected):
        assert speed_score(150.0 * ratio, 150.0, SpeedCurve()) == pytest.approx(expected)

    def test_strictly_increasing_up_to_ideal(self):
        curve = SpeedCurve()
        values = [speed_score(s, 150.0, curve) for s in range(0, 151)]
        assert all(a < b for a, b in zip(values, values[1:]))

    def test_flat_across_peak(self):
        curve = SpeedCurve()
        assert {speed_score(s, 150.0, curve) for s in range(150, 226)} == {100.0}

    def test_strictly_decreasing_above_peak(self):
        curve = SpeedCurve()
        # 1.5x ideal down to the floor knee at 2.5x
        knee = curve.peak_max_ratio + (100.0 - curve.over_speed_floor) / curve.over_speed_slope
        assert knee == pytest.approx(2.5)
        speeds = [225.0 + i * 0.5 for i in range(0, 301)]
        assert speeds[-1] == pytest.approx(150.0 * knee)
        values = [speed_score(s, 150.0, curve) for s in speeds]
        assert all(a > b for a, b in zip(values, values[1:]))
        assert values[-1] == pytest.approx(curve.over_speed_floor)

    def test_never_below_floor_when_too_fast(self):
        curve = SpeedCurve()
        assert min(speed_score(s, 150.0, curve) for s in range(226, 2000, 7)) >= curve.over_speed_floor

    def test_negative_speed_clamped(self):
        assert speed_score(-10.0, 150.0, SpeedCurve()) == 0.0


class TestFormCurve:
    PROFILE = CategoryProfile(ideal_speed=150, ideal_angle=165, angle_tolerance=25, speed_weight=0.6, form_weight=0.4)

    @pytest.mark.parametrize("angle, expected", [(165, 100.0), (140, 80.0), (180, 88.0), (130, 65.0), (50, 0.0)])
    def test_values(self, angle, expected):
        assert form_score(angle, self.PROFILE, FormCurve()) == pytest.approx(expected)

    def test_continuous_at_band_edge(self):
        inside = form_score(165 - 25, self.PROFILE, FormCurve())
        outside = form_score(165 - 25.001, self.PROFILE, FormCurve())
        assert inside - outside < 0.01


# ---------------------------------------------------------------------------
# ScoringEngine.score
# ---------------------------------------------------------------------------

class TestScore:
    def test_perfect_jab(self, scoring):
        result = scoring.score(PunchClass.JAB, 150.0, 165.0)
        assert (result.speed_score, result.form_score, result.total_score) == (100, 100, 100)
        assert result.grade == "S"
        assert result.is_perfect and result.is_great and result.is_good
        assert result.feedback in scoring.config.feedback.perfect

    def test_weighted_total(self, scoring):
        result = scoring.score(PunchClass.JAB, 75.0, 165.0)
        assert (result.speed_score, result.form_score, result.total_score) == (60, 100, 76)
        assert result.grade == "B+"
        assert result.is_good and not result.is_great

    def test_half_up_rounding(self, scoring):
        # 60 * 0.5 + 65 * 0.5 = 62.5
        result = scoring.score(PunchClass.LEFT_HOOK, 70.0, 130.0)
        assert result.total_score == 63
        assert result.grade == "C+"

    def test_no_punch(self, scoring):
        result = scoring.score(None, 200.0, 170.0)
        assert (result.speed_score, result.form_score, result.total_score) == (0, 0, 0)
        assert result.grade == "F"
        assert result.feedback == NO_PUNCH_FEEDBACK
        assert not result.is_good

    def test_category_profile_used(self, scoring):
        result = scoring.score(PunchClass.RIGHT_UPPERCUT, 130.0, 75.0)
        assert result.ideal_speed == 130
        assert result.ideal_angle == 75
        assert result.total_score == 100

    def test_scores_in_range(self, scoring):
        rng = random.Random(5)
        for _ in range(200):
            p = rng.choice(list(PunchClass))
            result = scoring.score(p, rng.uniform(0, 500), rng.uniform(0, 180))
            assert 0 <= result.speed_score <= 100
            assert 0 <= result.form_score <= 100
            assert 0 <= result.total_score <= 100
            assert result.is_great <= result.is_good
            assert result.is_perfect <= result.is_great


class TestGrades:
    @pytest.mark.parametrize(
        "total, grade",
        [(100, "S"), (95, "S"), (94, "A+"), (90, "A+"), (85, "A"), (80, "A-"), (75, "B+"), (70, "B"),
         (65, "B-"), (60, "C+"), (55, "C"), (50, "C-"), (45, "D"), (44, "F"), (0, "F")],
    )
    def test_boundaries(self, scoring, total, grade):
        assert scoring.grade(total) == grade


class TestFeedback:
    def test_two_remediations_weakest_first(self, scoring):
        # speed 24, form 20
        result = scoring.score(PunchClass.JAB, 30.0, 100.0)
        assert result.feedback == "Extend your arm more (65° off) and snap your punch faster"

    def test_too_slow(self, scoring):
        assert scoring.score(PunchClass.JAB, 50.0, 165.0).feedback == "Snap your punch faster"

    def test_too_fast(self, scoring):
        assert scoring.score(PunchClass.JAB, 400.0, 165.0).feedback == "Control your speed more"

    def test_over_bent(self, scoring):
        result = scoring.score(PunchClass.LEFT_HOOK, 140.0, 180.0)
        assert result.feedback == "Bend your arm more (90° off)"

    def test_fallback_when_nothing_deficient(self, scoring):
        result = scoring.score(PunchClass.LEFT_HOOK, 70.0, 130.0)
        assert result.feedback == "Keep practicing! You'll get there!"

    def test_seeded_feedback_is_reproducible(self, trainer_config):
        a = ScoringEngine(trainer_config.scoring, random.Random(3))
        b = ScoringEngine(trainer_config.scoring, random.Random(3))
        assert [a.score(PunchClass.JAB, 150, 165).feedback for _ in range(5)] == \
               [b.score(PunchClass.JAB, 150, 165).feedback for _ in range(5)]


# ---------------------------------------------------------------------------
# Multipliers and bonuses
# ---------------------------------------------------------------------------

class TestComboMultiplier:
    @pytest.mark.parametrize(
        "count, expected",
        [(0, 1.0), (2, 1.0), (3, 1.2), (4, 1.2), (5, 1.5), (10, 1.8), (15, 2.0), (24, 2.0), (25, 2.5), (100, 2.5)],
    )
    def test_thresholds(self, scoring, count, expected):
        assert scoring.combo_multiplier(count) == expected

    def test_non_decreasing(self, scoring):
        values = [scoring.combo_multiplier(n) for n in range(60)]
        assert all(a <= b for a, b in zip(values, values[1:]))


class TestBonus:
    def test_all_contributions_add_up(self, scoring):
        score = _score_result(97, perfect=True)
        # 50 perfect + 10 + 25 combo + 20 pressure + 3 * 15 streak
        assert scoring.bonus_points(score, combo_count=10, time_remaining=0.5, consecutive_perfect=3) == 150

    def test_without_tier(self, scoring):
        score = _score_result(97, perfect=True)
        assert scoring.bonus_points(score, combo_count=10, time_remaining=0.5, consecutive_perfect=3,
                                    include_tier=False) == 100

    def test_great_tier(self, scoring):
        assert scoring.bonus_points(_score_result(88, great=True)) == 25
        assert scoring.tier_bonus(_score_result(72)) == 0

    @pytest.mark.parametrize("remaining, expected", [(None, 0), (0.0, 0), (0.3, 20), (0.99, 20), (1.0, 0), (-0.1, 0)])
    def test_pressure_window(self, scoring, remaining, expected):
        assert scoring.bonus_points(_score_result(72), time_remaining=remaining) == expected

    def test_combo_thresholds_accumulate(self, scoring):
        assert scoring.bonus_points(_score_result(72), combo_count=4) == 0
        assert scoring.bonus_points(_score_result(72), combo_count=5) == 10
        assert scoring.bonus_points(_score_result(72), combo_count=20) == 85
        assert scoring.bonus_points(_score_result(72), combo_count=50) == 185

    def test_streak_below_minimum(self, scoring):
        assert scoring.bonus_points(_score_result(72), consecutive_perfect=2) == 0


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestScoringConfig:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigError, match="speed_weight"):
            CategoryProfile(ideal_speed=150, ideal_angle=165, angle_tolerance=25, speed_weight=0.6, form_weight=0.6)

    def test_ideal_speed_positive(self):
        with pytest.raises(ConfigError, match="ideal_speed"):
            CategoryProfile(ideal_speed=0, ideal_angle=165, angle_tolerance=25, speed_weight=0.5, form_weight=0.5)

    def test_missing_category(self, trainer_config):
        categories = dict(trainer_config.scoring.categories)
        del categories[PunchCategory.BODY]
        with pytest.raises(ConfigError, match="body"):
            ScoringConfig(categories=categories)

    def test_unknown_category(self):
        with pytest.raises(ConfigError, match="uppercuts"):
            ScoringConfig.from_dict({"categories": {"uppercuts": {}}})

    def test_nested_key_in_error(self):
        data = {"categories": {"straight": {"ideal_speed": -1, "ideal_angle": 165, "angle_tolerance": 25,
                                            "speed_weight": 0.6, "form_weight": 0.4}}}
        with pytest.raises(ConfigError) as exc_info:
            ScoringConfig.from_dict(data)
        assert exc_info.value.key == "scoring.categories.straight.ideal_speed"

    def test_unknown_curve_option(self, trainer_config):
        with pytest.raises(ConfigError, match="speed_curve"):
            ScoringConfig.from_dict({"categories": {}, "speed_curve": {"knee": 50}})

    def test_grades_must_descend(self, trainer_config):
        with pytest.raises(ConfigError, match="grades"):
            ScoringConfig(categories=trainer_config.scoring.categories, grades=[(50, "C"), (90, "A")])

    def test_multipliers_at_least_one(self, trainer_config):
        with pytest.raises(ConfigError, match="combo_multipliers"):
            ScoringConfig(categories=trainer_config.scoring.categories, combo_multipliers=[(3, 0.5)])
