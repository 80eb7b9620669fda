"""Punch quality scoring, grades, feedback, combo multipliers and bonuses.

Speed sub-score is a peaked curve over r = speed / ideal_speed:

    r < 0.5           rises linearly from 0 to the slow knee
    0.5 <= r < 1      rises linearly from the knee to 100
    1 <= r <= peak    100
    r > peak          falls linearly, never below the over-speed floor

Form sub-score is piecewise linear in the absolute elbow-angle deviation:
a gentle slope inside the tolerance band and a steeper one beyond it,
continuous at the band edge.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from src.exceptions import ConfigError
from src.state.constants import PunchCategory, PunchClass, category_of
from src.state.types import ScoreResult

logger = logging.getLogger(__name__)

NO_PUNCH_FEEDBACK = "No punch detected"


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryProfile:
    """Ideal technique for one punch category."""

    ideal_speed: float
    ideal_angle: float
    angle_tolerance: float
    speed_weight: float
    form_weight: float

    def __post_init__(self) -> None:
        if self.ideal_speed <= 0:
            raise ConfigError("ideal_speed", f"must be > 0, got {self.ideal_speed}")
        if not 0.0 <= self.ideal_angle <= 180.0:
            raise ConfigError("ideal_angle", f"must be within [0, 180], got {self.ideal_angle}")
        if self.angle_tolerance <= 0:
            raise ConfigError("angle_tolerance", f"must be > 0, got {self.angle_tolerance}")
        if self.speed_weight < 0 or self.form_weight < 0:
            raise ConfigError("speed_weight", "weights must be non-negative")
        if abs(self.speed_weight + self.form_weight - 1.0) > 1e-6:
            raise ConfigError(
                "speed_weight",
                f"speed_weight + form_weight must equal 1, got {self.speed_weight + self.form_weight}",
            )


@dataclass(frozen=True)
class SpeedCurve:
    slow_knee_score: float = 60.0
    peak_max_ratio: float = 1.5
    over_speed_slope: float = 60.0
    over_speed_floor: float = 40.0

    def __post_init__(self) -> None:
        if not 0.0 < self.slow_knee_score < 100.0:
            raise ConfigError("speed_curve.slow_knee_score", f"must be within (0, 100), got {self.slow_knee_score}")
        if self.peak_max_ratio < 1.0:
            raise ConfigError("speed_curve.peak_max_ratio", f"must be >= 1, got {self.peak_max_ratio}")
        if self.over_speed_slope <= 0:
            raise ConfigError("speed_curve.over_speed_slope", f"must be > 0, got {self.over_speed_slope}")
        if not 0.0 <= self.over_speed_floor < 100.0:
            raise ConfigError("speed_curve.over_speed_floor", f"must be within [0, 100), got {self.over_speed_floor}")


@dataclass(frozen=True)
class FormCurve:
    in_band_penalty: float = 20.0
    out_band_slope: float = 1.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.in_band_penalty < 100.0:
            raise ConfigError("form_curve.in_band_penalty", f"must be within [0, 100), got {self.in_band_penalty}")
        if self.out_band_slope <= 0:
            raise ConfigError("form_curve.out_band_slope", f"must be > 0, got {self.out_band_slope}")


@dataclass(frozen=True)
class FeedbackConfig:
    perfect_threshold: float = 95.0
    great_threshold: float = 85.0
    good_threshold: float = 70.0
    deficient_below: float = 60.0
    perfect: list[str] = field(default_factory=lambda: ["Perfect!"])
    great: list[str] = field(default_factory=lambda: ["Great punch!"])
    good: list[str] = field(default_factory=lambda: ["Good punch! Focus on consistency!"])
    fallback: str = "Keep practicing! You'll get there!"

    def __post_init__(self) -> None:
        if not self.perfect_threshold > self.great_threshold > self.good_threshold:
            raise ConfigError("feedback", "tier thresholds must be strictly descending")
        for tier in ("perfect", "great", "good"):
            if not getattr(self, tier):
                raise ConfigError(f"feedback.{tier}", "at least one message is required")


@dataclass(frozen=True)
class BonusConfig:
    perfect: int = 50
    great: int = 25
    combo: list[tuple[int, int]] = field(default_factory=lambda: [(5, 10), (10, 25), (20, 50), (50, 100)])
    pressure_window: float = 1.0
    pressure_points: int = 20
    perfect_streak_min: int = 3
    perfect_streak_points: int = 15

    def __post_init__(self) -> None:
        if self.pressure_window < 0:
            raise ConfigError("bonus.pressure_window", f"must be >= 0, got {self.pressure_window}")
        if self.perfect_streak_min < 1:
            raise ConfigError("bonus.perfect_streak_min", f"must be >= 1, got {self.perfect_streak_min}")


@dataclass(frozen=True)
class ScoringConfig:
    categories: dict[PunchCategory, CategoryProfile]
    speed_curve: SpeedCurve = field(default_factory=SpeedCurve)
    form_curve: FormCurve = field(default_factory=FormCurve)
    grades: list[tuple[float, str]] = field(default_factory=list)
    fallback_grade: str = "F"
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    combo_multipliers: list[tuple[int, float]] = field(default_factory=list)
    bonus: BonusConfig = field(default_factory=BonusConfig)

    def __post_init__(self) -> None:
        missing = [c.value for c in PunchCategory if c not in self.categories]
        if missing:
            raise ConfigError("scoring.categories", f"missing categories {missing}")
        thresholds = [t for t, _ in self.grades]
        if thresholds != sorted(thresholds, reverse=True):
            raise ConfigError("scoring.grades", "grade thresholds must be descending")
        counts = [c for c, _ in self.combo_multipliers]
        if counts != sorted(counts):
            raise ConfigError("scoring.combo_multipliers", "combo thresholds must be ascending")
        if any(m < 1.0 for _, m in self.combo_multipliers):
            raise ConfigError("scoring.combo_multipliers", "multipliers must be >= 1.0")

    @classmethod
    def from_dict(cls, data: dict) -> ScoringConfig:
        categories = {}
        for name, values in (data.get("categories") or {}).items():
            try:
                category = PunchCategory(name)
            except ValueError:
                raise ConfigError("scoring.categories", f"unknown category {name!r}") from None
            try:
                categories[category] = _make(CategoryProfile, values, "options")
            except ConfigError as exc:
                raise ConfigError(f"scoring.categories.{name}.{exc.key}", str(exc).split(": ", 1)[-1]) from None

        bonus = dict(data.get("bonus") or {})
        if "combo" in bonus:
            bonus["combo"] = [tuple(pair) for pair in bonus["combo"]]

        return cls(
            categories=categories,
            speed_curve=_make(SpeedCurve, data.get("speed_curve"), "scoring.speed_curve"),
            form_curve=_make(FormCurve, data.get("form_curve"), "scoring.form_curve"),
            grades=[(float(t), str(g)) for t, g in data.get("grades", [])],
            fallback_grade=data.get("fallback_grade", "F"),
            feedback=_make(FeedbackConfig, data.get("feedback"), "scoring.feedback"),
            combo_multipliers=[(int(c), float(m)) for c, m in data.get("combo_multipliers", [])],
            bonus=_make(BonusConfig, bonus, "scoring.bonus"),
        )


# ---------------------------------------------------------------------------
# Sub-score curves
# ---------------------------------------------------------------------------

def speed_score(speed: float, ideal_speed: float, curve: SpeedCurve) -> float:
    ratio = max(speed, 0.0) / ideal_speed
    knee = curve.slow_knee_score
    if ratio < 0.5:
        return knee * ratio / 0.5
    if ratio < 1.0:
        return knee + (100.0 - knee) * (ratio - 0.5) / 0.5
    if ratio <= curve.peak_max_ratio:
        return 100.0
    return max(100.0 - (ratio - curve.peak_max_ratio) * curve.over_speed_slope, curve.over_speed_floor)


def form_score(angle: float, profile: CategoryProfile, curve: FormCurve) -> float:
    deviation = abs(angle - profile.ideal_angle)
    if deviation <= profile.angle_tolerance:
        return 100.0 - (deviation / profile.angle_tolerance) * curve.in_band_penalty
    excess = deviation - profile.angle_tolerance
    return max(100.0 - curve.in_band_penalty - excess * curve.out_band_slope, 0.0)


def _make(cls, data: dict | None, key: str):
    """Instantiate a config dataclass, rejecting unknown options."""
    data = dict(data or {})
    unknown = set(data) - set(cls.__dataclass_fields__)
    if unknown:
        raise ConfigError(key, f"unknown options {sorted(unknown)}")
    try:
        return cls(**data)
    except TypeError as exc:
        raise ConfigError(key, str(exc)) from None


def _round(value: float) -> int:
    return int(value + 0.5)


# ---------------------------------------------------------------------------
# ScoringEngine
# ---------------------------------------------------------------------------

class ScoringEngine:
    """Turns a classified punch into a ScoreResult.

    Feedback messages within a tier are picked with ``rng``; pass a seeded
    ``random.Random`` for reproducible output.
    """

    def __init__(self, config: ScoringConfig, rng: random.Random | None = None):
        self.config = config
        self.rng = rng or random.Random()

    def profile(self, punch: PunchClass) -> CategoryProfile:
        return self.config.categories[category_of(punch)]

    def score(self, punch: PunchClass | None, speed: float, angle: float) -> ScoreResult:
        if punch is None:
            return ScoreResult(
                punch=None,
                speed_score=0,
                form_score=0,
                total_score=0,
                grade=self.config.fallback_grade,
                feedback=NO_PUNCH_FEEDBACK,
                is_perfect=False,
                is_great=False,
                is_good=False,
            )

        profile = self.profile(punch)
        s_score = speed_score(speed, profile.ideal_speed, self.config.speed_curve)
        f_score = form_score(angle, profile, self.config.form_curve)
        total = s_score * profile.speed_weight + f_score * profile.form_weight

        s_int, f_int, total_int = _round(s_score), _round(f_score), _round(total)
        fb = self.config.feedback
        result = ScoreResult(
            punch=punch,
            speed_score=s_int,
            form_score=f_int,
            total_score=total_int,
            grade=self.grade(total_int),
            feedback=self._feedback(total_int, s_int, f_int, speed, angle, profile),
            is_perfect=total_int >= fb.perfect_threshold,
            is_great=total_int >= fb.great_threshold,
            is_good=total_int >= fb.good_threshold,
            speed=speed,
            angle=angle,
            ideal_speed=profile.ideal_speed,
            ideal_angle=profile.ideal_angle,
        )
        logger.debug(
            "Scored %s: speed=%.0f (%d) angle=%.0f (%d) total=%d grade=%s",
            punch.value, speed, s_int, angle, f_int, total_int, result.grade,
        )
        return result

    def grade(self, total: float) -> str:
        for threshold, letter in self.config.grades:
            if total >= threshold:
                return letter
        return self.config.fallback_grade

    def combo_multiplier(self, combo_count: int) -> float:
        multiplier = 1.0
        for min_count, value in self.config.combo_multipliers:
            if combo_count >= min_count:
                multiplier = value
        return multiplier

    def tier_bonus(self, score: ScoreResult) -> int:
        if score.is_perfect:
            return self.config.bonus.perfect
        if score.is_great:
            return self.config.bonus.great
        return 0

    def bonus_points(
        self,
        score: ScoreResult,
        combo_count: int = 0,
        time_remaining: float | None = None,
        consecutive_perfect: int = 0,
        include_tier: bool = True,
    ) -> int:
        """Independent bonus contributions, summed.

        ``include_tier=False`` leaves out the perfect/great tier bonus, for
        callers that already folded it into per-hit points.
        """
        cfg = self.config.bonus
        bonus = 0
        if include_tier:
            bonus += self.tier_bonus(score)

        for min_count, points in cfg.combo:
            if combo_count >= min_count:
                bonus += points

        if time_remaining is not None and 0 < time_remaining < cfg.pressure_window:
            bonus += cfg.pressure_points

        if consecutive_perfect >= cfg.perfect_streak_min:
            bonus += consecutive_perfect * cfg.perfect_streak_points

        return bonus

    def _feedback(
        self,
        total: int,
        s_score: int,
        f_score: int,
        speed: float,
        angle: float,
        profile: CategoryProfile,
    ) -> str:
        fb = self.config.feedback
        if total >= fb.perfect_threshold:
            return self.rng.choice(fb.perfect)
        if total >= fb.great_threshold:
            return self.rng.choice(fb.great)
        if total >= fb.good_threshold:
            return self.rng.choice(fb.good)

        # (sub-score, remediation) for each deficient sub-score, weakest first
        issues: list[tuple[int, str]] = []
        if s_score < fb.deficient_below:
            if speed < profile.ideal_speed:
                issues.append((s_score, "snap your punch faster"))
            else:
                issues.append((s_score, "control your speed more"))
        if f_score < fb.deficient_below:
            off = abs(angle - profile.ideal_angle)
            if angle < profile.ideal_angle:
                issues.append((f_score, f"extend your arm more ({off:.0f}° off)"))
            else:
                issues.append((f_score, f"bend your arm more ({off:.0f}° off)"))

        if not issues:
            return fb.fallback
        issues.sort(key=lambda item: item[0])
        text = " and ".join(msg for _, msg in issues)
        return text[0].upper() + text[1:]
