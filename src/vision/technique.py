"""Static form coach for a single selected punch.

The athlete holds the finished position of one punch; the coach checks
arm geometry every frame and passes the move once correct form has been
held continuously for ``hold_time`` seconds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from src.exceptions import ConfigError, SessionStateError
from src.state.constants import ARM_KEYPOINTS, PUNCH_SIDE, PunchCategory, PunchClass, category_of, parse_punch
from src.state.types import KeypointFrame
from src.vision.motion import compute_angle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TechniqueConfig:
    hold_time: float = 0.8

    def __post_init__(self) -> None:
        if self.hold_time <= 0:
            raise ConfigError("technique.hold_time", f"must be > 0, got {self.hold_time}")

    @classmethod
    def from_dict(cls, data: dict | None) -> TechniqueConfig:
        data = data or {}
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError("technique", f"unknown options {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})


@dataclass(frozen=True)
class TechniqueAnalysis:
    punch: PunchClass
    passed: bool
    feedback: str
    errors: list[str] = field(default_factory=list)
    angle: float | None = None
    hold_progress: float = 0.0  # 0-1
    completed: bool = False

    def to_dict(self) -> dict:
        return {
            "punch": self.punch.value,
            "passed": self.passed,
            "feedback": self.feedback,
            "errors": list(self.errors),
            "angle": self.angle,
            "hold_progress": self.hold_progress,
            "completed": self.completed,
        }


# --- Per-category form checks ---
# Each returns (errors, pass message). Coordinates are normalized; y grows downward.

def _check_straight(shoulder, elbow, wrist, hip, angle) -> tuple[list[str], str]:
    errors = []
    if angle < 150:
        errors.append("Extend arm fully!")
    if abs(wrist[1] - shoulder[1]) > 0.20:
        errors.append("Punch at shoulder level")
    return errors, "PERFECT! HOLD IT!"


def _check_hook(shoulder, elbow, wrist, hip, angle) -> tuple[list[str], str]:
    errors = []
    if angle > 130:
        errors.append("Don't slap! Bend arm (90°)")
    if angle < 60:
        errors.append("Open arm slightly")
    if abs(elbow[1] - shoulder[1]) > 0.15:
        errors.append("Raise your elbow!")
    return errors, "LOCKED IN! HOLD IT!"


def _check_uppercut(shoulder, elbow, wrist, hip, angle) -> tuple[list[str], str]:
    errors = []
    if angle > 110:
        errors.append("Bend arm more!")
    if wrist[1] > elbow[1]:
        errors.append("Punch UPWARDS!")
    if abs(elbow[0] - shoulder[0]) > 0.15:
        errors.append("Tuck your elbow in!")
    return errors, "NAILED IT! HOLD!"


def _check_body(shoulder, elbow, wrist, hip, angle) -> tuple[list[str], str]:
    errors = []
    if angle > 140:
        errors.append("Bend arm more!")
    if angle < 70:
        errors.append("Open arm slightly")
    if not shoulder[1] < wrist[1] < hip[1]:
        errors.append("Aim between chest and hip")
    return errors, "SOLID! HOLD IT!"


_CHECKS = {
    PunchCategory.STRAIGHT: _check_straight,
    PunchCategory.HOOK: _check_hook,
    PunchCategory.UPPERCUT: _check_uppercut,
    PunchCategory.BODY: _check_body,
}


class TechniqueCoach:
    """Hold-the-position form trainer.

    Usage::

        coach = TechniqueCoach()
        coach.start("left_hook")
        analysis = coach.analyze(frame)  # per frame
        if analysis.completed: ...
    """

    def __init__(self, config: TechniqueConfig | None = None):
        self.config = config or TechniqueConfig()
        self.current: PunchClass | None = None
        self._hold_started: float | None = None

    @property
    def active(self) -> bool:
        return self.current is not None

    def start(self, punch: PunchClass | str) -> None:
        try:
            self.current = parse_punch(punch)
        except ValueError as exc:
            raise SessionStateError(str(exc)) from None
        self._hold_started = None
        logger.info("Technique coach started: %s", self.current.value)

    def stop(self) -> None:
        self.current = None
        self._hold_started = None

    def analyze(self, frame: KeypointFrame) -> TechniqueAnalysis | None:
        """Check one frame. Returns None when no punch is selected."""
        punch = self.current
        if punch is None:
            return None

        side = PUNCH_SIDE[punch]
        names = ARM_KEYPOINTS[side]
        if not frame.has(*names):
            self._hold_started = None
            return TechniqueAnalysis(punch, passed=False, feedback="Step into view", errors=["missing landmarks"])

        shoulder, elbow, wrist, hip = (frame.point(n) for n in names)
        angle = compute_angle(shoulder, elbow, wrist)
        errors, ok_message = _CHECKS[category_of(punch)](shoulder, elbow, wrist, hip, angle)
        passed = not errors

        if not passed:
            self._hold_started = None
            return TechniqueAnalysis(punch, False, errors[0], errors, angle=angle)

        if self._hold_started is None:
            self._hold_started = frame.timestamp
        progress = float(np.clip((frame.timestamp - self._hold_started) / self.config.hold_time, 0.0, 1.0))

        completed = progress >= 1.0
        if completed:
            logger.info("Technique passed: %s", punch.value)
            self.stop()
            return TechniqueAnalysis(punch, True, f"Passed: {punch.value}", angle=angle,
                                     hold_progress=1.0, completed=True)
        return TechniqueAnalysis(punch, True, ok_message, angle=angle, hold_progress=progress)
