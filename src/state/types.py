"""Core data types shared by the classifier, scoring engine and drill scheduler."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Sequence

import numpy as np

from src.state.constants import (
    KEYPOINT_NAMES,
    MEDIAPIPE_INDICES,
    NUM_KEYPOINTS,
    REQUIRED_KEYPOINTS,
    PunchClass,
)

_INDEX = {name: i for i, name in enumerate(KEYPOINT_NAMES)}


def _coerce_point(value: Any) -> tuple[float, float]:
    """Turn a landmark value into (x, y); anything unusable becomes (nan, nan)."""
    try:
        if isinstance(value, Mapping):
            x, y = float(value["x"]), float(value["y"])
        else:
            x, y = float(value[0]), float(value[1])
    except (KeyError, IndexError, TypeError, ValueError):
        return (math.nan, math.nan)
    if not (math.isfinite(x) and math.isfinite(y)):
        return (math.nan, math.nan)
    if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
        return (math.nan, math.nan)
    return (x, y)


@dataclass(frozen=True)
class KeypointFrame:
    """A single frame of pose keypoints.

    Missing landmarks are stored as NaN rows, so a frame can always be
    constructed even when the pose provider dropped points.
    """

    timestamp: float  # seconds
    keypoints: np.ndarray  # shape (11, 2), x and y in normalized coords

    def __post_init__(self) -> None:
        if self.keypoints.shape != (NUM_KEYPOINTS, 2):
            raise ValueError(
                f"Expected keypoints shape ({NUM_KEYPOINTS}, 2), got {self.keypoints.shape}"
            )

    @classmethod
    def from_landmarks(cls, timestamp: float, landmarks: Mapping[str, Any]) -> KeypointFrame:
        """Build a frame from ``{name: (x, y)}``; unknown names are ignored."""
        kp = np.full((NUM_KEYPOINTS, 2), np.nan, dtype=np.float64)
        for name, value in landmarks.items():
            idx = _INDEX.get(name)
            if idx is not None:
                kp[idx] = _coerce_point(value)
        return cls(timestamp=float(timestamp), keypoints=kp)

    @classmethod
    def from_mediapipe(cls, timestamp: float, landmarks: Sequence[Any]) -> KeypointFrame:
        """Build a frame from a 33-landmark MediaPipe pose list."""
        kp = np.full((NUM_KEYPOINTS, 2), np.nan, dtype=np.float64)
        for i, mp_idx in enumerate(MEDIAPIPE_INDICES):
            if mp_idx < len(landmarks):
                lm = landmarks[mp_idx]
                kp[i] = _coerce_point((getattr(lm, "x", None), getattr(lm, "y", None)))
        return cls(timestamp=float(timestamp), keypoints=kp)

    def point(self, name: str) -> np.ndarray | None:
        """Return the (x, y) of a landmark, or None if it is missing."""
        p = self.keypoints[_INDEX[name]]
        if np.isnan(p).any():
            return None
        return p

    def has(self, *names: str) -> bool:
        return all(self.point(n) is not None for n in names)

    @property
    def is_complete(self) -> bool:
        return self.has(*REQUIRED_KEYPOINTS)


@dataclass(frozen=True)
class LimbKinematics:
    """Derived per-arm metrics for one frame."""

    side: str
    speed: float  # smoothed wrist speed, px/s
    instant_speed: float
    elbow_angle: float  # degrees, 0-180
    extension: float  # horizontal wrist-to-shoulder distance, px
    extension_ratio: float  # extension / shoulder width
    shoulder_offset: float  # wrist.y - shoulder.y (normalized, + = below)
    hip_offset: float  # wrist.y - hip.y (normalized, + = below)


@dataclass(frozen=True)
class Kinematics:
    timestamp: float
    left: LimbKinematics
    right: LimbKinematics
    shoulder_width: float  # px

    def side(self, side: str) -> LimbKinematics:
        return self.left if side == "left" else self.right


@dataclass(frozen=True)
class ClassificationResult:
    """At most one punch per frame."""

    punch: PunchClass | None
    confidence: float  # 0-100
    raw_speed: float = 0.0
    raw_angle: float = 0.0
    form_tip: str | None = None
    timestamp: float = 0.0

    @classmethod
    def none(cls, timestamp: float = 0.0) -> ClassificationResult:
        return cls(punch=None, confidence=0.0, timestamp=timestamp)

    @property
    def is_punch(self) -> bool:
        return self.punch is not None

    def to_dict(self) -> dict:
        return {
            "punch": self.punch.value if self.punch else None,
            "confidence": self.confidence,
            "raw_speed": self.raw_speed,
            "raw_angle": self.raw_angle,
            "form_tip": self.form_tip,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class StanceAssessment:
    is_good: bool
    tips: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScoreResult:
    """Quality score of a single punch."""

    punch: PunchClass | None
    speed_score: int  # 0-100
    form_score: int  # 0-100
    total_score: int  # weighted, 0-100
    grade: str
    feedback: str
    is_perfect: bool
    is_great: bool
    is_good: bool
    speed: float = 0.0
    angle: float = 0.0
    ideal_speed: float = 0.0
    ideal_angle: float = 0.0

    @property
    def angle_deviation(self) -> float:
        return abs(self.angle - self.ideal_angle)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["punch"] = self.punch.value if self.punch else None
        return data


@dataclass(frozen=True)
class SessionAnalysis:
    performance: str  # Elite | Advanced | Intermediate | Developing | Beginner
    recommendation: str
    strengths: list[str]
    weaknesses: list[str]
    difficulty_adjustment: str  # increase | decrease | maintain
    difficulty_message: str
    suggested_speed: float


@dataclass(frozen=True)
class SessionSummary:
    """Final report of a stopped drill."""

    mode: str
    total_hits: int
    total_misses: int
    accuracy: float  # percent
    max_combo: int
    level_reached: int
    total_points: int
    perfect_hits: int
    average_speed_score: float
    average_form_score: float
    completed_sequences: int
    analysis: SessionAnalysis

    def to_dict(self) -> dict:
        return asdict(self)
