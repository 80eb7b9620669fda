"""Wrist speed tracking and per-arm kinematics.

Speeds are smoothed with a simple moving average over the last few
instantaneous samples. That adds a small fixed lag but rejects the
frame-to-frame jitter of the pose provider.
"""

from __future__ import annotations

import math
from collections import deque

import numpy as np

from src.state.constants import (
    ARM_KEYPOINTS,
    DEFAULT_FRAME_SIZE,
    DEFAULT_SPEED_HISTORY,
    LEFT,
    REQUIRED_KEYPOINTS,
    RIGHT,
)
from src.state.types import Kinematics, KeypointFrame, LimbKinematics

# Shoulder widths below this (px) make extension ratios meaningless
MIN_SHOULDER_WIDTH_PX = 1e-6


class MotionTracker:
    """Per-landmark speed estimation with moving-average smoothing.

    Usage::

        tracker = MotionTracker(history_size=5)
        speed = tracker.update_speed("left_wrist", x_px, y_px, timestamp)
    """

    def __init__(self, history_size: int = DEFAULT_SPEED_HISTORY):
        if history_size < 1:
            raise ValueError(f"history_size must be >= 1, got {history_size}")
        self.history_size = history_size
        self._last: dict[str, tuple[float, float, float]] = {}
        self._history: dict[str, deque[float]] = {}

    def update_speed(self, key: str, x: float, y: float, timestamp: float) -> float:
        """Record a position and return the smoothed speed for ``key``.

        Returns 0 on the first observation of a key, and when no time has
        elapsed since the previous sample. Samples with a non-finite time
        step are dropped.
        """
        last = self._last.get(key)
        if last is None:
            self._last[key] = (x, y, timestamp)
            self._history[key] = deque(maxlen=self.history_size)
            return 0.0

        lx, ly, lt = last
        dt = timestamp - lt
        if not math.isfinite(dt) or dt <= 0:
            return 0.0

        instant = math.hypot(x - lx, y - ly) / dt
        history = self._history[key]
        history.append(instant)
        self._last[key] = (x, y, timestamp)
        return float(np.mean(history))

    def instant_speed(self, key: str) -> float:
        """Most recent unsmoothed speed for ``key`` (0 if none yet)."""
        history = self._history.get(key)
        return history[-1] if history else 0.0

    def reset(self) -> None:
        self._last.clear()
        self._history.clear()


def compute_angle(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Angle ABC in degrees, in [0, 180]."""
    radians = math.atan2(c[1] - b[1], c[0] - b[0]) - math.atan2(a[1] - b[1], a[0] - b[0])
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def compute_kinematics(
    frame: KeypointFrame,
    tracker: MotionTracker,
    frame_size: tuple[int, int] = DEFAULT_FRAME_SIZE,
) -> Kinematics | None:
    """Derive per-arm kinematics for a frame.

    Wrist speeds are updated for whichever wrists are present, even when the
    frame is incomplete. Returns None when the timestamp is not finite, when
    any required landmark is missing, or when the shoulders collapse onto
    each other.
    """
    if not math.isfinite(frame.timestamp):
        return None

    width, height = frame_size
    scale = np.array([width, height], dtype=np.float64)

    speeds: dict[str, float] = {}
    for side in (LEFT, RIGHT):
        wrist_name = ARM_KEYPOINTS[side][2]
        wrist = frame.point(wrist_name)
        if wrist is not None:
            px = wrist * scale
            speeds[side] = tracker.update_speed(
                wrist_name, float(px[0]), float(px[1]), frame.timestamp
            )

    if not frame.has(*REQUIRED_KEYPOINTS):
        return None

    ls = frame.point("left_shoulder")
    rs = frame.point("right_shoulder")
    shoulder_width = abs(ls[0] - rs[0]) * width
    if shoulder_width < MIN_SHOULDER_WIDTH_PX:
        return None

    limbs = {}
    for side in (LEFT, RIGHT):
        shoulder_name, elbow_name, wrist_name, hip_name = ARM_KEYPOINTS[side]
        shoulder = frame.point(shoulder_name)
        elbow = frame.point(elbow_name)
        wrist = frame.point(wrist_name)
        hip = frame.point(hip_name)

        extension = abs(wrist[0] - shoulder[0]) * width
        limbs[side] = LimbKinematics(
            side=side,
            speed=speeds[side],
            instant_speed=tracker.instant_speed(wrist_name),
            elbow_angle=compute_angle(shoulder * scale, elbow * scale, wrist * scale),
            extension=float(extension),
            extension_ratio=float(extension / shoulder_width),
            shoulder_offset=float(wrist[1] - shoulder[1]),
            hip_offset=float(wrist[1] - hip[1]),
        )

    return Kinematics(
        timestamp=frame.timestamp,
        left=limbs[LEFT],
        right=limbs[RIGHT],
        shoulder_width=float(shoulder_width),
    )
