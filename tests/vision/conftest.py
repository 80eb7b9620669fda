"""Shared frame and kinematics builders for vision tests."""

from __future__ import annotations

import pytest

from src.state.constants import LEFT, RIGHT
from src.state.types import Kinematics, KeypointFrame, LimbKinematics
from src.vision.punch_classifier import ClassifierConfig
from src.trainer.config import DEFAULT_CONFIG_PATH

# Orthodox guard, facing the camera. Normalized coords, y grows downward.
GUARD_POSE = {
    "nose": (0.50, 0.20),
    "left_ear": (0.47, 0.21),
    "right_ear": (0.53, 0.21),
    "left_shoulder": (0.40, 0.40),
    "right_shoulder": (0.60, 0.40),
    "left_elbow": (0.38, 0.50),
    "right_elbow": (0.62, 0.50),
    "left_wrist": (0.44, 0.30),
    "right_wrist": (0.56, 0.30),
    "left_hip": (0.42, 0.70),
    "right_hip": (0.58, 0.70),
}


def make_frame(timestamp: float = 0.0, **overrides) -> KeypointFrame:
    """Guard pose with selected landmarks moved. Pass ``name=None`` to drop one."""
    landmarks = dict(GUARD_POSE)
    for name, value in overrides.items():
        if value is None:
            landmarks.pop(name, None)
        else:
            landmarks[name] = value
    return KeypointFrame.from_landmarks(timestamp, landmarks)


def make_limb(side: str, **values) -> LimbKinematics:
    """A resting guard arm unless overridden."""
    defaults = dict(
        speed=0.0,
        instant_speed=0.0,
        elbow_angle=60.0,
        extension=25.6,
        extension_ratio=0.2,
        shoulder_offset=-0.1,
        hip_offset=-0.4,
    )
    defaults.update(values)
    return LimbKinematics(side=side, **defaults)


def make_kinematics(timestamp: float = 0.0, left: dict | None = None, right: dict | None = None) -> Kinematics:
    return Kinematics(
        timestamp=timestamp,
        left=make_limb(LEFT, **(left or {})),
        right=make_limb(RIGHT, **(right or {})),
        shoulder_width=128.0,
    )


# Straight, fast, shoulder-height arm: satisfies the jab/cross rules of both presets
STRAIGHT_ARM = dict(speed=200.0, elbow_angle=170.0, extension=153.6, extension_ratio=1.2,
                    shoulder_offset=0.0, hip_offset=-0.3)


@pytest.fixture
def arcade_config() -> ClassifierConfig:
    return ClassifierConfig.from_yaml(DEFAULT_CONFIG_PATH, "arcade")


@pytest.fixture
def strict_config() -> ClassifierConfig:
    return ClassifierConfig.from_yaml(DEFAULT_CONFIG_PATH, "strict")
