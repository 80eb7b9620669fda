"""Punch taxonomy, keypoint layout, and shared defaults.

Classifier priority follows the declaration order of ``PUNCH_PRIORITY``:
straight punches first, then hooks, uppercuts and body shots, with both
sides checked before moving to the next category.
"""

from __future__ import annotations

import re
from enum import Enum


class PunchClass(str, Enum):
    JAB = "Jab"
    CROSS = "Cross"
    LEFT_HOOK = "Left Hook"
    RIGHT_HOOK = "Right Hook"
    LEFT_UPPERCUT = "Left Uppercut"
    RIGHT_UPPERCUT = "Right Uppercut"
    LEFT_BODY = "Left Body"
    RIGHT_BODY = "Right Body"


class PunchCategory(str, Enum):
    STRAIGHT = "straight"
    HOOK = "hook"
    UPPERCUT = "uppercut"
    BODY = "body"


LEFT = "left"
RIGHT = "right"
SIDES = (LEFT, RIGHT)

PUNCH_PRIORITY: list[PunchClass] = [
    PunchClass.JAB,
    PunchClass.CROSS,
    PunchClass.LEFT_HOOK,
    PunchClass.RIGHT_HOOK,
    PunchClass.LEFT_UPPERCUT,
    PunchClass.RIGHT_UPPERCUT,
    PunchClass.LEFT_BODY,
    PunchClass.RIGHT_BODY,
]

PUNCH_CATEGORY: dict[PunchClass, PunchCategory] = {
    PunchClass.JAB: PunchCategory.STRAIGHT,
    PunchClass.CROSS: PunchCategory.STRAIGHT,
    PunchClass.LEFT_HOOK: PunchCategory.HOOK,
    PunchClass.RIGHT_HOOK: PunchCategory.HOOK,
    PunchClass.LEFT_UPPERCUT: PunchCategory.UPPERCUT,
    PunchClass.RIGHT_UPPERCUT: PunchCategory.UPPERCUT,
    PunchClass.LEFT_BODY: PunchCategory.BODY,
    PunchClass.RIGHT_BODY: PunchCategory.BODY,
}

# Jab is thrown with the lead (left) hand, cross with the rear (right) hand.
PUNCH_SIDE: dict[PunchClass, str] = {
    PunchClass.JAB: LEFT,
    PunchClass.CROSS: RIGHT,
    PunchClass.LEFT_HOOK: LEFT,
    PunchClass.RIGHT_HOOK: RIGHT,
    PunchClass.LEFT_UPPERCUT: LEFT,
    PunchClass.RIGHT_UPPERCUT: RIGHT,
    PunchClass.LEFT_BODY: LEFT,
    PunchClass.RIGHT_BODY: RIGHT,
}

# --- Keypoint layout (11-point upper-body subset) ---
KEYPOINT_NAMES = [
    "nose",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
]
NUM_KEYPOINTS = len(KEYPOINT_NAMES)

KP_NOSE = 0
KP_LEFT_EAR = 1
KP_RIGHT_EAR = 2
KP_LEFT_SHOULDER = 3
KP_RIGHT_SHOULDER = 4
KP_LEFT_ELBOW = 5
KP_RIGHT_ELBOW = 6
KP_LEFT_WRIST = 7
KP_RIGHT_WRIST = 8
KP_LEFT_HIP = 9
KP_RIGHT_HIP = 10

# MediaPipe Pose (33 landmarks) indices for the subset above
MEDIAPIPE_INDICES = [0, 7, 8, 11, 12, 13, 14, 15, 16, 23, 24]

# Landmarks needed before any punch can be classified
REQUIRED_KEYPOINTS = [
    "nose",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
]

# Per-side landmark names: (shoulder, elbow, wrist, hip)
ARM_KEYPOINTS: dict[str, tuple[str, str, str, str]] = {
    LEFT: ("left_shoulder", "left_elbow", "left_wrist", "left_hip"),
    RIGHT: ("right_shoulder", "right_elbow", "right_wrist", "right_hip"),
}

# --- Shared defaults ---
DEFAULT_FRAME_SIZE = (640, 480)
DEFAULT_SPEED_HISTORY = 5
DEFAULT_CONFIG_NAME = "boxing.yaml"

_ALIASES = {
    "lhook": PunchClass.LEFT_HOOK,
    "rhook": PunchClass.RIGHT_HOOK,
    "lupper": PunchClass.LEFT_UPPERCUT,
    "rupper": PunchClass.RIGHT_UPPERCUT,
    "luppercut": PunchClass.LEFT_UPPERCUT,
    "ruppercut": PunchClass.RIGHT_UPPERCUT,
    "lbody": PunchClass.LEFT_BODY,
    "rbody": PunchClass.RIGHT_BODY,
    "leftbodyshot": PunchClass.LEFT_BODY,
    "rightbodyshot": PunchClass.RIGHT_BODY,
}
_LOOKUP = {re.sub(r"[\s_\-]", "", p.value.lower()): p for p in PunchClass}
_LOOKUP.update(_ALIASES)


def parse_punch(name: str | PunchClass) -> PunchClass:
    """Resolve a punch name in any common spelling.

    Accepts ``"Left Hook"``, ``"left_hook"``, ``"LEFT_HOOK"``, ``"lhook"``.

    Raises:
        ValueError: If the name matches no punch class.
    """
    if isinstance(name, PunchClass):
        return name
    key = re.sub(r"[\s_\-]", "", str(name).lower())
    try:
        return _LOOKUP[key]
    except KeyError:
        raise ValueError(f"Unknown punch: {name!r}") from None


def category_of(punch: PunchClass) -> PunchCategory:
    return PUNCH_CATEGORY[punch]
