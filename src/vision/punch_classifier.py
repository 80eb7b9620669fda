"""Rule-based punch classification from per-arm kinematics.

Rules are an ordered list of (punch, thresholds) pairs evaluated in
``PUNCH_PRIORITY`` order. The first rule whose thresholds all hold and whose
cooldown gate is open wins; nothing after it is evaluated for that frame.
A fast straight-armed motion is therefore never reported as a hook.

Two presets ship in ``configs/boxing.yaml``:

- ``arcade``: low thresholds, cooldown keyed by hand
- ``strict``: form-aware thresholds, cooldown keyed by punch class

Threshold options and their effect:

- ``min_speed``: lower -> easier detection
- ``min_angle`` / ``max_angle``: elbow angle band (degrees)
- ``min_extension`` / ``max_extension``: horizontal wrist reach as a
  fraction of shoulder width; lower minimum -> earlier registration
- ``min_shoulder_offset`` / ``max_shoulder_offset``: wrist height relative
  to the shoulder (normalized, positive = below)
- ``min_hip_offset`` / ``max_hip_offset``: wrist height relative to the hip
- ``cooldown``: lower -> faster repeats of the same punch (or hand)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from src.exceptions import ConfigError
from src.state.constants import (
    DEFAULT_FRAME_SIZE,
    DEFAULT_SPEED_HISTORY,
    PUNCH_PRIORITY,
    PUNCH_SIDE,
    PunchClass,
    parse_punch,
)
from src.state.types import ClassificationResult, Kinematics, KeypointFrame, LimbKinematics

logger = logging.getLogger(__name__)

COOLDOWN_KEYS = ("class", "hand")

_BANDS = [
    ("min_angle", "max_angle", "elbow_angle"),
    ("min_extension", "max_extension", "extension_ratio"),
    ("min_shoulder_offset", "max_shoulder_offset", "shoulder_offset"),
    ("min_hip_offset", "max_hip_offset", "hip_offset"),
]


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PunchThresholds:
    """Predicate set for one punch class. ``None`` bounds are open."""

    min_speed: float = 0.0
    min_angle: float | None = None
    max_angle: float | None = None
    min_extension: float | None = None
    max_extension: float | None = None
    min_shoulder_offset: float | None = None
    max_shoulder_offset: float | None = None
    min_hip_offset: float | None = None
    max_hip_offset: float | None = None
    confidence: float = 100.0
    form_tip: str | None = None

    def __post_init__(self) -> None:
        if self.min_speed < 0:
            raise ConfigError("min_speed", f"must be >= 0, got {self.min_speed}")
        for key in ("min_angle", "max_angle"):
            value = getattr(self, key)
            if value is not None and not 0.0 <= value <= 180.0:
                raise ConfigError(key, f"must be within [0, 180], got {value}")
        for lo_key, hi_key, _ in _BANDS:
            lo, hi = getattr(self, lo_key), getattr(self, hi_key)
            if lo is not None and hi is not None and lo > hi:
                raise ConfigError(lo_key, f"{lo} exceeds {hi_key} {hi}")
        if not 0.0 <= self.confidence <= 100.0:
            raise ConfigError("confidence", f"must be within [0, 100], got {self.confidence}")

    def matches(self, limb: LimbKinematics) -> bool:
        if not limb.speed > self.min_speed:
            return False
        for lo_key, hi_key, attr in _BANDS:
            value = getattr(limb, attr)
            lo, hi = getattr(self, lo_key), getattr(self, hi_key)
            if lo is not None and value < lo:
                return False
            if hi is not None and value > hi:
                return False
        return True

    @classmethod
    def from_dict(cls, data: dict) -> PunchThresholds:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(", ".join(sorted(unknown)), "unknown threshold option")
        return cls(**data)


@dataclass(frozen=True)
class ClassifierConfig:
    """Threshold table and debounce settings for one preset."""

    preset: str
    thresholds: dict[PunchClass, PunchThresholds]
    cooldown: float = 0.25
    cooldown_key: str = "class"
    frame_size: tuple[int, int] = DEFAULT_FRAME_SIZE
    speed_history: int = DEFAULT_SPEED_HISTORY

    def __post_init__(self) -> None:
        if self.cooldown < 0:
            raise ConfigError("cooldown", f"must be >= 0, got {self.cooldown}")
        if self.cooldown_key not in COOLDOWN_KEYS:
            raise ConfigError("cooldown_key", f"must be one of {COOLDOWN_KEYS}, got {self.cooldown_key!r}")
        if len(self.frame_size) != 2 or min(self.frame_size) <= 0:
            raise ConfigError("frame_size", f"must be two positive ints, got {self.frame_size}")
        if self.speed_history < 1:
            raise ConfigError("speed_history", f"must be >= 1, got {self.speed_history}")
        if not self.thresholds:
            raise ConfigError("punches", "at least one punch rule is required")

    @classmethod
    def from_dict(cls, data: dict, preset: str | None = None) -> ClassifierConfig:
        """Build from the ``classifier`` section of the YAML config."""
        presets = data.get("presets") or {}
        name = preset or data.get("default_preset")
        if name not in presets:
            raise ConfigError("classifier.preset", f"unknown preset {name!r}; available: {sorted(presets)}")
        section = presets[name]

        thresholds: dict[PunchClass, PunchThresholds] = {}
        for punch_name, values in (section.get("punches") or {}).items():
            try:
                punch = parse_punch(punch_name)
            except ValueError as exc:
                raise ConfigError(f"classifier.presets.{name}.punches", str(exc)) from None
            try:
                thresholds[punch] = PunchThresholds.from_dict(values or {})
            except ConfigError as exc:
                raise ConfigError(
                    f"classifier.presets.{name}.punches.{punch_name}.{exc.key}",
                    str(exc).split(": ", 1)[-1],
                ) from None

        return cls(
            preset=name,
            thresholds=thresholds,
            cooldown=float(section.get("cooldown", 0.25)),
            cooldown_key=section.get("cooldown_key", "class"),
            frame_size=tuple(data.get("frame_size", DEFAULT_FRAME_SIZE)),
            speed_history=int(data.get("speed_history", DEFAULT_SPEED_HISTORY)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path, preset: str | None = None) -> ClassifierConfig:
        with open(path) as f:
            cfg = yaml.safe_load(f)
        return cls.from_dict(cfg["classifier"], preset)


# ---------------------------------------------------------------------------
# Rules and cooldown
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PunchRule:
    punch: PunchClass
    side: str
    thresholds: PunchThresholds

    def matches(self, kinematics: Kinematics) -> bool:
        return self.thresholds.matches(kinematics.side(self.side))


def build_rules(config: ClassifierConfig) -> list[PunchRule]:
    """Ordered rule list; punches without thresholds are never detected."""
    return [
        PunchRule(punch=p, side=PUNCH_SIDE[p], thresholds=config.thresholds[p])
        for p in PUNCH_PRIORITY
        if p in config.thresholds
    ]


@dataclass
class PunchCooldown:
    """Debounce gate.

    A punch may fire if it differs from the previously fired one (or, keyed
    by hand, is thrown with the other hand), or if more than ``cooldown``
    seconds passed since the last fire.
    """

    cooldown: float
    key: str = "class"
    _last_fire: dict[str, float] = field(default_factory=dict)
    _last_key: str | None = None

    def _key_of(self, punch: PunchClass) -> str:
        return PUNCH_SIDE[punch] if self.key == "hand" else punch.value

    def is_open(self, punch: PunchClass, timestamp: float) -> bool:
        key = self._key_of(punch)
        if key != self._last_key:
            return True
        return timestamp - self._last_fire.get(key, float("-inf")) > self.cooldown

    def record(self, punch: PunchClass, timestamp: float) -> None:
        key = self._key_of(punch)
        self._last_fire[key] = timestamp
        self._last_key = key

    def reset(self) -> None:
        self._last_fire.clear()
        self._last_key = None


# ---------------------------------------------------------------------------
# PunchClassifier
# ---------------------------------------------------------------------------

class PunchClassifier:
    """Classify one frame's kinematics into at most one punch.

    Usage::

        classifier = PunchClassifier(config)
        result = classifier.classify(frame, kinematics)
    """

    def __init__(self, config: ClassifierConfig):
        self.config = config
        self.rules = build_rules(config)
        self.cooldown = PunchCooldown(cooldown=config.cooldown, key=config.cooldown_key)

    def classify(self, frame: KeypointFrame, kinematics: Kinematics | None) -> ClassificationResult:
        if kinematics is None:
            return ClassificationResult.none(frame.timestamp)

        for rule in self.rules:
            if not rule.matches(kinematics):
                continue
            if not self.cooldown.is_open(rule.punch, frame.timestamp):
                logger.debug("Cooldown blocked %s at %.3f", rule.punch.value, frame.timestamp)
                continue

            self.cooldown.record(rule.punch, frame.timestamp)
            limb = kinematics.side(rule.side)
            return ClassificationResult(
                punch=rule.punch,
                confidence=rule.thresholds.confidence,
                raw_speed=limb.speed,
                raw_angle=limb.elbow_angle,
                form_tip=rule.thresholds.form_tip,
                timestamp=frame.timestamp,
            )

        return ClassificationResult.none(frame.timestamp)

    def reset(self) -> None:
        self.cooldown.reset()
