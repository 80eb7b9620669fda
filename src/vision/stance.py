"""Upper-body stance checks, independent of any punch."""

from __future__ import annotations

from dataclasses import dataclass

from src.exceptions import ConfigError
from src.state.types import KeypointFrame, StanceAssessment

TIP_SHOULDERS_LEVEL = "Level your shoulders"
TIP_TOO_SQUARE = "Turn your lead shoulder forward, you're standing too square"
TIP_HEAD_CENTERED = "Keep your head centered over your shoulders"


@dataclass(frozen=True)
class StanceConfig:
    max_shoulder_tilt: float = 0.05  # fraction of frame height
    min_shoulder_width: float = 0.10  # fraction of frame width
    max_head_offset: float = 0.08  # fraction of frame width

    def __post_init__(self) -> None:
        for key in ("max_shoulder_tilt", "min_shoulder_width", "max_head_offset"):
            value = getattr(self, key)
            if not 0.0 < value < 1.0:
                raise ConfigError(f"stance.{key}", f"must be within (0, 1), got {value}")

    @classmethod
    def from_dict(cls, data: dict | None) -> StanceConfig:
        data = data or {}
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError("stance", f"unknown options {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})


def analyze_stance(frame: KeypointFrame, config: StanceConfig | None = None) -> StanceAssessment:
    """Check shoulder level, torso angle and head position, in that order."""
    cfg = config or StanceConfig()
    if not frame.has("nose", "left_shoulder", "right_shoulder"):
        return StanceAssessment(is_good=False, tips=[])

    nose = frame.point("nose")
    ls = frame.point("left_shoulder")
    rs = frame.point("right_shoulder")

    tips: list[str] = []
    if abs(ls[1] - rs[1]) > cfg.max_shoulder_tilt:
        tips.append(TIP_SHOULDERS_LEVEL)
    if abs(ls[0] - rs[0]) < cfg.min_shoulder_width:
        tips.append(TIP_TOO_SQUARE)
    mid_x = (ls[0] + rs[0]) / 2.0
    if abs(nose[0] - mid_x) > cfg.max_head_offset:
        tips.append(TIP_HEAD_CENTERED)

    return StanceAssessment(is_good=not tips, tips=tips)
