"""Events emitted by the drill engine for the presentation layer.

Events are plain data. Subscribers decide how (and whether) to render them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from typing import Any

from src.state.constants import PunchClass
from src.state.types import ScoreResult, SessionSummary
from src.trainer.combo_library import ComboDefinition


@dataclass(frozen=True)
class DrillEvent:
    timestamp: float

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        data = {"type": self.kind}
        for f in fields(self):
            data[f.name] = _jsonable(getattr(self, f.name))
        return data


@dataclass(frozen=True)
class TargetAnnounced(DrillEvent):
    punch: PunchClass
    level: int
    reaction_budget: float | None = None  # None in sequence mode
    step_index: int | None = None


@dataclass(frozen=True)
class PunchHit(DrillEvent):
    punch: PunchClass
    score: ScoreResult
    points: int
    bonus: int
    reaction_time: float
    combo_count: int
    combo_multiplier: float


@dataclass(frozen=True)
class PunchMissed(DrillEvent):
    punch: PunchClass
    level: int


@dataclass(frozen=True)
class ComboBroken(DrillEvent):
    combo_count: int
    reason: str  # "miss" | "idle"


@dataclass(frozen=True)
class LevelUp(DrillEvent):
    level: int
    reaction_time: float
    unlocked_count: int


@dataclass(frozen=True)
class PunchesUnlocked(DrillEvent):
    level: int
    punches: tuple[PunchClass, ...]


@dataclass(frozen=True)
class SequenceStarted(DrillEvent):
    combo: ComboDefinition


@dataclass(frozen=True)
class SequenceStepCompleted(DrillEvent):
    combo_id: str
    step_index: int
    punch: PunchClass


@dataclass(frozen=True)
class SequenceCompleted(DrillEvent):
    combo: ComboDefinition
    bonus: int


@dataclass(frozen=True)
class RoundOver(DrillEvent):
    duration: float


@dataclass(frozen=True)
class DrillStopped(DrillEvent):
    summary: SessionSummary


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
