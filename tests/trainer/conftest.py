"""Shared fixtures for scoring and drill engine tests."""

from __future__ import annotations

import random

import pytest

from src.state.constants import PunchClass
from src.state.types import ClassificationResult
from src.trainer.config import TrainerConfig
from src.trainer.drill_engine import DrillEngine, SchedulerConfig
from src.trainer.scoring import ScoringEngine
from src.trainer.timers import VirtualClock


class FirstChoice(random.Random):
    """Deterministic rng: always picks the first candidate."""

    def choice(self, seq):
        return seq[0]


def punch(p: PunchClass, speed: float = 75.0, angle: float = 165.0, t: float = 0.0) -> ClassificationResult:
    """A classified punch. Defaults score a jab at speed 60, form 100, total 76."""
    return ClassificationResult(punch=p, confidence=100.0, raw_speed=speed, raw_angle=angle, timestamp=t)


def make_engine(config: TrainerConfig, clock: VirtualClock, scheduler: SchedulerConfig | None = None,
                combos=None, rng: random.Random | None = None) -> tuple[DrillEngine, list]:
    """Engine wired to a clock, plus the list its events are appended to."""
    rng = rng or FirstChoice()
    engine = DrillEngine(
        scheduler or config.scheduler,
        ScoringEngine(config.scoring, rng),
        clock,
        config.combos if combos is None else combos,
        rng,
    )
    events: list = []
    engine.subscribe(events.append)
    return engine, events


def of_type(events: list, cls) -> list:
    return [e for e in events if isinstance(e, cls)]


@pytest.fixture(scope="session")
def trainer_config() -> TrainerConfig:
    return TrainerConfig.from_yaml()


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def scoring(trainer_config) -> ScoringEngine:
    return ScoringEngine(trainer_config.scoring, random.Random(0))
