"""Shared fixtures for integration tests: synthetic keypoint recordings."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.trainer.config import TrainerConfig
from src.trainer.session import TrainingSession
from src.trainer.timers import VirtualClock

from tests.trainer.conftest import FirstChoice
from tests.vision.conftest import GUARD_POSE

FPS = 30

JAB_ARM = {"left_elbow": (0.30, 0.40), "left_wrist": (0.20, 0.41)}
CROSS_ARM = {"right_elbow": (0.70, 0.40), "right_wrist": (0.80, 0.41)}


def pose(*arms: dict) -> dict:
    """Guard landmarks as JSON-ready lists, with the given arm positions applied."""
    landmarks = dict(GUARD_POSE)
    for arm in arms:
        landmarks.update(arm)
    return {name: list(xy) for name, xy in landmarks.items()}


def write_recording(path: Path, records: list[dict]) -> Path:
    with open(path, "w") as f:
        for record in records:
            f.write(json.dumps(record) + "\n")
    return path


def timeline(n_frames: int, keyframes: dict[int, tuple[dict, ...]]) -> list[dict]:
    """``n_frames`` records at 30 fps. From each keyframe on, its arms are held."""
    records = []
    arms: tuple[dict, ...] = ()
    for i in range(n_frames):
        arms = keyframes.get(i, arms)
        records.append({"timestamp": i / FPS, "landmarks": pose(*arms)})
    return records


@pytest.fixture
def jab_recording(tmp_path) -> Path:
    """Guard for 1 s, a snapped jab held briefly, then back to guard."""
    records = timeline(60, {30: (JAB_ARM,), 39: ()})
    return write_recording(tmp_path / "jab.jsonl", records)


@pytest.fixture
def one_two_recording(tmp_path) -> Path:
    """Jab at 1.6 s, cross at 1.7 s with the jab still extended."""
    records = timeline(60, {48: (JAB_ARM,), 51: (JAB_ARM, CROSS_ARM)})
    return write_recording(tmp_path / "one_two.jsonl", records)


@pytest.fixture
def make_session():
    def factory(preset: str = "arcade") -> tuple[TrainingSession, VirtualClock]:
        clock = VirtualClock()
        config = TrainerConfig.from_yaml(preset=preset)
        return TrainingSession(config, clock, rng=FirstChoice(), session_id="replay"), clock

    return factory
