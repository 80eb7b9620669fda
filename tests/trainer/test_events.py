"""Tests for drill event serialisation."""

from __future__ import annotations

import json

from src.state.constants import PunchClass
from src.trainer.combo_library import ComboDefinition
from src.trainer.events import (
    ComboBroken,
    DrillStopped,
    PunchesUnlocked,
    PunchHit,
    RoundOver,
    SequenceStarted,
    TargetAnnounced,
)
from src.trainer.session_report import build_summary


class TestDrillEvents:
    def test_kind_is_class_name(self):
        assert ComboBroken(1.0, 4, "idle").kind == "ComboBroken"

    def test_round_over_to_dict(self):
        assert RoundOver(180.0, 180.0).to_dict() == {"type": "RoundOver", "timestamp": 180.0, "duration": 180.0}

    def test_target_to_dict(self):
        event = TargetAnnounced(0.8, PunchClass.JAB, 1, reaction_budget=2.5)
        assert event.to_dict() == {
            "type": "TargetAnnounced",
            "timestamp": 0.8,
            "punch": "Jab",
            "level": 1,
            "reaction_budget": 2.5,
            "step_index": None,
        }

    def test_nested_values_are_json_safe(self, scoring):
        hit = PunchHit(
            timestamp=1.0,
            punch=PunchClass.CROSS,
            score=scoring.score(PunchClass.CROSS, 150.0, 165.0),
            points=150,
            bonus=0,
            reaction_time=0.2,
            combo_count=1,
            combo_multiplier=1.0,
        )
        data = json.loads(json.dumps(hit.to_dict()))
        assert data["score"]["punch"] == "Cross"
        assert data["score"]["grade"] == "S"

    def test_tuples_become_lists(self):
        event = PunchesUnlocked(5.0, 3, (PunchClass.LEFT_HOOK, PunchClass.RIGHT_HOOK))
        assert event.to_dict()["punches"] == ["Left Hook", "Right Hook"]

    def test_combo_and_summary(self):
        combo = ComboDefinition("1-2", "One Two", (PunchClass.JAB, PunchClass.CROSS))
        assert SequenceStarted(0.0, combo).to_dict()["combo"]["sequence"] == ["Jab", "Cross"]

        summary = build_summary("random", 1, 1, 1, 1, 100, 0, 60.0, 100.0)
        data = json.loads(json.dumps(DrillStopped(9.0, summary).to_dict()))
        assert data["summary"]["accuracy"] == 50.0
        assert data["summary"]["analysis"]["performance"] == "Developing"
