"""Top-level trainer configuration, loaded from one YAML file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from src.exceptions import ConfigError
from src.state.constants import DEFAULT_CONFIG_NAME
from src.trainer.combo_library import ComboDefinition, parse_combos
from src.trainer.drill_engine import SchedulerConfig
from src.trainer.scoring import ScoringConfig
from src.vision.punch_classifier import ClassifierConfig
from src.vision.stance import StanceConfig
from src.vision.technique import TechniqueConfig

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "configs" / DEFAULT_CONFIG_NAME


@dataclass(frozen=True)
class TrainerConfig:
    classifier: ClassifierConfig
    stance: StanceConfig
    scoring: ScoringConfig
    scheduler: SchedulerConfig
    combos: list[ComboDefinition]
    technique: TechniqueConfig

    @classmethod
    def from_dict(cls, data: dict, preset: str | None = None) -> TrainerConfig:
        """Build every section; the first invalid value raises ConfigError."""
        if "classifier" not in data:
            raise ConfigError("classifier", "section is required")
        if "scoring" not in data:
            raise ConfigError("scoring", "section is required")
        return cls(
            classifier=ClassifierConfig.from_dict(data["classifier"], preset),
            stance=StanceConfig.from_dict(data.get("stance")),
            scoring=ScoringConfig.from_dict(data["scoring"]),
            scheduler=SchedulerConfig.from_dict(data.get("scheduler")),
            combos=parse_combos(data.get("combos", [])),
            technique=TechniqueConfig.from_dict(data.get("technique")),
        )

    @classmethod
    def from_yaml(cls, path: str | Path | None = None, preset: str | None = None) -> TrainerConfig:
        with open(path or DEFAULT_CONFIG_PATH) as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigError(str(path or DEFAULT_CONFIG_PATH), "config file must contain a mapping")
        return cls.from_dict(data, preset)
