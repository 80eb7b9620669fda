"""Tests for loading the combined trainer configuration."""

from __future__ import annotations

import pytest
import yaml

from src.exceptions import ConfigError
from src.trainer.config import DEFAULT_CONFIG_PATH, TrainerConfig


def _load_default() -> dict:
    with open(DEFAULT_CONFIG_PATH) as f:
        return yaml.safe_load(f)


class TestTrainerConfig:
    def test_default_file(self):
        config = TrainerConfig.from_yaml()
        assert config.classifier.preset == "arcade"
        assert config.classifier.frame_size == (640, 480)
        assert config.technique.hold_time == pytest.approx(0.8)
        assert len(config.combos) == 6

    def test_preset_override(self):
        assert TrainerConfig.from_yaml(preset="strict").classifier.preset == "strict"

    def test_unknown_preset(self):
        with pytest.raises(ConfigError, match="turbo"):
            TrainerConfig.from_yaml(preset="turbo")

    @pytest.mark.parametrize("section", ["classifier", "scoring"])
    def test_required_sections(self, section):
        data = _load_default()
        del data[section]
        with pytest.raises(ConfigError, match="section is required"):
            TrainerConfig.from_dict(data)

    def test_optional_sections_default(self):
        data = _load_default()
        for section in ("stance", "scheduler", "technique"):
            del data[section]
        config = TrainerConfig.from_dict(data)
        assert config.scheduler.base_reaction_time == 2.5
        assert config.stance.max_head_offset == 0.08

    def test_invalid_value_names_key(self):
        data = _load_default()
        data["scheduler"]["hits_per_level"] = 0
        with pytest.raises(ConfigError) as exc_info:
            TrainerConfig.from_dict(data)
        assert exc_info.value.key == "scheduler.hits_per_level"

    def test_file_must_be_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            TrainerConfig.from_yaml(path)

    def test_missing_combos(self):
        data = _load_default()
        del data["combos"]
        with pytest.raises(ConfigError, match="combos"):
            TrainerConfig.from_dict(data)
