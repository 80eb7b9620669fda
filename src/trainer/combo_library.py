"""Combo sequence library parsed from the ``combos`` section of the config.

Each combo is a short ordered punch sequence used by sequence mode.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.exceptions import ConfigError
from src.state.constants import PunchClass, parse_punch

MIN_COMBO_LENGTH = 2
MAX_COMBO_LENGTH = 3


@dataclass(frozen=True)
class ComboDefinition:
    """A named punch sequence from the combo library."""

    id: str  # boxing number notation, e.g. "1-2-3"
    name: str
    sequence: tuple[PunchClass, ...]
    difficulty: int = 1

    def __post_init__(self) -> None:
        if not MIN_COMBO_LENGTH <= len(self.sequence) <= MAX_COMBO_LENGTH:
            raise ConfigError(
                f"combos.{self.id}",
                f"sequence must have {MIN_COMBO_LENGTH}-{MAX_COMBO_LENGTH} punches, got {len(self.sequence)}",
            )
        if self.difficulty < 1:
            raise ConfigError(f"combos.{self.id}", f"difficulty must be >= 1, got {self.difficulty}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sequence": [p.value for p in self.sequence],
            "difficulty": self.difficulty,
        }



def parse_combos(entries: list[dict]) -> list[ComboDefinition]:
    """Build combo definitions from the ``combos`` section of the config."""
    if not entries:
        raise ConfigError("combos", "at least one combo is required")

    combos = []
    for entry in entries:
        combo_id = str(entry.get("id", entry.get("name", "?")))
        try:
            sequence = tuple(parse_punch(p) for p in entry["sequence"])
        except KeyError:
            raise ConfigError(f"combos.{combo_id}", "missing 'sequence'") from None
        except ValueError as exc:
            raise ConfigError(f"combos.{combo_id}", str(exc)) from None
        combos.append(ComboDefinition(
            id=combo_id,
            name=entry.get("name", combo_id),
            sequence=sequence,
            difficulty=int(entry.get("difficulty", 1)),
        ))
    combos.sort(key=lambda c: c.difficulty)
    return combos

