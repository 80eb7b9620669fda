"""In-memory registry of live training sessions.

Sessions are not persisted; a restart drops them. Configs are parsed once
per preset and shared read-only between sessions.
"""

from __future__ import annotations

import logging
import random

from server.config import Settings, settings
from src.exceptions import SessionNotFoundError, SessionStateError
from src.trainer.config import TrainerConfig
from src.trainer.drill_engine import DrillMode
from src.trainer.session import TrainingSession
from src.trainer.timers import AsyncioTimers

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._configs: dict[str | None, TrainerConfig] = {}
        self._sessions: dict[str, TrainingSession] = {}
        self._modes: dict[str, DrillMode] = {}

    def config(self, preset: str | None = None) -> TrainerConfig:
        preset = preset or self.settings.preset
        if preset not in self._configs:
            self._configs[preset] = TrainerConfig.from_yaml(self.settings.config_path, preset)
        return self._configs[preset]

    def create(self, mode: str = "random", preset: str | None = None, seed: int | None = None) -> TrainingSession:
        """Create a session bound to the running event loop. Raises ConfigError for a bad preset."""
        if len(self._sessions) >= self.settings.max_sessions:
            raise SessionStateError(f"session limit reached ({self.settings.max_sessions})")

        config = self.config(preset)
        seed = seed if seed is not None else self.settings.seed
        session = TrainingSession(config, AsyncioTimers(), rng=random.Random(seed))
        self._sessions[session.id] = session
        self._modes[session.id] = DrillMode(mode)
        logger.info("Created session %s", session.id, extra={"preset": config.classifier.preset})
        return session

    def get(self, session_id: str) -> TrainingSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"session {session_id!r} not found") from None

    def mode(self, session_id: str) -> DrillMode:
        return self._modes[session_id]

    def set_mode(self, session_id: str, mode: str) -> None:
        self._modes[session_id] = DrillMode(mode)

    def remove(self, session_id: str) -> None:
        session = self.get(session_id)
        if session.running:
            session.stop()
        del self._sessions[session_id]
        del self._modes[session_id]

    def stop_all(self) -> None:
        for session in list(self._sessions.values()):
            if session.running:
                session.stop()

    def clear(self) -> None:
        self.stop_all()
        self._sessions.clear()
        self._modes.clear()
        self._configs.clear()

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry(settings)
