"""Exception hierarchy for the mitt trainer.

Configuration problems surface once, at load time. Per-frame processing
never raises for bad landmark data; it degrades to an empty classification.
"""

from __future__ import annotations


class MittError(Exception):
    """Base class for all trainer errors."""


class ConfigError(MittError, ValueError):
    """A configuration value is missing or outside its sane bounds."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class SessionStateError(MittError, RuntimeError):
    """An operation is not valid in the session's current state."""


class SessionNotFoundError(MittError, LookupError):
    """No live session has the requested id."""
