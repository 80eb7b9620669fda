"""Drill engine: state machine for target announcement, hit tracking and levelling.

Random mode picks a target from the unlocked punches, waits for it within a
level-dependent reaction window and scores the hit. Sequence mode walks a
combo from the library one punch at a time with no timeout.

Every scheduled callback is registered with the engine and cancelled on
stop; callbacks also check a generation counter so a stale callback that
already left the timer queue cannot touch a newer drill.
"""

from __future__ import annotations

import logging
import math
import random
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable

from src.exceptions import ConfigError, SessionStateError
from src.state.constants import PunchCategory, PunchClass, category_of, parse_punch
from src.state.types import ClassificationResult, ScoreResult, SessionSummary
from src.trainer.combo_library import ComboDefinition
from src.trainer.events import (
    ComboBroken,
    DrillEvent,
    DrillStopped,
    LevelUp,
    PunchesUnlocked,
    PunchHit,
    PunchMissed,
    RoundOver,
    SequenceCompleted,
    SequenceStarted,
    SequenceStepCompleted,
    TargetAnnounced,
)
from src.trainer.scoring import ScoringEngine
from src.trainer.session_report import build_summary
from src.trainer.timers import TimerHandle, Timers

logger = logging.getLogger(__name__)


class DrillPhase(Enum):
    IDLE = auto()
    ANNOUNCING = auto()
    AWAITING_INPUT = auto()
    HIT = auto()
    MISS = auto()


class DrillMode(str, Enum):
    RANDOM = "random"
    SEQUENCE = "sequence"


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SchedulerConfig:
    base_reaction_time: float = 2.5
    min_reaction_time: float = 0.8
    reaction_step: float = 0.15
    base_announce_delay: float = 0.8
    min_announce_delay: float = 0.25
    announce_step: float = 0.04
    hits_per_level: int = 10
    combo_reset_window: float = 3.0
    base_points: int = 100
    category_points: dict[PunchCategory, int] = field(default_factory=dict)
    unlocks: dict[int, tuple[PunchClass, ...]] = field(
        default_factory=lambda: {1: (PunchClass.JAB, PunchClass.CROSS)}
    )
    sequence_announce_delay: float = 1.5
    sequence_pause: float = 1.0
    sequence_points_per_step: int = 100
    round_duration: float | None = None

    def __post_init__(self) -> None:
        if self.round_duration is not None and self.round_duration <= 0:
            raise ConfigError("scheduler.round_duration", f"must be > 0, got {self.round_duration}")
        if self.min_reaction_time <= 0:
            raise ConfigError("scheduler.min_reaction_time", f"must be > 0, got {self.min_reaction_time}")
        if self.base_reaction_time < self.min_reaction_time:
            raise ConfigError(
                "scheduler.base_reaction_time",
                f"must be >= min_reaction_time ({self.min_reaction_time}), got {self.base_reaction_time}",
            )
        if self.min_announce_delay < 0:
            raise ConfigError("scheduler.min_announce_delay", f"must be >= 0, got {self.min_announce_delay}")
        if self.base_announce_delay < self.min_announce_delay:
            raise ConfigError(
                "scheduler.base_announce_delay",
                f"must be >= min_announce_delay ({self.min_announce_delay}), got {self.base_announce_delay}",
            )
        for key in ("reaction_step", "announce_step", "sequence_announce_delay", "sequence_pause"):
            if getattr(self, key) < 0:
                raise ConfigError(f"scheduler.{key}", f"must be >= 0, got {getattr(self, key)}")
        if self.hits_per_level < 1:
            raise ConfigError("scheduler.hits_per_level", f"must be >= 1, got {self.hits_per_level}")
        if self.combo_reset_window <= 0:
            raise ConfigError("scheduler.combo_reset_window", f"must be > 0, got {self.combo_reset_window}")
        if not self.unlocks.get(1):
            raise ConfigError("scheduler.unlocks", "level 1 must unlock at least one punch")
        if any(level < 1 for level in self.unlocks):
            raise ConfigError("scheduler.unlocks", "unlock levels must be >= 1")

    @classmethod
    def from_dict(cls, data: dict | None) -> SchedulerConfig:
        data = dict(data or {})
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigError("scheduler", f"unknown options {sorted(unknown)}")

        if "unlocks" in data:
            try:
                data["unlocks"] = {
                    int(level): tuple(parse_punch(p) for p in punches)
                    for level, punches in data["unlocks"].items()
                }
            except ValueError as exc:
                raise ConfigError("scheduler.unlocks", str(exc)) from None
        if "category_points" in data:
            try:
                data["category_points"] = {
                    PunchCategory(name): int(points)
                    for name, points in data["category_points"].items()
                }
            except ValueError as exc:
                raise ConfigError("scheduler.category_points", str(exc)) from None
        return cls(**data)


# ---------------------------------------------------------------------------
# Runtime state
# ---------------------------------------------------------------------------

@dataclass
class DrillState:
    """Mutable per-drill progress. Reset at every start and stop."""

    level: int = 1
    hits_in_level: int = 0
    combo_count: int = 0
    combo_multiplier: float = 1.0
    unlocked: list[PunchClass] = field(default_factory=list)
    active_punch: PunchClass | None = None
    total_hits: int = 0
    total_misses: int = 0
    perfect_hits: int = 0
    consecutive_perfect: int = 0
    max_combo: int = 0
    total_points: int = 0
    last_hit_time: float | None = None
    speed_score_sum: float = 0.0
    form_score_sum: float = 0.0
    completed_sequences: int = 0
    started_at: float = 0.0

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "hits_in_level": self.hits_in_level,
            "combo_count": self.combo_count,
            "combo_multiplier": self.combo_multiplier,
            "unlocked": [p.value for p in self.unlocked],
            "active_punch": self.active_punch.value if self.active_punch else None,
            "total_hits": self.total_hits,
            "total_misses": self.total_misses,
            "perfect_hits": self.perfect_hits,
            "max_combo": self.max_combo,
            "total_points": self.total_points,
            "completed_sequences": self.completed_sequences,
        }


@dataclass
class ComboSequenceState:
    combo: ComboDefinition
    step_index: int = 0

    @property
    def expected(self) -> PunchClass | None:
        if self.is_complete:
            return None
        return self.combo.sequence[self.step_index]

    @property
    def is_complete(self) -> bool:
        return self.step_index >= len(self.combo.sequence)


@dataclass
class Challenge:
    """One announced target. Resolved exactly once, by a hit or a timeout."""

    punch: PunchClass
    issued_at: float
    budget: float | None = None
    resolved: bool = False
    timeout: TimerHandle | None = None


# ---------------------------------------------------------------------------
# DrillEngine
# ---------------------------------------------------------------------------

class DrillEngine:
    """Runs one drill at a time on top of a ``Timers`` implementation.

    Usage::

        clock = VirtualClock()
        engine = DrillEngine(SchedulerConfig(), scoring, clock, combos)
        engine.subscribe(print)
        engine.start(DrillMode.RANDOM)
        clock.advance(1.0)               # target announced
        engine.on_punch(classification)  # scored if it matches
        summary = engine.stop()
    """

    def __init__(
        self,
        config: SchedulerConfig,
        scoring: ScoringEngine,
        timers: Timers,
        combos: list[ComboDefinition] | None = None,
        rng: random.Random | None = None,
        lock: threading.RLock | None = None,
    ):
        self.config = config
        self.scoring = scoring
        self.timers = timers
        self.combos = list(combos or [])
        self.rng = rng or random.Random()
        self._lock = lock or threading.RLock()

        self.phase = DrillPhase.IDLE
        self.mode: DrillMode | None = None
        self.state = DrillState()
        self.sequence: ComboSequenceState | None = None

        self._running = False
        self._generation = 0
        self._challenge: Challenge | None = None
        self._pending: set[TimerHandle] = set()
        self._listeners: list[Callable[[DrillEvent], None]] = []

    @property
    def running(self) -> bool:
        return self._running

    @property
    def expected_punch(self) -> PunchClass | None:
        if self._challenge is None or self._challenge.resolved:
            return None
        return self._challenge.punch

    def subscribe(self, listener: Callable[[DrillEvent], None]) -> None:
        self._listeners.append(listener)

    # --- Difficulty curve ---

    def reaction_time(self, level: int | None = None) -> float:
        level = self.state.level if level is None else level
        cfg = self.config
        return max(cfg.base_reaction_time - (level - 1) * cfg.reaction_step, cfg.min_reaction_time)

    def announce_delay(self, level: int | None = None) -> float:
        level = self.state.level if level is None else level
        cfg = self.config
        return max(cfg.base_announce_delay - (level - 1) * cfg.announce_step, cfg.min_announce_delay)

    def elapsed(self) -> float:
        """Seconds since the running drill started (survival time); 0 when idle."""
        if not self._running:
            return 0.0
        return self.timers.now() - self.state.started_at

    def unlocked_for_level(self, level: int) -> list[PunchClass]:
        punches: list[PunchClass] = []
        for min_level in sorted(self.config.unlocks):
            if level >= min_level:
                punches.extend(p for p in self.config.unlocks[min_level] if p not in punches)
        return punches

    # --- Lifecycle ---

    def start(self, mode: DrillMode | str = DrillMode.RANDOM) -> None:
        mode = DrillMode(mode)
        with self._lock:
            if self._running:
                raise SessionStateError(f"drill already running in {self.mode.value} mode")
            if mode is DrillMode.SEQUENCE and not self.combos:
                raise SessionStateError("sequence mode needs at least one combo")

            self._generation += 1
            self._running = True
            self.mode = mode
            self.state = DrillState(unlocked=self.unlocked_for_level(1), started_at=self.timers.now())
            self.sequence = None
            self._challenge = None
            logger.info("Drill started: mode=%s unlocked=%s", mode.value, [p.value for p in self.state.unlocked])

            if self.config.round_duration is not None:
                self._schedule(self.config.round_duration, self._on_round_over)
            if mode is DrillMode.RANDOM:
                self._next_challenge()
            else:
                self._next_sequence()

    def stop(self) -> SessionSummary:
        """Stop the drill, cancel every pending callback and return the summary."""
        with self._lock:
            was_running = self._running
            self._running = False
            self._generation += 1
            self._cancel_pending()
            self._challenge = None
            self.sequence = None

            state = self.state
            summary = build_summary(
                mode=(self.mode or DrillMode.RANDOM).value,
                total_hits=state.total_hits,
                total_misses=state.total_misses,
                max_combo=state.max_combo,
                level=state.level,
                total_points=state.total_points,
                perfect_hits=state.perfect_hits,
                speed_score_sum=state.speed_score_sum,
                form_score_sum=state.form_score_sum,
                completed_sequences=state.completed_sequences,
            )
            self.state = DrillState()
            self.phase = DrillPhase.IDLE

            if was_running:
                logger.info(
                    "Drill stopped: hits=%d misses=%d points=%d level=%d",
                    summary.total_hits, summary.total_misses, summary.total_points, summary.level_reached,
                )
                self._emit(DrillStopped(self.timers.now(), summary))
            return summary

    # --- Input ---

    def on_punch(self, result: ClassificationResult) -> PunchHit | None:
        """Feed a classification. Returns the hit event if it resolved the target.

        Punches that do not match the active target are ignored; only a
        timeout counts as a miss.
        """
        with self._lock:
            if not self._running or result.punch is None:
                return None
            challenge = self._challenge
            if challenge is None or challenge.resolved or self.phase is not DrillPhase.AWAITING_INPUT:
                return None
            if result.punch is not challenge.punch:
                logger.debug("Ignored %s, waiting for %s", result.punch.value, challenge.punch.value)
                return None

            # A scoring failure must leave the challenge unresolved
            score = self.scoring.score(challenge.punch, result.raw_speed, result.raw_angle)
            challenge.resolved = True
            if challenge.timeout is not None:
                challenge.timeout.cancel()
                self._pending.discard(challenge.timeout)

            hit = self._register_hit(score, challenge)
            if self.mode is DrillMode.RANDOM:
                self._advance_level()
                self._next_challenge()
            else:
                self._advance_sequence()
            return hit

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            data: dict[str, Any] = {
                "running": self._running,
                "mode": self.mode.value if self.mode else None,
                "phase": self.phase.name.lower(),
                "reaction_time": self.reaction_time(),
                "elapsed": self.elapsed(),
                "time_remaining": None,
                **self.state.to_dict(),
                "sequence": None,
            }
            if self._running and self.config.round_duration is not None:
                data["time_remaining"] = max(self.config.round_duration - self.elapsed(), 0.0)
            if self.sequence is not None:
                data["sequence"] = {
                    "combo": self.sequence.combo.to_dict(),
                    "step_index": self.sequence.step_index,
                }
            return data

    def _on_round_over(self) -> None:
        duration = self.config.round_duration
        logger.info("Round over after %.1fs", duration)
        self._emit(RoundOver(self.timers.now(), duration))
        self.stop()

    # --- Random mode ---

    def _next_challenge(self) -> None:
        self._challenge = None
        self.state.active_punch = None
        self._decay_stale_combo()
        self.phase = DrillPhase.ANNOUNCING
        self._schedule(self.announce_delay(), self._present_target)

    def _present_target(self) -> None:
        punch = self.rng.choice(self.state.unlocked)
        budget = self.reaction_time()
        challenge = Challenge(punch=punch, issued_at=self.timers.now(), budget=budget)
        challenge.timeout = self._schedule(budget, lambda: self._on_timeout(challenge))
        self._challenge = challenge
        self.state.active_punch = punch
        self.phase = DrillPhase.AWAITING_INPUT
        self._emit(TargetAnnounced(challenge.issued_at, punch, self.state.level, reaction_budget=budget))

    def _on_timeout(self, challenge: Challenge) -> None:
        if challenge is not self._challenge or challenge.resolved:
            return
        challenge.resolved = True

        state = self.state
        state.total_misses += 1
        state.consecutive_perfect = 0
        state.active_punch = None
        self.phase = DrillPhase.MISS
        now = self.timers.now()
        logger.debug("Missed %s at level %d", challenge.punch.value, state.level)
        self._emit(PunchMissed(now, challenge.punch, state.level))
        if state.combo_count > 0:
            self._break_combo("miss")
        self._next_challenge()

    def _advance_level(self) -> None:
        state = self.state
        state.hits_in_level += 1
        if state.hits_in_level < self.config.hits_per_level:
            return

        state.level += 1
        state.hits_in_level = 0
        newly = [p for p in self.unlocked_for_level(state.level) if p not in state.unlocked]
        state.unlocked.extend(newly)
        now = self.timers.now()
        logger.info("Level up: %d (reaction %.2fs)", state.level, self.reaction_time())
        self._emit(LevelUp(now, state.level, self.reaction_time(), len(state.unlocked)))
        if newly:
            self._emit(PunchesUnlocked(now, state.level, tuple(newly)))

    # --- Sequence mode ---

    def _next_sequence(self) -> None:
        self._challenge = None
        self.state.active_punch = None
        self._decay_stale_combo()
        combo = self.rng.choice(self.combos)
        self.sequence = ComboSequenceState(combo)
        self.phase = DrillPhase.ANNOUNCING
        self._emit(SequenceStarted(self.timers.now(), combo))
        self._schedule(self.config.sequence_announce_delay, self._present_step)

    def _present_step(self) -> None:
        punch = self.sequence.expected
        self._challenge = Challenge(punch=punch, issued_at=self.timers.now())
        self.state.active_punch = punch
        self.phase = DrillPhase.AWAITING_INPUT
        self._emit(TargetAnnounced(
            self._challenge.issued_at, punch, self.state.level, step_index=self.sequence.step_index,
        ))

    def _advance_sequence(self) -> None:
        seq = self.sequence
        now = self.timers.now()
        self._emit(SequenceStepCompleted(now, seq.combo.id, seq.step_index, seq.expected))
        seq.step_index += 1
        if not seq.is_complete:
            self._present_step()
            return

        bonus = self.config.sequence_points_per_step * len(seq.combo.sequence)
        self.state.total_points += bonus
        self.state.completed_sequences += 1
        self.state.active_punch = None
        self._challenge = None
        self.phase = DrillPhase.HIT
        logger.info("Combo %s complete (+%d)", seq.combo.id, bonus)
        self._emit(SequenceCompleted(now, seq.combo, bonus))
        self._schedule(self.config.sequence_pause, self._next_sequence)

    # --- Shared accounting ---

    def _register_hit(self, score: ScoreResult, challenge: Challenge) -> PunchHit:
        state = self.state
        now = self.timers.now()
        self._decay_stale_combo()

        state.combo_count += 1
        state.max_combo = max(state.max_combo, state.combo_count)
        state.combo_multiplier = self.scoring.combo_multiplier(state.combo_count)
        state.last_hit_time = now

        if score.is_perfect:
            state.perfect_hits += 1
            state.consecutive_perfect += 1
        else:
            state.consecutive_perfect = 0

        points = self.config.base_points + self.scoring.tier_bonus(score)
        points += self.config.category_points.get(category_of(challenge.punch), 0)
        points = math.floor(points * state.combo_multiplier)

        reaction = now - challenge.issued_at
        remaining = challenge.budget - reaction if challenge.budget is not None else None
        bonus = self.scoring.bonus_points(
            score,
            combo_count=state.combo_count,
            time_remaining=remaining,
            consecutive_perfect=state.consecutive_perfect,
            include_tier=False,
        )

        state.total_points += points + bonus
        state.total_hits += 1
        state.speed_score_sum += score.speed_score
        state.form_score_sum += score.form_score
        state.active_punch = None
        self.phase = DrillPhase.HIT

        hit = PunchHit(
            timestamp=now,
            punch=challenge.punch,
            score=score,
            points=points,
            bonus=bonus,
            reaction_time=reaction,
            combo_count=state.combo_count,
            combo_multiplier=state.combo_multiplier,
        )
        logger.debug(
            "Hit %s: total=%d points=%d bonus=%d combo=%d",
            challenge.punch.value, score.total_score, points, bonus, state.combo_count,
        )
        self._emit(hit)
        return hit

    def _decay_stale_combo(self) -> None:
        state = self.state
        if state.combo_count == 0 or state.last_hit_time is None:
            return
        if self.timers.now() - state.last_hit_time > self.config.combo_reset_window:
            self._break_combo("idle")

    def _break_combo(self, reason: str) -> None:
        state = self.state
        broken = state.combo_count
        state.combo_count = 0
        state.combo_multiplier = 1.0
        self._emit(ComboBroken(self.timers.now(), broken, reason))

    # --- Timers and events ---

    def _schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        generation = self._generation
        handle: TimerHandle | None = None

        def run() -> None:
            with self._lock:
                self._pending.discard(handle)
                if generation != self._generation or not self._running:
                    return
                callback()

        handle = self.timers.call_later(delay, run)
        self._pending.add(handle)
        return handle

    def _cancel_pending(self) -> None:
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def _emit(self, event: DrillEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
