"""One training session: tracker, classifier, scorer and drill engine wired together.

Each session owns all of its state. Frame ingestion, timer callbacks and
API calls are serialised behind one re-entrant lock shared with the engine.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any

from src.state.types import ClassificationResult, Kinematics, KeypointFrame, SessionSummary, StanceAssessment
from src.trainer.config import TrainerConfig
from src.trainer.drill_engine import DrillEngine, DrillMode
from src.trainer.events import DrillEvent, DrillStopped, PunchHit
from src.trainer.scoring import ScoringEngine
from src.trainer.timers import Timers
from src.vision.motion import MotionTracker, compute_kinematics
from src.vision.punch_classifier import PunchClassifier
from src.vision.stance import analyze_stance
from src.vision.technique import TechniqueAnalysis, TechniqueCoach

logger = logging.getLogger(__name__)

# Oldest events are dropped when a client stops draining
MAX_BUFFERED_EVENTS = 1000


@dataclass(frozen=True)
class FrameReport:
    timestamp: float
    classification: ClassificationResult
    stance: StanceAssessment
    kinematics: Kinematics | None = None
    hit: PunchHit | None = None
    technique: TechniqueAnalysis | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "classification": self.classification.to_dict(),
            "stance": {"is_good": self.stance.is_good, "tips": list(self.stance.tips)},
            "score": self.hit.score.to_dict() if self.hit else None,
            "hit": self.hit.to_dict() if self.hit else None,
            "technique": self.technique.to_dict() if self.technique else None,
        }


class TrainingSession:
    """Per-athlete pipeline from keypoint frames to drill events.

    Usage::

        session = TrainingSession(TrainerConfig.from_yaml(), VirtualClock(), rng=random.Random(7))
        session.start("random")
        report = session.process_frame(frame)
        events = session.drain_events()
        summary = session.stop()
    """

    def __init__(
        self,
        config: TrainerConfig,
        timers: Timers,
        rng: random.Random | None = None,
        session_id: str | None = None,
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.config = config
        self.timers = timers
        self.rng = rng or random.Random()
        self._lock = threading.RLock()

        self.tracker = MotionTracker(config.classifier.speed_history)
        self.classifier = PunchClassifier(config.classifier)
        self.scoring = ScoringEngine(config.scoring, self.rng)
        self.engine = DrillEngine(
            config.scheduler, self.scoring, timers, config.combos, self.rng, self._lock,
        )
        self.coach = TechniqueCoach(config.technique)
        self.last_summary: SessionSummary | None = None

        self._events: deque[DrillEvent] = deque(maxlen=MAX_BUFFERED_EVENTS)
        self.engine.subscribe(self._on_event)

    @property
    def running(self) -> bool:
        return self.engine.running

    def start(self, mode: DrillMode | str = DrillMode.RANDOM) -> None:
        with self._lock:
            self.tracker.reset()
            self.classifier.reset()
            self.engine.start(mode)
            logger.info("Session %s started", self.id, extra={"mode": DrillMode(mode).value})

    def stop(self) -> SessionSummary:
        """Stop the drill. If it already ended on its own, return that summary."""
        with self._lock:
            if not self.engine.running and self.last_summary is not None:
                return self.last_summary
            summary = self.engine.stop()
            self.tracker.reset()
            self.classifier.reset()
            self.last_summary = summary
            return summary

    def process_frame(self, frame: KeypointFrame) -> FrameReport:
        """Classify one frame and feed the drill. Never raises for bad landmarks."""
        with self._lock:
            kinematics = compute_kinematics(frame, self.tracker, self.config.classifier.frame_size)
            if kinematics is None:
                logger.debug("Frame %.3f incomplete, no classification", frame.timestamp)
            classification = self.classifier.classify(frame, kinematics)
            stance = analyze_stance(frame, self.config.stance)

            hit = None
            if classification.is_punch:
                hit = self.engine.on_punch(classification)

            technique = None
            if self.coach.active and math.isfinite(frame.timestamp):
                technique = self.coach.analyze(frame)
            return FrameReport(
                timestamp=frame.timestamp,
                classification=classification,
                stance=stance,
                kinematics=kinematics,
                hit=hit,
                technique=technique,
            )

    def _on_event(self, event: DrillEvent) -> None:
        self._events.append(event)
        if isinstance(event, DrillStopped):
            self.last_summary = event.summary

    def drain_events(self) -> list[DrillEvent]:
        with self._lock:
            events = list(self._events)
            self._events.clear()
            return events

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            data = self.engine.snapshot()
            data["id"] = self.id
            data["preset"] = self.config.classifier.preset
            data["technique"] = self.coach.current.value if self.coach.current else None
            return data
