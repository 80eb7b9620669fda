#!/usr/bin/env python3
"""Replay a recorded keypoint stream through a drill session.

The recording is JSON lines, one frame per line:

    {"timestamp": 12.033, "landmarks": {"nose": [0.5, 0.2], "left_wrist": [0.41, 0.38], ...}}

Time is driven by the recorded timestamps on a virtual clock, so announce
delays and reaction timeouts behave exactly as they would live.

Usage:
    python scripts/replay_drill.py recording.jsonl
    python scripts/replay_drill.py recording.jsonl --mode sequence --seed 7
    python scripts/replay_drill.py recording.jsonl --preset strict --tail 5 --json
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import random
import sys
from pathlib import Path

from src.exceptions import MittError
from src.logging_config import session_id_var, setup_logging
from src.state.types import KeypointFrame, SessionSummary
from src.trainer.config import DEFAULT_CONFIG_PATH, TrainerConfig
from src.trainer.events import DrillEvent
from src.trainer.session import TrainingSession
from src.trainer.timers import VirtualClock

logger = logging.getLogger("replay_drill")


def load_recording(path: Path) -> list[KeypointFrame]:
    """Read frames, skipping blank and malformed lines. Frames are sorted by timestamp."""
    frames = []
    with open(path) as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                timestamp = float(record["timestamp"])
                if not math.isfinite(timestamp):
                    raise ValueError(f"timestamp {timestamp} is not finite")
                frames.append(KeypointFrame.from_landmarks(timestamp, record.get("landmarks", {})))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping line %d: %s", line_no, exc)
    frames.sort(key=lambda fr: fr.timestamp)
    return frames


def replay(
    session: TrainingSession,
    clock: VirtualClock,
    frames: list[KeypointFrame],
    mode: str = "random",
    tail: float = 0.0,
) -> tuple[list[DrillEvent], SessionSummary]:
    """Run the whole recording through ``session`` and stop it.

    ``tail`` keeps the clock running after the last frame so a pending
    target can time out.
    """
    events: list[DrillEvent] = []
    session.start(mode)
    for frame in frames:
        clock.advance_to(frame.timestamp)
        session.process_frame(frame)
        events.extend(session.drain_events())
    if tail > 0:
        clock.advance(tail)
    summary = session.stop()
    events.extend(session.drain_events())
    return events, summary


def main():
    parser = argparse.ArgumentParser(description="Replay a keypoint recording through a drill")
    parser.add_argument("recording", type=Path, help="JSON-lines keypoint recording")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--preset", default=None, help="Classifier preset (default from config)")
    parser.add_argument("--mode", choices=["random", "sequence"], default="random")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--tail", type=float, default=0.0,
                        help="Seconds to keep the clock running after the last frame")
    parser.add_argument("--json", action="store_true", help="Print events and summary as JSON lines")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level)

    try:
        config = TrainerConfig.from_yaml(args.config, args.preset)
    except MittError as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        sys.exit(2)

    frames = load_recording(args.recording)
    if not frames:
        print(f"No frames in {args.recording}", file=sys.stderr)
        sys.exit(1)

    clock = VirtualClock(start=frames[0].timestamp)
    session = TrainingSession(config, clock, rng=random.Random(args.seed), session_id=args.recording.stem)
    session_id_var.set(session.id)
    events, summary = replay(session, clock, frames, args.mode, args.tail)

    if args.json:
        for event in events:
            print(json.dumps(event.to_dict(), default=str))
        print(json.dumps({"type": "Summary", **summary.to_dict()}, default=str))
        return

    for event in events:
        print(f"{event.timestamp:9.3f}  {event.kind}")
    print()
    print(f"Hits: {summary.total_hits}  Misses: {summary.total_misses}  Accuracy: {summary.accuracy:.1f}%")
    print(f"Max combo: {summary.max_combo}  Level: {summary.level_reached}  Points: {summary.total_points}")
    print(f"Performance: {summary.analysis.performance} - {summary.analysis.recommendation}")


if __name__ == "__main__":
    main()
