"""Stateless endpoints: single-frame preview and the combo library."""

from __future__ import annotations

from dataclasses import asdict
from typing import List

from fastapi import APIRouter, HTTPException

from server.schemas import ClassifyRequest, ClassifyResponse, ComboResponse, StanceResponse
from server.services.registry import registry
from src.exceptions import ConfigError
from src.state.types import KeypointFrame
from src.vision.motion import MotionTracker, compute_kinematics
from src.vision.stance import analyze_stance

router = APIRouter(tags=["preview"])


@router.post("/classify", response_model=ClassifyResponse)
async def classify_frame(req: ClassifyRequest):
    """Stance and arm geometry for one frame.

    No motion history is kept, so speeds are always zero and no punch is
    reported; use a drill session for punch detection.
    """
    try:
        config = registry.config(req.preset)
    except ConfigError as exc:
        raise HTTPException(422, str(exc)) from None

    frame = KeypointFrame.from_landmarks(req.timestamp, req.landmarks)
    stance = analyze_stance(frame, config.stance)
    kinematics = compute_kinematics(frame, MotionTracker(), config.classifier.frame_size)
    return ClassifyResponse(
        complete=frame.is_complete,
        stance=StanceResponse(is_good=stance.is_good, tips=list(stance.tips)),
        kinematics=asdict(kinematics) if kinematics else None,
    )


@router.get("/combos", response_model=List[ComboResponse])
async def list_combos():
    """Combo library used by sequence mode, easiest first."""
    return [ComboResponse(**c.to_dict()) for c in registry.config().combos]
