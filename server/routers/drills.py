"""Drill endpoints: create, start, stop, frame ingestion, snapshot, technique coach."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Response

from server.schemas import (
    CreateDrillRequest,
    DrillResponse,
    FrameRequest,
    FrameResponse,
    StartDrillRequest,
    SummaryResponse,
    TechniqueRequest,
)
from server.services.registry import registry
from src.exceptions import ConfigError, SessionNotFoundError, SessionStateError
from src.logging_config import session_id_var
from src.state.types import KeypointFrame
from src.trainer.session import TrainingSession

router = APIRouter(prefix="/drills", tags=["drills"])


def _get_session(drill_id: str) -> TrainingSession:
    try:
        session = registry.get(drill_id)
    except SessionNotFoundError:
        raise HTTPException(404, "Drill not found") from None
    session_id_var.set(drill_id)
    return session


def _drill_response(session: TrainingSession) -> DrillResponse:
    return DrillResponse(
        drill_id=session.id,
        mode=registry.mode(session.id).value,
        preset=session.config.classifier.preset,
        running=session.running,
    )


@router.post("", response_model=DrillResponse, status_code=201)
async def create_drill(req: CreateDrillRequest):
    """Create an idle drill session."""
    try:
        session = registry.create(req.mode, req.preset, req.seed)
    except ConfigError as exc:
        raise HTTPException(422, str(exc)) from None
    except SessionStateError as exc:
        raise HTTPException(409, str(exc)) from None
    return _drill_response(session)


@router.get("/{drill_id}")
async def get_drill(drill_id: str) -> Dict[str, Any]:
    """Current drill state snapshot."""
    return _get_session(drill_id).snapshot()


@router.delete("/{drill_id}", status_code=204)
async def delete_drill(drill_id: str):
    _get_session(drill_id)
    registry.remove(drill_id)
    return Response(status_code=204)


@router.post("/{drill_id}/start")
async def start_drill(drill_id: str, req: Optional[StartDrillRequest] = None) -> Dict[str, Any]:
    session = _get_session(drill_id)
    mode = req.mode if req is not None and req.mode else registry.mode(drill_id).value
    try:
        session.start(mode)
    except SessionStateError as exc:
        raise HTTPException(409, str(exc)) from None
    registry.set_mode(drill_id, mode)
    return session.snapshot()


@router.post("/{drill_id}/stop", response_model=SummaryResponse)
async def stop_drill(drill_id: str):
    """Stop the drill and return the session summary."""
    summary = _get_session(drill_id).stop()
    return SummaryResponse(**summary.to_dict())


@router.post("/{drill_id}/frames", response_model=FrameResponse)
async def post_frame(drill_id: str, req: FrameRequest):
    """Feed one keypoint frame; returns the classification and any drill events."""
    session = _get_session(drill_id)
    frame = KeypointFrame.from_landmarks(req.timestamp, req.landmarks)
    report = session.process_frame(frame)
    return FrameResponse(
        **report.to_dict(),
        events=[event.to_dict() for event in session.drain_events()],
    )


@router.post("/{drill_id}/technique")
async def start_technique(drill_id: str, req: TechniqueRequest) -> Dict[str, Any]:
    session = _get_session(drill_id)
    try:
        session.coach.start(req.punch)
    except SessionStateError as exc:
        raise HTTPException(422, str(exc)) from None
    return session.snapshot()


@router.delete("/{drill_id}/technique", status_code=204)
async def stop_technique(drill_id: str):
    _get_session(drill_id).coach.stop()
    return Response(status_code=204)
