"""Pydantic request/response schemas for the API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class CreateDrillRequest(BaseModel):
    mode: str = Field("random", pattern="^(random|sequence)$")
    preset: Optional[str] = None
    seed: Optional[int] = None


class StartDrillRequest(BaseModel):
    mode: Optional[str] = Field(None, pattern="^(random|sequence)$")


class FrameRequest(BaseModel):
    timestamp: float = Field(..., ge=0, allow_inf_nan=False)
    # {name: [x, y]} in normalized coords; unusable points are treated as missing
    landmarks: Dict[str, Any]


class ClassifyRequest(FrameRequest):
    preset: Optional[str] = None


class TechniqueRequest(BaseModel):
    punch: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class DrillResponse(BaseModel):
    drill_id: str
    mode: str
    preset: str
    running: bool


class StanceResponse(BaseModel):
    is_good: bool
    tips: List[str]


class AnalysisResponse(BaseModel):
    performance: str
    recommendation: str
    strengths: List[str]
    weaknesses: List[str]
    difficulty_adjustment: str
    difficulty_message: str
    suggested_speed: float


class SummaryResponse(BaseModel):
    mode: str
    total_hits: int
    total_misses: int
    accuracy: float
    max_combo: int
    level_reached: int
    total_points: int
    perfect_hits: int
    average_speed_score: float
    average_form_score: float
    completed_sequences: int
    analysis: AnalysisResponse


class FrameResponse(BaseModel):
    timestamp: float
    classification: Dict[str, Any]
    stance: StanceResponse
    score: Optional[Dict[str, Any]] = None
    hit: Optional[Dict[str, Any]] = None
    technique: Optional[Dict[str, Any]] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)


class ClassifyResponse(BaseModel):
    complete: bool
    stance: StanceResponse
    kinematics: Optional[Dict[str, Any]] = None


class ComboResponse(BaseModel):
    id: str
    name: str
    sequence: List[str]
    difficulty: int


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
