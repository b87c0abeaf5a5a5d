# services/schemas/conversion.py
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from mediaconv.domain.enums.failure_category import FailureCategory
from mediaconv.domain.enums.pipeline_stage import PipelineStage, StageOutcome


def _normalize_format(v):
    if isinstance(v, str):
        return v.strip().lower().lstrip(".")
    return v


class ConversionRequest(BaseModel):
    input_path: str = Field(..., min_length=1, examples=["/media/incoming/clip.mov"])
    output_path: str = Field(..., min_length=1, examples=["/media/out/clip.mp4"])
    target_format: str = Field(..., min_length=1, examples=["mp4", "mpeg", "webm"])
    profile_hint: Optional[str] = Field(
        None, description="Explicit profile id; ignored if it does not belong to target_format",
        examples=["mpeg-dvd-pal"],
    )

    @field_validator("input_path", "output_path", mode="before")
    @classmethod
    def _pathify(cls, v):
        return str(v) if isinstance(v, Path) else v

    @field_validator("target_format", mode="before")
    @classmethod
    def _fmt(cls, v):
        return _normalize_format(v)

    @field_validator("profile_hint", mode="before")
    @classmethod
    def _blank_hint(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class QuickConvertRequest(BaseModel):
    input_path: str = Field(..., min_length=1)
    output_path: str = Field(..., min_length=1)
    target_format: str = Field(..., min_length=1)

    @field_validator("input_path", "output_path", mode="before")
    @classmethod
    def _pathify(cls, v):
        return str(v) if isinstance(v, Path) else v

    @field_validator("target_format", mode="before")
    @classmethod
    def _fmt(cls, v):
        return _normalize_format(v)


class StageRecordOut(BaseModel):
    stage_index: int = Field(..., ge=1, le=5)
    name: PipelineStage
    duration_ms: int = Field(..., ge=0)
    outcome: StageOutcome


class ResolutionOut(BaseModel):
    width: int
    height: int


class ResolutionPlanOut(BaseModel):
    needs_adjustment: bool
    original: Optional[ResolutionOut] = None
    target: ResolutionOut
    reason: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ErrorOut(BaseModel):
    category: FailureCategory
    message: str
    suggestion: str
    stage: PipelineStage


class PipelineResultOut(BaseModel):
    ok: bool
    output_path: Optional[str] = None
    profile_id: Optional[str] = None
    resolution_plan: Optional[ResolutionPlanOut] = None
    warnings: List[str] = Field(default_factory=list)
    error: Optional[ErrorOut] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    stages: List[StageRecordOut] = Field(default_factory=list)


class QuickConvertResultOut(BaseModel):
    output_path: str
    mode: str = "quick"
