# mediaconv/services/mappers/pipeline_result.py
from __future__ import annotations

from typing import List, Optional

from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.dataclasses.reports import PipelineLog, PipelineResult, QuickConvertResult
from mediaconv.domain.dataclasses.resolution import ResolutionPlan
from mediaconv.services.schemas.conversion import (
    ErrorOut,
    PipelineResultOut,
    QuickConvertResultOut,
    ResolutionOut,
    ResolutionPlanOut,
    StageRecordOut,
)


def _res(r: Optional[Resolution]) -> Optional[ResolutionOut]:
    if r is None:
        return None
    return ResolutionOut(width=r.width, height=r.height)


def to_stage_records_out(log: PipelineLog) -> List[StageRecordOut]:
    # StageRecord.detail is technical text and stays internal
    return [
        StageRecordOut(
            stage_index=rec.stage_index,
            name=rec.name,
            duration_ms=rec.duration_ms,
            outcome=rec.outcome,
        )
        for rec in log.stages
    ]


def to_resolution_plan_out(plan: ResolutionPlan) -> ResolutionPlanOut:
    return ResolutionPlanOut(
        needs_adjustment=plan.needs_adjustment,
        original=_res(plan.original),
        target=_res(plan.target),
        reason=plan.reason,
        warnings=list(plan.warnings),
    )


def to_result_out(result: PipelineResult) -> PipelineResultOut:
    """
    Wire view of a finished run. Failures carry the abstracted message and
    suggestion only; the technical detail never leaves the process.
    """
    log = result.log
    common = dict(
        ok=result.ok,
        started_at=log.started_at,
        finished_at=log.finished_at,
        stages=to_stage_records_out(log),
    )
    if result.ok:
        return PipelineResultOut(
            output_path=result.output_path,
            profile_id=result.profile_id,
            resolution_plan=to_resolution_plan_out(result.resolution_plan),
            warnings=list(result.warnings),
            **common,
        )
    return PipelineResultOut(
        error=ErrorOut(
            category=result.category,
            message=result.message,
            suggestion=result.suggestion,
            stage=result.failing_stage,
        ),
        **common,
    )


def to_quick_result_out(result: QuickConvertResult) -> QuickConvertResultOut:
    return QuickConvertResultOut(output_path=result.output_path, mode=result.mode)
