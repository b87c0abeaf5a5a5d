# mediaconv/domain/dataclasses/reports.py
from __future__ import annotations

import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from mediaconv.domain.dataclasses.resolution import ResolutionPlan
from mediaconv.domain.enums.failure_category import FailureCategory
from mediaconv.domain.enums.pipeline_stage import PipelineStage, StageOutcome


# ---------------------------------------------------------------------------
# Base report (shared fields + utilities)
# ---------------------------------------------------------------------------
@dataclass
class BaseReport:
    """Common report base:
    - timing: started_at / finished_at
    - helpers: start(), stop(), as_dict()
    """
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def start(self) -> None:
        if self.started_at is None:
            self.started_at = datetime.now()

    def stop(self) -> None:
        self.finished_at = datetime.now()

    @property
    def total_ms(self) -> Optional[int]:
        if self.started_at is None or self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Pipeline log
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StageRecord:
    stage_index: int
    name: PipelineStage
    duration_ms: int
    outcome: StageOutcome
    detail: Optional[str] = None  # technical text; never shown to end users


@dataclass
class PipelineLog(BaseReport):
    """
    Ordered, append-only record of one run: exactly one StageRecord per
    attempted stage. Ends after Execution or at the first failing stage.
    """
    input_path: str = ""
    output_path: str = ""
    target_format: str = ""
    _stages: List[StageRecord] = field(default_factory=list, repr=False)

    @property
    def stages(self) -> Tuple[StageRecord, ...]:
        return tuple(self._stages)

    @property
    def last(self) -> Optional[StageRecord]:
        return self._stages[-1] if self._stages else None

    def __len__(self) -> int:
        return len(self._stages)

    def record(
        self,
        stage: PipelineStage,
        started: float,
        outcome: StageOutcome,
        detail: Optional[str] = None,
    ) -> StageRecord:
        """Append a record for `stage`; `started` is a time.monotonic() mark."""
        if any(r.name is stage for r in self._stages):
            raise ValueError(f"stage {stage.value!r} already recorded")
        if self.last is not None and self.last.outcome is StageOutcome.failed:
            raise ValueError("pipeline log is closed after a failed stage")
        rec = StageRecord(
            stage_index=stage.index,
            name=stage,
            duration_ms=int((time.monotonic() - started) * 1000),
            outcome=outcome,
            detail=detail,
        )
        self._stages.append(rec)
        return rec


# ---------------------------------------------------------------------------
# Terminal values of a run
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PipelineSuccess:
    output_path: str
    profile_id: str
    resolution_plan: ResolutionPlan
    log: PipelineLog
    warnings: Tuple[str, ...] = ()

    ok = True


@dataclass(frozen=True)
class PipelineFailure:
    category: FailureCategory
    message: str            # abstracted, user-safe
    technical_detail: str   # internal only
    suggestion: str
    failing_stage: PipelineStage
    log: PipelineLog

    ok = False


PipelineResult = Union[PipelineSuccess, PipelineFailure]


@dataclass(frozen=True)
class QuickConvertResult:
    output_path: str
    mode: str = "quick"
