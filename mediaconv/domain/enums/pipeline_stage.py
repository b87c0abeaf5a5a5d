from __future__ import annotations
from enum import StrEnum

class PipelineStage(StrEnum):
    validation = "Validation"
    capability_check = "Capability Check"
    resolution_normalization = "Resolution Normalization"
    profile_selection = "Profile Selection"
    execution = "Execution"

    @property
    def index(self) -> int:
        return list(PipelineStage).index(self) + 1


class StageOutcome(StrEnum):
    ok = "ok"
    failed = "failed"
