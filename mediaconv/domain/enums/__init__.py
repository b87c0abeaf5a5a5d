from mediaconv.domain.enums.file_format import TargetFormat
from mediaconv.domain.enums.stream_kind import StreamKind
from mediaconv.domain.enums.pipeline_stage import PipelineStage, StageOutcome
from mediaconv.domain.enums.failure_category import FailureCategory
__all__ = [
    "TargetFormat",
    "StreamKind",
    "PipelineStage",
    "StageOutcome",
    "FailureCategory",
]
