from mediaconv.services.schemas.conversion import (
    ConversionRequest,
    QuickConvertRequest,
    StageRecordOut,
    ResolutionOut,
    ResolutionPlanOut,
    ErrorOut,
    PipelineResultOut,
    QuickConvertResultOut,
)

__all__ = [
    "ConversionRequest",
    "QuickConvertRequest",
    "StageRecordOut",
    "ResolutionOut",
    "ResolutionPlanOut",
    "ErrorOut",
    "PipelineResultOut",
    "QuickConvertResultOut",
]
