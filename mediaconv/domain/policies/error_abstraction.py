# mediaconv/domain/policies/error_abstraction.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from mediaconv.domain.enums.failure_category import FailureCategory
from mediaconv.domain.enums.pipeline_stage import PipelineStage
from mediaconv.domain.errors import ConversionError, TranscoderError

# -22 (EINVAL) as an unsigned exit status: ffmpeg's answer when the encoder
# rejects the requested parameters during initialization.
ENCODER_INIT_EXIT_CODES: Tuple[int, ...] = (234,)


@dataclass(frozen=True)
class AbstractedError:
    category: FailureCategory
    message: str       # user-facing
    technical: str     # internal only
    suggestion: str
    stage: PipelineStage


# category -> (message, suggestion)
MESSAGES: Mapping[FailureCategory, Tuple[str, str]] = MappingProxyType({
    FailureCategory.probe_failure: (
        "The input file could not be read. It may be corrupted or not a media file.",
        "Verify the file is not corrupted and that it is readable",
    ),
    FailureCategory.validation_failure: (
        "The input file is corrupted or invalid. Please check the file and try again.",
        "Verify file integrity, ensure it's a valid video file",
    ),
    FailureCategory.capability_mismatch: (
        "The input video format or resolution is not supported for the target format.",
        "Try a different output format or reduce input resolution",
    ),
    FailureCategory.normalization_failure: (
        "Unable to adjust video resolution to match target format requirements.",
        "Input resolution may be too high or unusual aspect ratio",
    ),
    FailureCategory.profile_selection_failure: (
        "Could not determine appropriate encoding settings for this conversion.",
        "Specify encoding profile manually or use different target format",
    ),
    FailureCategory.encoder_init_failure: (
        "Video encoder initialization failed. The input may have incompatible properties for the target format.",
        "This usually indicates resolution or codec incompatibility",
    ),
    FailureCategory.execution_timeout: (
        "Conversion took too long and was stopped. Large or high-resolution files may require more processing time.",
        "Try reducing resolution or use a faster encoding preset",
    ),
    FailureCategory.disk_space_exhausted: (
        "Insufficient disk space to complete conversion.",
        "Free up disk space and try again",
    ),
    FailureCategory.permission_denied: (
        "Cannot write output file due to permission issues.",
        "Check file/directory permissions",
    ),
    FailureCategory.execution_failure: (
        "The video converter failed while processing this file.",
        "Retry the conversion; if it keeps failing try another output format",
    ),
    FailureCategory.unexpected: (
        "An unexpected error occurred during video conversion. Please try again.",
        "If problem persists, contact support with error details",
    ),
})

# last-resort text patterns for output of the opaque transcoder
_TEXT_PATTERNS: Tuple[Tuple[str, FailureCategory], ...] = (
    ("timeout", FailureCategory.execution_timeout),
    ("timed out", FailureCategory.execution_timeout),
    ("no space left", FailureCategory.disk_space_exhausted),
    ("disk quota exceeded", FailureCategory.disk_space_exhausted),
    ("permission denied", FailureCategory.permission_denied),
    ("operation not permitted", FailureCategory.permission_denied),
    ("error while opening encoder", FailureCategory.encoder_init_failure),
)


def classify_transcoder_failure(returncode: Optional[int], text: str) -> FailureCategory:
    if returncode in ENCODER_INIT_EXIT_CODES:
        return FailureCategory.encoder_init_failure
    low = (text or "").lower()
    for needle, category in _TEXT_PATTERNS:
        if needle in low:
            return category
    return FailureCategory.execution_failure


def categorize(error: BaseException) -> FailureCategory:
    if isinstance(error, TranscoderError) and error.category is FailureCategory.execution_failure:
        # generic exit: look closer at the exit code and what ffmpeg printed
        return classify_transcoder_failure(error.returncode, f"{error.message}\n{error.stderr}")
    if isinstance(error, ConversionError):
        return error.category
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return FailureCategory.execution_timeout
    if isinstance(error, PermissionError):
        return FailureCategory.permission_denied
    if isinstance(error, OSError):
        return classify_transcoder_failure(None, str(error))
    return FailureCategory.unexpected


def technical_text(error: BaseException) -> str:
    if isinstance(error, ConversionError):
        return error.technical
    return f"{type(error).__name__}: {error}"


def abstract_error(stage: PipelineStage, error: BaseException) -> AbstractedError:
    """
    Single abstraction pass: one stable user-facing message, the raw technical
    text and a remediation hint, tagged with the stage that failed.
    """
    category = categorize(error)
    message, suggestion = MESSAGES[category]
    return AbstractedError(
        category=category,
        message=message,
        technical=technical_text(error),
        suggestion=suggestion,
        stage=stage,
    )
