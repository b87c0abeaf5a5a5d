# mediaconv/domain/errors.py
"""
Stage-local errors. Each carries the FailureCategory it belongs to, so the
orchestrator can abstract it without inspecting message text. Only errors
coming out of the opaque transcoder need text matching (see
mediaconv.domain.policies.error_abstraction).
"""
from __future__ import annotations

from typing import Optional, Sequence

from mediaconv.domain.enums.failure_category import FailureCategory


class ConversionError(RuntimeError):
    """Base class for every failure raised inside the conversion core."""
    category: FailureCategory = FailureCategory.unexpected

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def technical(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ProbeError(ConversionError):
    """The metadata probe could not run, exited non-zero, or emitted bad JSON."""
    category = FailureCategory.probe_failure

    def __init__(self, message: str, *, stderr: Optional[str] = None, rc: Optional[int] = None) -> None:
        super().__init__(message, detail=(stderr or "").strip() or None)
        self.stderr = stderr
        self.rc = rc


class ValidationError(ConversionError):
    """Input failed integrity checks (corrupt, empty, no video stream)."""
    category = FailureCategory.validation_failure

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Validation failed: " + ", ".join(self.errors))


class CapabilityMismatchError(ConversionError):
    category = FailureCategory.capability_mismatch


class NormalizationError(ConversionError):
    category = FailureCategory.normalization_failure


class ProfileSelectionError(ConversionError):
    category = FailureCategory.profile_selection_failure


class TranscoderError(ConversionError):
    """The transcoder could not be started or exited with a non-zero code."""
    category = FailureCategory.execution_failure

    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message, detail=stderr.strip()[-500:] or None)
        self.returncode = returncode
        self.stderr = stderr


class TranscoderTimeoutError(TranscoderError):
    category = FailureCategory.execution_timeout

    def __init__(self, timeout_sec: float, *, stderr: str = "") -> None:
        super().__init__(f"Transcoder timeout after {timeout_sec:g}s; process killed", stderr=stderr)
        self.timeout_sec = timeout_sec


class QuickConvertError(ConversionError):
    """Raised by the bypass path; wraps the single abstracted error."""

    def __init__(self, abstracted) -> None:  # AbstractedError, kept untyped to avoid an import cycle
        super().__init__(abstracted.message, detail=abstracted.technical)
        self.abstracted = abstracted
        self.category = abstracted.category
