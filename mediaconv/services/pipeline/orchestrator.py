# mediaconv/services/pipeline/orchestrator.py
from __future__ import annotations

import time
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from mediaconv.common.logging import get_logger
from mediaconv.common.settings import get_settings
from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.dataclasses.reports import (
    PipelineFailure,
    PipelineLog,
    PipelineResult,
    PipelineSuccess,
    QuickConvertResult,
)
from mediaconv.domain.entities.probe import MediaMetadata
from mediaconv.domain.enums.pipeline_stage import PipelineStage, StageOutcome
from mediaconv.domain.errors import CapabilityMismatchError, QuickConvertError, ValidationError
from mediaconv.domain.policies.capability_catalog import CapabilityCatalog
from mediaconv.domain.policies.error_abstraction import abstract_error
from mediaconv.domain.policies.profile_registry import ProfileRegistry
from mediaconv.domain.policies.resolution_planner import ResolutionPlanner
from mediaconv.domain.ports.probe import MediaProbePort
from mediaconv.domain.ports.transcoder import TranscoderPort
from mediaconv.services.schemas.conversion import ConversionRequest, QuickConvertRequest
from mediaconv.services.transcode.ffmpeg_runner import FFmpegRunner  # default adapter
from mediaconv.services.validation.media_validator import MediaValidator

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

N_STAGES = len(PipelineStage)

# format -> (video codec, audio codec); anything else is stream-copied
QUICK_CODECS: Mapping[str, Tuple[str, str]] = MappingProxyType({
    "mp4": ("libx264", "aac"),
    "webm": ("libvpx-vp9", "libopus"),
    "avi": ("mpeg4", "libmp3lame"),
})


def _coerce(model: Type[M], request: Any, overrides: Mapping[str, Any]) -> M:
    if request is None:
        return model(**overrides)
    if isinstance(request, model) and not overrides:
        return request
    if isinstance(request, BaseModel):
        request = request.model_dump()
    return model.model_validate({**dict(request), **overrides})


def _schema_errors(ex: SchemaError) -> List[str]:
    return [f"{'.'.join(str(p) for p in e['loc']) or 'request'}: {e['msg']}" for e in ex.errors()]


def build_quick_arguments(input_path: str, output_path: str, target_format: str) -> List[str]:
    codecs = QUICK_CODECS.get(target_format)
    if codecs is None:
        return ["-i", input_path, "-c", "copy", "-y", output_path]
    vcodec, acodec = codecs
    return ["-i", input_path, "-c:v", vcodec, "-c:a", acodec, "-y", output_path]


class ConversionOrchestrator:
    """
    Drives one conversion through Validation, Capability Check, Resolution
    Normalization, Profile Selection and Execution, strictly in that order.

    Every attempted stage leaves exactly one record in the run's PipelineLog.
    The first failure is recorded against the stage that raised it and is
    abstracted once into a PipelineFailure; execute() itself does not raise
    for stage errors. A malformed request fails at Validation. A format the
    catalog does not know fails at Capability Check.

    The orchestrator keeps no per-run state, so one instance can serve any
    number of concurrent runs.
    """

    def __init__(
        self,
        *,
        prober: Optional[Callable[[], MediaProbePort]] = None,
        transcoder: Optional[Callable[[], TranscoderPort]] = None,
        catalog: Optional[CapabilityCatalog] = None,
        profiles: Optional[ProfileRegistry] = None,
        planner: Optional[ResolutionPlanner] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        cfg = get_settings()
        self.catalog = catalog or CapabilityCatalog()
        self.profiles = profiles or ProfileRegistry()
        self.planner = planner or ResolutionPlanner(
            self.catalog,
            fallback=Resolution(cfg.pipeline.fallback_width, cfg.pipeline.fallback_height),
        )
        self.validator = MediaValidator(prober=prober, catalog=self.catalog)
        # transcoder is a factory returning a TranscoderPort instance (e.g., lambda: FFmpegRunner())
        self.transcoder: Callable[[], TranscoderPort] = transcoder or (lambda: FFmpegRunner())
        self.timeout_sec = float(timeout_sec or cfg.ffmpeg.timeout_sec)

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------
    async def execute(self, request: ConversionRequest | Mapping[str, Any] | None = None, **kwargs: Any) -> PipelineResult:
        try:
            req = _coerce(ConversionRequest, request, kwargs)
        except SchemaError as ex:
            log = PipelineLog()
            log.start()
            return self._failed(log, PipelineStage.validation, time.monotonic(), ValidationError(_schema_errors(ex)))
        fmt = req.target_format
        log = PipelineLog(input_path=req.input_path, output_path=req.output_path, target_format=fmt)
        log.start()
        warnings: List[str] = []
        logger.info("Conversion started: %s -> %s (%s)", req.input_path, req.output_path, fmt.upper())

        stage = PipelineStage.validation
        started = time.monotonic()
        try:
            validation = await self.validator.validate(req.input_path, fmt)
            if not validation.valid:
                raise ValidationError(validation.errors)
            metadata = validation.metadata
            warnings.extend(validation.warnings)
            self._passed(log, stage, started)

            stage, started = PipelineStage.capability_check, time.monotonic()
            warnings.extend(self._check_capabilities(metadata, fmt))
            self._passed(log, stage, started)

            stage, started = PipelineStage.resolution_normalization, time.monotonic()
            plan = self.planner.normalize(metadata, fmt)
            warnings.extend(plan.warnings)
            self._passed(log, stage, started, detail=plan.reason)

            stage, started = PipelineStage.profile_selection, time.monotonic()
            profile = self.profiles.select_profile(metadata, fmt, req.profile_hint)
            logger.info("Selected encoding profile: %s", profile.id)
            self._passed(log, stage, started, detail=profile.id)

            stage, started = PipelineStage.execution, time.monotonic()
            override = plan.target if plan.needs_adjustment else None
            args = self.profiles.build_invocation_arguments(profile, req.input_path, req.output_path, override)
            logger.debug("Transcoder args: %s", args)
            Path(req.output_path).parent.mkdir(parents=True, exist_ok=True)
            outcome = await self.transcoder().run(args, timeout_sec=self.timeout_sec)
            self._passed(log, stage, started, detail=f"frames={outcome.progress.frame}")
        except Exception as ex:
            return self._failed(log, stage, started, ex)

        log.stop()
        logger.info("Conversion completed in %sms: %s", log.total_ms, req.output_path)
        return PipelineSuccess(
            output_path=req.output_path,
            profile_id=profile.id,
            resolution_plan=plan,
            log=log,
            warnings=tuple(warnings),
        )

    # ------------------------------------------------------------------
    # Bypass path
    # ------------------------------------------------------------------
    async def quick_convert(
        self, request: QuickConvertRequest | ConversionRequest | Mapping[str, Any] | None = None, **kwargs: Any
    ) -> QuickConvertResult:
        """
        Reduced-safety shortcut: no validation, no normalization, no profile.
        A fixed codec pair per format goes straight to the transcoder. Only
        formats known to the catalog are accepted.
        """
        if isinstance(request, ConversionRequest):
            request = request.model_dump(exclude={"profile_hint"})
        try:
            req = _coerce(QuickConvertRequest, request, kwargs)
        except SchemaError as ex:
            raise self._quick_failed(ValidationError(_schema_errors(ex))) from ex
        fmt = req.target_format
        if self.catalog.get_capabilities(fmt) is None:
            raise self._quick_failed(CapabilityMismatchError(f"Unsupported target format: {fmt}"))
        args = build_quick_arguments(req.input_path, req.output_path, fmt)
        logger.info("Quick conversion: %s -> %s (%s)", req.input_path, req.output_path, fmt.upper())
        logger.debug("Transcoder args: %s", args)

        try:
            Path(req.output_path).parent.mkdir(parents=True, exist_ok=True)
            await self.transcoder().run(args, timeout_sec=self.timeout_sec)
        except Exception as ex:
            raise self._quick_failed(ex) from ex

        return QuickConvertResult(output_path=req.output_path)

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------
    def _check_capabilities(self, metadata: MediaMetadata, fmt: str) -> List[str]:
        """
        Unknown formats and sources below the format minimum cannot be
        rescued by normalization. Oversized or odd sources pass through.
        """
        caps = self.catalog.get_capabilities(fmt)
        if caps is None:
            raise CapabilityMismatchError(f"Unsupported target format: {fmt}")

        video = metadata.first_video
        if video is None or not video.has_dimensions:
            logger.warning("No usable video dimensions; resolution check deferred to normalization")
            return []

        notes: List[str] = []
        support = self.catalog.is_resolution_supported(video.width, video.height, fmt)
        if not support.supported:
            mn = caps.min_resolution
            if video.width < mn.width or video.height < mn.height:
                raise CapabilityMismatchError(support.reason or f"Resolution below {fmt.upper()} minimum")
            logger.info("%s; normalization required", support.reason)

        fps = video.frame_rate
        if fps is not None and not self.catalog.is_frame_rate_supported(fps, fmt):
            notes.append(f"Frame rate {fps:.2f} fps is not native to {fmt.upper()}; it will be converted")
        return notes

    @staticmethod
    def _passed(log: PipelineLog, stage: PipelineStage, started: float, detail: Optional[str] = None) -> None:
        rec = log.record(stage, started, StageOutcome.ok, detail)
        logger.info("Stage %d/%d %s completed in %dms", rec.stage_index, N_STAGES, stage.value, rec.duration_ms)

    @staticmethod
    def _failed(log: PipelineLog, stage: PipelineStage, started: float, error: Exception) -> PipelineFailure:
        abstracted = abstract_error(stage, error)
        log.record(stage, started, StageOutcome.failed, abstracted.technical)
        log.stop()
        logger.error(
            "Stage %d/%d %s failed [%s]: %s",
            stage.index, N_STAGES, stage.value, abstracted.category.value, abstracted.technical,
        )
        return PipelineFailure(
            category=abstracted.category,
            message=abstracted.message,
            technical_detail=abstracted.technical,
            suggestion=abstracted.suggestion,
            failing_stage=stage,
            log=log,
        )

    @staticmethod
    def _quick_failed(error: Exception) -> QuickConvertError:
        abstracted = abstract_error(PipelineStage.execution, error)
        logger.error("Quick conversion failed [%s]: %s", abstracted.category.value, abstracted.technical)
        return QuickConvertError(abstracted)
