# mediaconv/services/validation/media_validator.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from mediaconv.common.logging import get_logger
from mediaconv.domain.dataclasses.validation import ValidationResult
from mediaconv.domain.entities.probe import MediaMetadata
from mediaconv.domain.policies.capability_catalog import CapabilityCatalog
from mediaconv.domain.ports.probe import MediaProbePort
from mediaconv.services.probe.ffprobe_adapter import FFprobeAdapter  # default adapter

logger = get_logger(__name__)

MAX_PLAUSIBLE_FPS = 120.0


class MediaValidator:
    """
    Pre-encoding validation: probe the file, then check integrity (blocking)
    and codec/resolution/stream concerns (advisory).
    Probe failures propagate as ProbeError; the validator does not swallow them.
    """

    def __init__(
        self,
        *,
        prober: Optional[Callable[[], MediaProbePort]] = None,
        catalog: Optional[CapabilityCatalog] = None,
    ) -> None:
        # prober is a factory returning a MediaProbePort instance (e.g., lambda: FFprobeAdapter())
        self.prober: Callable[[], MediaProbePort] = prober or (lambda: FFprobeAdapter())
        self.catalog = catalog or CapabilityCatalog()

    async def validate(self, input_path: Path | str, target_format: Optional[str] = None) -> ValidationResult:
        metadata = await self.prober().probe(Path(input_path))

        errors = self.check_integrity(metadata)
        recommendations: List[str] = []
        if not errors and target_format:
            recommendations = self.check_codecs(metadata, target_format)
        warnings = self.check_streams(metadata)

        valid = not errors
        logger.info("Media validation for %s: %s", input_path, "PASSED" if valid else "FAILED")
        return ValidationResult(
            valid=valid,
            metadata=metadata,
            errors=tuple(errors),
            warnings=tuple(warnings),
            recommendations=tuple(recommendations),
        )

    # ---- checks -------------------------------------------------------------
    @staticmethod
    def check_integrity(metadata: MediaMetadata) -> List[str]:
        if metadata is None or not metadata.format_present:
            return ["Invalid or corrupted file: No format information"]

        errors: List[str] = []
        if metadata.duration is None or metadata.duration <= 0:
            errors.append("Invalid file: Duration is zero or missing")
        if not metadata.streams:
            errors.append("Invalid file: No media streams found")
        elif not metadata.video_streams:
            errors.append("Invalid file: No video stream found")
        return errors

    def check_codecs(self, metadata: MediaMetadata, target_format: str) -> List[str]:
        caps = self.catalog.get_capabilities(target_format)
        if caps is None:
            return []

        recs: List[str] = []
        fmt = target_format.upper()
        video, audio = metadata.first_video, metadata.first_audio

        if video is not None and video.codec_name not in caps.supported_video_codecs:
            recs.append(
                f"Re-encoding video from {video.codec_name or 'unknown'} to a {fmt} codec "
                f"({', '.join(caps.supported_video_codecs)}) required"
            )
        if audio is not None and audio.codec_name not in caps.supported_audio_codecs:
            recs.append(f"Re-encoding audio from {audio.codec_name or 'unknown'} to a {fmt}-compatible codec required")
        if video is not None and video.has_dimensions:
            mx = caps.max_resolution
            if video.width > mx.width or video.height > mx.height:
                recs.append(f"Resolution exceeds {fmt} limits ({mx}), downscaling required")
        return recs

    @staticmethod
    def check_streams(metadata: MediaMetadata) -> List[str]:
        if metadata is None:
            return []
        warnings: List[str] = []
        n_video, n_audio = len(metadata.video_streams), len(metadata.audio_streams)
        if n_video > 1:
            warnings.append(f"Multiple video streams detected ({n_video}), using first stream")
        if n_audio > 1:
            warnings.append(f"Multiple audio streams detected ({n_audio}), using first stream")

        video = metadata.first_video
        fps = video.frame_rate if video is not None else None
        if fps is not None and fps > MAX_PLAUSIBLE_FPS:
            warnings.append(f"Unusually high frame rate detected: {fps:.2f} fps")
        return warnings
