# mediaconv/domain/policies/resolution_planner.py
from __future__ import annotations

import math
from typing import List, Optional, Tuple

from mediaconv.common.logging import get_logger
from mediaconv.domain.dataclasses.capabilities import Resolution
from mediaconv.domain.dataclasses.resolution import ResolutionPlan
from mediaconv.domain.entities.probe import MediaMetadata
from mediaconv.domain.errors import NormalizationError
from mediaconv.domain.policies.capability_catalog import CapabilityCatalog, FALLBACK_RESOLUTION

logger = get_logger(__name__)

EVEN_DIMENSIONS_REASON = "codec requires even dimensions"
QUALITY_LOSS_RATIO = 0.25
UPSCALE_RATIO = 2.0

# (label, width, height, fps or None)
_STANDARDS = {
    "mpeg": (
        ("PAL DVD", 720, 576, 25.0),
        ("NTSC DVD", 720, 480, 29.97),
        ("HD 720p", 1280, 720, 25.0),
        ("Full HD 1080p", 1920, 1080, 25.0),
    ),
    "mp4": (
        ("480p", 854, 480, None),
        ("720p", 1280, 720, None),
        ("1080p", 1920, 1080, None),
        ("4K", 3840, 2160, None),
    ),
    "webm": (
        ("360p", 640, 360, None),
        ("480p", 854, 480, None),
        ("720p", 1280, 720, None),
        ("1080p", 1920, 1080, None),
    ),
}


def _round_even(v: float) -> int:
    return max(2, int(math.floor(v / 2 + 0.5)) * 2)


def build_scale_filter(res: Resolution) -> str:
    return f"scale={res.width}:{res.height}"


def build_filter_chain(
    res: Resolution,
    *,
    deinterlace: bool = False,
    denoise: bool = False,
    sharpen: bool = False,
) -> str:
    """ffmpeg -vf chain: optional yadif, scale, then optional hqdn3d/unsharp."""
    filters: List[str] = []
    if deinterlace:
        filters.append("yadif=0:-1:0")
    filters.append(build_scale_filter(res))
    if denoise:
        filters.append("hqdn3d=1.5:1.5:6:6")
    if sharpen:
        filters.append("unsharp=5:5:1.0:5:5:0.0")
    return ",".join(filters)


def fit_within(src: Resolution, bound: Resolution) -> Resolution:
    """Scale src to touch `bound` on its constraining axis; even dimensions."""
    src_aspect = src.width / src.height
    if src_aspect > bound.width / bound.height:
        w, h = bound.width, round(bound.width / src_aspect)
    else:
        w, h = round(bound.height * src_aspect), bound.height
    return Resolution(_round_even(w), _round_even(h))


def standard_resolutions(fmt: str) -> Tuple[Tuple[str, int, int, Optional[float]], ...]:
    return _STANDARDS.get((fmt or "").lower(), _STANDARDS["mp4"])


def select_best_standard_resolution(src_w: int, src_h: int, fmt: str) -> Tuple[str, Resolution]:
    """Closest standard resolution by pixel count, never one larger than the source."""
    standards = standard_resolutions(fmt)
    src_pixels = src_w * src_h
    label, w, h, _ = standards[0]
    best = (label, Resolution(w, h))
    best_diff = abs(src_pixels - w * h)
    for label, w, h, _ in standards:
        pixels = w * h
        if pixels > src_pixels:
            continue
        diff = abs(src_pixels - pixels)
        if diff < best_diff:
            best, best_diff = (label, Resolution(w, h)), diff
    return best


class ResolutionPlanner:
    """
    Decides whether the source dimensions must change for the target format.
    normalize() never raises: on any internal problem it returns a safe
    default plan so the orchestrator's control flow stays uniform.
    """

    def __init__(self, catalog: Optional[CapabilityCatalog] = None, *, fallback: Resolution = FALLBACK_RESOLUTION) -> None:
        self.catalog = catalog or CapabilityCatalog()
        self.fallback = fallback

    def normalize(self, metadata: MediaMetadata, target_format: str) -> ResolutionPlan:
        try:
            return self._plan(metadata, target_format)
        except Exception as ex:
            logger.error("Resolution normalization error: %s", ex)
            return ResolutionPlan(
                needs_adjustment=True,
                original=None,
                target=self.fallback,
                reason=f"Error during analysis, using safe default {self.fallback}",
                warnings=("Could not determine optimal resolution",),
            )

    # ---------------- internals ----------------

    def _plan(self, metadata: MediaMetadata, target_format: str) -> ResolutionPlan:
        vs = metadata.first_video if metadata is not None else None
        if vs is None:
            raise NormalizationError("No video stream found")
        if not vs.has_dimensions or vs.width <= 0 or vs.height <= 0:
            raise NormalizationError(f"Video stream #{vs.index} has no usable dimensions")

        original = Resolution(vs.width, vs.height)
        fmt_label = target_format.upper()
        support = self.catalog.is_resolution_supported(original.width, original.height, target_format)

        if not support.supported:
            target = self.catalog.get_safe_fallback_resolution(target_format, original.width, original.height)
            logger.info(
                "Resolution normalization required: %s -> %s for %s", original, target, fmt_label
            )
            warnings = self._scale_warnings(original, target)
            caps = self.catalog.get_capabilities(target_format)
            if caps is not None and not target.fits_within(caps.max_resolution):
                raise NormalizationError(f"Fallback {target} still exceeds {fmt_label} maximum")
            if caps is not None and (
                target.width < caps.min_resolution.width or target.height < caps.min_resolution.height
            ):
                warnings.append(f"Resolution {target} is below {fmt_label} minimum {caps.min_resolution}")
            return ResolutionPlan(
                needs_adjustment=True,
                original=original,
                target=target,
                reason=support.reason,
                warnings=tuple(warnings),
            )

        if not original.is_even:
            target = Resolution(_round_even(original.width), _round_even(original.height))
            logger.info("Adjusting to even dimensions: %s -> %s", original, target)
            return ResolutionPlan(
                needs_adjustment=True,
                original=original,
                target=target,
                reason=EVEN_DIMENSIONS_REASON,
                warnings=tuple(self._scale_warnings(original, target)),
            )

        logger.info("Resolution %s is compatible with %s", original, fmt_label)
        return ResolutionPlan(needs_adjustment=False, original=original, target=original)

    @staticmethod
    def _scale_warnings(original: Resolution, target: Resolution) -> List[str]:
        ratio = target.area / original.area
        if ratio < QUALITY_LOSS_RATIO:
            return ["Significant quality loss expected due to downscaling (>75% reduction)"]
        if ratio > UPSCALE_RATIO:
            return ["Upscaling may introduce artifacts"]
        return []
