# mediaconv/domain/policies/capability_catalog.py
from __future__ import annotations

import math
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from mediaconv.domain.dataclasses.capabilities import (
    BitrateCeiling,
    FormatCapabilities,
    FormatSubProfile,
    GopBounds,
    Resolution,
    ResolutionSupport,
)

FALLBACK_RESOLUTION = Resolution(1280, 720)
FRAME_RATE_TOLERANCE = 0.01

_R = Resolution
_ANY_RES = _R(7680, 4320)  # 8K
_SMALL_MIN = _R(128, 96)
_QCIF_MIN = _R(176, 144)

# Values follow ITU-T / SMPTE / DVD Forum limits. Bitrates are kbps.
_TABLE: Mapping[str, FormatCapabilities] = MappingProxyType({
    # MPEG-2 (DVD, broadcast)
    "mpeg": FormatCapabilities(
        format="mpeg",
        max_resolution=_R(1920, 1080),
        min_resolution=_R(352, 240),
        supported_video_codecs=("mpeg2video",),
        supported_audio_codecs=("mp2", "mp3", "ac3"),
        max_bitrate=BitrateCeiling(video_kbps=9800, audio_kbps=448),
        gop_bounds=GopBounds(12, 15),
        supported_frame_rates=(23.976, 24, 25, 29.97, 30, 50, 59.94, 60),
        pixel_formats=("yuv420p", "yuv422p"),
        aspect_ratios=("4:3", "16:9"),
        sub_profiles=MappingProxyType({
            "dvd": FormatSubProfile("dvd", _R(720, 576), BitrateCeiling(8000, 384), 25),  # PAL
            "broadcast": FormatSubProfile("broadcast", _R(1920, 1080), BitrateCeiling(9800, 448), 25),
            "hd": FormatSubProfile("hd", _R(1920, 1080), BitrateCeiling(9800, 448), 30),
        }),
    ),
    # H.264 / MP4 (universal)
    "mp4": FormatCapabilities(
        format="mp4",
        max_resolution=_ANY_RES,
        min_resolution=_SMALL_MIN,
        supported_video_codecs=("h264", "hevc"),
        supported_audio_codecs=("aac", "mp3", "ac3"),
        max_bitrate=BitrateCeiling(100000, 640),
        gop_bounds=GopBounds(24, 300),
        pixel_formats=("yuv420p", "yuv422p", "yuv444p"),
    ),
    # WebM (web streaming)
    "webm": FormatCapabilities(
        format="webm",
        max_resolution=_ANY_RES,
        min_resolution=_SMALL_MIN,
        supported_video_codecs=("vp8", "vp9", "av1"),
        supported_audio_codecs=("opus", "vorbis"),
        max_bitrate=BitrateCeiling(50000, 510),
        gop_bounds=GopBounds(60, 300),
    ),
    # Windows Media
    "wmv": FormatCapabilities(
        format="wmv",
        max_resolution=_R(1920, 1080),
        min_resolution=_QCIF_MIN,
        supported_video_codecs=("wmv2", "wmv3"),
        supported_audio_codecs=("wmav2",),
        max_bitrate=BitrateCeiling(10000, 384),
        gop_bounds=GopBounds(50, 250),
        supported_frame_rates=(15, 23.976, 24, 25, 29.97, 30),
        aspect_ratios=("4:3", "16:9"),
    ),
    # Flash video
    "flv": FormatCapabilities(
        format="flv",
        max_resolution=_R(1920, 1080),
        min_resolution=_QCIF_MIN,
        supported_video_codecs=("h264", "flv1"),
        supported_audio_codecs=("aac", "mp3"),
        max_bitrate=BitrateCeiling(5000, 320),
        gop_bounds=GopBounds(24, 120),
        supported_frame_rates=(15, 24, 25, 30),
        aspect_ratios=("4:3", "16:9"),
    ),
    # QuickTime
    "mov": FormatCapabilities(
        format="mov",
        max_resolution=_ANY_RES,
        min_resolution=_SMALL_MIN,
        supported_video_codecs=("h264", "hevc", "prores"),
        supported_audio_codecs=("aac", "pcm_s16le", "pcm_s24le"),
        max_bitrate=BitrateCeiling(100000, 1536),
        gop_bounds=GopBounds(24, 300),
        pixel_formats=("yuv420p", "yuv422p", "yuv444p"),
    ),
    # Matroska
    "mkv": FormatCapabilities(
        format="mkv",
        max_resolution=_ANY_RES,
        min_resolution=_SMALL_MIN,
        supported_video_codecs=("h264", "hevc", "vp9", "av1"),
        supported_audio_codecs=("aac", "opus", "vorbis", "ac3", "dts"),
        max_bitrate=BitrateCeiling(100000, 1536),
        gop_bounds=GopBounds(24, 300),
        pixel_formats=("yuv420p", "yuv422p", "yuv444p"),
    ),
    # AVI (legacy)
    "avi": FormatCapabilities(
        format="avi",
        max_resolution=_R(1920, 1080),
        min_resolution=_QCIF_MIN,
        supported_video_codecs=("mpeg4", "xvid", "mjpeg"),
        supported_audio_codecs=("mp3", "ac3", "pcm_s16le"),
        max_bitrate=BitrateCeiling(8000, 384),
        gop_bounds=GopBounds(24, 300),
        supported_frame_rates=(15, 23.976, 24, 25, 29.97, 30),
        pixel_formats=("yuv420p", "yuv422p"),
        aspect_ratios=("4:3", "16:9"),
    ),
})


def _floor_even(v: float) -> int:
    return max(2, int(v) // 2 * 2)


def _round_even(v: float) -> int:
    # half-up, not banker's rounding: 961 -> 962
    return max(2, int(math.floor(v / 2 + 0.5)) * 2)


class CapabilityCatalog:
    """
    Read-only lookups over per-format technical limits.
    The default table is built once at import; instances only hold a reference
    to it, so one catalog can be shared by any number of concurrent runs.
    """

    def __init__(self, table: Optional[Mapping[str, FormatCapabilities]] = None) -> None:
        self._table: Mapping[str, FormatCapabilities] = (
            _TABLE if table is None else MappingProxyType(dict(table))
        )

    # ---------------- lookups ----------------

    @staticmethod
    def _key(fmt: str | None) -> str:
        return (fmt or "").strip().lower().lstrip(".")

    def formats(self) -> Tuple[str, ...]:
        return tuple(self._table.keys())

    def get_capabilities(self, fmt: str | None) -> Optional[FormatCapabilities]:
        return self._table.get(self._key(fmt))

    # alias for callers that think in "constraints"
    get_encoding_constraints = get_capabilities

    def is_resolution_supported(self, width: int, height: int, fmt: str) -> ResolutionSupport:
        caps = self.get_capabilities(fmt)
        if caps is None:
            return ResolutionSupport(False, "Unknown format")

        name = self._key(fmt).upper()
        mx, mn = caps.max_resolution, caps.min_resolution
        if width > mx.width or height > mx.height:
            return ResolutionSupport(
                False, f"Resolution {width}x{height} exceeds {name} maximum {mx}", bound=mx
            )
        if width < mn.width or height < mn.height:
            return ResolutionSupport(
                False, f"Resolution {width}x{height} below {name} minimum {mn}", bound=mn
            )
        return ResolutionSupport(True)

    def is_frame_rate_supported(self, fps: Optional[float], fmt: str) -> bool:
        caps = self.get_capabilities(fmt)
        if caps is None or fps is None:
            return False
        if caps.frame_rates_unrestricted:
            return True
        return any(abs(fps - r) <= FRAME_RATE_TOLERANCE for r in caps.supported_frame_rates or ())

    def get_safe_fallback_resolution(self, fmt: str, src_w: int, src_h: int) -> Resolution:
        """
        Largest even resolution that fits the format's maximum while keeping
        the source aspect ratio. Sources already within bounds are only floored
        to even dimensions.
        """
        caps = self.get_capabilities(fmt)
        if caps is None or src_w <= 0 or src_h <= 0:
            return FALLBACK_RESOLUTION

        mx = caps.max_resolution
        if src_w <= mx.width and src_h <= mx.height:
            return Resolution(_floor_even(src_w), _floor_even(src_h))

        aspect = src_w / src_h
        if mx.width / src_w <= mx.height / src_h:
            # width is the constraining axis
            w = mx.width
            h = _round_even(w / aspect)
            if h > mx.height:
                h = _floor_even(mx.height)
        else:
            h = mx.height
            w = _round_even(h * aspect)
            if w > mx.width:
                w = _floor_even(mx.width)
        return Resolution(_floor_even(w), _floor_even(h))

    def get_recommended_sub_profile(self, fmt: str, use_case: str = "general") -> Optional[FormatSubProfile]:
        """
        Named limits for a use case. Only MPEG carries real variants; other
        formats get a synthetic one built from their base limits.
        """
        caps = self.get_capabilities(fmt)
        if caps is None:
            return None

        if caps.sub_profiles:
            uc = (use_case or "general").strip().lower()
            if uc == "dvd" and "dvd" in caps.sub_profiles:
                return caps.sub_profiles["dvd"]
            if uc in ("broadcast", "tv") and "broadcast" in caps.sub_profiles:
                return caps.sub_profiles["broadcast"]
            if "hd" in caps.sub_profiles:
                return caps.sub_profiles["hd"]
            return next(iter(caps.sub_profiles.values()))

        rates = caps.supported_frame_rates
        return FormatSubProfile(
            name="general",
            max_resolution=caps.max_resolution,
            max_bitrate=caps.max_bitrate,
            frame_rate=rates[-1] if rates else 30,
        )
