from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class Resolution:
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_even(self) -> bool:
        return self.width % 2 == 0 and self.height % 2 == 0

    def fits_within(self, bound: "Resolution") -> bool:
        return self.width <= bound.width and self.height <= bound.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class BitrateCeiling:
    video_kbps: int
    audio_kbps: int


@dataclass(frozen=True)
class GopBounds:
    min: int
    max: int


@dataclass(frozen=True)
class FormatSubProfile:
    """Named variant of a format's limits (e.g. MPEG dvd / broadcast / hd)."""
    name: str
    max_resolution: Resolution
    max_bitrate: BitrateCeiling
    frame_rate: float


@dataclass(frozen=True)
class FormatCapabilities:
    """
    Technical limits of one output format. Instances live in the capability
    catalog, are built once at import and shared read-only by every run.
    `supported_frame_rates` / `aspect_ratios` are None when unrestricted.
    """
    format: str
    max_resolution: Resolution
    min_resolution: Resolution
    supported_video_codecs: Tuple[str, ...]
    supported_audio_codecs: Tuple[str, ...]
    max_bitrate: BitrateCeiling
    gop_bounds: GopBounds
    supported_frame_rates: Optional[Tuple[float, ...]] = None
    pixel_formats: Tuple[str, ...] = ("yuv420p",)
    aspect_ratios: Optional[Tuple[str, ...]] = None
    sub_profiles: Mapping[str, FormatSubProfile] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def frame_rates_unrestricted(self) -> bool:
        return self.supported_frame_rates is None


@dataclass(frozen=True)
class ResolutionSupport:
    supported: bool
    reason: Optional[str] = None
    bound: Optional[Resolution] = None  # the violated max/min, if any
