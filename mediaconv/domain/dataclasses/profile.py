from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mediaconv.domain.dataclasses.capabilities import Resolution


@dataclass(frozen=True)
class VideoParams:
    codec: str
    resolution: Optional[Resolution] = None
    bitrate: Optional[str] = None      # ffmpeg notation, e.g. "6000k"
    maxrate: Optional[str] = None
    bufsize: Optional[str] = None
    crf: Optional[int] = None
    preset: Optional[str] = None
    profile: Optional[str] = None      # codec profile (baseline/main/high)
    level: Optional[str] = None
    gop_size: Optional[int] = None
    frame_rate: Optional[float] = None
    pixel_format: Optional[str] = None
    aspect_ratio: Optional[str] = None
    interlaced: bool = False


@dataclass(frozen=True)
class AudioParams:
    codec: str
    bitrate: Optional[str] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None


@dataclass(frozen=True)
class EncodingProfile:
    id: str
    target_format: str
    description: str
    video: VideoParams
    audio: AudioParams
    container: Optional[str] = None  # ffmpeg -f muxer name
