# mediaconv/domain/entities/probe.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from mediaconv.domain.enums.stream_kind import StreamKind


@dataclass(frozen=True)
class StreamDescriptor:
    """One probed stream. Dimensions and frame rate only apply to video."""
    index: int
    kind: StreamKind
    codec_name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate_num: Optional[int] = None
    frame_rate_den: Optional[int] = None

    @property
    def frame_rate(self) -> Optional[float]:
        if self.frame_rate_num is None or not self.frame_rate_den:
            return None
        return self.frame_rate_num / self.frame_rate_den

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width) and bool(self.height)


@dataclass(frozen=True)
class MediaMetadata:
    """
    Normalized, framework-free result of a media probe (e.g., ffprobe).
    Produced once per conversion run by the probe adapter and never mutated.
    `format_present` is False when the probe reported no container block at all.
    """
    format_present: bool = True
    duration: Optional[float] = None
    size_bytes: Optional[int] = None
    format_name: Optional[str] = None
    bit_rate: Optional[int] = None
    streams: Tuple[StreamDescriptor, ...] = ()

    # Optional raw payload for debugging
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def video_streams(self) -> Tuple[StreamDescriptor, ...]:
        return tuple(s for s in self.streams if s.kind is StreamKind.video)

    @property
    def audio_streams(self) -> Tuple[StreamDescriptor, ...]:
        return tuple(s for s in self.streams if s.kind is StreamKind.audio)

    @property
    def first_video(self) -> Optional[StreamDescriptor]:
        vs = self.video_streams
        return vs[0] if vs else None

    @property
    def first_audio(self) -> Optional[StreamDescriptor]:
        a = self.audio_streams
        return a[0] if a else None
