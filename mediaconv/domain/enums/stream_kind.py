from __future__ import annotations
from enum import StrEnum

class StreamKind(StrEnum):
    video = "video"
    audio = "audio"
    subtitle = "subtitle"
    other = "other"

    @classmethod
    def from_codec_type(cls, codec_type: str | None) -> "StreamKind":
        try:
            return cls((codec_type or "").strip().lower())
        except ValueError:
            return cls.other
