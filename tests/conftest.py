# tests/conftest.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from mediaconv.common import settings as s
from mediaconv.domain.dataclasses.transcode import TranscodeOutcome, TranscodeProgress
from mediaconv.domain.entities.probe import MediaMetadata, StreamDescriptor
from mediaconv.domain.enums.stream_kind import StreamKind


@pytest.fixture(autouse=True)
def _fresh_settings():
    # every test sees settings built from its own env
    s.get_settings.cache_clear()
    yield
    s.get_settings.cache_clear()


def make_metadata(
    *,
    width: Optional[int] = 1920,
    height: Optional[int] = 1080,
    fps: tuple[int, int] | None = (25, 1),
    duration: Optional[float] = 12.5,
    vcodec: str = "h264",
    acodec: Optional[str] = "aac",
    extra_video: int = 0,
    format_present: bool = True,
    with_video: bool = True,
) -> MediaMetadata:
    """Build MediaMetadata the way the ffprobe adapter would."""
    streams: List[StreamDescriptor] = []
    if with_video:
        for _ in range(1 + extra_video):
            streams.append(
                StreamDescriptor(
                    index=len(streams),
                    kind=StreamKind.video,
                    codec_name=vcodec,
                    width=width,
                    height=height,
                    frame_rate_num=fps[0] if fps else None,
                    frame_rate_den=fps[1] if fps else None,
                )
            )
    if acodec:
        streams.append(StreamDescriptor(index=len(streams), kind=StreamKind.audio, codec_name=acodec))
    return MediaMetadata(
        format_present=format_present,
        duration=duration,
        size_bytes=1_000_000,
        format_name="mov,mp4,m4a,3gp,3g2,mj2",
        streams=tuple(streams),
    )


class FakeProber:
    """MediaProbePort double: returns fixed metadata (or raises) and records paths."""

    def __init__(self, metadata: Optional[MediaMetadata] = None, error: Optional[BaseException] = None):
        self.metadata = metadata if metadata is not None else make_metadata()
        self.error = error
        self.calls: List[Path] = []

    async def probe(self, path: Path) -> MediaMetadata:
        self.calls.append(Path(path))
        if self.error is not None:
            raise self.error
        return self.metadata


class FakeTranscoder:
    """TranscoderPort double: records argument lists; optionally raises."""

    def __init__(self, error: Optional[BaseException] = None, frames: int = 300):
        self.error = error
        self.frames = frames
        self.calls: List[tuple[List[str], float]] = []

    async def run(self, args: Sequence[str], *, timeout_sec: float) -> TranscodeOutcome:
        self.calls.append((list(args), timeout_sec))
        if self.error is not None:
            raise self.error
        return TranscodeOutcome(
            returncode=0,
            duration_ms=5,
            progress=TranscodeProgress(frame=self.frames, speed=2.0),
        )


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()
