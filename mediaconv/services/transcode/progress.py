# mediaconv/services/transcode/progress.py
from __future__ import annotations

import codecs
import re
from collections import deque
from typing import Deque, Optional

from mediaconv.common.logging import get_logger
from mediaconv.domain.dataclasses.transcode import TranscodeProgress

logger = get_logger(__name__)

_FRAME = re.compile(r"frame=\s*(\d+)")
_FPS = re.compile(r"fps=\s*([\d.]+)")
_TIME = re.compile(r"time=\s*(-?\d{2}:\d{2}:\d{2}(?:\.\d+)?)")
_BITRATE = re.compile(r"bitrate=\s*([\d.]+\s*\w+/s)")
_SPEED = re.compile(r"speed=\s*([\d.]+)x")
_LINE_SPLIT = re.compile(r"[\r\n]+")


def parse_progress_line(line: str, into: Optional[TranscodeProgress] = None) -> Optional[TranscodeProgress]:
    """
    Update `into` (or a fresh TranscodeProgress) from one ffmpeg status line.
    Returns None when the line carries no frame= marker.
    """
    m = _FRAME.search(line)
    if not m:
        return None
    p = into if into is not None else TranscodeProgress()
    p.frame = int(m.group(1))
    if (m := _FPS.search(line)) is not None:
        p.fps = float(m.group(1))
    if (m := _TIME.search(line)) is not None:
        p.time = m.group(1)
    if (m := _BITRATE.search(line)) is not None:
        p.bitrate = m.group(1).replace(" ", "")
    if (m := _SPEED.search(line)) is not None:
        p.speed = float(m.group(1))
    return p


class ProgressMonitor:
    """
    Consumes the transcoder's stderr as raw chunks. ffmpeg rewrites its status
    line with carriage returns, so lines are split on both CR and LF.
    Keeps the latest progress and a bounded tail of diagnostic text.
    """

    def __init__(self, *, label: str = "ffmpeg", log_every: int = 100, tail_chars: int = 4000) -> None:
        self.label = label
        self.log_every = max(1, int(log_every))
        self.tail_chars = int(tail_chars)
        self.progress = TranscodeProgress()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self._tail: Deque[str] = deque()
        self._tail_len = 0
        self._last_logged_bucket = 0

    def feed(self, chunk: bytes) -> None:
        text = self._pending + self._decoder.decode(chunk)
        parts = _LINE_SPLIT.split(text)
        self._pending = parts.pop()  # possibly incomplete
        if len(self._pending) > self.tail_chars:
            self._pending = self._pending[-self.tail_chars:]
        for line in parts:
            self._consume(line)

    def close(self) -> None:
        rest = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if rest:
            self._consume(rest)

    @property
    def tail(self) -> str:
        return "\n".join(self._tail)

    # ---- internals ----
    def _consume(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if parse_progress_line(line, self.progress) is not None:
            bucket = self.progress.frame // self.log_every
            if bucket > self._last_logged_bucket:
                self._last_logged_bucket = bucket
                logger.info(
                    "[%s] progress: frame=%d time=%s speed=%sx",
                    self.label, self.progress.frame, self.progress.time,
                    "?" if self.progress.speed is None else f"{self.progress.speed:g}",
                )
            return
        self._remember(line)

    def _remember(self, line: str) -> None:
        self._tail.append(line)
        self._tail_len += len(line) + 1
        while self._tail and self._tail_len > self.tail_chars:
            self._tail_len -= len(self._tail.popleft()) + 1
