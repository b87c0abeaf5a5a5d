from __future__ import annotations

from typing import Protocol, Sequence
from mediaconv.domain.dataclasses.transcode import TranscodeOutcome


class TranscoderPort(Protocol):
    async def run(self, args: Sequence[str], *, timeout_sec: float) -> TranscodeOutcome:
        """
        Run the transcoder with `args` (input/output paths included) and wait
        for it to exit. Must reap the process on every path.
        Raises TranscoderError on non-zero exit and TranscoderTimeoutError
        when `timeout_sec` elapses (the process is killed first).
        """
        ...
