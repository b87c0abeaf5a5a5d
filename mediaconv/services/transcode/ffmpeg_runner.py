# mediaconv/services/transcode/ffmpeg_runner.py
from __future__ import annotations

import asyncio
import shlex
import shutil
import time
from pathlib import Path
from typing import List, Optional, Sequence

from mediaconv.common.logging import get_logger
from mediaconv.common.settings import get_settings
from mediaconv.domain.dataclasses.transcode import TranscodeOutcome
from mediaconv.domain.errors import TranscoderError, TranscoderTimeoutError
from mediaconv.domain.ports.transcoder import TranscoderPort
from mediaconv.services.transcode.progress import ProgressMonitor

logger = get_logger(__name__)

READ_CHUNK = 4096


class FFmpegRunner(TranscoderPort):
    """
    Runs ffmpeg as an awaitable: the caller's timeout cancels the supervision
    task, after which the child is killed and reaped. The child is reaped on
    every exit path, including cancellation of the awaiting task.
    """

    def __init__(
        self,
        ffmpeg_bin: Optional[str] = None,
        *,
        progress_log_every: Optional[int] = None,
        stderr_tail_chars: Optional[int] = None,
    ) -> None:
        cfg = get_settings().ffmpeg
        candidate = ffmpeg_bin or cfg.bin
        if not Path(candidate).is_absolute():
            candidate = shutil.which(candidate) or candidate  # failure surfaces at spawn time
        self.ffmpeg_bin = candidate
        self.log_level = cfg.log_level
        self.hide_banner = cfg.hide_banner
        self.progress_log_every = progress_log_every or cfg.progress_log_every
        self.stderr_tail_chars = stderr_tail_chars or cfg.stderr_tail_chars

    def command(self, args: Sequence[str]) -> List[str]:
        prefix: List[str] = [self.ffmpeg_bin]
        if self.hide_banner:
            prefix.append("-hide_banner")
        prefix += ["-nostdin", "-loglevel", self.log_level]
        return prefix + [str(a) for a in args]

    async def run(self, args: Sequence[str], *, timeout_sec: float) -> TranscodeOutcome:
        cmd = self.command(args)
        logger.debug("ffmpeg cmd: %s", " ".join(shlex.quote(p) for p in cmd))
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TranscoderError(f"Failed to start transcoder: {e}", stderr=str(e)) from e

        monitor = ProgressMonitor(log_every=self.progress_log_every, tail_chars=self.stderr_tail_chars)
        try:
            try:
                returncode = await asyncio.wait_for(self._supervise(proc, monitor), timeout=timeout_sec)
            except asyncio.TimeoutError as e:
                logger.warning("Transcoder exceeded %gs budget, killing pid %s", timeout_sec, proc.pid)
                raise TranscoderTimeoutError(timeout_sec, stderr=monitor.tail) from e
        finally:
            await self._reap(proc)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if returncode != 0:
            logger.error("Transcoder exited with code %s\nstderr: %s", returncode, monitor.tail[-500:])
            raise TranscoderError(
                f"Transcoder exited with code {returncode}", returncode=returncode, stderr=monitor.tail
            )

        logger.info("Transcoder completed in %dms", elapsed_ms)
        return TranscodeOutcome(
            returncode=returncode,
            duration_ms=elapsed_ms,
            progress=monitor.progress,
            stderr_tail=monitor.tail,
        )

    # ---- internals ----
    @staticmethod
    async def _supervise(proc: asyncio.subprocess.Process, monitor: ProgressMonitor) -> int:
        if proc.stderr is not None:
            while True:
                chunk = await proc.stderr.read(READ_CHUNK)
                if not chunk:
                    break
                monitor.feed(chunk)
            monitor.close()
        return await proc.wait()

    @staticmethod
    async def _reap(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
