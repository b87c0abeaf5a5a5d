# mediaconv/services/probe/ffprobe_adapter.py
from __future__ import annotations

import asyncio
import json
import shlex
import shutil
from pathlib import Path
from typing import Optional

from mediaconv.common.logging import get_logger
from mediaconv.common.probe.ffprobe_helpers import build_ffprobe_cmd, parse_ffprobe
from mediaconv.common.settings import get_settings
from mediaconv.domain.entities.probe import MediaMetadata
from mediaconv.domain.errors import ProbeError
from mediaconv.domain.ports.probe import MediaProbePort

logger = get_logger(__name__)


class FFprobeAdapter(MediaProbePort):
    """
    Infrastructure adapter implementing MediaProbePort using `ffprobe`.
    The wait on the child is asynchronous; one instance can serve many runs.
    """

    def __init__(self, ffprobe_bin: Optional[str] = None, timeout_sec: Optional[float] = None):
        cfg = get_settings()
        candidate = ffprobe_bin or cfg.ffprobe.bin
        if not Path(candidate).is_absolute():
            # try to resolve absolute path for nicer errors
            resolved = shutil.which(candidate)
            if not resolved:
                raise ProbeError(f"{candidate} not found on PATH; set FFPROBE__BIN or install ffmpeg.")
            candidate = resolved

        self.ffprobe_bin = candidate
        self.timeout_sec = float(timeout_sec or cfg.ffprobe.timeout_sec)
        self.log_level = cfg.ffprobe.log_level

    # ---- Port API -------------------------------------------------------------
    async def probe(self, path: Path) -> MediaMetadata:
        if not path:
            raise ProbeError("No path provided to probe().")
        if not Path(path).is_file():
            raise ProbeError(f"File not found: {path}")

        cmd = build_ffprobe_cmd(path, ffprobe_bin=self.ffprobe_bin, log_level=self.log_level)
        logger.debug("ffprobe cmd: %s", " ".join(shlex.quote(p) for p in cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError("Failed to execute ffprobe (OS error).", stderr=str(e)) from e

        try:
            stdout_b, stderr_b = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_sec)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.communicate()
            raise ProbeError(f"ffprobe timed out after {self.timeout_sec:g}s") from e

        stdout = (stdout_b or b"").decode("utf-8", errors="replace")
        stderr = (stderr_b or b"").decode("utf-8", errors="replace")

        if proc.returncode != 0:
            raise ProbeError("ffprobe returned non-zero exit code", stderr=stderr, rc=proc.returncode)

        try:
            data = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError("ffprobe produced invalid JSON", stderr=stdout[:500]) from e
        if not isinstance(data, dict):
            raise ProbeError("ffprobe produced unexpected JSON", stderr=stdout[:500])

        return parse_ffprobe(data)
