from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class TranscodeProgress:
    """Latest status markers seen on the transcoder's stderr. Observability only."""
    frame: int = 0
    fps: float = 0.0
    time: str = "00:00:00.00"
    bitrate: Optional[str] = None
    speed: Optional[float] = None


@dataclass(frozen=True)
class TranscodeOutcome:
    returncode: int
    duration_ms: int
    progress: TranscodeProgress
    stderr_tail: str = ""
