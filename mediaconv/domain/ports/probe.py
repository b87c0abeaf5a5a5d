from __future__ import annotations
from pathlib import Path
from typing import Protocol
from mediaconv.domain.entities.probe import MediaMetadata

class MediaProbePort(Protocol):
    # raises mediaconv.domain.errors.ProbeError on non-zero exit or bad JSON
    async def probe(self, path: Path) -> MediaMetadata: ...
