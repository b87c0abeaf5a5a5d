# mediaconv/services/pipeline/batch.py
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional

from mediaconv.common.logging import get_logger
from mediaconv.common.settings import get_settings
from mediaconv.domain.dataclasses.reports import PipelineLog, PipelineResult
from mediaconv.domain.enums.pipeline_stage import PipelineStage
from mediaconv.services.pipeline.orchestrator import ConversionOrchestrator
from mediaconv.services.schemas.conversion import ConversionRequest

logger = get_logger(__name__)


@dataclass
class BatchStats:
    start_ts: float
    runs_submitted: int = 0
    runs_succeeded: int = 0
    runs_failed: int = 0

    @property
    def uptime_sec(self) -> float:
        return time.time() - self.start_ts

    @property
    def in_flight(self) -> int:
        return max(0, self.runs_submitted - (self.runs_succeeded + self.runs_failed))


class BatchRunner:
    """
    Runs many independent conversions on one event loop.

    - at most `max_concurrent` runs are inside execute() at once
    - run_many() returns results in request order, not completion order
    - a failed run is a PipelineFailure in the result list; it never
      cancels its siblings
    """

    def __init__(
        self,
        orchestrator: Optional[ConversionOrchestrator] = None,
        *,
        max_concurrent: Optional[int] = None,
        name: str = "batch",
    ) -> None:
        self.orchestrator = orchestrator or ConversionOrchestrator()
        self.max_concurrent = int(max_concurrent or get_settings().pipeline.max_concurrent_runs)
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._name = name
        self._stats = BatchStats(start_ts=time.time())

    def stats(self) -> BatchStats:
        """Return a *snapshot* of current stats."""
        return replace(self._stats)

    async def run_many(self, requests: Iterable[ConversionRequest | Mapping[str, Any]]) -> List[PipelineResult]:
        items = list(requests)
        slots = asyncio.Semaphore(self.max_concurrent)

        async def _one(req) -> PipelineResult:
            async with slots:
                try:
                    result = await self.orchestrator.execute(req)
                except Exception as ex:
                    logger.exception("%s: run raised instead of returning a result", self._name)
                    log = PipelineLog()
                    log.start()
                    result = self.orchestrator._failed(log, PipelineStage.validation, time.monotonic(), ex)
            if result.ok:
                self._stats.runs_succeeded += 1
            else:
                self._stats.runs_failed += 1
            return result

        self._stats.runs_submitted += len(items)
        logger.info("%s: %d runs, at most %d at once", self._name, len(items), self.max_concurrent)
        results = await asyncio.gather(*(_one(r) for r in items))
        logger.info(
            "%s: finished (ok=%d failed=%d)", self._name, self._stats.runs_succeeded, self._stats.runs_failed
        )
        return list(results)
