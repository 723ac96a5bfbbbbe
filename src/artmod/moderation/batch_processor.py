"""
Batch moderation with progress reporting.

Items are moderated through the shared aggregator with bounded concurrency.
A failure on one item never affects the others, and results always come back
in input order.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from artmod.datatypes.moderation_datatypes import (
    AnalysisInput,
    BatchProgress,
    ModerationResult,
    build_degraded_result,
)
from artmod.moderation.moderation_pipeline import ModerationAggregator
from artmod.util.logger import get_logger

logger = get_logger("batch_processor")

ProgressCallback = Callable[[BatchProgress], Union[None, Awaitable[None]]]


class BatchProcessor:
    """Moderates many items through one aggregator."""

    def __init__(self, aggregator: ModerationAggregator, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.aggregator = aggregator
        self.concurrency = concurrency

    async def process(
        self,
        items: Sequence[AnalysisInput],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ModerationResult]:
        """
        Moderate every item and return one result per item, in input order.

        Args:
            items: Requests to moderate.
            on_progress: Optional sync or async callable invoked after each
                item completes. Failures inside the callback are logged and ignored.
        """
        total = len(items)
        if total == 0:
            return []

        logger.info("[BATCH] Starting batch moderation of %d items (concurrency=%d)", total, self.concurrency)
        start = time.perf_counter()
        semaphore = asyncio.Semaphore(self.concurrency)
        progress_lock = asyncio.Lock()
        completed = 0

        async def run_one(item: AnalysisInput) -> ModerationResult:
            nonlocal completed
            async with semaphore:
                try:
                    result = await self.aggregator.moderate(item)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.exception("[BATCH] Item %s failed", item.item_id)
                    result = build_degraded_result(item.item_id, str(exc) or type(exc).__name__)

            async with progress_lock:
                completed += 1
                progress = BatchProgress(
                    completed_count=completed,
                    total=total,
                    percentage=round(completed / total * 100),
                    current_item_id=item.item_id,
                    result=result,
                )
                await self._notify(on_progress, progress)
            return result

        results = await asyncio.gather(*(run_one(item) for item in items))

        logger.info("[BATCH] Batch moderation complete: %d items in %.2fs", total, time.perf_counter() - start)
        return list(results)

    @staticmethod
    async def _notify(on_progress: Optional[ProgressCallback], progress: BatchProgress) -> None:
        if on_progress is None:
            return
        try:
            outcome = on_progress(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[BATCH] Progress callback failed for %s", progress.current_item_id)
