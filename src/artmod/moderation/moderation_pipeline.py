"""
Moderation aggregation for a single item.

This module fans one request out to the image analyzers concurrently, runs
the text analysis inline, and folds the four analyses into a single verdict.

Flow:
1. Look up the full-result cache (skipped on recheck)
2. Snapshot thresholds and share one image load across the analyzers
3. Collect flags in a fixed order and derive the score and recommendation
4. Cache fresh verdicts; degraded verdicts are never cached
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
import time
from typing import List, Optional

from artmod.analyzers.nsfw_analyzer import NSFWAnalyzer
from artmod.analyzers.plagiarism_analyzer import PlagiarismAnalyzer
from artmod.analyzers.quality_analyzer import QualityAnalyzer
from artmod.analyzers.text_analyzer import TextAnalyzer
from artmod.cache.result_cache import ResultCache
from artmod.datatypes.moderation_datatypes import (
    AnalysisInput,
    Confidence,
    Flag,
    FlagType,
    ModerationAnalysis,
    ModerationResult,
    Recommendation,
    Severity,
    build_degraded_result,
)
from artmod.datatypes.threshold_datatypes import ModerationThresholds
from artmod.moderation.threshold_registry import ThresholdRegistry
from artmod.monitoring.perf_monitor import PerformanceMonitor
from artmod.util.image_utils import ImageLoader, ImageSource, generate_cache_key
from artmod.util.logger import get_logger

logger = get_logger("moderation_pipeline")

NSFW_PENALTY = 0.4
PLAGIARISM_PENALTY = 0.3
QUALITY_PENALTY = 0.2
TEXT_PENALTIES = {Severity.HIGH: 0.3, Severity.MEDIUM: 0.2, Severity.LOW: 0.1}


def recommend(flags: List[Flag], quality_score: float, thresholds: ModerationThresholds) -> Recommendation:
    """Map the collected flags to a terminal recommendation."""
    if any(flag.severity is Severity.HIGH for flag in flags):
        return Recommendation.REJECT
    if flags:
        return Recommendation.REVIEW
    if quality_score > thresholds.quality.good:
        return Recommendation.AUTO_APPROVE
    return Recommendation.APPROVE


def verdict_confidence(flags: List[Flag]) -> Confidence:
    if not flags or any(flag.severity is Severity.HIGH for flag in flags):
        return Confidence.HIGH
    return Confidence.MEDIUM


class ModerationAggregator:
    """
    Runs every analysis dimension for one item and combines the results.

    The cache, threshold registry and performance monitor are shared with the
    rest of the process and injected at construction.
    """

    def __init__(
        self,
        cache: ResultCache,
        thresholds: ThresholdRegistry,
        monitor: PerformanceMonitor,
        nsfw_analyzer: NSFWAnalyzer,
        plagiarism_analyzer: PlagiarismAnalyzer,
        quality_analyzer: QualityAnalyzer,
        text_analyzer: TextAnalyzer,
        image_loader: Optional[ImageLoader] = None,
    ) -> None:
        self.cache = cache
        self.thresholds = thresholds
        self.monitor = monitor
        self.nsfw_analyzer = nsfw_analyzer
        self.plagiarism_analyzer = plagiarism_analyzer
        self.quality_analyzer = quality_analyzer
        self.text_analyzer = text_analyzer
        self.image_loader = image_loader or ImageLoader()

    async def moderate(self, item: AnalysisInput, *, bypass_cache: bool = False) -> ModerationResult:
        """
        Moderate one item. Never raises except on task cancellation.

        Args:
            item: The moderation request.
            bypass_cache: Recompute even if a cached verdict exists.

        Returns:
            The fresh or cached verdict, or a degraded ``manual_review``
            verdict when the aggregation itself failed.
        """
        self.monitor.record_request()
        cache_key = generate_cache_key(item.image_ref)

        if not bypass_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("[PIPELINE] Cache hit for %s", item.describe())
                return replace(cached, item_id=item.item_id)

        logger.info("[PIPELINE] Starting moderation for %s", item.describe())
        start = time.perf_counter()
        try:
            result = await self._evaluate(item, start)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            elapsed = time.perf_counter() - start
            self.monitor.record_error()
            self.monitor.record_latency(elapsed)
            logger.exception("[PIPELINE] Moderation failed for %s", item.describe())
            return build_degraded_result(item.item_id, str(exc) or type(exc).__name__, round(elapsed * 1000, 2))

        elapsed = time.perf_counter() - start
        self.monitor.record_latency(elapsed)
        self.monitor.track("moderate", elapsed)
        self.cache.set(cache_key, result)
        logger.info(
            "[PIPELINE] Moderation complete for %s: %s (score: %.2f, %.0fms)",
            item.item_id,
            result.recommendation,
            result.overall_score,
            result.processing_ms,
        )
        return result

    async def recheck(self, item: AnalysisInput) -> ModerationResult:
        """Force a fresh evaluation; the new verdict replaces the cached one."""
        return await self.moderate(item, bypass_cache=True)

    async def _evaluate(self, item: AnalysisInput, start: float) -> ModerationResult:
        thresholds = self.thresholds.get()
        source = ImageSource(item.image_ref, self.image_loader)

        nsfw, plagiarism, quality = await asyncio.gather(
            self.nsfw_analyzer.analyze(source, thresholds),
            self.plagiarism_analyzer.analyze(source, thresholds),
            self.quality_analyzer.analyze(source, thresholds),
        )
        text = self.text_analyzer.analyze(item.title, item.description, item.tags)

        flags: List[Flag] = []
        score = 1.0

        if nsfw.flagged:
            flags.append(
                Flag(
                    type=FlagType.NSFW,
                    severity=nsfw.severity,
                    message="Potentially inappropriate content detected",
                    score=nsfw.score,
                )
            )
            score -= NSFW_PENALTY

        if plagiarism.flagged:
            flags.append(
                Flag(
                    type=FlagType.PLAGIARISM,
                    severity=Severity.HIGH,
                    message="Potential duplicate or copyrighted content detected",
                    score=plagiarism.score,
                )
            )
            score -= PLAGIARISM_PENALTY

        if quality.flagged:
            flags.append(
                Flag(
                    type=FlagType.LOW_QUALITY,
                    severity=Severity.MEDIUM,
                    message="Image quality below minimum standards",
                    score=quality.score,
                )
            )
            score -= QUALITY_PENALTY

        for flag in text.flags:
            flags.append(flag)
            score -= TEXT_PENALTIES[flag.severity]

        return ModerationResult(
            item_id=item.item_id,
            passed=not flags,
            needs_review=bool(flags),
            flags=tuple(flags),
            overall_score=round(max(0.0, score), 4),
            recommendation=recommend(flags, quality.score, thresholds),
            confidence=verdict_confidence(flags),
            analysis=ModerationAnalysis(nsfw=nsfw, plagiarism=plagiarism, quality=quality, text=text),
            processing_ms=round((time.perf_counter() - start) * 1000, 2),
        )
