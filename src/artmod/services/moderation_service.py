"""
Moderation service facade.

Wires the shared cache, threshold registry, performance monitor, analyzers
and batch processor once at process start, and exposes the operations used
by the console and by embedding applications.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from artmod.analyzers.nsfw_analyzer import NSFWAnalyzer
from artmod.analyzers.plagiarism_analyzer import PlagiarismAnalyzer
from artmod.analyzers.quality_analyzer import QualityAnalyzer
from artmod.analyzers.scoring import risk_severity
from artmod.analyzers.text_analyzer import TextAnalyzer
from artmod.cache.result_cache import ResultCache
from artmod.configuration.app_configuration import AppConfig
from artmod.datatypes.image_datatypes import to_image_ref
from artmod.datatypes.moderation_datatypes import (
    AnalysisInput,
    BatchModerationResponse,
    ModerationResult,
    Recommendation,
)
from artmod.errors import InvalidModerationRequest
from artmod.moderation.batch_processor import BatchProcessor, ProgressCallback
from artmod.moderation.moderation_pipeline import ModerationAggregator
from artmod.moderation.moderation_stats import summarize_results
from artmod.moderation.threshold_registry import ThresholdRegistry
from artmod.monitoring.perf_monitor import PerformanceMonitor
from artmod.providers.sightengine import NSFWProvider, SightengineProvider
from artmod.util.image_utils import ImageLoader, ImageSource
from artmod.util.logger import get_logger

logger = get_logger("moderation_service")

ModerationPayload = Union[AnalysisInput, Mapping[str, Any]]


def to_analysis_input(payload: ModerationPayload) -> AnalysisInput:
    """Accept either a ready request or a caller mapping."""
    if isinstance(payload, AnalysisInput):
        return payload
    return AnalysisInput.from_mapping(payload)


class ModerationService:
    """
    Entry point for every moderation operation.

    Attributes:
        aggregator: Single-item moderation pipeline.
        batch_processor: Bounded-concurrency batch runner over the aggregator.
        provider: The configured NSFW provider, or None in heuristic mode.
        default_batch_limit: Maximum items processed per batch unless overridden.
    """

    def __init__(
        self,
        aggregator: ModerationAggregator,
        batch_processor: Optional[BatchProcessor] = None,
        provider: Optional[NSFWProvider] = None,
        default_batch_limit: int = 50,
    ) -> None:
        self.aggregator = aggregator
        self.batch_processor = batch_processor or BatchProcessor(aggregator)
        self.provider = provider
        self.default_batch_limit = default_batch_limit

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        provider: Optional[NSFWProvider] = None,
        rng: Optional[random.Random] = None,
    ) -> "ModerationService":
        """
        Build a fully wired service from the application configuration.

        Args:
            config: Loaded application configuration.
            provider: NSFW provider override; by default Sightengine is used
                when its credentials are present in the environment.
            rng: Random generator for the heuristic analyzers; by default
                seeded from ``analyzers.heuristic_seed``.
        """
        monitor = PerformanceMonitor(
            latency_window=config.latency_window,
            slow_operation_ms=config.slow_operation_ms,
        )
        cache = ResultCache(
            ttl_seconds=config.cache_ttl_seconds,
            max_entries=config.cache_max_entries,
            monitor=monitor,
        )
        registry = ThresholdRegistry(config.thresholds)

        if provider is None:
            settings = config.provider_settings
            if settings.configured:
                provider = SightengineProvider(settings.api_user, settings.api_secret, timeout=settings.timeout)
                logger.info("[SERVICE] Sightengine provider configured")
            else:
                logger.warning(
                    "[SERVICE] SIGHTENGINE_USER/SIGHTENGINE_SECRET not set; NSFW analysis runs in heuristic mode"
                )

        rng = rng or random.Random(config.heuristic_seed)
        aggregator = ModerationAggregator(
            cache=cache,
            thresholds=registry,
            monitor=monitor,
            nsfw_analyzer=NSFWAnalyzer(provider=provider, rng=rng),
            plagiarism_analyzer=PlagiarismAnalyzer(rng=rng),
            quality_analyzer=QualityAnalyzer(),
            text_analyzer=TextAnalyzer(config.banned_keywords, config.spam_keywords),
            image_loader=ImageLoader(timeout=config.fetch_timeout_seconds, max_bytes=config.max_image_bytes),
        )
        return cls(
            aggregator=aggregator,
            batch_processor=BatchProcessor(aggregator, concurrency=config.batch_concurrency),
            provider=provider,
            default_batch_limit=config.batch_default_limit,
        )

    @property
    def cache(self) -> ResultCache:
        return self.aggregator.cache

    @property
    def thresholds(self) -> ThresholdRegistry:
        return self.aggregator.thresholds

    @property
    def monitor(self) -> PerformanceMonitor:
        return self.aggregator.monitor

    # --------------------------
    # Moderation
    # --------------------------
    async def moderate_item(self, payload: ModerationPayload) -> ModerationResult:
        """
        Moderate one item.

        Raises:
            InvalidModerationRequest: If the payload has no usable image reference.
        """
        return await self.aggregator.moderate(to_analysis_input(payload))

    async def recheck_item(self, payload: ModerationPayload) -> ModerationResult:
        """Re-moderate one item, ignoring and replacing any cached verdict."""
        return await self.aggregator.recheck(to_analysis_input(payload))

    async def batch_moderate(
        self,
        items: Iterable[ModerationPayload],
        limit: Optional[int] = None,
        auto_approve: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchModerationResponse:
        """
        Moderate up to ``limit`` items.

        Args:
            items: Requests or caller mappings; all are validated before any work starts.
            limit: Maximum number of items to process (configured default when None).
            auto_approve: Report items recommended for auto approval in
                ``approved_item_ids`` for the caller to persist.
            on_progress: Optional per-item progress callback.

        Raises:
            InvalidModerationRequest: If any payload is malformed or limit is not positive.
        """
        limit = self.default_batch_limit if limit is None else limit
        if limit < 1:
            raise InvalidModerationRequest("limit must be a positive integer")

        batch: List[AnalysisInput] = [to_analysis_input(item) for item in items][:limit]
        results = await self.batch_processor.process(batch, on_progress=on_progress)
        stats = summarize_results(results)

        approved: tuple[str, ...] = ()
        if auto_approve:
            approved = tuple(
                result.item_id for result in results if result.recommendation is Recommendation.AUTO_APPROVE
            )
            if approved:
                logger.info("[SERVICE] %d items recommended for auto approval", len(approved))

        logger.info(
            "[SERVICE] Batch of %d processed: %d passed, %d need review",
            stats.total,
            stats.passed,
            stats.needs_review,
        )
        return BatchModerationResponse(
            processed=len(results),
            results=results,
            stats=stats,
            approved_item_ids=approved,
        )

    # --------------------------
    # Administration
    # --------------------------
    def system_status(self) -> Dict[str, Any]:
        """Snapshot of cache, thresholds, performance and provider configuration."""
        configured = self.provider is not None
        return {
            "cache_size": len(self.cache),
            "cache_ttl": self.cache.ttl_seconds,
            "cache_max_entries": self.cache.max_entries,
            "thresholds": self.thresholds.get().as_dict(),
            "performance": self.monitor.snapshot(),
            "services": {
                "sightengine": {
                    "configured": configured,
                    "mode": "provider" if configured else "heuristic",
                },
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def clear_cache(self) -> Dict[str, int]:
        cleared = self.cache.clear()
        return {"cleared": cleared, "current_size": len(self.cache)}

    def update_thresholds(self, partial: Mapping[str, Any]) -> Dict[str, Dict[str, float]]:
        """
        Merge a partial threshold update and return the full merged set.

        Cached verdicts are kept; they reflect the thresholds they were computed with.

        Raises:
            ThresholdValidationError: If the update is malformed.
        """
        return self.thresholds.update(partial).as_dict()

    async def probe_provider(self, image_url: str) -> Dict[str, Any]:
        """
        Run the NSFW provider directly against one image URL for diagnostics.

        Never raises for provider problems; they are reported under ``error``.

        Raises:
            InvalidModerationRequest: If ``image_url`` is empty.
        """
        if not image_url:
            raise InvalidModerationRequest("image_url is required for provider probing")
        if not isinstance(self.provider, SightengineProvider):
            return {
                "error": "Sightengine API credentials not configured",
                "details": "Please set SIGHTENGINE_USER and SIGHTENGINE_SECRET environment variables",
            }

        source = ImageSource(to_image_ref(image_url), self.aggregator.image_loader)
        report = await self.provider.probe(source)
        if "error" not in report:
            tiers = self.thresholds.get().nsfw
            report["flagged"] = report["score"] > tiers.medium
            report["severity"] = risk_severity(report["score"], tiers).value
        return report
