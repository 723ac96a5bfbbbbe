"""
NSFW analysis.

Uses the configured classification provider when one is available and falls
back to a metadata heuristic otherwise. Both paths are graded against the same
threshold snapshot. Heuristic results are labeled ``method="heuristic"`` and
never report more than medium confidence.
"""

from __future__ import annotations

import random
from typing import Any, Dict, Optional

from artmod.analyzers.scoring import clamp_score, failed_risk_result, grade_risk
from artmod.datatypes.image_datatypes import ImageMetadata
from artmod.datatypes.moderation_datatypes import AnalysisMethod, AnalyzerResult, Confidence
from artmod.datatypes.threshold_datatypes import ModerationThresholds, RiskTiers
from artmod.errors import ImageLoadError
from artmod.providers.sightengine import NSFWProvider
from artmod.util.image_utils import ImageSource
from artmod.util.logger import get_logger

logger = get_logger("nsfw_analyzer")

HEURISTIC_WARNING = "Heuristic NSFW analysis; configure a classification provider for production accuracy"


def heuristic_nsfw_score(metadata: ImageMetadata, rng: random.Random) -> tuple[float, Dict[str, Any]]:
    """
    Score an image from its metadata alone.

    Each image characteristic contributes a bounded term; a bounded random
    perturbation drawn from ``rng`` stands in for model uncertainty.

    Returns:
        The clamped score and the diagnostics describing which terms fired.
    """
    details: Dict[str, Any] = {
        "image_size": metadata.byte_size,
        "resolution": metadata.resolution,
        "format": metadata.format,
        "channels": metadata.channels,
    }
    score = 0.0
    aspect_ratio = metadata.aspect_ratio

    if aspect_ratio < 0.8:
        score += 0.15
        details["portrait_orientation"] = True

    if metadata.pixel_count > 2_000_000:
        score += 0.1
        details["high_resolution"] = True

    # Skin tones tend to sit in the mid brightness range
    if 100 < metadata.mean_brightness < 180:
        score += 0.2
        details["skin_tone_range"] = True

    if metadata.compression_ratio < 0.5:
        score += 0.1
        details["high_compression"] = True

    base = rng.random() * 0.4
    if metadata.width > metadata.height and aspect_ratio > 1.5:
        score += base * 0.3
    elif aspect_ratio < 0.7:
        score += base * 1.5
    else:
        score += base

    spike = rng.random()
    if spike > 0.85:
        score += 0.3 + rng.random() * 0.4
        details["uncertainty_spike"] = "high"
    elif spike > 0.7:
        score += 0.2 + rng.random() * 0.3
        details["uncertainty_spike"] = "medium"

    return clamp_score(score), details


def heuristic_confidence(score: float, tiers: RiskTiers) -> Confidence:
    """Heuristic confidence is capped at medium."""
    return Confidence.MEDIUM if score > tiers.low else Confidence.LOW


class NSFWAnalyzer:
    """Scores images for sexual content."""

    def __init__(self, provider: Optional[NSFWProvider] = None, rng: Optional[random.Random] = None) -> None:
        self.provider = provider
        self._rng = rng or random.Random()

    @property
    def provider_configured(self) -> bool:
        return self.provider is not None

    async def analyze(self, source: ImageSource, thresholds: ModerationThresholds) -> AnalyzerResult:
        """
        Analyze one image. Never raises.

        Provider failures fall back to the heuristic; image load failures
        produce a zero-score result carrying the error.
        """
        tiers = thresholds.nsfw
        provider_error: Optional[str] = None

        if self.provider is not None:
            try:
                categories = await self.provider.classify(source)
                return self._grade_provider_scores(categories, tiers)
            except Exception as exc:
                provider_error = str(exc)
                logger.warning(
                    "[NSFW] Provider %s failed for %s, using heuristic: %s",
                    self.provider.name,
                    source.describe(),
                    exc,
                )

        try:
            image = await source.load()
        except ImageLoadError as exc:
            details = {"provider_error": provider_error} if provider_error else {}
            return failed_risk_result(str(exc), details)

        score, details = heuristic_nsfw_score(image.metadata, self._rng)
        details["method"] = AnalysisMethod.HEURISTIC.value
        details["warning"] = HEURISTIC_WARNING
        if provider_error:
            details["provider_error"] = provider_error

        result = grade_risk(
            score,
            tiers,
            confidence=heuristic_confidence(score, tiers),
            method=AnalysisMethod.HEURISTIC,
            details=details,
        )
        logger.debug(
            "[NSFW] Heuristic analysis for %s: %.1f%% (%s severity)",
            source.describe(),
            result.score * 100,
            result.severity,
        )
        return result

    def _grade_provider_scores(self, categories: Dict[str, float], tiers: RiskTiers) -> AnalyzerResult:
        # One confident category must not be diluted by the others
        score = max(categories.values()) if categories else 0.0
        return grade_risk(
            score,
            tiers,
            confidence=Confidence.HIGH,
            method=AnalysisMethod.PROVIDER,
            details={
                "method": AnalysisMethod.PROVIDER.value,
                "provider": getattr(self.provider, "name", "provider"),
                "categories": dict(categories),
            },
        )
