"""Image quality analysis from resolution, format, aspect ratio and file size."""

from __future__ import annotations

from artmod.analyzers.scoring import grade_quality
from artmod.datatypes.image_datatypes import ImageMetadata
from artmod.datatypes.moderation_datatypes import AnalysisMethod, AnalyzerResult, Confidence
from artmod.datatypes.threshold_datatypes import ModerationThresholds
from artmod.errors import ImageLoadError
from artmod.util.image_utils import ImageSource
from artmod.util.logger import get_logger

logger = get_logger("quality_analyzer")

ALLOWED_FORMATS = frozenset({"jpeg", "jpg", "png", "webp"})
NEUTRAL_SCORE_ON_ERROR = 0.5


def resolution_points(metadata: ImageMetadata) -> float:
    pixels = metadata.pixel_count
    if pixels >= 1920 * 1080:
        return 0.4
    if pixels >= 1280 * 720:
        return 0.3
    if pixels >= 800 * 600:
        return 0.2
    return 0.1


def format_points(metadata: ImageMetadata) -> float:
    return 0.2 if metadata.format in ALLOWED_FORMATS else 0.1


def aspect_ratio_points(metadata: ImageMetadata) -> float:
    return 0.2 if 0.5 <= metadata.aspect_ratio <= 2.0 else 0.1


def file_size_points(metadata: ImageMetadata) -> float:
    size_kb = metadata.byte_size / 1024
    if 100 <= size_kb <= 5000:
        return 0.2
    if size_kb >= 50:
        return 0.1
    return 0.0


class QualityAnalyzer:
    """Deterministic quality scoring; identical metadata always yields identical results."""

    def score_metadata(self, metadata: ImageMetadata, thresholds: ModerationThresholds) -> AnalyzerResult:
        score = (
            resolution_points(metadata)
            + format_points(metadata)
            + aspect_ratio_points(metadata)
            + file_size_points(metadata)
        )
        # Rounded so the four sub-scores sum without float drift
        score = round(score, 4)
        return grade_quality(
            score,
            thresholds.quality,
            details={
                "resolution": metadata.resolution,
                "format": metadata.format,
                "file_size_kb": round(metadata.byte_size / 1024),
                "aspect_ratio": round(metadata.aspect_ratio, 2),
            },
        )

    async def analyze(self, source: ImageSource, thresholds: ModerationThresholds) -> AnalyzerResult:
        """Load the image and score it; a load failure passes with a neutral score."""
        try:
            image = await source.load()
        except ImageLoadError as exc:
            logger.warning("[QUALITY] Defaulting to pass for %s: %s", source.describe(), exc)
            return grade_quality(
                NEUTRAL_SCORE_ON_ERROR,
                thresholds.quality,
                method=AnalysisMethod.ERROR,
                confidence=Confidence.LOW,
                error=str(exc),
            )
        return self.score_metadata(image.metadata, thresholds)
