"""
Moderation request and result types.

This module defines the values flowing through the pipeline: the immutable
request (`AnalysisInput`), per-dimension analyzer output (`AnalyzerResult`),
text analysis output, flags, and the final `ModerationResult`.

Key Features:
- Every result type is frozen; flags are ordered tuples.
- `AnalyzerResult` instances are produced by the graders in
  `artmod.analyzers.scoring` so that `flagged` and `severity` always agree
  with `score` and the thresholds of the evaluation.
- `to_dict()` helpers produce plain JSON-friendly mappings for callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from artmod.datatypes.image_datatypes import ImageRef, describe_image_ref, to_image_ref
from artmod.errors import InvalidModerationRequest


class Severity(Enum):
    """Coarse low/medium/high classification of a continuous score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class FlagType(Enum):
    """Kinds of issues a moderation pass can raise."""

    NSFW = "nsfw"
    PLAGIARISM = "plagiarism"
    LOW_QUALITY = "low_quality"
    INAPPROPRIATE_TEXT = "inappropriate_text"
    SPAM = "spam"
    EXCESSIVE_CAPS = "excessive_caps"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class Recommendation(Enum):
    """Terminal decision label consumed by the moderation workflow."""

    AUTO_APPROVE = "auto_approve"
    APPROVE = "approve"
    REVIEW = "review"
    REJECT = "reject"
    MANUAL_REVIEW = "manual_review"

    def __str__(self) -> str:
        return self.value


class AnalysisMethod(Enum):
    """How an analyzer produced its score."""

    PROVIDER = "provider"
    HEURISTIC = "heuristic"
    DETERMINISTIC = "deterministic"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class AnalysisInput:
    """A single moderation request.

    Attributes:
        image_ref (ImageRef): Hosted image URL or in-memory image buffer.
        item_id (str): Opaque identifier of the moderated entity.
        title (str): Title supplied by the uploader.
        description (str): Description supplied by the uploader.
        tags (Tuple[str, ...]): Ordered tags supplied by the uploader.
    """

    image_ref: ImageRef
    item_id: str
    title: str = ""
    description: str = ""
    tags: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Normalizes str/bytearray refs and rejects empty ones
        object.__setattr__(self, "image_ref", to_image_ref(self.image_ref))
        object.__setattr__(self, "item_id", str(self.item_id))
        object.__setattr__(self, "title", self.title or "")
        object.__setattr__(self, "description", self.description or "")
        object.__setattr__(self, "tags", tuple(str(tag) for tag in (self.tags or ())))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "AnalysisInput":
        """Build a request from a loosely-shaped caller mapping.

        Accepts ``imageRef``/``imageUrl``/``image_url`` for the image and
        ``itemId``/``item_id``/``id`` for the identifier.

        Raises:
            InvalidModerationRequest: If the image reference is missing or unusable,
                or title, description or tags are not strings.
        """
        if not isinstance(payload, Mapping):
            raise InvalidModerationRequest("Moderation request must be a mapping")

        image_ref = None
        for key in ("imageRef", "image_ref", "imageUrl", "image_url"):
            if payload.get(key):
                image_ref = payload[key]
                break
        if image_ref is None:
            raise InvalidModerationRequest("imageRef is required")

        item_id = payload.get("itemId", payload.get("item_id", payload.get("id")))
        title = payload.get("title") or ""
        description = payload.get("description") or ""
        if not isinstance(title, str) or not isinstance(description, str):
            raise InvalidModerationRequest("title and description must be strings")

        tags = payload.get("tags") or ()
        if isinstance(tags, str):
            tags = (tags,)
        if not isinstance(tags, (list, tuple)) or not all(isinstance(tag, str) for tag in tags):
            raise InvalidModerationRequest("tags must be a string or a list of strings")

        try:
            return cls(
                image_ref=image_ref,
                item_id="" if item_id is None else str(item_id),
                title=title,
                description=description,
                tags=tuple(tags),
            )
        except ValueError as exc:
            raise InvalidModerationRequest(str(exc)) from exc

    def describe(self) -> str:
        return f"{self.item_id} ({describe_image_ref(self.image_ref)})"


@dataclass(frozen=True, slots=True)
class PlagiarismMatch:
    """A candidate source the image may have been copied from."""

    source_ref: str
    similarity: float
    source: str = "reverse_search"

    def to_dict(self) -> Dict[str, Any]:
        return {"source_ref": self.source_ref, "similarity": self.similarity, "source": self.source}


@dataclass(frozen=True, slots=True)
class AnalyzerResult:
    """Output of one analysis dimension.

    Use the graders in :mod:`artmod.analyzers.scoring` to build instances;
    they derive ``flagged`` and ``severity`` from the score.

    Attributes:
        score (float): Score in [0, 1].
        flagged (bool): Whether the score crossed the flagging tier.
        severity (Severity): Threshold-derived severity bucket.
        confidence (Confidence): Confidence of the producing method.
        method (AnalysisMethod): Provider, heuristic, deterministic or error path.
        details (Dict[str, Any]): Diagnostics for callers and logs.
        error (Optional[str]): Set when the analyzer degraded to a failure path.
        matches (Tuple[PlagiarismMatch, ...]): Plagiarism candidates (empty elsewhere).
    """

    score: float
    flagged: bool
    severity: Severity
    confidence: Confidence
    method: AnalysisMethod
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    matches: Tuple[PlagiarismMatch, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.flagged

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "score": self.score,
            "flagged": self.flagged,
            "severity": self.severity.value,
            "confidence": self.confidence.value,
            "method": self.method.value,
            "details": dict(self.details),
        }
        if self.error is not None:
            data["error"] = self.error
        if self.matches:
            data["matches"] = [match.to_dict() for match in self.matches]
        return data


@dataclass(frozen=True, slots=True)
class Flag:
    """A single issue raised during aggregation."""

    type: FlagType
    severity: Severity
    message: str
    score: Optional[float] = None
    keywords: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.score is not None:
            data["score"] = self.score
        if self.keywords:
            data["keywords"] = list(self.keywords)
        return data


@dataclass(frozen=True, slots=True)
class TextAnalysis:
    """Result of the title/description/tags analysis."""

    passed: bool
    flags: Tuple[Flag, ...]
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "flags": [flag.to_dict() for flag in self.flags],
            "score": self.score,
        }


@dataclass(frozen=True, slots=True)
class ModerationAnalysis:
    """The four per-dimension analyses backing a moderation result."""

    nsfw: AnalyzerResult
    plagiarism: AnalyzerResult
    quality: AnalyzerResult
    text: TextAnalysis

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nsfw": self.nsfw.to_dict(),
            "plagiarism": self.plagiarism.to_dict(),
            "quality": self.quality.to_dict(),
            "text": self.text.to_dict(),
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ModerationResult:
    """Final verdict for one moderation attempt.

    ``analysis`` is None only for degraded results, which always recommend
    ``manual_review`` and carry the failure in ``error``.
    """

    item_id: str
    passed: bool
    needs_review: bool
    flags: Tuple[Flag, ...]
    overall_score: float
    recommendation: Recommendation
    confidence: Confidence
    analysis: Optional[ModerationAnalysis] = None
    checked_at: datetime = field(default_factory=utc_now)
    processing_ms: float = 0.0
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.recommendation is Recommendation.MANUAL_REVIEW and self.analysis is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "item_id": self.item_id,
            "passed": self.passed,
            "needs_review": self.needs_review,
            "flags": [flag.to_dict() for flag in self.flags],
            "overall_score": self.overall_score,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "recommendation": self.recommendation.value,
            "confidence": self.confidence.value,
            "checked_at": self.checked_at.isoformat(),
            "processing_ms": self.processing_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


def build_degraded_result(item_id: str, message: str, processing_ms: float = 0.0) -> ModerationResult:
    """Result used whenever a moderation attempt could not be completed."""
    return ModerationResult(
        item_id=item_id,
        passed=False,
        needs_review=True,
        flags=(
            Flag(
                type=FlagType.ERROR,
                severity=Severity.HIGH,
                message=f"Moderation system error: {message}",
            ),
        ),
        overall_score=0.0,
        recommendation=Recommendation.MANUAL_REVIEW,
        confidence=Confidence.LOW,
        analysis=None,
        processing_ms=processing_ms,
        error=message,
    )


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached value and the epoch time it was stored at."""

    key: str
    value: Any
    stored_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at >= ttl_seconds


@dataclass(frozen=True, slots=True)
class BatchProgress:
    """Progress notification emitted after each batch item completes."""

    completed_count: int
    total: int
    percentage: int
    current_item_id: str
    result: ModerationResult


@dataclass(slots=True)
class ModerationStats:
    """Aggregate statistics over a set of moderation results."""

    total: int = 0
    passed: int = 0
    needs_review: int = 0
    auto_approved: int = 0
    flagged: int = 0
    flag_types: Dict[str, int] = field(default_factory=dict)
    recommendations: Dict[str, int] = field(default_factory=dict)
    average_score: float = 0.0
    pass_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "needs_review": self.needs_review,
            "auto_approved": self.auto_approved,
            "flagged": self.flagged,
            "flag_types": dict(self.flag_types),
            "recommendations": dict(self.recommendations),
            "average_score": self.average_score,
            "pass_rate": self.pass_rate,
        }


@dataclass(slots=True)
class BatchModerationResponse:
    """Outcome of a batch moderation request.

    ``approved_item_ids`` lists items recommended for auto approval when the
    caller asked for it; persisting those status changes is up to the caller.
    """

    processed: int
    results: Sequence[ModerationResult]
    stats: ModerationStats
    approved_item_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "results": [result.to_dict() for result in self.results],
            "stats": self.stats.to_dict(),
            "approved_item_ids": list(self.approved_item_ids),
        }
