"""
Graders that turn a raw score into an AnalyzerResult.

Flagged state and severity are never set by hand: they are always derived
here from the score and the thresholds snapshot of the current evaluation.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from artmod.datatypes.moderation_datatypes import (
    AnalysisMethod,
    AnalyzerResult,
    Confidence,
    PlagiarismMatch,
    Severity,
)
from artmod.datatypes.threshold_datatypes import QualityTiers, RiskTiers


def clamp_score(score: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, float(score)))


def risk_severity(score: float, tiers: RiskTiers) -> Severity:
    if score > tiers.high:
        return Severity.HIGH
    if score > tiers.medium:
        return Severity.MEDIUM
    return Severity.LOW


def quality_severity(score: float, tiers: QualityTiers) -> Severity:
    if score < tiers.minimum:
        return Severity.HIGH
    if score < tiers.good:
        return Severity.MEDIUM
    return Severity.LOW


def grade_risk(
    score: float,
    tiers: RiskTiers,
    *,
    confidence: Confidence,
    method: AnalysisMethod,
    details: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
    matches: Iterable[PlagiarismMatch] = (),
) -> AnalyzerResult:
    """Grade a risk score (higher is worse): flagged above the medium tier."""
    score = clamp_score(score)
    return AnalyzerResult(
        score=score,
        flagged=score > tiers.medium,
        severity=risk_severity(score, tiers),
        confidence=confidence,
        method=method,
        details=dict(details or {}),
        error=error,
        matches=tuple(matches),
    )


def grade_quality(
    score: float,
    tiers: QualityTiers,
    *,
    method: AnalysisMethod = AnalysisMethod.DETERMINISTIC,
    confidence: Confidence = Confidence.HIGH,
    details: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
) -> AnalyzerResult:
    """Grade a quality score (higher is better): flagged below the minimum tier."""
    score = clamp_score(score)
    return AnalyzerResult(
        score=score,
        flagged=score < tiers.minimum,
        severity=quality_severity(score, tiers),
        confidence=confidence,
        method=method,
        details=dict(details or {}),
        error=error,
    )


def failed_risk_result(message: str, details: Optional[Dict[str, Any]] = None) -> AnalyzerResult:
    """Zero-score, unflagged, low-confidence result used when a risk analyzer fails."""
    return AnalyzerResult(
        score=0.0,
        flagged=False,
        severity=Severity.LOW,
        confidence=Confidence.LOW,
        method=AnalysisMethod.ERROR,
        details=dict(details or {}),
        error=message,
    )
