"""
Severity threshold types shared by every analyzer and the aggregator.

Thresholds are immutable snapshots; the registry replaces the whole snapshot
on update so a reader always sees a consistent set.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from artmod.errors import ThresholdValidationError


@dataclass(frozen=True, slots=True)
class RiskTiers:
    """Cut points for a risk dimension (NSFW, plagiarism); higher scores are worse."""

    low: float
    medium: float
    high: float


@dataclass(frozen=True, slots=True)
class QualityTiers:
    """Cut points for image quality; higher scores are better."""

    minimum: float
    good: float
    excellent: float


@dataclass(frozen=True, slots=True)
class ModerationThresholds:
    """Full threshold set used for a single evaluation."""

    nsfw: RiskTiers = field(default_factory=lambda: RiskTiers(low=0.3, medium=0.6, high=0.8))
    plagiarism: RiskTiers = field(default_factory=lambda: RiskTiers(low=0.4, medium=0.7, high=0.9))
    quality: QualityTiers = field(default_factory=lambda: QualityTiers(minimum=0.3, good=0.6, excellent=0.8))

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)

    def merged(self, partial: Mapping[str, Any]) -> "ModerationThresholds":
        """Return a copy with ``partial`` applied per dimension and per tier.

        Dimensions and tiers missing from ``partial`` keep their current values.

        Raises:
            ThresholdValidationError: On unknown dimensions/tiers or values outside [0, 1].
        """
        if not isinstance(partial, Mapping):
            raise ThresholdValidationError("Threshold update must be a mapping")

        dimension_names = {f.name for f in fields(self)}
        changes: Dict[str, Any] = {}
        for dimension, tiers in partial.items():
            if dimension not in dimension_names:
                raise ThresholdValidationError(f"Unknown threshold dimension '{dimension}'")
            if not isinstance(tiers, Mapping):
                raise ThresholdValidationError(f"Thresholds for '{dimension}' must be a mapping")

            current = getattr(self, dimension)
            tier_names = {f.name for f in fields(current)}
            tier_changes: Dict[str, float] = {}
            for tier, value in tiers.items():
                if tier not in tier_names:
                    raise ThresholdValidationError(f"Unknown tier '{tier}' for dimension '{dimension}'")
                tier_changes[tier] = _coerce_threshold(dimension, tier, value)
            changes[dimension] = replace(current, **tier_changes)

        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ModerationThresholds":
        """Build thresholds from a (possibly partial) mapping over the defaults."""
        if not data:
            return cls()
        return cls().merged(data)


def _coerce_threshold(dimension: str, tier: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ThresholdValidationError(f"Threshold {dimension}.{tier} must be a number, got {value!r}")
    number = float(value)
    if not 0.0 <= number <= 1.0:
        raise ThresholdValidationError(f"Threshold {dimension}.{tier} must be within [0, 1], got {number}")
    return number


def tiers_out_of_order(thresholds: ModerationThresholds) -> list[str]:
    """Name the dimensions whose tiers are not ascending."""
    problems = []
    for name in ("nsfw", "plagiarism"):
        tiers: RiskTiers = getattr(thresholds, name)
        if not tiers.low <= tiers.medium <= tiers.high:
            problems.append(name)
    quality = thresholds.quality
    if not quality.minimum <= quality.good <= quality.excellent:
        problems.append("quality")
    return problems
