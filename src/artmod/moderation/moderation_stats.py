"""Aggregate statistics over a set of moderation results."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from artmod.datatypes.moderation_datatypes import ModerationResult, ModerationStats, Recommendation


def summarize_results(results: Iterable[ModerationResult]) -> ModerationStats:
    """
    Summarize moderation verdicts.

    ``pass_rate`` is a percentage; ``average_score`` is the mean overall score.
    Both are 0 for an empty input.
    """
    stats = ModerationStats()
    flag_types: Counter[str] = Counter()
    recommendations: Counter[str] = Counter()
    score_total = 0.0

    for result in results:
        stats.total += 1
        if result.passed:
            stats.passed += 1
        if result.needs_review:
            stats.needs_review += 1
        if result.recommendation is Recommendation.AUTO_APPROVE:
            stats.auto_approved += 1
        if result.flags:
            stats.flagged += 1
            flag_types.update(flag.type.value for flag in result.flags)
        recommendations[result.recommendation.value] += 1
        score_total += result.overall_score

    if stats.total:
        stats.average_score = round(score_total / stats.total, 4)
        stats.pass_rate = round(stats.passed / stats.total * 100, 2)
    stats.flag_types = dict(flag_types)
    stats.recommendations = dict(recommendations)
    return stats
