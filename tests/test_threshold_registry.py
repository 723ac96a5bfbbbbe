"""Tests for threshold types and the threshold registry."""

import logging
import threading

import pytest

from artmod.datatypes.threshold_datatypes import ModerationThresholds, RiskTiers, tiers_out_of_order
from artmod.errors import ThresholdValidationError
from artmod.moderation.threshold_registry import ThresholdRegistry


def test_defaults():
    thresholds = ModerationThresholds()

    assert thresholds.as_dict() == {
        "nsfw": {"low": 0.3, "medium": 0.6, "high": 0.8},
        "plagiarism": {"low": 0.4, "medium": 0.7, "high": 0.9},
        "quality": {"minimum": 0.3, "good": 0.6, "excellent": 0.8},
    }


def test_update_merges_per_tier():
    registry = ThresholdRegistry()

    merged = registry.update({"nsfw": {"medium": 0.5}})

    assert merged.nsfw == RiskTiers(low=0.3, medium=0.5, high=0.8)
    assert merged.plagiarism == ModerationThresholds().plagiarism
    assert registry.get() is merged


def test_update_is_visible_to_later_reads():
    registry = ThresholdRegistry()
    before = registry.get()

    registry.update({"quality": {"good": 0.7}})

    assert before.quality.good == 0.6
    assert registry.get().quality.good == 0.7


@pytest.mark.parametrize(
    "partial",
    [
        {"violence": {"low": 0.1}},
        {"nsfw": {"extreme": 0.1}},
        {"nsfw": {"medium": 1.5}},
        {"nsfw": {"medium": -0.1}},
        {"nsfw": {"medium": "high"}},
        {"nsfw": {"medium": True}},
        {"nsfw": 0.5},
    ],
)
def test_invalid_update_is_rejected_atomically(partial):
    registry = ThresholdRegistry()
    before = registry.get()

    with pytest.raises(ThresholdValidationError):
        registry.update(partial)

    assert registry.get() is before


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        ModerationThresholds().merged({"nsfw": {"low": 2}})


def test_out_of_order_tiers_are_accepted_with_warning(caplog):
    registry = ThresholdRegistry()
    logger = logging.getLogger("threshold_registry")
    logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.WARNING, logger="threshold_registry"):
            merged = registry.update({"nsfw": {"medium": 0.9}})
    finally:
        logger.removeHandler(caplog.handler)

    assert merged.nsfw.medium == 0.9
    assert tiers_out_of_order(merged) == ["nsfw"]
    assert any("not ascending" in record.getMessage() for record in caplog.records)


def test_reset_restores_defaults():
    defaults = ModerationThresholds().merged({"plagiarism": {"high": 0.95}})
    registry = ThresholdRegistry(defaults)
    registry.update({"plagiarism": {"high": 0.99}})

    assert registry.reset() is defaults
    assert registry.get().plagiarism.high == 0.95


def test_concurrent_updates_never_expose_partial_state():
    registry = ThresholdRegistry()
    seen = []

    def writer(value):
        for _ in range(50):
            registry.update({"nsfw": {"low": value, "medium": value, "high": value}})

    def reader():
        for _ in range(200):
            tiers = registry.get().nsfw
            seen.append((tiers.low, tiers.medium, tiers.high))

    threads = [threading.Thread(target=writer, args=(v,)) for v in (0.1, 0.2)]
    threads.append(threading.Thread(target=reader))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    for low, medium, high in seen:
        assert (low == medium == high) or (low, medium, high) == (0.3, 0.6, 0.8)
