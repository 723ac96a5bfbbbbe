"""
Process-wide severity thresholds.

The registry holds one immutable :class:`ModerationThresholds` snapshot and
swaps it atomically on update, so readers never observe a partially applied
change and always see the latest committed write.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional

from artmod.datatypes.threshold_datatypes import ModerationThresholds, tiers_out_of_order
from artmod.util.logger import get_logger

logger = get_logger("threshold_registry")


class ThresholdRegistry:
    """Mutable holder of the current threshold snapshot."""

    def __init__(self, defaults: Optional[ModerationThresholds] = None) -> None:
        self._defaults = defaults or ModerationThresholds()
        self._current = self._defaults
        self._lock = threading.Lock()

    def get(self) -> ModerationThresholds:
        """Return the current snapshot."""
        with self._lock:
            return self._current

    def update(self, partial: Mapping[str, Any]) -> ModerationThresholds:
        """
        Merge ``partial`` into the current thresholds and return the merged set.

        Unspecified dimensions and tiers are left untouched.

        Raises:
            ThresholdValidationError: If ``partial`` is malformed; nothing is changed.
        """
        with self._lock:
            merged = self._current.merged(partial)
            self._current = merged

        disordered = tiers_out_of_order(merged)
        if disordered:
            logger.warning("[THRESHOLDS] Tiers are not ascending for: %s", ", ".join(disordered))
        logger.info("[THRESHOLDS] Updated moderation thresholds: %s", merged.as_dict())
        return merged

    def reset(self) -> ModerationThresholds:
        """Restore the configured defaults."""
        with self._lock:
            self._current = self._defaults
        logger.info("[THRESHOLDS] Thresholds reset to defaults")
        return self._defaults
