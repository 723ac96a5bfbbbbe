from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List, Optional
import yaml

from artmod.configuration.provider_settings import ProviderSettings
from artmod.datatypes.threshold_datatypes import ModerationThresholds
from artmod.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name, {})
    return value if isinstance(value, dict) else {}


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """Read a YAML mapping under a shared ``flock``; any problem yields ``{}``."""
    try:
        with path.open("r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                data = yaml.safe_load(f)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except FileNotFoundError:
        logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", path)
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("[APP CONFIGURATION] Failed to load config %s: %s", path, exc)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error("[APP CONFIGURATION] Config %s must contain a mapping, got %s", path, type(data).__name__)
        return {}
    return data


class AppConfig:
    """Moderation settings loaded from ``config/app_config.yml``.

    Sections: ``cache``, ``thresholds``, ``analyzers``, ``batch``, ``text`` and
    ``monitoring``. Every key has a default, so an absent file is a valid
    configuration. Provider credentials are not stored here; see
    :attr:`provider_settings`.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = Path(config_path)
        self._data: Dict[str, Any] = {}
        self.reload()

    def load_from_disk(self) -> Dict[str, Any]:
        return read_yaml_mapping(self.config_path)

    def reload(self) -> Dict[str, Any]:
        """Re-read the file; returns the new mapping (``{}`` on error)."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Raw mapping as loaded. Treat as read-only."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Cache
    # --------------------------
    @property
    def cache_ttl_seconds(self) -> float:
        return float(_section(self._data, "cache").get("ttl_seconds", 86400))

    @property
    def cache_max_entries(self) -> int:
        return int(_section(self._data, "cache").get("max_entries", 1000))

    # --------------------------
    # Thresholds
    # --------------------------
    @property
    def thresholds(self) -> ModerationThresholds:
        """Return the configured default thresholds merged over the built-in ones.

        Raises:
            ThresholdValidationError: If the configured thresholds are malformed.
        """
        return ModerationThresholds.from_mapping(_section(self._data, "thresholds"))

    # --------------------------
    # Analyzers
    # --------------------------
    @property
    def provider_timeout_seconds(self) -> float:
        return float(_section(self._data, "analyzers").get("provider_timeout_seconds", 30.0))

    @property
    def fetch_timeout_seconds(self) -> float:
        return float(_section(self._data, "analyzers").get("fetch_timeout_seconds", 30.0))

    @property
    def max_image_bytes(self) -> int:
        return int(_section(self._data, "analyzers").get("max_image_bytes", 20 * 1024 * 1024))

    @property
    def heuristic_seed(self) -> Optional[int]:
        """Seed for the heuristic analyzers' random generator (None means unseeded)."""
        value = _section(self._data, "analyzers").get("heuristic_seed")
        return None if value is None else int(value)

    # --------------------------
    # Batch
    # --------------------------
    @property
    def batch_concurrency(self) -> int:
        return max(1, int(_section(self._data, "batch").get("concurrency", 1)))

    @property
    def batch_default_limit(self) -> int:
        return max(1, int(_section(self._data, "batch").get("default_limit", 50)))

    # --------------------------
    # Text
    # --------------------------
    @property
    def banned_keywords(self) -> Optional[List[str]]:
        """Override for the banned keyword list, or None to use the built-in list."""
        value = _section(self._data, "text").get("banned_keywords")
        return [str(k) for k in value] if isinstance(value, list) and value else None

    @property
    def spam_keywords(self) -> Optional[List[str]]:
        value = _section(self._data, "text").get("spam_keywords")
        return [str(k) for k in value] if isinstance(value, list) and value else None

    # --------------------------
    # Monitoring
    # --------------------------
    @property
    def latency_window(self) -> int:
        return max(1, int(_section(self._data, "monitoring").get("latency_window", 100)))

    @property
    def slow_operation_ms(self) -> float:
        return float(_section(self._data, "monitoring").get("slow_operation_ms", 10000))

    # --------------------------
    # Provider
    # --------------------------
    @property
    def provider_settings(self) -> ProviderSettings:
        """Return the provider credentials from the environment, with the configured timeout."""
        return ProviderSettings.from_env(timeout=self.provider_timeout_seconds)
