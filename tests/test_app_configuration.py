from pathlib import Path

import pytest
import yaml

from artmod.configuration.app_configuration import AppConfig
from artmod.configuration.provider_settings import ProviderSettings
from artmod.errors import ThresholdValidationError


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_payload = {
        "cache": {"ttl_seconds": 60, "max_entries": 10},
        "thresholds": {"nsfw": {"medium": 0.5}},
        "analyzers": {
            "provider_timeout_seconds": 5,
            "fetch_timeout_seconds": 7,
            "max_image_bytes": 1024,
            "heuristic_seed": 42,
        },
        "batch": {"concurrency": 4, "default_limit": 20},
        "text": {"banned_keywords": ["forbidden"], "spam_keywords": []},
        "monitoring": {"latency_window": 10, "slow_operation_ms": 250},
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.cache_ttl_seconds == 60
    assert config.cache_max_entries == 10
    assert config.thresholds.nsfw.medium == pytest.approx(0.5)
    assert config.thresholds.nsfw.high == pytest.approx(0.8)
    assert config.provider_timeout_seconds == 5
    assert config.fetch_timeout_seconds == 7
    assert config.max_image_bytes == 1024
    assert config.heuristic_seed == 42
    assert config.batch_concurrency == 4
    assert config.batch_default_limit == 20
    assert config.banned_keywords == ["forbidden"]
    assert config.spam_keywords is None
    assert config.latency_window == 10
    assert config.slow_operation_ms == 250


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.cache_ttl_seconds == 86400
    assert config.cache_max_entries == 1000
    assert config.batch_concurrency == 1
    assert config.batch_default_limit == 50
    assert config.max_image_bytes == 20 * 1024 * 1024
    assert config.heuristic_seed is None
    assert config.banned_keywords is None
    assert config.thresholds.as_dict()["plagiarism"] == {"low": 0.4, "medium": 0.7, "high": 0.9}


def test_app_config_empty_or_non_mapping_file(config_path: Path) -> None:
    config_path.write_text("", encoding="utf-8")
    assert AppConfig(config_path).data == {}

    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    assert AppConfig(config_path).data == {}


def test_app_config_malformed_yaml(config_path: Path) -> None:
    config_path.write_text("cache: [unterminated", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"cache": {"ttl_seconds": 10}}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.get("cache") == {"ttl_seconds": 10}

    config_path.write_text(yaml.safe_dump({"cache": {"ttl_seconds": 20}}), encoding="utf-8")
    config.reload()

    assert config.cache_ttl_seconds == 20


def test_invalid_thresholds_raise(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"thresholds": {"nsfw": {"medium": 3}}}), encoding="utf-8")

    config = AppConfig(config_path)

    with pytest.raises(ThresholdValidationError):
        _ = config.thresholds


def test_shipped_config_matches_defaults() -> None:
    shipped = Path(__file__).parent.parent / "config" / "app_config.yml"

    config = AppConfig(shipped)

    assert config.cache_ttl_seconds == 86400
    assert config.thresholds.as_dict() == AppConfig(shipped.parent / "missing.yml").thresholds.as_dict()
    assert config.banned_keywords is None


def test_provider_settings_from_env() -> None:
    settings = ProviderSettings.from_env({"SIGHTENGINE_USER": "user", "SIGHTENGINE_SECRET": "secret"}, timeout=12)

    assert settings.configured is True
    assert settings.api_user == "user"
    assert settings.api_secret == "secret"
    assert settings.timeout == 12


@pytest.mark.parametrize(
    "environ",
    [
        {},
        {"SIGHTENGINE_USER": "user"},
        {"SIGHTENGINE_SECRET": "secret"},
        {"SIGHTENGINE_USER": "", "SIGHTENGINE_SECRET": "secret"},
    ],
)
def test_provider_settings_not_configured(environ) -> None:
    settings = ProviderSettings.from_env(environ)

    assert settings.configured is False


def test_app_config_provider_settings_use_timeout(config_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("SIGHTENGINE_USER", "u")
    monkeypatch.setenv("SIGHTENGINE_SECRET", "s")
    config_path.write_text(yaml.safe_dump({"analyzers": {"provider_timeout_seconds": 9}}), encoding="utf-8")

    settings = AppConfig(config_path).provider_settings

    assert settings.configured is True
    assert settings.timeout == 9
