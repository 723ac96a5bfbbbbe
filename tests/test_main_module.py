"""Tests for the artmod entry point."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from artmod import main as main_module
from artmod.services.moderation_service import ModerationService


def test_resolve_base_dir_prefers_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ARTMOD_HOME", str(tmp_path))

    assert main_module.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_defaults_to_repo_root(monkeypatch):
    monkeypatch.delenv("ARTMOD_HOME", raising=False)

    base_dir = main_module.resolve_base_dir()

    assert (base_dir / "src" / "artmod").is_dir()


def test_build_service_reads_config(tmp_path: Path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "app_config.yml").write_text(
        yaml.safe_dump({"batch": {"default_limit": 7}}), encoding="utf-8"
    )

    service = main_module.build_service(tmp_path)

    assert isinstance(service, ModerationService)
    assert service.default_batch_limit == 7


@pytest.mark.asyncio
async def test_async_main_runs_console(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("SIGHTENGINE_USER", raising=False)
    monkeypatch.delenv("SIGHTENGINE_SECRET", raising=False)
    with patch("artmod.main.run_console", new=AsyncMock()) as mock_console:
        exit_code = await main_module.async_main(tmp_path)

    assert exit_code == 0
    mock_console.assert_awaited_once()
    control = mock_console.await_args.args[0]
    assert isinstance(control.service, ModerationService)


@pytest.mark.asyncio
async def test_async_main_fails_on_invalid_thresholds(tmp_path: Path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "app_config.yml").write_text(
        yaml.safe_dump({"thresholds": {"nsfw": {"medium": 2}}}), encoding="utf-8"
    )

    with patch("artmod.main.run_console", new=AsyncMock()) as mock_console:
        exit_code = await main_module.async_main(tmp_path)

    assert exit_code == 1
    mock_console.assert_not_awaited()


def test_main_returns_exit_code(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ARTMOD_HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    with patch("artmod.main.async_main", new=AsyncMock(return_value=3)):
        assert main_module.main() == 3


def test_main_handles_unexpected_errors(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ARTMOD_HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    with patch("artmod.main.async_main", new=AsyncMock(side_effect=RuntimeError("boom"))):
        assert main_module.main() == 1
