"""
artmod
======

Content moderation service for user-submitted artwork. Runs the NSFW,
plagiarism, quality and text analyzers over submitted images and exposes an
interactive console for moderators.
"""

import os
import sys
from pathlib import Path

import asyncio
from dotenv import load_dotenv

from artmod.configuration.app_configuration import AppConfig
from artmod.errors import ArtmodError
from artmod.services.moderation_service import ModerationService
from artmod.ui.console import ConsoleControl, run_console
from artmod.util.logger import get_logger, handle_exception


logger = get_logger("main")


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. ARTMOD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the directory above ``src``.
    """
    if env_home := os.getenv("ARTMOD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


def load_environment(base_dir: Path) -> None:
    """Load ``.env`` from the base directory; provider credentials are optional."""
    load_dotenv(dotenv_path=base_dir / ".env")
    if not (os.getenv("SIGHTENGINE_USER") and os.getenv("SIGHTENGINE_SECRET")):
        logger.info("Sightengine credentials not found in environment; heuristic NSFW analysis will be used.")


def build_service(base_dir: Path) -> ModerationService:
    """Load the configuration and wire the moderation service."""
    config = AppConfig(base_dir / "config" / "app_config.yml")
    return ModerationService.from_config(config)


async def async_main(base_dir: Path) -> int:
    """Bootstrap the service and run the console, returning an exit code."""
    load_environment(base_dir)

    try:
        service = build_service(base_dir)
    except ArtmodError as exc:
        logger.critical("Failed to initialize moderation service: %s", exc)
        return 1

    control = ConsoleControl(service)
    await run_console(control)

    logger.info("Shutdown complete. %s", service.monitor.get_summary())
    return 0


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    base_dir = resolve_base_dir()
    os.chdir(base_dir)

    logger.info("Starting artmod moderation console…")
    try:
        return asyncio.run(async_main(base_dir))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    print(f"Exited with code: {main()}")
