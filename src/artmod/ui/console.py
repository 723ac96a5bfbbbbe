"""Interactive console for operating the moderation service."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import itertools

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession, clear

from artmod.datatypes.moderation_datatypes import AnalysisInput, ModerationResult, Recommendation
from artmod.errors import ArtmodError
from artmod.services.moderation_service import ModerationService
from artmod.util.logger import get_logger

logger = get_logger("console")

BOX_WIDTH = 45
PROMPT = "artmod> "


def box_title(title: str) -> list[str]:
    """Three-line double-ruled banner with the title centered."""
    inner = BOX_WIDTH - 2
    return [
        "╔" + "═" * inner + "╗",
        "║" + title.center(inner) + "║",
        "╚" + "═" * inner + "╝",
    ]


CommandHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]

RECOMMENDATION_STYLES = {
    Recommendation.AUTO_APPROVE: "ansigreen",
    Recommendation.APPROVE: "ansigreen",
    Recommendation.REVIEW: "ansiyellow",
    Recommendation.REJECT: "ansired",
    Recommendation.MANUAL_REVIEW: "ansimagenta",
}


@dataclass
class Command:
    """A console command and the names it answers to."""
    name: str
    handler: CommandHandler
    description: str
    aliases: list[str] = field(default_factory=list)
    usage: str = ""

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


def console_print(message: str, style: str = "") -> None:
    """Print above the active prompt, optionally in a prompt_toolkit style."""
    print_formatted_text(FormattedText([(style, message)]) if style else message)


class ConsoleControl:
    """Shutdown signalling and request numbering for one console session."""

    def __init__(self, service: ModerationService) -> None:
        self.service = service
        self.shutdown_event = asyncio.Event()
        self._item_numbers = itertools.count(1)

    def next_item_id(self) -> str:
        return f"console-{next(self._item_numbers)}"

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()


def print_result(result: ModerationResult) -> None:
    """Render a moderation verdict as a short report."""
    style = RECOMMENDATION_STYLES.get(result.recommendation, "")
    console_print(f"  Item:            {result.item_id}")
    console_print(f"  Recommendation:  {result.recommendation}", style)
    console_print(f"  Overall score:   {result.overall_score:.2f} (confidence: {result.confidence})")
    console_print(f"  Processing time: {result.processing_ms:.0f}ms")

    if result.analysis is not None:
        analysis = result.analysis
        console_print(
            f"  NSFW:       {analysis.nsfw.score:.2f} [{analysis.nsfw.severity}] via {analysis.nsfw.method}"
        )
        console_print(f"  Plagiarism: {analysis.plagiarism.score:.2f} [{analysis.plagiarism.severity}]")
        console_print(f"  Quality:    {analysis.quality.score:.2f} [{analysis.quality.severity}]")
        console_print(f"  Text:       {analysis.text.score:.2f}")

    if result.flags:
        console_print("  Flags:", "ansiyellow")
        for flag in result.flags:
            console_print(f"    • {flag.type} ({flag.severity}): {flag.message}")
    console_print("")


def parse_threshold_args(args: list[str]) -> dict[str, dict[str, float]]:
    """
    Parse ``dimension.tier=value`` tokens into a partial threshold mapping.

    Raises:
        ValueError: If a token is malformed.
    """
    partial: dict[str, dict[str, float]] = {}
    for token in args:
        key, sep, raw_value = token.partition("=")
        dimension, dot, tier = key.partition(".")
        if not sep or not dot or not dimension or not tier:
            raise ValueError(f"Expected dimension.tier=value, got '{token}'")
        try:
            value = float(raw_value)
        except ValueError:
            raise ValueError(f"Threshold value for {key} must be a number, got '{raw_value}'") from None
        partial.setdefault(dimension, {})[tier] = value
    return partial


# Command handlers

async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    for line in box_title("Commands"):
        console_print(line, "ansigreen")

    for command in COMMANDS:
        header = ", ".join(command.names)
        console_print(f"\n  {header}", "ansicyan")
        console_print(f"    {command.description}")
        if command.usage:
            console_print(f"    Usage: {command.usage}", "ansibrightblack")
    console_print("")


async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    """Display cache, provider and performance information."""
    status = control.service.system_status()
    performance = status["performance"]

    for line in box_title("Moderation Status"):
        console_print(line, "ansiblue")

    sightengine = status["services"]["sightengine"]
    provider_status = "🟢 Configured" if sightengine["configured"] else "🟡 Heuristic mode"
    console_print(f"  NSFW provider: {provider_status}")
    console_print(
        f"  Cache:         {status['cache_size']}/{status['cache_max_entries']} entries "
        f"(TTL {status['cache_ttl'] / 3600:.1f}h)"
    )
    console_print(f"  Requests:      {performance['total_requests']}")
    console_print(f"  Cache hits:    {performance['cache_hits']} ({performance['cache_hit_rate']}%)")
    console_print(f"  Errors:        {performance['errors']} ({performance['error_rate']}%)")
    console_print(f"  Avg latency:   {performance['average_processing_ms']:.0f}ms")

    console_print("  Thresholds:")
    for dimension, tiers in status["thresholds"].items():
        tiers_str = ", ".join(f"{tier}={value}" for tier, value in tiers.items())
        console_print(f"    {dimension}: {tiers_str}")

    console_print("")


async def _moderate_from_args(control: ConsoleControl, args: list[str], *, recheck: bool) -> None:
    if not args:
        console_print("Usage: moderate <image_url> [title]", "ansiyellow")
        return

    item = AnalysisInput(
        image_ref=args[0],
        item_id=control.next_item_id(),
        title=" ".join(args[1:]),
    )
    console_print(f"{'Rechecking' if recheck else 'Moderating'} {args[0]}...", "ansibrightblack")
    if recheck:
        result = await control.service.recheck_item(item)
    else:
        result = await control.service.moderate_item(item)
    print_result(result)


async def cmd_moderate(control: ConsoleControl, args: list[str]) -> None:
    """Moderate one image URL."""
    await _moderate_from_args(control, args, recheck=False)


async def cmd_recheck(control: ConsoleControl, args: list[str]) -> None:
    """Moderate one image URL, bypassing the result cache."""
    await _moderate_from_args(control, args, recheck=True)


async def cmd_thresholds(control: ConsoleControl, args: list[str]) -> None:
    """Show or update the moderation thresholds."""
    if args:
        try:
            partial = parse_threshold_args(args)
        except ValueError as exc:
            console_print(str(exc), "ansired")
            return
        thresholds = control.service.update_thresholds(partial)
        console_print("Thresholds updated.", "ansigreen")
    else:
        thresholds = control.service.thresholds.get().as_dict()

    for dimension, tiers in thresholds.items():
        tiers_str = ", ".join(f"{tier}={value}" for tier, value in tiers.items())
        console_print(f"  {dimension}: {tiers_str}")
    console_print("")


async def cmd_clear_cache(control: ConsoleControl, args: list[str]) -> None:
    """Drop every cached moderation result."""
    outcome = control.service.clear_cache()
    console_print(f"Cleared {outcome['cleared']} cached results.", "ansigreen")


async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    clear()


async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    """Request graceful shutdown."""
    console_print("Shutting down.", "ansiyellow")
    control.request_shutdown()


COMMANDS: list[Command] = [
    Command("help", cmd_help, "List commands with their aliases and usage", ["h", "?"]),
    Command("status", cmd_status, "Provider mode, cache fill, thresholds and request statistics", ["stat", "info"]),
    Command(
        "moderate",
        cmd_moderate,
        "Moderate an image URL, reusing a cached verdict when there is one",
        ["mod", "m"],
        usage="moderate <image_url> [title]",
    ),
    Command(
        "recheck",
        cmd_recheck,
        "Moderate an image URL again and replace its cached verdict",
        ["re"],
        usage="recheck <image_url> [title]",
    ),
    Command(
        "thresholds",
        cmd_thresholds,
        "Show the active thresholds or change some of them",
        ["thr"],
        usage="thresholds [dimension.tier=value ...]  e.g. thresholds nsfw.medium=0.5",
    ),
    Command("clear-cache", cmd_clear_cache, "Forget every cached verdict", ["flush"]),
    Command("clear", cmd_clear, "Clear the screen", ["cls"]),
    Command("shutdown", cmd_shutdown, "Leave the console and stop artmod", ["stop", "quit", "exit"]),
]

COMMAND_INDEX: dict[str, Command] = {name: command for command in COMMANDS for name in command.names}


async def handle_console_command(command: str, control: ConsoleControl) -> None:
    """Run one line typed at the prompt. Handler failures are reported, never raised."""
    parts = command.split()
    if not parts:
        return

    name, args = parts[0].lower(), parts[1:]
    target = COMMAND_INDEX.get(name)
    if target is None:
        console_print(f"Unknown command '{name}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await target.handler(control, args)
    except ArtmodError as exc:
        console_print(f"Error: {exc}", "ansired")
    except Exception as exc:
        logger.exception("[CONSOLE] Command '%s' failed: %s", name, exc)
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Prompt for commands until shutdown is requested or input ends."""
    session: PromptSession[str] = PromptSession(PROMPT)

    for line in box_title("artmod moderation console"):
        console_print(line, "ansigreen")
    console_print("Commands: 'help' to list them, 'exit' to leave.\n", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                console_print("\nInput closed, shutting down.", "ansiyellow")
                control.request_shutdown()
                break
            await handle_console_command(line, control)
