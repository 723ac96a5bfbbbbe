"""
Logging setup shared by every artmod module.

Each named logger gets two handlers: a prompt_toolkit console handler so log
lines do not break the moderation console prompt, and a rotating file handler
writing to one log file per process under ``logs/`` (or ``$ARTMOD_LOG_DIR``).
"""

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

NOISY_LOGGERS = ("urllib3", "requests", "PIL", "asyncio")

_session_log_file: Path | None = None


class ColorFormatter(logging.Formatter):
    """Formatter that colors the whole line by level: DEBUG cyan through CRITICAL dark red."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return text
        return f"{color}{text}{RESET_COLOR}"


class PromptToolkitHandler(logging.Handler):
    """
    Console handler that writes through ``print_formatted_text``.

    Plain ``print`` would interleave with whatever the moderator is typing at
    the console prompt; prompt_toolkit redraws the prompt below the log line.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter is not None:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """True when stderr is a TTY."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def log_directory() -> Path:
    """Directory for session log files, created on demand."""
    default = Path(__file__).resolve().parents[3] / "logs"
    directory = Path(os.getenv("ARTMOD_LOG_DIR") or default).resolve()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def console_level() -> int:
    """Console verbosity from ``ARTMOD_LOG_LEVEL`` (INFO when unset or unknown)."""
    level = logging.getLevelName(os.getenv("ARTMOD_LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_log_filepath() -> Path:
    """
    Path of the log file for this process.

    Resolved once; every logger created afterwards writes to the same file,
    named after the moment the first logger was requested.
    """
    global _session_log_file

    if _session_log_file is None:
        started = datetime.now().strftime(DATE_FORMAT)
        _session_log_file = log_directory() / f"artmod {started}.log"
    return _session_log_file


def _console_handler() -> logging.Handler:
    formatter_class = ColorFormatter if should_use_color() else logging.Formatter
    handler = PromptToolkitHandler(formatter=formatter_class(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.setLevel(console_level())
    return handler


def _file_handler() -> logging.Handler:
    handler = RotatingFileHandler(
        get_log_filepath(),
        encoding="utf-8",
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(logger_name: str) -> logging.Logger:
    """Return the named logger, attaching the console and file handlers on first use.

    Parameters
    ----------
    logger_name:
        Component name shown in the ``[name:function:line]`` part of each line.

    Returns
    -------
    logging.Logger
        Logger that does not propagate to the root logger.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler())
    return logger


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    get_logger("artmod").critical(
        "Uncaught exception",
        exc_info=(exception_type, exception_instance, exception_traceback),
    )


def silence_noisy_loggers(names=NOISY_LOGGERS) -> None:
    """Drop third-party chatter below ERROR."""
    for name in names:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = []


silence_noisy_loggers()
