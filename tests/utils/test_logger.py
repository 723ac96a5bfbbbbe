"""Tests for logger module."""

import logging
from unittest.mock import patch

from artmod.util.logger import (
    get_logger,
    get_log_filepath,
    handle_exception,
    console_level,
    log_directory,
    should_use_color,
    ColorFormatter,
    PromptToolkitHandler,
    LOG_FORMAT,
    DATE_FORMAT,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="test_func",
    )


class TestShouldUseColor:
    """Tests for should_use_color function."""

    @patch('sys.stderr.isatty')
    def test_should_use_color_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch('sys.stderr.isatty')
    def test_should_use_color_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert should_use_color() is False

    @patch('sys.stderr.isatty')
    def test_should_use_color_exception(self, mock_isatty):
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:
    """Tests for ColorFormatter class."""

    def test_debug_is_cyan(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        formatted = formatter.format(_record(logging.DEBUG, "Debug message"))
        assert formatted.startswith("\033[36m")
        assert "Debug message" in formatted

    def test_error_is_red(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        formatted = formatter.format(_record(logging.ERROR, "Error message"))
        assert formatted.startswith("\033[31m")
        assert formatted.endswith("\033[0m")

    def test_format_includes_function_and_line(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        formatted = formatter.format(_record(logging.WARNING, "Warning message"))
        assert "[test:test_func:10]" in formatted


class TestPromptToolkitHandler:
    def test_emit_prints_through_prompt_toolkit(self):
        handler = PromptToolkitHandler(formatter=logging.Formatter("%(message)s"))
        with patch("artmod.util.logger.print_formatted_text") as mock_print:
            handler.emit(_record(logging.INFO, "hello"))
        mock_print.assert_called_once()


class TestGetLogger:
    """Tests for get_logger function."""

    def test_creates_debug_logger(self):
        logger = get_logger("artmod_test_logger_1")

        assert logger.name == "artmod_test_logger_1"
        assert logger.level == logging.DEBUG

    def test_returns_existing(self):
        logger1 = get_logger("artmod_test_logger_2")
        logger2 = get_logger("artmod_test_logger_2")

        assert logger1 is logger2
        assert len(logger2.handlers) == 2

    def test_propagate_false(self):
        logger = get_logger("artmod_test_logger_3")

        assert logger.propagate is False

    def test_handlers_levels(self, monkeypatch):
        monkeypatch.delenv("ARTMOD_LOG_LEVEL", raising=False)
        logger = get_logger("artmod_test_logger_4")
        levels = sorted(handler.level for handler in logger.handlers)

        assert levels == [logging.DEBUG, logging.INFO]


def test_console_level_from_env(monkeypatch):
    monkeypatch.setenv("ARTMOD_LOG_LEVEL", "warning")
    assert console_level() == logging.WARNING

    monkeypatch.setenv("ARTMOD_LOG_LEVEL", "chatty")
    assert console_level() == logging.INFO


def test_log_directory_honors_env(monkeypatch, tmp_path):
    target = tmp_path / "session-logs"
    monkeypatch.setenv("ARTMOD_LOG_DIR", str(target))

    assert log_directory() == target.resolve()
    assert target.is_dir()


def test_log_filepath_is_stable_per_session():
    first = get_log_filepath()
    second = get_log_filepath()

    assert first == second
    assert first.suffix == ".log"
    assert first.name.startswith("artmod ")


def test_noisy_libraries_silenced():
    for name in ("urllib3", "requests", "PIL"):
        assert logging.getLogger(name).level == logging.ERROR


def test_handle_exception_passes_keyboard_interrupt_to_default_hook():
    with patch("sys.__excepthook__") as default_hook:
        handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
    default_hook.assert_called_once()


def test_handle_exception_logs_other_errors():
    with patch("artmod.util.logger.get_logger") as mock_get_logger:
        handle_exception(RuntimeError, RuntimeError("boom"), None)

    mock_get_logger.assert_called_once_with("artmod")
    critical = mock_get_logger.return_value.critical
    critical.assert_called_once()
    assert critical.call_args.args[0] == "Uncaught exception"
