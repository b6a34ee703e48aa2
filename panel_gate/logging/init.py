from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Two streams:
- stdout: RESULT level only, unlabeled. This is the single station response line.
- stderr: diagnostics with DEBUG|INFO|WARN|ERROR prefixes (WARNING and up by
  default, everything in debug/verbose mode)

The station parses stdout, so nothing but the result line may ever go there.
"""

__all__ = [
    "RESULT_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "enable_debug",
    "log_result",
    "reset_logging",
]

LOGGER_NAME = "panel_gate"

# Custom RESULT level (between INFO=20 and WARNING=30)
RESULT_LEVEL = 25

# Global logger instance
_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formats records as ``LABEL message``; RESULT records are written bare."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == RESULT_LEVEL:
            return record.getMessage()
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        text = f"{level_label} {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class _ResultFilter(logging.Filter):
    def __init__(self, results: bool) -> None:
        super().__init__()
        self.results = results

    def filter(self, record: logging.LogRecord) -> bool:
        return (record.levelno == RESULT_LEVEL) == self.results


def setup_logging(debug: bool = False) -> logging.Logger:
    """Setup the application logger (idempotent).

    Child loggers (``panel_gate.services.gate`` etc.) propagate into it, so
    modules keep using ``logging.getLogger(__name__)``.
    """
    global _logger

    if _logger is not None:
        if debug:
            enable_debug()
        return _logger

    logging.addLevelName(RESULT_LEVEL, "RESULT")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = LabeledFormatter()

    result_handler = logging.StreamHandler(sys.stdout)
    result_handler.setLevel(RESULT_LEVEL)
    result_handler.addFilter(_ResultFilter(results=True))
    result_handler.setFormatter(formatter)

    diag_handler = logging.StreamHandler(sys.stderr)
    diag_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    diag_handler.addFilter(_ResultFilter(results=False))
    diag_handler.setFormatter(formatter)

    logger.addHandler(result_handler)
    logger.addHandler(diag_handler)
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def enable_debug() -> None:
    """Lower the diagnostics stream to DEBUG (``--debug`` / verbose token)."""
    logger = get_logger()
    for h in logger.handlers:
        if h.level != RESULT_LEVEL:
            h.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")


def log_result(line: str) -> None:
    """Emit the single station response line on stdout."""
    get_logger().log(RESULT_LEVEL, line)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
