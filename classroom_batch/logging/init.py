from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

"""Application logging.

Every line on stdout is `LABEL message`, LABEL being one of
DEBUG | INFO | WARN | ERROR | SUMMARY. Module loggers under `classroom_batch.`
propagate to the single stdout handler installed here. Per-upload messages go
through `kind_logger`, which prefixes the ingestion kind (`WARN score: row 3 ...`).
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "KindLogger",
    "enable_debug",
    "get_logger",
    "kind_logger",
    "log_summary",
    "reset_logging",
    "setup_logging",
]

LOGGER_NAME = "classroom_batch"

# Between INFO=20 and WARNING=30
SUMMARY_LEVEL = 25

LEVEL_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """`LABEL message`, plus the traceback when the record carries one."""

    def format(self, record: logging.LogRecord) -> str:
        label = LEVEL_LABELS.get(record.levelno, record.levelname)
        line = f"{label} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class KindLogger(logging.LoggerAdapter):
    """Prefix every message with the ingestion kind or roster action."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{self.extra['kind']}: {msg}", kwargs


def kind_logger(name: str, kind: str) -> KindLogger:
    return KindLogger(logging.getLogger(name), {"kind": kind})


def _stdout_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())
    return handler


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Install the stdout handler on the `classroom_batch` logger.

    Idempotent: later calls return the configured logger unchanged.
    """
    global _logger
    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.addHandler(_stdout_handler(level))
    logger.setLevel(level)
    # stdout only, not again through root
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def enable_debug() -> None:
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
    logger.debug("debug mode enabled")


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Detach the stdout handler and forget the configured logger (tests)."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
        _logger.propagate = True
        _logger.setLevel(logging.NOTSET)
    _logger = None
