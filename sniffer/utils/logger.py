import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

ROOT_LOGGER_NAME = "mynest"

# Chatty third-party loggers that only matter when debugging a sniff.
_NOISY_LOGGERS = ("urllib3", "playwright", "asyncio")


class SniffLogFormatter(logging.Formatter):
    """``12:04:31 INFO    size: message``, with the ``mynest.`` prefix dropped."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False, with_date: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S" if with_date else "%H:%M:%S")
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        component = record.name
        if component.startswith(ROOT_LOGGER_NAME + "."):
            component = component[len(ROOT_LOGGER_NAME) + 1:]

        level = f"{record.levelname:<7}"
        if self.use_colors and record.levelno in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelno]}{level}{self.RESET}"

        line = f"{self.formatTime(record, self.datefmt)} {level} {component}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """Configure the ``mynest`` logger tree. Safe to call more than once."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(SniffLogFormatter(use_colors=sys.stderr.isatty()))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(SniffLogFormatter(with_date=True))
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    noisy_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME)


@contextmanager
def sniff_timer(logger: logging.Logger, operation: str, **details: Any) -> Iterator[Dict[str, Any]]:
    """Time one pipeline stage and log it at INFO when the block exits.

    The yielded dict starts as ``details``; the block may add counts to it and
    they are appended to the log line. ``duration`` is filled in on exit.
    """
    stats: Dict[str, Any] = dict(details)
    started = time.monotonic()
    try:
        yield stats
    finally:
        stats["duration"] = round(time.monotonic() - started, 3)
        extra = " ".join(f"{k}={v}" for k, v in stats.items() if k != "duration")
        logger.info(f"[Timing] {operation} took {stats['duration']:.3f}s {extra}".rstrip())
