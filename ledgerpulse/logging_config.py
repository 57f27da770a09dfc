"""Logging configuration for LedgerPulse."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("aiosqlite", "schedule", "httpx", "httpcore")


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Configure stdout (and optional file) logging for the service."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", handlers=handlers, force=True
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("ledgerpulse")
