"""Centralized logging configuration for the service.

Provides logging with separate files for:
- info.log: General service logs (INFO level and above)
- error.log: Error logs only (ERROR level and above)

Pipeline log lines carry the invocation's correlation id as a
`[<id>]` prefix, so one request can be followed across both files.
"""

import logging
import sys
from pathlib import Path

from docfill.core.config import get_settings

DEFAULT_LOG_DIR = Path(__file__).parent.parent.parent / "logs"

# Libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "multipart")


def setup_logging(log_dir: Path | None = None) -> logging.Logger:
    """Configure service logging with file and console handlers.

    Args:
        log_dir: Directory for the log files; defaults to logs/ in the project root.

    Returns:
        The configured root logger.
    """
    settings = get_settings()
    level = logging.DEBUG if settings.log_level == "DEBUG" else logging.INFO

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    simple_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    info_handler = logging.FileHandler(log_dir / "info.log", encoding="utf-8")
    info_handler.setLevel(logging.INFO)
    info_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(info_handler)

    error_handler = logging.FileHandler(log_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_handler)

    # Console handler for development
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: The name for the logger (typically __name__ of the module).

    Returns:
        A configured logger instance.
    """
    return logging.getLogger(name)
