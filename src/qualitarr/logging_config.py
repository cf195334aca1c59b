"""Logging setup shared by the CLI and library callers."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

VALID_LEVELS = ("debug", "info", "warning", "error", "critical")

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore")


def parse_log_level(level: str | int) -> int:
    """Convert a level name such as ``"debug"`` into a logging constant.

    Raises:
        ValueError: If the name is not a known level
    """
    if isinstance(level, int):
        return level
    name = level.strip().lower()
    if name not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log level '{level}'. Choose from: {', '.join(VALID_LEVELS)}"
        )
    return getattr(logging, name.upper())


def configure_logging(level: str | int = "info") -> None:
    """Configure root logging for qualitarr.

    Args:
        level: Level name or logging constant
    """
    numeric_level = parse_log_level(level)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
