"""
Centralized Logging

Architectural Intent:
- Human readable or JSON-lines output for everything under the "stratus"
  logger
- Levels come from configuration (log_level) as names or numbers
- Lifecycle loggers are children of "stratus" named after the agent zones
  they provision for, so one process serving several zones stays readable
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Sequence, Union

ROOT_LOGGER = "stratus"
LIFECYCLE_LOGGER = "stratus.lifecycle"

HUMAN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def parse_level(level: Union[int, str]) -> int:
    """Turn 'debug', 'INFO' or 20 into a logging level. Unknown names raise ValueError."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def lifecycle_logger(zones: Sequence[str] = ()) -> logging.Logger:
    """Logger for one orchestrator, e.g. stratus.lifecycle.web-db."""
    suffix = "-".join(z.replace(".", "_") for z in zones) or "default"
    return logging.getLogger(f"{LIFECYCLE_LOGGER}.{suffix}")


def configure_logging(
    level: Union[int, str] = logging.INFO,
    json_format: bool = False,
) -> None:
    """Send "stratus" records to stderr, replacing any handler set up earlier.

    Args:
        level: name ("debug") or number
        json_format: JSON lines instead of the human readable format
    """
    level = parse_level(level)
    formatter = JSONFormatter() if json_format else logging.Formatter(HUMAN_FORMAT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(level)
    stream.setFormatter(formatter)

    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(stream)
    logger.setLevel(level)
