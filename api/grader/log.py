"""
JSON logging for the quiz grader.

Provides `JSONFormatter` (one JSON object per line) and `configure_logging`,
which installs it on stdout at the level from `grader.config`.
"""
import json
import logging
import sys
import time

from grader.config import get_log_level

LOGGER_NAME = "grader"


class JSONFormatter(logging.Formatter):
    """Format log records as compact JSON with timestamp and logger name."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "ts": round(time.time(), 3),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """
    Configure root logging to stdout with the JSON formatter.

    Args:
        level: Logging level; defaults to GRADER_LOG_LEVEL.

    Returns:
        The "grader" logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level or get_log_level(), handlers=[handler], force=True)
    return logging.getLogger(LOGGER_NAME)


def get_logger(name: str) -> logging.Logger:
    """Return a child of the "grader" logger."""
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
