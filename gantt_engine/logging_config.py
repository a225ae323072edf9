"""
Logging configuration for the scheduling engine.

The engine is usually embedded in a host application, so only the ``gantt``
logger tree is configured here; the host's root logger is left alone.

- Console output with the level name color coded
- Optional JSON lines for log aggregation
- Level taken from the settings (``GANTT_LOG_LEVEL`` / ``GANTT_DEBUG``)
"""

import json
import logging
import sys
from typing import Optional

from gantt_engine.config import get_settings

ROOT_LOGGER = "gantt"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI color per level, applied to the level name only
LEVEL_COLORS = {
    logging.DEBUG: "\x1b[38;20m",
    logging.INFO: "\x1b[32;20m",
    logging.WARNING: "\x1b[33;20m",
    logging.ERROR: "\x1b[31;20m",
    logging.CRITICAL: "\x1b[31;1m",
}
RESET = "\x1b[0m"


class ColoredFormatter(logging.Formatter):
    """Pads and colors the level name, leaves the message untouched."""

    def __init__(self, use_color: bool = True):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color

    def format(self, record):
        levelname = record.levelname
        padded = f"{levelname:<8}"
        if self.use_color and record.levelno in LEVEL_COLORS:
            padded = f"{LEVEL_COLORS[record.levelno]}{padded}{RESET}"
        record.levelname = padded
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def resolve_level(level: Optional[str] = None) -> int:
    """Explicit level, then the configured one, then DEBUG/INFO by debug flag."""
    settings = get_settings()
    name = level or settings.log_level or ("DEBUG" if settings.debug else "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the engine's logger tree and return its root.

    Calling this again replaces the handler rather than stacking another one.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, emit JSON lines. Defaults to the json_logs setting.
    """
    if json_format is None:
        json_format = get_settings().json_logs
    numeric_level = resolve_level(level)

    engine_logger = logging.getLogger(ROOT_LOGGER)
    engine_logger.setLevel(numeric_level)
    for handler in list(engine_logger.handlers):
        engine_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_format else ColoredFormatter(sys.stdout.isatty()))
    engine_logger.addHandler(handler)

    # httpx chatter from the test client and host integrations
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return engine_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the engine's tree.

    ``gantt_engine.services.recalc`` becomes ``gantt.services.recalc``.
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    if name.startswith("gantt_engine"):
        name = name[len("gantt_engine"):].lstrip(".")
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)
