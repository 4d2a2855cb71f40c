"""
Logging for the bot and the venue engine.

Two knobs:
- LOG_LEVEL sets the root level (Discord plumbing, the front end).
- SHUTTLE_LOG_LEVEL sets the `shuttle_tally` loggers on their own, so staff can
  trace every assignment, settlement and store write at DEBUG while the rest
  of the process stays at INFO. Defaults to LOG_LEVEL.

Engine records are tagged with their module (`courts`, `store`, ...) rather
than the full dotted name.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal, Optional

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

ENGINE_LOGGER = "shuttle_tally"

FMT_VERBOSE = "%(asctime)s | %(levelname)-8s | %(area)s:%(lineno)d | %(message)s"
FMT_CONCISE = "%(asctime)s %(levelname).1s [%(area)s] %(message)s"


def _parse_level(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else fallback


class AreaFilter(logging.Filter):
    """Adds `record.area`: the engine module name, or the logger name elsewhere."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(ENGINE_LOGGER + "."):
            name = name[len(ENGINE_LOGGER) + 1:]
        record.area = name
        return True


def setup_logging(
    level: Optional[LogLevel] = None,
    mode: Optional[Literal["test", "prod"]] = None,
    engine_level: Optional[LogLevel] = None,
) -> None:
    """Configure the root logger and the engine logger.

    Arguments override LOG_LEVEL / SHUTTLE_LOG_LEVEL. `mode="test"` forces the
    verbose format.
    """
    root_level = _parse_level(level or os.getenv("LOG_LEVEL"), logging.INFO)
    engine = _parse_level(engine_level or os.getenv("SHUTTLE_LOG_LEVEL"), root_level)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    verbose = mode == "test" or min(root_level, engine) <= logging.DEBUG
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(AreaFilter())
    handler.setFormatter(logging.Formatter(fmt=FMT_VERBOSE if verbose else FMT_CONCISE, datefmt="%H:%M:%S"))

    root.setLevel(root_level)
    root.addHandler(handler)
    logging.getLogger(ENGINE_LOGGER).setLevel(engine)

    # discord.py and aiosqlite are chatty; only show them when the root is at DEBUG
    quiet = logging.INFO if root_level <= logging.DEBUG else logging.WARNING
    logging.getLogger("discord").setLevel(quiet)
    logging.getLogger("aiosqlite").setLevel(quiet)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
