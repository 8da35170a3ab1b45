"""
Logging setup shared by the bot and the engine.

The engine logs degraded results (fallback pairings, failed candidate
attempts, stale rematches) at WARNING, chosen assignments and rating changes
at INFO, and storage round-trips at DEBUG.

Environment variables:
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL (default INFO)
- TEST_MODE: when truthy, use the verbose line format at any level
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal, Optional

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"
CONCISE_FORMAT = "%(levelname).1s %(message)s"

# Chatty below WARNING and rarely useful outside a debugging session
THIRD_PARTY = ("discord", "discord.http", "discord.gateway", "aiosqlite")


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _test_mode() -> bool:
    return os.getenv("TEST_MODE", "0").lower() in ("1", "true", "yes")


def setup_logging(level: Optional[LogLevel] = None, mode: Optional[Literal["test", "prod"]] = None) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    numeric_level = _resolve_level(level)
    debug = numeric_level <= logging.DEBUG
    verbose = debug or mode == "test" or (mode is None and _test_mode())

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT if verbose else CONCISE_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in THIRD_PARTY:
        logging.getLogger(name).setLevel(logging.INFO if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
