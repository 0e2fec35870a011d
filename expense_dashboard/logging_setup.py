"""Logging for the ``expense_dashboard`` package.

Modules log through ``get_logger(__name__)``-style loggers under the
``expense_dashboard`` namespace and stay silent until an entrypoint (the CLI
or ``create_app``) calls :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

LOGGER_NAME = "expense_dashboard"
LEVEL_ENV = "EXPENSE_DASHBOARD_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_root = logging.getLogger(LOGGER_NAME)
_root.addHandler(logging.NullHandler())


def resolve_level(level: Union[int, str, None] = None) -> int:
    """``level`` as given, else ``$EXPENSE_DASHBOARD_LOG_LEVEL``, else INFO."""
    if level is None:
        level = os.getenv(LEVEL_ENV)
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name) if name else logging.INFO
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None, stream: Optional[IO[str]] = None) -> None:
    # Repeat calls only adjust the level; the stream handler is added once.
    _root.setLevel(resolve_level(level))
    if any(isinstance(h, logging.StreamHandler) for h in _root.handlers):
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    _root.addHandler(handler)
    _root.propagate = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
