"""Logging helpers.

Library modules only ever call ``get_logger(__name__)``; entry points such as
``scripts/seed_demo.py`` call ``configure_logging()`` once at startup.
"""

from __future__ import annotations

import logging

from tapscopes.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_logging(level: str | int | None = None) -> None:
    resolved = level if level is not None else settings.log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
