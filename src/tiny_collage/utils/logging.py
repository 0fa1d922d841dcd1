"""
Package logger.

Library code never configures handlers; callers opt in with
``enable_debug_logging`` or their own logging setup.
"""

from __future__ import annotations

import logging
from typing import Optional

LOGGER_NAME = "tiny_collage"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger or a child of it for module ``name``."""
    if not name or name == LOGGER_NAME:
        return logger
    if name.startswith(LOGGER_NAME + "."):
        name = name[len(LOGGER_NAME) + 1:]
    return logger.getChild(name)


def enable_debug_logging(level: int = logging.DEBUG) -> logging.Handler:
    """Attach a stream handler to the package logger and lower its level."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
