"""
Miscellaneous utilities shared across tiny-collage.
"""

from .logging import enable_debug_logging, get_logger, logger
from .config import config

__all__ = ["logger", "get_logger", "enable_debug_logging", "config"]
