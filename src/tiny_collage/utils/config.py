"""
Global / experimental configuration flags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TCConfig:
    debug: bool = False
    # Evaluate independent partition specs on a thread pool.
    parallel_specs: bool = False
    max_workers: int = 4

    def __post_init__(self) -> None:
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive.")

    @classmethod
    def from_env(cls) -> "TCConfig":
        return cls(
            debug=_env_flag("TINY_COLLAGE_DEBUG"),
            parallel_specs=_env_flag("TINY_COLLAGE_PARALLEL"),
            max_workers=int(os.getenv("TINY_COLLAGE_MAX_WORKERS", "4")),
        )


config = TCConfig.from_env()
