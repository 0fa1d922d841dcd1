"""
Candidate costs and the cache that holds them.

Costs are never stored on candidates. A downstream consumer asks for the cost
of a candidate through a ``CostCache``; the first request extracts the
candidate's function and runs the estimator, later requests hit the cache.
"""

from __future__ import annotations

import math
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Hashable, Optional

from tiny_collage.utils.logging import get_logger

if TYPE_CHECKING:
    from tiny_collage.partition.spec import Target
    from tiny_collage.partition.sub_graph import ExtractedFunction

logger = get_logger(__name__)


@dataclass(frozen=True)
class Cost:
    """
    Estimated cost of running a candidate. ``nan`` means unknown, ``inf``
    means the candidate cannot be run by its target.
    """

    value: float

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Cost must be non-negative, got {self.value}.")

    @classmethod
    def unknown(cls) -> "Cost":
        return cls(math.nan)

    @classmethod
    def invalid(cls) -> "Cost":
        return cls(math.inf)

    @classmethod
    def zero(cls) -> "Cost":
        return cls(0.0)

    @property
    def is_unknown(self) -> bool:
        return math.isnan(self.value)

    @property
    def is_invalid(self) -> bool:
        return math.isinf(self.value)

    @property
    def is_known(self) -> bool:
        return not (self.is_unknown or self.is_invalid)

    def __add__(self, other: "Cost") -> "Cost":
        if self.is_invalid or other.is_invalid:
            return Cost.invalid()
        if self.is_unknown or other.is_unknown:
            return Cost.unknown()
        return Cost(self.value + other.value)

    def __lt__(self, other: "Cost") -> bool:
        if self.is_unknown or other.is_unknown:
            raise ValueError("Unknown costs cannot be compared.")
        return self.value < other.value

    def __str__(self) -> str:
        if self.is_unknown:
            return "Cost(unknown)"
        if self.is_invalid:
            return "Cost(invalid)"
        return f"Cost({self.value:g})"


CostEstimateFn = Callable[["ExtractedFunction", Optional["Target"]], Cost]


@dataclass
class ActivationSizeCostEstimator:
    """
    Heuristic estimator: a fixed launch overhead per function plus the bytes
    that cross the function boundary, plus the bytes produced inside.
    """

    launch_overhead: float = 1000.0
    boundary_byte_cost: float = 1.0
    interior_byte_cost: float = 0.25

    def __call__(self, function: "ExtractedFunction", target: Optional["Target"] = None) -> Cost:
        body = function.body
        boundary = sum(body.get_node(name).outputs_size for name in function.params)
        boundary += sum(body.get_node(name).outputs_size for name in function.results)
        interior = sum(
            node.outputs_size for name, node in body.nodes.items() if name not in function.params
        )
        return Cost(
            self.launch_overhead
            + self.boundary_byte_cost * boundary
            + self.interior_byte_cost * interior
        )


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0


class CostCache:
    """
    Externally owned lazy cost table keyed by candidate identity. Safe to share
    between threads; an estimate is computed at most once per key.
    """

    def __init__(self) -> None:
        self._costs: Dict[Hashable, Cost] = {}
        self._pending: Dict[Hashable, "Future[Cost]"] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._costs)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._costs

    def get(self, key: Hashable) -> Optional[Cost]:
        return self._costs.get(key)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Cost]) -> Cost:
        """
        Return the cached cost for ``key`` or run ``compute`` to produce it.

        ``compute`` runs outside the cache lock, so estimates for different
        keys proceed concurrently and an estimator may itself consult the
        cache. Concurrent callers for the same key wait for the first one.
        """
        with self._lock:
            cached = self._costs.get(key)
            if cached is not None:
                self.stats.hits += 1
                return cached
            pending = self._pending.get(key)
            owner = pending is None
            if owner:
                self.stats.misses += 1
                pending = Future()
                self._pending[key] = pending
            else:
                self.stats.hits += 1
        if not owner:
            return pending.result()

        try:
            cost = compute()
        except BaseException as exc:
            with self._lock:
                self._pending.pop(key, None)
            pending.set_exception(exc)
            raise
        with self._lock:
            self._costs[key] = cost
            self._pending.pop(key, None)
        pending.set_result(cost)
        logger.debug("Estimated %s for %s", cost, key)
        return cost

    def clear(self) -> None:
        with self._lock:
            self._costs.clear()
            self.stats = CacheStats()
