from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional


@dataclass(frozen=True)
class IndexSet:
    """
    Immutable bit-set over node indices ``[0, size)``.

    Bit ``i`` of ``bits`` is set when node ``i`` is a member. Iteration yields
    indices in increasing (topological) order.
    """

    size: int
    bits: int = 0

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError("IndexSet size must be non-negative.")
        if self.bits < 0 or self.bits >> self.size:
            raise ValueError(
                f"IndexSet bits {self.bits:#x} exceed universe of size {self.size}."
            )

    @classmethod
    def empty(cls, size: int) -> "IndexSet":
        return cls(size)

    @classmethod
    def full(cls, size: int) -> "IndexSet":
        return cls(size, (1 << size) - 1)

    @classmethod
    def of(cls, size: int, indices: Iterable[int]) -> "IndexSet":
        bits = 0
        for idx in indices:
            if not 0 <= idx < size:
                raise ValueError(f"Index {idx} out of range for IndexSet of size {size}.")
            bits |= 1 << idx
        return cls(size, bits)

    def _check_compatible(self, other: "IndexSet") -> None:
        if not isinstance(other, IndexSet):
            raise TypeError(f"Expected IndexSet, got {type(other)!r}.")
        if other.size != self.size:
            raise ValueError(
                f"IndexSet universes differ: {self.size} vs {other.size}."
            )

    def __contains__(self, index: int) -> bool:
        return 0 <= index < self.size and bool((self.bits >> index) & 1)

    def __iter__(self) -> Iterator[int]:
        bits = self.bits
        while bits:
            low = bits & -bits
            yield low.bit_length() - 1
            bits ^= low

    def __len__(self) -> int:
        return bin(self.bits).count("1")

    def __bool__(self) -> bool:
        return self.bits != 0

    def __or__(self, other: "IndexSet") -> "IndexSet":
        self._check_compatible(other)
        return IndexSet(self.size, self.bits | other.bits)

    def __and__(self, other: "IndexSet") -> "IndexSet":
        self._check_compatible(other)
        return IndexSet(self.size, self.bits & other.bits)

    def __sub__(self, other: "IndexSet") -> "IndexSet":
        self._check_compatible(other)
        return IndexSet(self.size, self.bits & ~other.bits)

    def __le__(self, other: "IndexSet") -> bool:
        return self.issubset(other)

    def issubset(self, other: "IndexSet") -> bool:
        self._check_compatible(other)
        return (self.bits & ~other.bits) == 0

    def intersects(self, other: "IndexSet") -> bool:
        self._check_compatible(other)
        return (self.bits & other.bits) != 0

    def add(self, index: int) -> "IndexSet":
        """Return a new set that also contains ``index``."""
        if not 0 <= index < self.size:
            raise ValueError(f"Index {index} out of range for IndexSet of size {self.size}.")
        return IndexSet(self.size, self.bits | (1 << index))

    def first_index(self) -> Optional[int]:
        if not self.bits:
            return None
        return (self.bits & -self.bits).bit_length() - 1

    def __repr__(self) -> str:
        return "{" + ",".join(str(i) for i in self) + "}"
