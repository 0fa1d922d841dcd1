"""
Targets and partition specs.

A ``PartitionSpec`` pairs one target with the rule tree that finds candidates
for it. The top-level driver holds one spec per target.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, List, Optional, Tuple

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.partition.candidate import CandidatePartition
from tiny_collage.partition.rules import PartitionRule
from tiny_collage.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Target:
    """
    Execution backend descriptor.

    Attributes:
        kind: backend family, e.g. ``"cuda"`` or ``"host"``.
        compiler: name of the external toolchain that owns partitions for
            this target, if any. A ``"compiler"`` entry in ``attrs`` is used
            when this field is unset.
        attrs: additional hashable attributes as ``(key, value)`` pairs.
    """

    kind: str
    compiler: Optional[str] = None
    attrs: Tuple[Tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        if not self.kind:
            raise ValueError("Target kind must be a non-empty string.")

    @classmethod
    def host(cls) -> "Target":
        return cls(kind="host")

    def get(self, key: str, default: Any = None) -> Any:
        if key == "compiler" and self.compiler is not None:
            return self.compiler
        return dict(self.attrs).get(key, default)

    def key(self) -> Hashable:
        return (self.kind, self.compiler, self.attrs)

    def __str__(self) -> str:
        compiler = self.get("compiler")
        if compiler:
            return f"{self.kind} -compiler={compiler}"
        return self.kind


@dataclass(frozen=True)
class PartitionSpec:
    spec_name: str
    target: Target
    rule: PartitionRule

    def __post_init__(self) -> None:
        if not self.spec_name:
            raise ValueError("PartitionSpec name must be a non-empty string.")
        if not isinstance(self.target, Target):
            raise TypeError(f"Expected Target, got {type(self.target)!r}.")
        if not isinstance(self.rule, PartitionRule):
            raise TypeError(f"Expected PartitionRule, got {type(self.rule)!r}.")

    def all_candidates(self, dataflow_graph: DataflowGraph) -> List[CandidatePartition]:
        """
        Evaluate the spec's rule and resolve every candidate's target to this
        spec's target.
        """
        candidates = [
            candidate.with_target(self.target, self.spec_name)
            for candidate in self.rule.all_candidates(dataflow_graph, self)
        ]
        logger.debug("Spec %s produced %d candidates", self.spec_name, len(candidates))
        return candidates

    def __str__(self) -> str:
        body = str(self.rule).replace("\n", "\n  ")
        return (
            "PartitionSpec(\n"
            f"  spec_name={self.spec_name!r},\n"
            f"  target={self.target},\n"
            f"  rule={body},\n"
            ")"
        )
