from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, Hashable, Optional, Tuple

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.partition.cost import ActivationSizeCostEstimator, Cost, CostCache, CostEstimateFn
from tiny_collage.partition.sub_graph import ExtractedFunction, SubGraph

if TYPE_CHECKING:
    from tiny_collage.partition.spec import Target

# Function attributes attached to a candidate when it is extracted.
COMPOSITE_ATTR = "Composite"
PRIMITIVE_ATTR = "Primitive"
COMPILER_ATTR = "Compiler"


def nest_labels(outer: str, inner: str) -> str:
    """Join provenance labels outer-first, dropping empty parts."""
    if not outer:
        return inner
    if not inner:
        return outer
    return f"{outer}.{inner}"


@dataclass(frozen=True)
class CandidatePartition:
    """
    A sub-graph some target could run as one unit, with the chain of rules
    that produced it.

    Attributes:
        rule_name: nested provenance label, outermost rule first.
        sub_graph: node set and shape summary.
        target: filled in by the ``PartitionSpec``; ``None`` while unresolved.
        spec_name: name of the spec that produced the candidate.
        annotations: function attributes to attach on extraction, in the
            order the wrapping rules added them.
    """

    rule_name: str
    sub_graph: SubGraph
    target: Optional["Target"] = None
    spec_name: str = ""
    annotations: Tuple[Tuple[str, Any], ...] = ()

    def with_rule_name(self, rule_name: str) -> "CandidatePartition":
        return replace(self, rule_name=rule_name)

    def with_target(self, target: Optional["Target"], spec_name: str = "") -> "CandidatePartition":
        return replace(self, target=target, spec_name=spec_name or self.spec_name)

    def with_annotation(self, key: str, value: Any) -> "CandidatePartition":
        return replace(self, annotations=self.annotations + ((key, value),))

    @property
    def inside(self):
        return self.sub_graph.inside

    def function_attrs(self) -> Dict[str, Any]:
        return dict(self.annotations)

    def key(self) -> Hashable:
        """Identity used by external caches: same nodes, target and attributes."""
        target_key = None if self.target is None else self.target.key()
        return (self.spec_name, target_key, self.sub_graph.inside, self.annotations)

    def extract(self, dataflow_graph: DataflowGraph) -> ExtractedFunction:
        return self.sub_graph.extract(dataflow_graph, self.function_attrs())

    def cost(
        self,
        dataflow_graph: DataflowGraph,
        cache: CostCache,
        estimator: Optional[CostEstimateFn] = None,
    ) -> Cost:
        """
        Cost of this candidate, extracting and estimating it on first request
        only. The result lives in ``cache``, never on the candidate.
        """
        estimate = estimator if estimator is not None else ActivationSizeCostEstimator()

        def compute() -> Cost:
            return estimate(self.extract(dataflow_graph), self.target)

        return cache.get_or_compute(self.key(), compute)

    def to_doc(self) -> Dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "spec_name": self.spec_name,
            "target": None if self.target is None else str(self.target),
            "annotations": self.function_attrs(),
            "sub_graph": self.sub_graph.to_doc(),
        }

    def __str__(self) -> str:
        parts = [f"rule_name={self.rule_name!r}", f"sub_graph={self.sub_graph}"]
        if self.target is not None:
            parts.append(f"target={self.target}")
        if self.spec_name:
            parts.append(f"spec_name={self.spec_name!r}")
        if self.annotations:
            parts.append(f"annotations={self.function_attrs()}")
        return "CandidatePartition(" + ", ".join(parts) + ")"
