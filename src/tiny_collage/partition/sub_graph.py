"""
Sub-graphs: node sets of a dataflow graph together with their shape summary.

A sub-graph only records indices. Nothing is copied out of the program until
``extract`` is called, which only happens when a candidate is measured.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import Graph
from tiny_collage.graph.op_patterns import OpPatternKind
from tiny_collage.partition.index_set import IndexSet


@dataclass(frozen=True)
class SubGraphConfig:
    """
    Limits a sub-graph must respect to be considered valid.

    Attributes:
        max_max_depth: longest allowed path (in edges) inside the sub-graph.
        max_outputs: maximum number of exit nodes.
        allow_taps: whether interior values may also be consumed outside.
    """

    max_max_depth: int
    max_outputs: int
    allow_taps: bool = False

    def __post_init__(self) -> None:
        if self.max_max_depth < 0:
            raise ValueError(f"max_max_depth must be non-negative, got {self.max_max_depth}.")
        if self.max_outputs < 0:
            raise ValueError(f"max_outputs must be non-negative, got {self.max_outputs}.")


@dataclass(frozen=True)
class SubGraph:
    inside: IndexSet
    entry: IndexSet
    exit: IndexSet
    taps: IndexSet
    max_depth: int
    kind: OpPatternKind = OpPatternKind.OPAQUE
    label: str = ""

    def __post_init__(self) -> None:
        if not self.inside:
            raise ValueError("SubGraph must contain at least one node.")

    @classmethod
    def from_index_set(
        cls,
        dataflow_graph: DataflowGraph,
        inside: IndexSet,
        *,
        label: str = "",
    ) -> "SubGraph":
        """Derive the shape summary of ``inside`` from the graph's edges."""
        if inside.size != dataflow_graph.size:
            raise ValueError(
                f"IndexSet of size {inside.size} does not fit graph of size {dataflow_graph.size}."
            )
        if not inside:
            raise ValueError("SubGraph must contain at least one node.")

        entry: List[int] = []
        exits: List[int] = []
        taps: List[int] = []
        depth: Dict[int, int] = {}
        kind: Optional[OpPatternKind] = None
        saw_unclassified = False

        # Indices are topological, so every inside input is visited first.
        for index in inside:
            df_node = dataflow_graph.index_to_node(index)

            inner_inputs = [i for i in df_node.inputs if i in inside]
            if not df_node.inputs or len(inner_inputs) < len(df_node.inputs):
                entry.append(index)
            depth[index] = 1 + max((depth[i] for i in inner_inputs), default=-1)

            inner_outputs = sum(1 for o in df_node.outputs if o in inside)
            escapes = df_node.is_external or inner_outputs < len(df_node.outputs)
            if not df_node.outputs or escapes:
                exits.append(index)
            if inner_outputs and escapes:
                taps.append(index)

            if df_node.node.is_op_call:
                node_kind = dataflow_graph.op_pattern(index)
                if node_kind is None:
                    saw_unclassified = True
                elif kind is None or node_kind > kind:
                    kind = node_kind

        if saw_unclassified or kind is None:
            kind = OpPatternKind.OPAQUE

        size = dataflow_graph.size
        return cls(
            inside=inside,
            entry=IndexSet.of(size, entry),
            exit=IndexSet.of(size, exits),
            taps=IndexSet.of(size, taps),
            max_depth=max(depth.values()),
            kind=kind,
            label=label,
        )

    def __len__(self) -> int:
        return len(self.inside)

    def is_valid(self, config: SubGraphConfig) -> bool:
        if self.max_depth > config.max_max_depth:
            return False
        if len(self.exit) > config.max_outputs:
            return False
        if self.taps and not config.allow_taps:
            return False
        return True

    def overlaps(self, other: "SubGraph") -> bool:
        return self.inside.intersects(other.inside)

    def disjoint_union(self, dataflow_graph: DataflowGraph, other: "SubGraph") -> "SubGraph":
        """Combine two non-overlapping sub-graphs into one."""
        if self.overlaps(other):
            raise ValueError(f"Sub-graphs {self.inside} and {other.inside} overlap.")
        label = "+".join(part for part in (self.label, other.label) if part)
        return SubGraph.from_index_set(dataflow_graph, self.inside | other.inside, label=label)

    def with_label(self, label: str) -> "SubGraph":
        return SubGraph(
            inside=self.inside,
            entry=self.entry,
            exit=self.exit,
            taps=self.taps,
            max_depth=self.max_depth,
            kind=self.kind,
            label=label,
        )

    def extract(
        self,
        dataflow_graph: DataflowGraph,
        attrs: Optional[Mapping[str, Any]] = None,
    ) -> "ExtractedFunction":
        """
        Materialize this sub-graph as a stand-alone function. This copies
        program nodes, so it is only done when a candidate is measured.
        """
        names = [dataflow_graph.index_to_node(i).name for i in self.inside]
        body = dataflow_graph.graph.induced_subgraph(names)
        body.outputs = [dataflow_graph.index_to_node(i).name for i in self.exit]
        return ExtractedFunction(
            body=body,
            params=tuple(body.inputs),
            results=tuple(body.outputs),
            attrs=dict(attrs or {}),
        )

    def to_doc(self) -> Dict[str, Any]:
        return {
            "inside": list(self.inside),
            "entry": list(self.entry),
            "exit": list(self.exit),
            "taps": list(self.taps),
            "max_depth": self.max_depth,
            "kind": self.kind.name,
            "label": self.label,
        }

    def __str__(self) -> str:
        text = (
            f"SubGraph(inside={self.inside}, entry={self.entry}, exit={self.exit}, "
            f"taps={self.taps}, depth={self.max_depth}, kind={self.kind.name}"
        )
        if self.label:
            text += f", label={self.label!r}"
        return text + ")"


@dataclass
class ExtractedFunction:
    """
    Sub-program materialized from a sub-graph.

    Attributes:
        body: copy of the selected program nodes; outside producers appear as
            ``var`` inputs.
        params: names of the function parameters (values flowing in).
        results: names of the values flowing out (the sub-graph's exits).
        attrs: function attributes such as ``Composite``, ``Primitive`` and
            ``Compiler``.
    """

    body: Graph
    params: Tuple[str, ...] = ()
    results: Tuple[str, ...] = ()
    attrs: Dict[str, Any] = field(default_factory=dict)
