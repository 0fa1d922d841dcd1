"""
Indexed, read-only view of a program graph.

Node indices follow a topological order of the program, so iterating indices
in increasing order visits producers before consumers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .ir import Graph, Node
from .op_patterns import OpPatternKind, node_op_pattern
from .topo import default_topological_order


@dataclass(frozen=True)
class DataflowNode:
    index: int
    node: Node
    inputs: Tuple[int, ...]
    outputs: Tuple[int, ...]
    # True when the value escapes the program (it is a graph output).
    is_external: bool = False

    @property
    def name(self) -> str:
        return self.node.name


class DataflowGraph:
    """
    Dataflow view over a ``Graph``. Built once per partitioning run and shared
    by reference across every rule evaluation.
    """

    def __init__(self, graph: Graph, order: Optional[Sequence[Node]] = None) -> None:
        if order is None:
            order = default_topological_order(graph)
        if len(order) != len(graph.nodes):
            raise ValueError(
                f"Order covers {len(order)} nodes but graph has {len(graph.nodes)}."
            )

        self.graph = graph
        self._index_of: Dict[str, int] = {node.name: idx for idx, node in enumerate(order)}
        if len(self._index_of) != len(order):
            raise ValueError("Order contains duplicate nodes.")

        successors: List[List[int]] = [[] for _ in order]
        inputs: List[Tuple[int, ...]] = []
        for idx, node in enumerate(order):
            parents: List[int] = []
            for name in dict.fromkeys(node.inputs):
                parent = self._index_of[name]
                if parent >= idx:
                    raise ValueError(
                        f"Order is not topological: `{node.name}` precedes its input `{name}`."
                    )
                parents.append(parent)
                successors[parent].append(idx)
            inputs.append(tuple(parents))

        external = set(graph.outputs)
        self._nodes: Tuple[DataflowNode, ...] = tuple(
            DataflowNode(
                index=idx,
                node=node,
                inputs=inputs[idx],
                outputs=tuple(successors[idx]),
                is_external=node.name in external,
            )
            for idx, node in enumerate(order)
        )

    @classmethod
    def from_graph(cls, graph: Graph) -> "DataflowGraph":
        graph.validate()
        return cls(graph)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[DataflowNode]:
        return iter(self._nodes)

    @property
    def size(self) -> int:
        return len(self._nodes)

    def index_to_node(self, index: int) -> DataflowNode:
        return self._nodes[index]

    def index_of(self, name: str) -> int:
        return self._index_of[name]

    def node_named(self, name: str) -> DataflowNode:
        return self._nodes[self._index_of[name]]

    def op_pattern(self, index: int) -> Optional[OpPatternKind]:
        return node_op_pattern(self._nodes[index].node)

    def __repr__(self) -> str:
        return f"DataflowGraph(size={len(self._nodes)})"
