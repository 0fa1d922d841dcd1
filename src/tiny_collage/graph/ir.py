from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

# Kinds of program sub-expressions a node may stand for.
VAR = "var"
CONSTANT = "constant"
CALL = "call"  # call to a registered operator
FUNCTION_CALL = "function_call"  # call to a non-operator function
TUPLE = "tuple"
TUPLE_GET_ITEM = "tuple_get_item"
LET = "let"
REF = "ref"

NODE_KINDS = frozenset(
    {VAR, CONSTANT, CALL, FUNCTION_CALL, TUPLE, TUPLE_GET_ITEM, LET, REF}
)


@dataclass
class Node:
    """Framework-agnostic node in the program DAG."""

    name: str
    op: str
    inputs: List[str] = field(default_factory=list)
    outputs_size: int = 0
    attrs: Dict[str, Any] = field(default_factory=dict)
    kind: str = CALL

    def __post_init__(self) -> None:
        if self.outputs_size < 0:
            raise ValueError(f"Node `{self.name}` has negative activation size.")
        if self.kind not in NODE_KINDS:
            raise ValueError(
                f"Node `{self.name}` has unknown kind `{self.kind}`; "
                f"expected one of {sorted(NODE_KINDS)}."
            )

    @property
    def is_op_call(self) -> bool:
        return self.kind == CALL

    def copy(self) -> "Node":
        return Node(
            name=self.name,
            op=self.op,
            inputs=list(self.inputs),
            outputs_size=self.outputs_size,
            attrs=dict(self.attrs),
            kind=self.kind,
        )


@dataclass
class Graph:
    """
    Framework-agnostic representation of a program as a dataflow DAG.
    """
    nodes: Dict[str, Node] = field(default_factory=dict)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_node(self, node: Node, *, allow_overwrite: bool = False) -> None:
        if not allow_overwrite and node.name in self.nodes:
            raise ValueError(f"Duplicate node name: {node.name}")
        self.nodes[node.name] = node

    def get_node(self, name: str) -> Node:
        return self.nodes[name]

    def validate(self) -> None:
        """
        Validate structural soundness:
        - inputs/outputs reference existing nodes
        - graph is acyclic
        - node dependencies exist
        """
        missing_edges: List[str] = []
        for node in self.nodes.values():
            for inp in node.inputs:
                if inp not in self.nodes:
                    missing_edges.append(f"{node.name} -> {inp}")
        if missing_edges:
            raise ValueError(
                "Graph references unknown predecessors:\n" + "\n".join(missing_edges)
            )

        for name in self.inputs:
            if name not in self.nodes:
                raise ValueError(f"Declared input `{name}` not found in graph nodes.")
        for name in self.outputs:
            if name not in self.nodes:
                raise ValueError(f"Declared output `{name}` not found in graph nodes.")

        # Will raise if a cycle exists or dependencies missing.
        self.topological_sort()

    def topological_sort(self) -> List[Node]:
        """
        Kahn topo-sort. Ready nodes are released in insertion order, so the
        result is deterministic for a given graph.

        Returns:
            List of nodes in a valid topological order.
        """
        position: Dict[str, int] = {name: pos for pos, name in enumerate(self.nodes)}
        indeg: Dict[str, int] = {name: 0 for name in self.nodes}
        succ: Dict[str, List[str]] = {name: [] for name in self.nodes}

        for node in self.nodes.values():
            for parent in dict.fromkeys(node.inputs):
                if parent not in self.nodes:
                    raise KeyError(
                        f"Node `{node.name}` depends on unknown predecessor `{parent}`."
                    )
                indeg[node.name] += 1
                succ[parent].append(node.name)

        ready = deque(name for name, deg in indeg.items() if deg == 0)
        order: List[str] = []

        while ready:
            current = ready.popleft()
            order.append(current)
            for child in sorted(succ[current], key=position.__getitem__):
                indeg[child] -= 1
                if indeg[child] == 0:
                    ready.append(child)

        if len(order) != len(self.nodes):
            raise ValueError("Graph has cycles or is malformed.")

        return [self.nodes[n] for n in order]

    def induced_subgraph(self, names: Iterable[str]) -> "Graph":
        """
        Create a copy containing only the selected node names. Producers outside
        the selection become the sub-graph's inputs (as fresh ``var`` nodes).
        """
        selected = list(dict.fromkeys(names))
        sub = Graph(metadata=dict(self.metadata))
        chosen = set(selected)
        for name in selected:
            for inp in self.get_node(name).inputs:
                if inp not in chosen and inp not in sub.nodes:
                    producer = self.get_node(inp)
                    sub.add_node(
                        Node(
                            name=inp,
                            op="input",
                            outputs_size=producer.outputs_size,
                            kind=VAR,
                        )
                    )
                    sub.inputs.append(inp)
        for name in selected:
            sub.add_node(self.get_node(name).copy())
        sub.inputs.extend(n for n in self.inputs if n in chosen)
        sub.outputs = [n for n in self.outputs if n in chosen]
        return sub
