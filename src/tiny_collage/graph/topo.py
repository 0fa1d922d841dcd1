"""
Topological order selection for the dataflow view.
"""

from __future__ import annotations

from typing import List

from .ir import Graph, Node


def default_topological_order(graph: Graph) -> List[Node]:
    """
    Deterministic topo sort. Node indices in ``DataflowGraph`` are positions
    in this order.
    """
    return graph.topological_sort()
