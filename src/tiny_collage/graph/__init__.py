"""
Program representation and graph utilities.

- `Graph` and `Node` (see `ir.py`): framework-agnostic program DAG.
- `DataflowGraph` (see `dataflow.py`): indexed, read-only view used by rules.
- `OpPatternKind` (see `op_patterns.py`): operator fusibility metadata.
- Dataflow patterns and matcher (see `pattern.py`).
- Builders from framework graphs (Torch FX, JAXPR).
"""

from .ir import Graph, Node
from .dataflow import DataflowGraph, DataflowNode
from .op_patterns import OpPatternKind, register_op_pattern
from . import builders
from . import pattern
from . import topo

__all__ = [
    "Graph",
    "Node",
    "DataflowGraph",
    "DataflowNode",
    "OpPatternKind",
    "register_op_pattern",
    "builders",
    "pattern",
    "topo",
]
