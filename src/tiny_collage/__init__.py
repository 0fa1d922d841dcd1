"""
tiny-collage

Candidate generation for heterogeneous-backend graph partitioning.
"""

from .graph.ir import Graph, Node
from .graph.dataflow import DataflowGraph
from .partition.candidate import CandidatePartition
from .partition.rules import PartitionRule
from .partition.spec import PartitionSpec, Target
from .partition.sub_graph import SubGraph, SubGraphConfig
from .partition.gather import gather_candidates

__all__ = [
    "Graph",
    "Node",
    "DataflowGraph",
    "CandidatePartition",
    "PartitionRule",
    "PartitionSpec",
    "Target",
    "SubGraph",
    "SubGraphConfig",
    "gather_candidates",
]
