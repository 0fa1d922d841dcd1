"""
Candidate partition generation.

This package turns a dataflow graph and a set of partition specs into the
pool of (possibly overlapping) candidate partitions:
- Index sets and sub-graphs (node sets and their shape summary).
- Candidate partitions with provenance and lazily computed cost.
- The compositional partition rules.
- Specs binding a target to a rule tree, and gathering across specs.
"""

from .index_set import IndexSet
from .sub_graph import ExtractedFunction, SubGraph, SubGraphConfig
from .cost import ActivationSizeCostEstimator, Cost, CostCache
from .candidate import CandidatePartition, nest_labels
from .rules import (
    CompositePartitionRule,
    DFPatternPartitionRule,
    HostPartitionRule,
    OnlyValidPartitionRule,
    OpCallByKindPartitionRule,
    PartitionRule,
    PrimitivePartitionRule,
    UnionPartitionRule,
    all_candidates,
    default_pattern_predicate,
)
from .spec import PartitionSpec, Target
from .gather import gather_candidates

__all__ = [
    "IndexSet",
    "ExtractedFunction",
    "SubGraph",
    "SubGraphConfig",
    "ActivationSizeCostEstimator",
    "Cost",
    "CostCache",
    "CandidatePartition",
    "nest_labels",
    "PartitionRule",
    "DFPatternPartitionRule",
    "OpCallByKindPartitionRule",
    "CompositePartitionRule",
    "PrimitivePartitionRule",
    "UnionPartitionRule",
    "OnlyValidPartitionRule",
    "HostPartitionRule",
    "all_candidates",
    "default_pattern_predicate",
    "PartitionSpec",
    "Target",
    "gather_candidates",
]
