from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.partition.candidate import CandidatePartition
from tiny_collage.partition.index_set import IndexSet


@dataclass(frozen=True)
class CoverageSummary:
    covered: List[str]
    uncovered: List[str]
    candidates_per_node: Dict[str, int]
    max_overlap: int


@dataclass(frozen=True)
class CandidateReport:
    num_candidates: int
    by_rule: Dict[str, int]
    by_spec: Dict[str, int]
    coverage: CoverageSummary
    largest_candidate: int
    mean_candidate_size: float


def summarize_coverage(
    dataflow_graph: DataflowGraph, candidates: Sequence[CandidatePartition]
) -> CoverageSummary:
    """
    Which nodes some candidate covers, and how many candidates compete for
    each node.
    """
    counts = [0] * dataflow_graph.size
    union = IndexSet.empty(dataflow_graph.size)
    for candidate in candidates:
        union = union | candidate.sub_graph.inside
        for index in candidate.sub_graph.inside:
            counts[index] += 1

    names = [df_node.name for df_node in dataflow_graph]
    return CoverageSummary(
        covered=[names[i] for i in union],
        uncovered=[names[i] for i in range(dataflow_graph.size) if i not in union],
        candidates_per_node={names[i]: counts[i] for i in range(dataflow_graph.size)},
        max_overlap=max(counts, default=0),
    )


def analyze_candidates(
    dataflow_graph: DataflowGraph, candidates: Sequence[CandidatePartition]
) -> CandidateReport:
    sizes = [len(candidate.sub_graph) for candidate in candidates]
    return CandidateReport(
        num_candidates=len(candidates),
        by_rule=dict(Counter(candidate.rule_name for candidate in candidates)),
        by_spec=dict(Counter(candidate.spec_name for candidate in candidates)),
        coverage=summarize_coverage(dataflow_graph, candidates),
        largest_candidate=max(sizes, default=0),
        mean_candidate_size=(sum(sizes) / len(sizes)) if sizes else 0.0,
    )
