from __future__ import annotations

import pytest

from tiny_collage.analysis.report import CandidateReport, analyze_candidates, summarize_coverage
from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import VAR, Graph, Node
from tiny_collage.graph.pattern import is_op, wildcard
from tiny_collage.partition import (
    DFPatternPartitionRule,
    HostPartitionRule,
    PartitionSpec,
    Target,
    gather_candidates,
)


def _build_chain_graph() -> DataflowGraph:
    graph = Graph()
    prev = None
    for idx in range(4):
        name = f"n{idx}"
        if prev is None:
            graph.add_node(Node(name=name, op="input", outputs_size=10, kind=VAR))
            graph.inputs = [name]
        else:
            graph.add_node(Node(name=name, op="relu", inputs=[prev], outputs_size=10))
        prev = name
    graph.outputs = [prev]
    return DataflowGraph.from_graph(graph)


def test_analyze_candidates_counts_and_coverage() -> None:
    dfg = _build_chain_graph()
    specs = [
        PartitionSpec("pairs", Target(kind="cuda"), DFPatternPartitionRule("pair", is_op("relu")(is_op("relu")(wildcard())))),
        PartitionSpec("host", Target.host(), HostPartitionRule("host")),
    ]
    candidates = gather_candidates(dfg, specs)

    report = analyze_candidates(dfg, candidates)

    assert isinstance(report, CandidateReport)
    assert report.num_candidates == 2 + 4
    assert report.by_rule == {"pair": 2, "host": 4}
    assert report.by_spec == {"pairs": 2, "host": 4}
    assert report.largest_candidate == 2
    assert report.mean_candidate_size == pytest.approx(8 / 6)
    assert report.coverage.uncovered == []
    assert report.coverage.candidates_per_node == {"n0": 1, "n1": 2, "n2": 3, "n3": 2}
    assert report.coverage.max_overlap == 3


def test_summarize_coverage_reports_uncovered_nodes() -> None:
    dfg = _build_chain_graph()
    rule = DFPatternPartitionRule("pair", is_op("relu")(is_op("relu")(wildcard())))
    candidates = PartitionSpec("pairs", Target(kind="cuda"), rule).all_candidates(dfg)

    coverage = summarize_coverage(dfg, candidates)

    assert coverage.covered == ["n1", "n2", "n3"]
    assert coverage.uncovered == ["n0"]


def test_analyze_without_candidates() -> None:
    report = analyze_candidates(_build_chain_graph(), [])
    assert report.num_candidates == 0
    assert report.largest_candidate == 0
    assert report.mean_candidate_size == 0.0
    assert report.coverage.max_overlap == 0
    assert len(report.coverage.uncovered) == 4
