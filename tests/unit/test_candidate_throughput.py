from __future__ import annotations

from benchmarks.candidate_throughput import build_random_dag, build_specs, run
from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.partition import gather_candidates


def test_random_dag_is_reproducible() -> None:
    first = build_random_dag(32, 2, (10, 20), seed=7)
    second = build_random_dag(32, 2, (10, 20), seed=7)

    assert list(first.nodes) == list(second.nodes)
    assert [n.op for n in first.nodes.values()] == [n.op for n in second.nodes.values()]
    assert len(first.nodes) == 32
    assert all(len(node.inputs) <= 2 for node in first.nodes.values())


def test_benchmark_specs_cover_every_node() -> None:
    graph = build_random_dag(48, 3, (1, 5), seed=3)
    dfg = DataflowGraph.from_graph(graph)

    candidates = gather_candidates(dfg, build_specs(), parallel=False)

    host = [c for c in candidates if c.spec_name == "host"]
    assert len(host) == len(dfg)
    assert {c.spec_name for c in candidates} >= {"fusion", "host"}
    assert all(c.target is not None for c in candidates)


def test_run_prints_summary(capsys) -> None:
    run(build_random_dag(16, 2, (1, 5), seed=0), parallel=True)

    out = capsys.readouterr().out
    assert "=== Candidate Generation ===" in out
    assert "Nodes: 16" in out
