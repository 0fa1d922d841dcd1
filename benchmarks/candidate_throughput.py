"""
Generate synthetic DAGs and time candidate generation over them.
"""

from __future__ import annotations

import argparse
import random
from time import perf_counter
from typing import List, Tuple

from tiny_collage.analysis import analyze_candidates
from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import VAR, Graph, Node
from tiny_collage.graph.pattern import is_op, wildcard
from tiny_collage.partition import (
    CompositePartitionRule,
    CostCache,
    DFPatternPartitionRule,
    HostPartitionRule,
    OnlyValidPartitionRule,
    OpCallByKindPartitionRule,
    PartitionSpec,
    PrimitivePartitionRule,
    SubGraphConfig,
    Target,
    UnionPartitionRule,
    gather_candidates,
)


PROFILES = {
    "small": {"nodes": 64, "max_parents": 2},
    "medium": {"nodes": 512, "max_parents": 2},
    "large": {"nodes": 4096, "max_parents": 3},
}

UNARY_OPS = ["relu", "tanh", "sigmoid", "reshape", "softmax"]
BINARY_OPS = ["add", "mul", "matmul", "conv2d"]


def build_random_dag(
    num_nodes: int,
    max_parents: int,
    size_range: Tuple[int, int],
    *,
    seed: int,
) -> Graph:
    rng = random.Random(seed)
    graph = Graph()
    graph.add_node(Node(name="n0", op="input", outputs_size=rng.randint(*size_range), kind=VAR))
    graph.inputs = ["n0"]

    for idx in range(1, num_nodes):
        # Prefer recent producers so chains (and therefore patterns) are common.
        window = list(range(max(0, idx - 8), idx))
        num_parents = rng.randint(1, min(max_parents, len(window)))
        parents = rng.sample(window, num_parents)
        op = rng.choice(UNARY_OPS if num_parents == 1 else BINARY_OPS)
        inputs = [f"n{p}" for p in parents][:2]
        if len(inputs) == 1 and op in BINARY_OPS:
            op = "relu"
        graph.add_node(
            Node(name=f"n{idx}", op=op, inputs=inputs, outputs_size=rng.randint(*size_range))
        )

    graph.outputs = [f"n{num_nodes - 1}"]
    graph.validate()
    return graph


def build_specs() -> List[PartitionSpec]:
    conv_relu = is_op("relu")(is_op("conv2d")(wildcard(), wildcard()))
    matmul_add = is_op("add")(is_op("matmul")(wildcard(), wildcard()), wildcard())
    library_rule = OnlyValidPartitionRule(
        "only_valid",
        PrimitivePartitionRule(
            "primitive",
            UnionPartitionRule(
                "patterns",
                (
                    CompositePartitionRule("conv_relu", DFPatternPartitionRule("conv_relu", conv_relu)),
                    CompositePartitionRule("matmul_add", DFPatternPartitionRule("matmul_add", matmul_add)),
                ),
            ),
        ),
        SubGraphConfig(max_max_depth=2, max_outputs=1, allow_taps=False),
    )
    return [
        PartitionSpec("library", Target(kind="cuda", compiler="library"), library_rule),
        PartitionSpec("fusion", Target(kind="cuda"), PrimitivePartitionRule("tvm", OpCallByKindPartitionRule("op"))),
        PartitionSpec("host", Target.host(), HostPartitionRule("host")),
    ]


def run(graph: Graph, *, parallel: bool) -> None:
    start = perf_counter()
    dataflow_graph = DataflowGraph.from_graph(graph)
    candidates = gather_candidates(dataflow_graph, build_specs(), parallel=parallel)
    generated = perf_counter()

    cache = CostCache()
    for candidate in candidates:
        candidate.cost(dataflow_graph, cache)
    costed = perf_counter()

    report = analyze_candidates(dataflow_graph, candidates)
    print("=== Candidate Generation ===")
    print(f"Nodes: {len(dataflow_graph)}")
    print(f"Candidates: {report.num_candidates} ({(generated - start) * 1e3:.1f} ms)")
    print(f"Costed: {len(cache)} unique ({(costed - generated) * 1e3:.1f} ms)")
    print(f"Uncovered nodes: {len(report.coverage.uncovered)}")
    print(f"Max overlap: {report.coverage.max_overlap}")
    print("By rule:")
    for rule_name, count in sorted(report.by_rule.items()):
        print(f"  - {rule_name}: {count}")


def _apply_profile(args: argparse.Namespace) -> argparse.Namespace:
    profile_cfg = PROFILES.get(args.profile)
    if not profile_cfg:
        return args
    for key, value in profile_cfg.items():
        if getattr(args, key) is None:
            setattr(args, key, value)
    return args


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--profile", choices=PROFILES.keys(), default="medium")
    parser.add_argument("--nodes", type=int, default=None)
    parser.add_argument("--max-parents", type=int, default=None)
    parser.add_argument("--size-min", type=int, default=1_000)
    parser.add_argument("--size-max", type=int, default=100_000)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--parallel", action="store_true")
    return _apply_profile(parser.parse_args())


def main() -> None:
    args = parse_args()
    graph = build_random_dag(
        num_nodes=args.nodes,
        max_parents=args.max_parents,
        size_range=(args.size_min, args.size_max),
        seed=args.seed,
    )
    run(graph, parallel=args.parallel)


if __name__ == "__main__":
    main()
