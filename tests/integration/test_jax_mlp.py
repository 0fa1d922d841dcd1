from __future__ import annotations

import pytest

pytest.importorskip("jax")
import jax.numpy as jnp  # type: ignore

from tiny_collage.graph.pattern import is_constant, is_op, wildcard
from tiny_collage.integration.jax.jaxpr_capture import capture_graph_jaxpr, function_candidates
from tiny_collage.partition import (
    DFPatternPartitionRule,
    HostPartitionRule,
    OpCallByKindPartitionRule,
    PartitionSpec,
    Target,
)


def simple_fn(x):
    hidden = jnp.sin(x)
    return jnp.tanh(hidden @ jnp.ones((x.shape[-1], 3)))


def test_jaxpr_capture_simple_fn() -> None:
    x = jnp.ones((2, 4))
    graph = capture_graph_jaxpr(simple_fn, example_inputs=(x,))

    assert graph.metadata["framework"] == "jaxpr"
    assert graph.metadata["function_name"] == "simple_fn"
    graph.validate()

    assert len(graph.inputs) == 1
    assert graph.outputs
    ops = [node.op for node in graph.topological_sort()]
    assert "sin" in ops
    assert "tanh" in ops
    assert all(node.outputs_size >= 0 for node in graph.topological_sort())


def test_function_candidates_over_jaxpr() -> None:
    specs = [
        PartitionSpec("tanh", Target(kind="cuda"), DFPatternPartitionRule("tanh", is_op("tanh")(wildcard()))),
        PartitionSpec("fusion", Target(kind="cuda"), OpCallByKindPartitionRule("op")),
        PartitionSpec("host", Target.host(), HostPartitionRule("host")),
    ]

    dfg, candidates = function_candidates(simple_fn, (jnp.ones((2, 4)),), specs)

    by_spec = {}
    for candidate in candidates:
        by_spec.setdefault(candidate.spec_name, []).append(candidate)
    assert len(by_spec["tanh"]) == 1
    assert dfg.index_to_node(by_spec["tanh"][0].inside.first_index()).node.op == "tanh"
    fused_ops = {dfg.index_to_node(c.inside.first_index()).node.op for c in by_spec["fusion"]}
    assert {"sin", "tanh"} <= fused_ops
    assert len(by_spec["host"]) == len(dfg)


def scaled_fn(x):
    return jnp.tanh(x * 2.0)


def test_literal_operands_become_constant_inputs() -> None:
    graph = capture_graph_jaxpr(scaled_fn, example_inputs=(jnp.ones((2, 4)),))

    mul = next(node for node in graph.topological_sort() if node.op == "mul")
    assert len(mul.inputs) == 2
    literal = graph.get_node(mul.inputs[1])
    assert literal.op == "constant"
    assert literal.kind == "constant"
    assert "value" in literal.attrs

    specs = [
        PartitionSpec(
            "scale",
            Target(kind="cuda"),
            DFPatternPartitionRule("scale", is_op("mul")(wildcard(), is_constant())),
        )
    ]
    dfg, candidates = function_candidates(scaled_fn, (jnp.ones((2, 4)),), specs)

    assert len(candidates) == 1
    assert sorted(dfg.index_to_node(i).node.op for i in candidates[0].inside) == ["constant", "mul"]
