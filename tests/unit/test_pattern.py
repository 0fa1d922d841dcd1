from __future__ import annotations

import pytest

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import CONSTANT, TUPLE, TUPLE_GET_ITEM, VAR, Graph, Node
from tiny_collage.graph.pattern import (
    DFPatternMatcher,
    is_constant,
    is_op,
    is_tuple,
    is_tuple_get_item,
    is_var,
    wildcard,
)


def _build_conv_graph() -> DataflowGraph:
    graph = Graph()
    graph.add_node(Node(name="x", op="input", kind=VAR))
    graph.add_node(Node(name="w", op="constant", kind=CONSTANT))
    graph.add_node(Node(name="conv", op="conv2d", inputs=["x", "w"], attrs={"groups": 1}))
    graph.add_node(Node(name="relu", op="relu", inputs=["conv"]))
    graph.add_node(Node(name="sq", op="mul", inputs=["relu", "relu"]))
    graph.add_node(Node(name="pair", op="tuple", inputs=["relu", "sq"], kind=TUPLE))
    graph.add_node(
        Node(name="first", op="getitem", inputs=["pair"], attrs={"index": 0}, kind=TUPLE_GET_ITEM)
    )
    graph.inputs = ["x"]
    graph.outputs = ["first"]
    return DataflowGraph.from_graph(graph)


def test_wildcard_inputs_are_not_part_of_the_match() -> None:
    dfg = _build_conv_graph()
    pattern = is_op("relu")(is_op("conv2d")(wildcard(), is_constant()))

    matched = pattern.match(dfg, dfg.index_of("relu"))

    assert matched == (dfg.index_of("w"), dfg.index_of("conv"), dfg.index_of("relu"))


def test_pattern_can_be_seeded_anywhere() -> None:
    dfg = _build_conv_graph()
    pattern = is_op("relu")(wildcard())
    matcher = DFPatternMatcher(dfg)

    hits = [n.index for n in dfg if matcher.match(pattern, n.index) is not None]

    assert hits == [dfg.index_of("relu")]


def test_mismatch_returns_none() -> None:
    dfg = _build_conv_graph()
    assert is_op("tanh")(wildcard()).match(dfg, dfg.index_of("relu")) is None
    assert is_op("conv2d")(wildcard()).match(dfg, dfg.index_of("conv")) is None
    assert is_var().match(dfg, dfg.index_of("w")) is None


def test_repeated_sub_pattern_binds_same_node() -> None:
    dfg = _build_conv_graph()
    shared = is_op("relu")(wildcard())

    assert is_op("mul")(shared, shared).match(dfg, dfg.index_of("sq")) == (
        dfg.index_of("relu"),
        dfg.index_of("sq"),
    )
    # Two distinct wildcards accept the same node; one shared var must bind once.
    x = is_var("x")
    assert is_op("conv2d")(x, x).match(dfg, dfg.index_of("conv")) is None


def test_alternation_and_attrs() -> None:
    dfg = _build_conv_graph()
    act = is_op("tanh")(wildcard()) | is_op("relu")(wildcard())
    assert act.match(dfg, dfg.index_of("relu")) == (dfg.index_of("relu"),)

    grouped = is_op("conv2d").has_attr({"groups": 1})
    assert grouped.match(dfg, dfg.index_of("conv")) == (dfg.index_of("conv"),)
    depthwise = is_op("conv2d").has_attr({"groups": 8})
    assert depthwise.match(dfg, dfg.index_of("conv")) is None


def test_tuple_and_projection() -> None:
    dfg = _build_conv_graph()
    pattern = is_tuple_get_item(is_tuple([wildcard(), is_op("mul")]), 0)

    matched = pattern.match(dfg, dfg.index_of("first"))

    assert matched == (dfg.index_of("sq"), dfg.index_of("pair"), dfg.index_of("first"))
    assert is_tuple_get_item(wildcard(), 1).match(dfg, dfg.index_of("first")) is None


def test_call_pattern_arguments_are_set_once() -> None:
    with pytest.raises(ValueError):
        is_op("add")(wildcard(), wildcard())(wildcard())
    with pytest.raises(TypeError):
        is_op("add")("x")  # type: ignore[arg-type]


def test_describe() -> None:
    pattern = is_op("relu")(is_op("conv2d")(wildcard(), is_constant()))
    assert str(pattern) == "relu(conv2d(*, const))"
