from __future__ import annotations

import pytest

from tiny_collage.graph.ir import FUNCTION_CALL, TUPLE, Node
from tiny_collage.graph.op_patterns import (
    OP_PATTERN_ATTR,
    OpPatternKind,
    is_fusable,
    lookup_op_pattern,
    node_op_pattern,
    register_op_pattern,
)


def test_default_table_ordering() -> None:
    assert lookup_op_pattern("relu") == OpPatternKind.ELEMWISE
    assert lookup_op_pattern("conv2d") == OpPatternKind.OUT_ELEMWISE_FUSABLE
    assert lookup_op_pattern("not_an_op") is None
    assert OpPatternKind.ELEMWISE < OpPatternKind.OUT_ELEMWISE_FUSABLE < OpPatternKind.OPAQUE


def test_only_operator_calls_are_classified() -> None:
    assert node_op_pattern(Node(name="t", op="relu", kind=TUPLE)) is None
    assert node_op_pattern(Node(name="f", op="relu", kind=FUNCTION_CALL)) is None
    assert is_fusable(Node(name="r", op="relu"))
    assert not is_fusable(Node(name="u", op="custom_kernel"))


def test_attr_overrides_registry() -> None:
    node = Node(name="c", op="conv2d", attrs={OP_PATTERN_ATTR: int(OpPatternKind.OPAQUE)})
    assert node_op_pattern(node) == OpPatternKind.OPAQUE
    assert not is_fusable(node)


def test_register_op_pattern() -> None:
    register_op_pattern("my_gelu", OpPatternKind.ELEMWISE)
    assert is_fusable(Node(name="g", op="my_gelu"))

    with pytest.raises(ValueError):
        register_op_pattern("my_gelu", OpPatternKind.OPAQUE)

    register_op_pattern("my_gelu", OpPatternKind.OPAQUE, allow_overwrite=True)
    assert not is_fusable(Node(name="g", op="my_gelu"))
