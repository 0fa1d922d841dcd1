"""
Operator fusibility classification.

Every operator may carry an ``OpPatternKind`` describing how a fusing
compiler is allowed to combine it with its neighbours. Smaller kinds are
"simpler" and fuse more freely.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterable, Optional

from .ir import Node


class OpPatternKind(IntEnum):
    ELEMWISE = 0
    BROADCAST = 1
    INJECTIVE = 2
    COMM_REDUCE = 3
    OUT_ELEMWISE_FUSABLE = 4
    TUPLE = 7
    OPAQUE = 8


# Operators a fusing compiler is expected to absorb into a single kernel are at
# or below this kind.
FUSABLE_THRESHOLD = OpPatternKind.OUT_ELEMWISE_FUSABLE

# Node attribute that overrides the registry for a single call.
OP_PATTERN_ATTR = "op_pattern"


def _table(kind: OpPatternKind, names: Iterable[str]) -> Dict[str, OpPatternKind]:
    return {name: kind for name in names}


_DEFAULT_PATTERNS: Dict[str, OpPatternKind] = {
    **_table(
        OpPatternKind.ELEMWISE,
        [
            "abs", "cos", "dropout", "exp", "gelu", "identity", "log", "neg",
            "relu", "rsqrt", "sigmoid", "silu", "sin", "sqrt", "tanh",
            "logistic", "erf", "clip", "hardtanh", "cast", "convert_element_type",
        ],
    ),
    **_table(
        OpPatternKind.BROADCAST,
        [
            "add", "sub", "mul", "div", "multiply", "divide", "subtract",
            "maximum", "minimum", "max", "min", "pow", "where", "broadcast_in_dim",
            "iadd", "truediv",
        ],
    ),
    **_table(
        OpPatternKind.INJECTIVE,
        [
            "reshape", "view", "flatten", "transpose", "permute", "squeeze",
            "unsqueeze", "concatenate", "concat", "cat", "slice",
            "expand_dims", "pad", "contiguous",
        ],
    ),
    **_table(
        OpPatternKind.COMM_REDUCE,
        [
            "sum", "mean", "reduce_sum", "reduce_max", "reduce_min", "argmax",
            "argmin", "softmax", "log_softmax", "adaptive_avg_pool2d",
            "avg_pool2d", "max_pool2d", "layer_norm", "batch_norm",
        ],
    ),
    **_table(
        OpPatternKind.OUT_ELEMWISE_FUSABLE,
        [
            "conv1d", "conv2d", "conv3d", "dense", "linear", "matmul", "bmm",
            "dot_general", "conv_general_dilated", "addmm", "mm",
        ],
    ),
}

_registry: Dict[str, OpPatternKind] = dict(_DEFAULT_PATTERNS)


def register_op_pattern(
    op: str, kind: OpPatternKind, *, allow_overwrite: bool = False
) -> None:
    """Register (or, with ``allow_overwrite``, replace) an operator's kind."""
    if not allow_overwrite and op in _registry and _registry[op] != kind:
        raise ValueError(
            f"Operator `{op}` already registered as {_registry[op].name}."
        )
    _registry[op] = OpPatternKind(kind)


def unregister_op_pattern(op: str) -> None:
    _registry.pop(op, None)


def reset_op_patterns() -> None:
    """Restore the default operator table."""
    _registry.clear()
    _registry.update(_DEFAULT_PATTERNS)


def lookup_op_pattern(op: str) -> Optional[OpPatternKind]:
    return _registry.get(op)


def node_op_pattern(node: Node) -> Optional[OpPatternKind]:
    """
    Fusibility of ``node``, or ``None`` if it is not an operator call or the
    operator carries no classification.
    """
    if not node.is_op_call:
        return None
    override = node.attrs.get(OP_PATTERN_ATTR)
    if override is not None:
        return OpPatternKind(override)
    return lookup_op_pattern(node.op)


def is_fusable(node: Node) -> bool:
    kind = node_op_pattern(node)
    return kind is not None and kind <= FUSABLE_THRESHOLD
