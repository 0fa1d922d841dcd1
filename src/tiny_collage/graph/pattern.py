"""
A small dataflow-pattern language and matcher.

Patterns describe a sub-expression shape rooted at one node::

    conv_relu = is_op("relu")(is_op("conv2d")(wildcard(), is_constant()))

Matching may be seeded at any node of a ``DataflowGraph``. A pattern object
that occurs more than once in a pattern must bind to the same node each time.
Nodes bound by wildcards are inputs to the match, not part of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .dataflow import DataflowGraph
from .ir import CALL, CONSTANT, TUPLE, TUPLE_GET_ITEM, VAR


@dataclass(frozen=True, eq=False)
class DFPattern:
    """Base class of all patterns. Patterns compare by identity."""

    def __or__(self, other: "DFPattern") -> "AltPattern":
        return AltPattern(self, other)

    def match(self, dataflow_graph: DataflowGraph, index: int) -> Optional[Tuple[int, ...]]:
        return DFPatternMatcher(dataflow_graph).match(self, index)

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True, eq=False)
class WildcardPattern(DFPattern):
    def describe(self) -> str:
        return "*"


@dataclass(frozen=True, eq=False)
class CallPattern(DFPattern):
    """Call to operator ``op``. ``args=None`` leaves the arguments unconstrained."""

    op: str
    args: Optional[Tuple[DFPattern, ...]] = None
    attrs: Tuple[Tuple[str, Any], ...] = ()

    def __call__(self, *args: DFPattern) -> "CallPattern":
        if self.args is not None:
            raise ValueError(f"Pattern `{self.op}` already has arguments.")
        for arg in args:
            if not isinstance(arg, DFPattern):
                raise TypeError(f"Pattern argument must be a DFPattern, got {type(arg)!r}.")
        return CallPattern(op=self.op, args=tuple(args), attrs=self.attrs)

    def has_attr(self, attrs: Mapping[str, Any]) -> "CallPattern":
        merged = dict(self.attrs)
        merged.update(attrs)
        return CallPattern(op=self.op, args=self.args, attrs=tuple(sorted(merged.items())))

    def describe(self) -> str:
        text = self.op
        if self.args is not None:
            text += "(" + ", ".join(arg.describe() for arg in self.args) + ")"
        if self.attrs:
            text += "{" + ", ".join(f"{k}={v!r}" for k, v in self.attrs) + "}"
        return text


@dataclass(frozen=True, eq=False)
class ConstantPattern(DFPattern):
    def describe(self) -> str:
        return "const"


@dataclass(frozen=True, eq=False)
class VarPattern(DFPattern):
    name: Optional[str] = None

    def describe(self) -> str:
        return f"var({self.name})" if self.name else "var"


@dataclass(frozen=True, eq=False)
class TuplePattern(DFPattern):
    fields: Tuple[DFPattern, ...] = ()

    def describe(self) -> str:
        return "(" + ", ".join(f.describe() for f in self.fields) + ")"


@dataclass(frozen=True, eq=False)
class TupleGetItemPattern(DFPattern):
    tuple: DFPattern
    index: Optional[int] = None

    def describe(self) -> str:
        idx = "*" if self.index is None else str(self.index)
        return f"{self.tuple.describe()}.{idx}"


@dataclass(frozen=True, eq=False)
class AltPattern(DFPattern):
    left: DFPattern
    right: DFPattern

    def describe(self) -> str:
        return f"({self.left.describe()} | {self.right.describe()})"


def wildcard() -> WildcardPattern:
    return WildcardPattern()


def is_op(op: str) -> CallPattern:
    return CallPattern(op=op)


def is_constant() -> ConstantPattern:
    return ConstantPattern()


def is_var(name: Optional[str] = None) -> VarPattern:
    return VarPattern(name=name)


def is_tuple(fields) -> TuplePattern:
    return TuplePattern(fields=tuple(fields))


def is_tuple_get_item(tuple_pattern: DFPattern, index: Optional[int] = None) -> TupleGetItemPattern:
    return TupleGetItemPattern(tuple=tuple_pattern, index=index)


class DFPatternMatcher:
    """
    Matches patterns against a dataflow graph. Stateless between calls; each
    ``match`` uses a fresh binding memo.
    """

    def __init__(self, dataflow_graph: DataflowGraph) -> None:
        self.dataflow_graph = dataflow_graph

    def match(self, pattern: DFPattern, index: int) -> Optional[Tuple[int, ...]]:
        """
        Try to match ``pattern`` rooted at node ``index``.

        Returns:
            Sorted indices of the nodes bound by non-wildcard patterns, or
            ``None`` if the pattern does not match.
        """
        memo: Dict[DFPattern, int] = {}
        if not self._visit(pattern, index, memo):
            return None
        matched = {
            idx
            for pat, idx in memo.items()
            if not isinstance(pat, (WildcardPattern, AltPattern))
        }
        return tuple(sorted(matched))

    def _args(self, index: int) -> Tuple[int, ...]:
        # Program order of the arguments, duplicates included.
        node = self.dataflow_graph.index_to_node(index).node
        return tuple(self.dataflow_graph.index_of(name) for name in node.inputs)

    def _visit(self, pattern: DFPattern, index: int, memo: Dict[DFPattern, int]) -> bool:
        if pattern in memo:
            return memo[pattern] == index
        if self._visit_new(pattern, index, memo):
            memo[pattern] = index
            return True
        return False

    def _visit_new(self, pattern: DFPattern, index: int, memo: Dict[DFPattern, int]) -> bool:
        node = self.dataflow_graph.index_to_node(index).node

        if isinstance(pattern, WildcardPattern):
            return True
        if isinstance(pattern, AltPattern):
            saved = dict(memo)
            if self._visit(pattern.left, index, memo):
                return True
            memo.clear()
            memo.update(saved)
            return self._visit(pattern.right, index, memo)
        if isinstance(pattern, CallPattern):
            if node.kind != CALL or node.op != pattern.op:
                return False
            for key, value in pattern.attrs:
                if node.attrs.get(key) != value:
                    return False
            if pattern.args is None:
                return True
            args = self._args(index)
            if len(args) != len(pattern.args):
                return False
            return all(self._visit(p, a, memo) for p, a in zip(pattern.args, args))
        if isinstance(pattern, ConstantPattern):
            return node.kind == CONSTANT
        if isinstance(pattern, VarPattern):
            return node.kind == VAR and (pattern.name is None or pattern.name == node.name)
        if isinstance(pattern, TuplePattern):
            if node.kind != TUPLE:
                return False
            args = self._args(index)
            if len(args) != len(pattern.fields):
                return False
            return all(self._visit(p, a, memo) for p, a in zip(pattern.fields, args))
        if isinstance(pattern, TupleGetItemPattern):
            if node.kind != TUPLE_GET_ITEM:
                return False
            if pattern.index is not None and node.attrs.get("index") != pattern.index:
                return False
            args = self._args(index)
            return len(args) == 1 and self._visit(pattern.tuple, args[0], memo)
        raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")
