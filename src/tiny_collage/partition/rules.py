"""
Compositional partition rules.

A partition rule finds the candidate partitions some target could run for a
dataflow graph. Candidates may overlap: choosing a non-overlapping cover is
left to the downstream search.

Base rules read the dataflow graph directly:

- ``DFPatternPartitionRule``: one candidate per match of a dataflow pattern
  accepted by a predicate.
- ``OpCallByKindPartitionRule``: one singleton candidate per call to an
  operator that a fusing compiler could absorb.
- ``HostPartitionRule``: one singleton candidate per node, so that every node
  can always be left behind for the host.

Combinator rules rework the candidates of their sub-rules:

- ``CompositePartitionRule``: tag candidates as one named operator.
- ``PrimitivePartitionRule``: tag candidates as one compiled partition,
  recording the target's external compiler if it has one.
- ``UnionPartitionRule``: concatenate the candidates of several sub-rules.
- ``OnlyValidPartitionRule``: drop candidates whose sub-graph is invalid for a
  ``SubGraphConfig``.

The set of rule kinds is closed. Evaluation is a single dispatch in
``all_candidates``; rule trees are immutable and may be shared between
threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, List, Sequence, Tuple

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import Node
from tiny_collage.graph.op_patterns import is_fusable
from tiny_collage.graph.pattern import DFPattern, DFPatternMatcher
from tiny_collage.partition.candidate import (
    COMPILER_ATTR,
    COMPOSITE_ATTR,
    PRIMITIVE_ATTR,
    CandidatePartition,
    nest_labels,
)
from tiny_collage.partition.index_set import IndexSet
from tiny_collage.partition.sub_graph import SubGraph, SubGraphConfig
from tiny_collage.utils.config import config as global_config
from tiny_collage.utils.logging import get_logger

if TYPE_CHECKING:
    from tiny_collage.partition.spec import PartitionSpec

logger = get_logger(__name__)

PatternPredicate = Callable[[Node], bool]


def default_pattern_predicate(matched_node: Node) -> bool:
    """Accept every match."""
    return True


@dataclass(frozen=True)
class PartitionRule:
    """
    Base of all partition rules.

    Attributes:
        rule_name: name unique among the rules of one target. Rule names are
            nested into candidate provenance labels, and composite rules copy
            theirs into the extracted function's attributes.
    """

    rule_name: str

    def __post_init__(self) -> None:
        if type(self) is PartitionRule:
            raise TypeError("PartitionRule is abstract; use one of its rule kinds.")
        if not isinstance(self.rule_name, str):
            raise TypeError(f"rule_name must be a string, got {type(self.rule_name)!r}.")

    def all_candidates(
        self, dataflow_graph: DataflowGraph, spec: "PartitionSpec"
    ) -> List[CandidatePartition]:
        """
        All candidate partitions this rule finds for ``dataflow_graph``. The
        candidates have unresolved target and cost: the spec fills in the
        target, the cost is computed lazily on demand.
        """
        return all_candidates(self, dataflow_graph, spec)

    def _body_items(self) -> List[Tuple[str, str]]:
        return []

    def to_doc(self) -> dict:
        doc: dict = {"kind": type(self).__name__, "rule_name": self.rule_name}
        for sub_rule in _sub_rules(self):
            doc.setdefault("sub_rules", []).append(sub_rule.to_doc())
        for key, value in self._body_items():
            doc[key] = value
        return doc

    def __str__(self) -> str:
        lines = [f"{type(self).__name__}(", f"  rule_name={self.rule_name!r},"]
        for key, value in self._body_items():
            lines.append(f"  {key}={value},")
        for sub_rule in _sub_rules(self):
            nested = str(sub_rule).replace("\n", "\n  ")
            lines.append(f"  sub_rule={nested},")
        lines.append(")")
        return "\n".join(lines)


def _check_sub_rule(owner: PartitionRule, sub_rule: object) -> None:
    if not isinstance(sub_rule, PartitionRule):
        raise TypeError(
            f"{type(owner).__name__} `{owner.rule_name}` requires a PartitionRule "
            f"sub-rule, got {type(sub_rule)!r}."
        )


@dataclass(frozen=True)
class DFPatternPartitionRule(PartitionRule):
    pattern: DFPattern
    predicate: PatternPredicate = field(default=default_pattern_predicate, compare=False)

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.pattern, DFPattern):
            raise TypeError(
                f"DFPatternPartitionRule `{self.rule_name}` requires a DFPattern, "
                f"got {type(self.pattern)!r}."
            )
        if not callable(self.predicate):
            raise TypeError(f"Predicate of `{self.rule_name}` must be callable.")

    def _body_items(self) -> List[Tuple[str, str]]:
        items = [("pattern", self.pattern.describe())]
        if self.predicate is not default_pattern_predicate:
            items.append(("predicate", getattr(self.predicate, "__name__", repr(self.predicate))))
        return items


@dataclass(frozen=True)
class OpCallByKindPartitionRule(PartitionRule):
    pass


@dataclass(frozen=True)
class CompositePartitionRule(PartitionRule):
    sub_rule: PartitionRule

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_sub_rule(self, self.sub_rule)


@dataclass(frozen=True)
class PrimitivePartitionRule(PartitionRule):
    sub_rule: PartitionRule

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_sub_rule(self, self.sub_rule)


@dataclass(frozen=True)
class UnionPartitionRule(PartitionRule):
    sub_rules: Tuple[PartitionRule, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        # Accept any sequence but store an immutable tuple.
        object.__setattr__(self, "sub_rules", tuple(self.sub_rules))
        if not self.sub_rules:
            raise ValueError(f"UnionPartitionRule `{self.rule_name}` needs at least one sub-rule.")
        for sub_rule in self.sub_rules:
            _check_sub_rule(self, sub_rule)


@dataclass(frozen=True)
class OnlyValidPartitionRule(PartitionRule):
    sub_rule: PartitionRule
    config: SubGraphConfig

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_sub_rule(self, self.sub_rule)
        if not isinstance(self.config, SubGraphConfig):
            raise TypeError(
                f"OnlyValidPartitionRule `{self.rule_name}` requires a SubGraphConfig, "
                f"got {type(self.config)!r}."
            )

    def _body_items(self) -> List[Tuple[str, str]]:
        cfg = self.config
        return [
            (
                "config",
                f"SubGraphConfig(max_max_depth={cfg.max_max_depth}, "
                f"max_outputs={cfg.max_outputs}, allow_taps={cfg.allow_taps})",
            )
        ]


@dataclass(frozen=True)
class HostPartitionRule(PartitionRule):
    pass


def _sub_rules(rule: PartitionRule) -> Sequence[PartitionRule]:
    if isinstance(rule, UnionPartitionRule):
        return rule.sub_rules
    sub_rule = getattr(rule, "sub_rule", None)
    return (sub_rule,) if sub_rule is not None else ()


def _singleton(dataflow_graph: DataflowGraph, rule_name: str, index: int) -> CandidatePartition:
    inside = IndexSet.of(dataflow_graph.size, (index,))
    label = dataflow_graph.index_to_node(index).node.op
    sub_graph = SubGraph.from_index_set(dataflow_graph, inside, label=label)
    return CandidatePartition(rule_name=rule_name, sub_graph=sub_graph)


def _df_pattern_candidates(
    rule: DFPatternPartitionRule, dataflow_graph: DataflowGraph
) -> List[CandidatePartition]:
    matcher = DFPatternMatcher(dataflow_graph)
    candidates: List[CandidatePartition] = []
    for df_node in dataflow_graph:
        matched = matcher.match(rule.pattern, df_node.index)
        if not matched:
            continue
        if not rule.predicate(df_node.node):
            continue
        inside = IndexSet.of(dataflow_graph.size, matched)
        sub_graph = SubGraph.from_index_set(dataflow_graph, inside, label=df_node.node.op)
        candidates.append(CandidatePartition(rule_name=rule.rule_name, sub_graph=sub_graph))
    return candidates


def _op_call_by_kind_candidates(
    rule: OpCallByKindPartitionRule, dataflow_graph: DataflowGraph
) -> List[CandidatePartition]:
    return [
        _singleton(dataflow_graph, rule.rule_name, df_node.index)
        for df_node in dataflow_graph
        if is_fusable(df_node.node)
    ]


def _host_candidates(
    rule: HostPartitionRule, dataflow_graph: DataflowGraph
) -> List[CandidatePartition]:
    # Every node, including operator calls, so a complete cover always exists.
    return [_singleton(dataflow_graph, rule.rule_name, df_node.index) for df_node in dataflow_graph]


def _wrap_candidates(
    rule_name: str,
    candidates: List[CandidatePartition],
    annotations: Tuple[Tuple[str, object], ...],
) -> List[CandidatePartition]:
    return [
        replace(
            candidate,
            rule_name=nest_labels(rule_name, candidate.rule_name),
            annotations=candidate.annotations + annotations,
        )
        for candidate in candidates
    ]


def all_candidates(
    rule: PartitionRule, dataflow_graph: DataflowGraph, spec: "PartitionSpec"
) -> List[CandidatePartition]:
    """
    Evaluate ``rule`` over ``dataflow_graph``. Pure: the graph, the rule tree
    and the candidates of sub-rules are never mutated.
    """
    if isinstance(rule, DFPatternPartitionRule):
        candidates = _df_pattern_candidates(rule, dataflow_graph)
    elif isinstance(rule, OpCallByKindPartitionRule):
        candidates = _op_call_by_kind_candidates(rule, dataflow_graph)
    elif isinstance(rule, HostPartitionRule):
        candidates = _host_candidates(rule, dataflow_graph)
    elif isinstance(rule, CompositePartitionRule):
        candidates = _wrap_candidates(
            rule.rule_name,
            all_candidates(rule.sub_rule, dataflow_graph, spec),
            ((COMPOSITE_ATTR, rule.rule_name),),
        )
    elif isinstance(rule, PrimitivePartitionRule):
        annotations: Tuple[Tuple[str, object], ...] = ((PRIMITIVE_ATTR, 1),)
        compiler = spec.target.get("compiler") if spec is not None else None
        if compiler:
            annotations += ((COMPILER_ATTR, compiler),)
        candidates = _wrap_candidates(
            rule.rule_name,
            all_candidates(rule.sub_rule, dataflow_graph, spec),
            annotations,
        )
    elif isinstance(rule, UnionPartitionRule):
        candidates = []
        for sub_rule in rule.sub_rules:
            candidates.extend(all_candidates(sub_rule, dataflow_graph, spec))
    elif isinstance(rule, OnlyValidPartitionRule):
        sub_candidates = all_candidates(rule.sub_rule, dataflow_graph, spec)
        candidates = [c for c in sub_candidates if c.sub_graph.is_valid(rule.config)]
        logger.debug(
            "%s `%s` dropped %d of %d candidates",
            type(rule).__name__,
            rule.rule_name,
            len(sub_candidates) - len(candidates),
            len(sub_candidates),
        )
    else:
        raise TypeError(f"Unknown partition rule kind: {type(rule).__name__}")

    logger.debug("%s `%s` produced %d candidates", type(rule).__name__, rule.rule_name, len(candidates))
    if global_config.debug:
        for candidate in candidates:
            logger.debug("  %s", candidate)
    return candidates
