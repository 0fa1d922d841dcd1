"""
FX-based capture of PyTorch programs.
"""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

import torch
import torch.fx as fx

from tiny_collage.graph.builders import from_pytorch_fx
from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import Graph
from tiny_collage.partition.candidate import CandidatePartition
from tiny_collage.partition.gather import gather_candidates
from tiny_collage.partition.spec import PartitionSpec


def _ensure_tuple(example_inputs: Any) -> Tuple[Any, ...]:
    if isinstance(example_inputs, tuple):
        return example_inputs
    if isinstance(example_inputs, list):
        return tuple(example_inputs)
    return (example_inputs,)


def capture_graph(module: torch.nn.Module, example_inputs: Any) -> Graph:
    """
    Trace module with FX and build our Graph.

    Args:
        module: The PyTorch module to trace.
        example_inputs: Sample inputs used for shape propagation, so that
            activation sizes and tensor metadata are available to pattern
            predicates and cost estimators.

    Returns:
        Graph: Framework-agnostic program DAG.
    """
    traced = fx.symbolic_trace(module)
    graph = from_pytorch_fx(traced, example_inputs=_ensure_tuple(example_inputs))
    graph.metadata.setdefault("module_type", module.__class__.__qualname__)
    return graph


def module_candidates(
    module: torch.nn.Module,
    example_inputs: Any,
    specs: Sequence[PartitionSpec],
) -> Tuple[DataflowGraph, List[CandidatePartition]]:
    """Capture ``module`` and gather the candidates of every spec over it."""
    dataflow_graph = DataflowGraph.from_graph(capture_graph(module, example_inputs))
    return dataflow_graph, gather_candidates(dataflow_graph, specs)
