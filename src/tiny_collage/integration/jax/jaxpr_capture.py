from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from tiny_collage.graph.builders import from_jaxpr
from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import Graph
from tiny_collage.partition.candidate import CandidatePartition
from tiny_collage.partition.gather import gather_candidates
from tiny_collage.partition.spec import PartitionSpec


def capture_graph_jaxpr(fn, example_inputs: Sequence[Any]) -> Graph:
    """
    Trace ``fn`` with ``jax.make_jaxpr`` and convert to the internal Graph.

    Args:
        fn: Callable to trace.
        example_inputs: Sequence of sample inputs. These are passed directly to
            ``jax.make_jaxpr``; therefore they must be JAX-compatible values.
    """
    try:
        import jax
    except ModuleNotFoundError as exc:  # pragma: no cover - handled in tests
        raise ModuleNotFoundError(
            "capture_graph_jaxpr requires JAX to be installed."
        ) from exc

    if not isinstance(example_inputs, (list, tuple)):
        example_inputs = (example_inputs,)

    closed_jaxpr = jax.make_jaxpr(fn)(*example_inputs)
    graph = from_jaxpr(closed_jaxpr)
    graph.metadata.setdefault("function_name", getattr(fn, "__name__", "<lambda>"))
    return graph


def function_candidates(
    fn, example_inputs: Sequence[Any], specs: Sequence[PartitionSpec]
) -> Tuple[DataflowGraph, List[CandidatePartition]]:
    dataflow_graph = DataflowGraph.from_graph(capture_graph_jaxpr(fn, example_inputs))
    return dataflow_graph, gather_candidates(dataflow_graph, specs)
