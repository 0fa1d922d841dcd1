"""
Top-level candidate gathering across partition specs.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.partition.candidate import CandidatePartition
from tiny_collage.partition.spec import PartitionSpec
from tiny_collage.utils.config import config as global_config
from tiny_collage.utils.logging import get_logger

logger = get_logger(__name__)


def gather_candidates(
    dataflow_graph: DataflowGraph,
    specs: Sequence[PartitionSpec],
    *,
    parallel: Optional[bool] = None,
    max_workers: Optional[int] = None,
) -> List[CandidatePartition]:
    """
    Evaluate every spec and concatenate the candidates in spec order.

    Args:
        dataflow_graph: Shared, read-only view of the program.
        specs: One spec per target.
        parallel: Evaluate specs on a thread pool. Defaults to
            ``config.parallel_specs``.
        max_workers: Pool size. Defaults to ``config.max_workers``.
    """
    names = [spec.spec_name for spec in specs]
    if len(set(names)) != len(names):
        raise ValueError(f"Partition spec names must be unique: {names}")

    if parallel is None:
        parallel = global_config.parallel_specs
    if max_workers is None:
        max_workers = global_config.max_workers

    def run(spec: PartitionSpec) -> List[CandidatePartition]:
        return spec.all_candidates(dataflow_graph)

    if parallel and len(specs) > 1:
        # map() yields results in submission order.
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            per_spec = list(pool.map(run, specs))
    else:
        per_spec = [run(spec) for spec in specs]

    candidates: List[CandidatePartition] = []
    for spec, spec_candidates in zip(specs, per_spec):
        logger.info("Spec %s: %d candidates", spec.spec_name, len(spec_candidates))
        candidates.extend(spec_candidates)
    logger.info("Gathered %d candidates from %d specs", len(candidates), len(specs))
    return candidates
