from __future__ import annotations

import logging

import pytest

from tiny_collage.graph.dataflow import DataflowGraph
from tiny_collage.graph.ir import VAR, Graph, Node
from tiny_collage.partition import HostPartitionRule, PartitionSpec, Target, gather_candidates
from tiny_collage.utils import config as global_config
from tiny_collage.utils.config import TCConfig
from tiny_collage.utils.logging import LOGGER_NAME, enable_debug_logging, get_logger, logger


def test_config_defaults(monkeypatch) -> None:
    for name in ("TINY_COLLAGE_DEBUG", "TINY_COLLAGE_PARALLEL", "TINY_COLLAGE_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)

    cfg = TCConfig.from_env()

    assert cfg == TCConfig(debug=False, parallel_specs=False, max_workers=4)


def test_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("TINY_COLLAGE_DEBUG", "yes")
    monkeypatch.setenv("TINY_COLLAGE_PARALLEL", "1")
    monkeypatch.setenv("TINY_COLLAGE_MAX_WORKERS", "8")

    cfg = TCConfig.from_env()

    assert cfg.debug
    assert cfg.parallel_specs
    assert cfg.max_workers == 8


def test_config_rejects_non_positive_workers() -> None:
    with pytest.raises(ValueError):
        TCConfig(max_workers=0)


def test_get_logger_nests_under_package_logger() -> None:
    assert get_logger() is logger
    assert get_logger(LOGGER_NAME) is logger
    assert get_logger("tiny_collage.partition.rules").name == "tiny_collage.partition.rules"
    assert get_logger("bench").name == "tiny_collage.bench"


def test_enable_debug_logging_attaches_handler() -> None:
    previous_level = logger.level
    handler = enable_debug_logging()
    try:
        assert handler in logger.handlers
        assert logger.level == logging.DEBUG
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)


def test_debug_flag_logs_each_candidate(monkeypatch, caplog) -> None:
    graph = Graph()
    graph.add_node(Node(name="x", op="input", kind=VAR))
    graph.add_node(Node(name="y", op="relu", inputs=["x"]))
    graph.outputs = ["y"]
    dfg = DataflowGraph.from_graph(graph)
    spec = PartitionSpec("host", Target.host(), HostPartitionRule("host"))

    monkeypatch.setattr(global_config, "debug", True)
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        gather_candidates(dfg, [spec], parallel=False)

    messages = [record.getMessage() for record in caplog.records]
    assert "HostPartitionRule `host` produced 2 candidates" in messages
    assert sum("CandidatePartition(rule_name='host'" in m for m in messages) == 2
    assert "Spec host: 2 candidates" in messages
