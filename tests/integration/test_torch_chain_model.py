from __future__ import annotations

import pytest

pytest.importorskip("torch")
import torch  # type: ignore
from torch import nn  # type: ignore

from tiny_collage.graph.pattern import is_op, wildcard
from tiny_collage.integration.torch.fx_capture import capture_graph, module_candidates
from tiny_collage.partition import (
    CompositePartitionRule,
    DFPatternPartitionRule,
    HostPartitionRule,
    OnlyValidPartitionRule,
    OpCallByKindPartitionRule,
    PartitionSpec,
    PrimitivePartitionRule,
    SubGraphConfig,
    Target,
)


class TinyChain(nn.Module):
    def __init__(self) -> None:
        super().__init__()
        self.layers = nn.Sequential(
            nn.Linear(8, 16),
            nn.ReLU(),
            nn.Linear(16, 4),
        )

    def forward(self, x):
        return self.layers(x)


def _specs():
    linear_relu = CompositePartitionRule(
        "linear_relu", DFPatternPartitionRule("p", is_op("relu")(is_op("linear")(wildcard())))
    )
    return [
        PartitionSpec(
            "library",
            Target(kind="cuda", compiler="library"),
            OnlyValidPartitionRule(
                "valid",
                PrimitivePartitionRule("prim", linear_relu),
                SubGraphConfig(max_max_depth=2, max_outputs=1),
            ),
        ),
        PartitionSpec("fusion", Target(kind="cuda"), OpCallByKindPartitionRule("op")),
        PartitionSpec("host", Target.host(), HostPartitionRule("host")),
    ]


def test_fx_capture_chain_graph() -> None:
    module = TinyChain()
    example = torch.randn(2, 8)

    graph = capture_graph(module, example_inputs=example)

    assert graph.metadata["framework"] == "torch_fx"
    assert graph.metadata["module_type"] == "TinyChain"
    graph.validate()

    topo = graph.topological_sort()
    assert len(topo) == len(graph.nodes)
    assert graph.inputs == [topo[0].name]
    assert [node.op for node in topo] == ["input", "linear", "relu", "linear"]
    assert graph.outputs == [topo[-1].name]
    assert all(node.outputs_size > 0 for node in topo)


def test_module_candidates_finds_linear_relu() -> None:
    torch.manual_seed(0)
    dfg, candidates = module_candidates(TinyChain(), torch.randn(2, 8), _specs())

    library = [c for c in candidates if c.spec_name == "library"]
    assert len(library) == 1
    assert library[0].rule_name == "valid.prim.linear_relu.p"
    assert [dfg.index_to_node(i).node.op for i in library[0].inside] == ["linear", "relu"]
    assert library[0].function_attrs() == {
        "Composite": "linear_relu",
        "Primitive": 1,
        "Compiler": "library",
    }

    fusion = [c for c in candidates if c.spec_name == "fusion"]
    assert len(fusion) == 3
    host = [c for c in candidates if c.spec_name == "host"]
    assert len(host) == len(dfg)
