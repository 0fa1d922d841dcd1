"""
Builders from framework-specific graphs (PyTorch FX, JAXPR) into Graph.
"""

from __future__ import annotations

import math
import operator
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

from .ir import CALL, CONSTANT, FUNCTION_CALL, TUPLE, TUPLE_GET_ITEM, VAR, Graph, Node

# Leaf modules whose class name does not lower-case into the operator name.
_TORCH_MODULE_OPS: Dict[str, str] = {
    "BatchNorm1d": "batch_norm",
    "BatchNorm2d": "batch_norm",
    "BatchNorm3d": "batch_norm",
    "LayerNorm": "layer_norm",
    "AdaptiveAvgPool2d": "adaptive_avg_pool2d",
    "AvgPool2d": "avg_pool2d",
    "MaxPool2d": "max_pool2d",
    "SiLU": "silu",
    "LogSoftmax": "log_softmax",
}

# JAX primitives that call a nested function rather than an operator.
_JAX_FUNCTION_PRIMITIVES = frozenset(
    {"pjit", "jit", "closed_call", "core_call", "custom_jvp_call", "custom_vjp_call",
     "custom_vjp_call_jaxpr", "remat", "checkpoint", "xla_call"}
)


def _sanitize(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}
    return repr(value)


def _callable_name(target: Any) -> str:
    name = getattr(target, "__name__", None) or str(target)
    return name.strip("_") or name


def _module_op_name(module: Any) -> str:
    cls_name = type(module).__name__
    return _TORCH_MODULE_OPS.get(cls_name, cls_name.lower())


def from_pytorch_fx(
    fx_graph_module: Any,
    *,
    example_inputs: Optional[Sequence[Any]] = None,
    populate_tensor_meta: bool = True,
) -> Graph:
    """
    Convert a ``torch.fx.GraphModule`` into a ``Graph``.

    Placeholders become ``var`` nodes, ``get_attr`` becomes ``constant``,
    ``operator.getitem`` becomes ``tuple_get_item``, tuple construction
    becomes ``tuple`` and every other call becomes an operator ``call`` named
    after its target.

    Args:
        fx_graph_module: Result of ``torch.fx.symbolic_trace`` or similar.
        example_inputs: Optional inputs used to run ``ShapeProp`` so that we
            can extract tensor metadata and estimate activation sizes.
        populate_tensor_meta: If ``True`` (default), attempts to store tensor
            metadata in node attrs for use by pattern predicates.
    """
    try:
        import torch.fx as fx
        from torch.fx.graph_module import GraphModule
        from torch.fx.passes.shape_prop import ShapeProp
    except ModuleNotFoundError as exc:  # pragma: no cover - handled in tests
        raise ModuleNotFoundError(
            "from_pytorch_fx requires PyTorch to be installed."
        ) from exc

    if not isinstance(fx_graph_module, GraphModule):
        raise TypeError(
            "from_pytorch_fx expects a torch.fx.GraphModule. "
            f"Received: {type(fx_graph_module)!r}"
        )

    gm: GraphModule = fx_graph_module

    if example_inputs is not None:
        if not isinstance(example_inputs, (list, tuple)):
            example_inputs = (example_inputs,)
        gm.eval()
        ShapeProp(gm).propagate(*example_inputs)

    graph = Graph(metadata={"framework": "torch_fx"})

    def _tensor_meta_size(meta: Any) -> int:
        if meta is None:
            return 0
        if isinstance(meta, (list, tuple)):
            return sum(_tensor_meta_size(m) for m in meta)
        shape = getattr(meta, "shape", None)
        dtype = getattr(meta, "dtype", None)
        if shape is None or dtype is None:
            return 0
        try:
            itemsize = _torch_dtype_size(dtype)
        except (TypeError, RuntimeError):
            return 0
        numel = 1
        for dim in shape:
            if dim is None or dim < 0:
                return 0
            numel *= dim
        return int(numel * itemsize)

    def _pack_tensor_meta(meta: Any) -> Any:
        if meta is None:
            return None
        if isinstance(meta, (list, tuple)):
            return [_pack_tensor_meta(m) for m in meta]
        shape = getattr(meta, "shape", None)
        dtype = getattr(meta, "dtype", None)
        if shape is None or dtype is None:
            return repr(meta)
        return {
            "shape": tuple(int(dim) if dim is not None else -1 for dim in shape),
            "dtype": str(dtype),
        }

    def _collect_output_nodes(node: fx.Node) -> List[str]:
        names: List[str] = []

        def visit(arg: Any) -> None:
            if isinstance(arg, fx.Node):
                names.append(arg.name)
            elif isinstance(arg, (list, tuple)):
                for item in arg:
                    visit(item)
            elif isinstance(arg, dict):
                for item in arg.values():
                    visit(item)

        for arg in node.args:
            visit(arg)
        return names

    def _classify(fx_node: fx.Node) -> tuple[str, str, Dict[str, Any]]:
        extra: Dict[str, Any] = {}
        if fx_node.op == "placeholder":
            return VAR, "input", extra
        if fx_node.op == "get_attr":
            return CONSTANT, "constant", extra
        if fx_node.op == "call_module":
            return CALL, _module_op_name(gm.get_submodule(fx_node.target)), extra
        if fx_node.op == "call_method":
            return CALL, str(fx_node.target), extra
        target = fx_node.target
        if target is operator.getitem:
            if len(fx_node.args) > 1 and isinstance(fx_node.args[1], int):
                extra["index"] = fx_node.args[1]
            return TUPLE_GET_ITEM, "getitem", extra
        if target is tuple:
            return TUPLE, "tuple", extra
        return CALL, _callable_name(target), extra

    for fx_node in gm.graph.nodes:
        if fx_node.op == "output":
            graph.outputs = _collect_output_nodes(fx_node)
            continue

        kind, op_name, attrs = _classify(fx_node)
        attrs.update(
            {
                "fx_op": fx_node.op,
                "target": _sanitize(fx_node.target),
                "kwargs": _sanitize(fx_node.kwargs),
            }
        )
        tensor_meta = fx_node.meta.get("tensor_meta")
        if populate_tensor_meta:
            attrs["tensor_meta"] = _pack_tensor_meta(tensor_meta)

        node = Node(
            name=fx_node.name,
            op=op_name,
            inputs=[input_node.name for input_node in fx_node.all_input_nodes],
            outputs_size=_tensor_meta_size(tensor_meta) if example_inputs is not None else 0,
            attrs=attrs,
            kind=kind,
        )

        graph.add_node(node)

        if fx_node.op == "placeholder":
            graph.inputs.append(fx_node.name)

    graph.validate()
    return graph


def from_jaxpr(jaxpr: Any) -> Graph:
    """
    Convert a ``jax.core.ClosedJaxpr`` (or ``Jaxpr``) into a ``Graph``.

    Each equation becomes one operator ``call`` named after its primitive;
    primitives that wrap a nested jaxpr become ``function_call`` nodes.
    """
    try:
        import numpy as np
        try:
            from jax import core as jax_core
        except ModuleNotFoundError:
            from jax._src import core as jax_core  # type: ignore[attr-defined]
        else:
            if not hasattr(jax_core, "ClosedJaxpr"):
                from jax._src import core as jax_core  # type: ignore[attr-defined]
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise ModuleNotFoundError(
            "from_jaxpr requires JAX to be installed."
        ) from exc

    ClosedJaxpr = getattr(jax_core, "ClosedJaxpr", None)
    Jaxpr = getattr(jax_core, "Jaxpr", None)
    Literal = getattr(jax_core, "Literal", None)
    Var = getattr(jax_core, "Var", None)

    if ClosedJaxpr is None or Jaxpr is None or Var is None:
        raise RuntimeError("Unsupported JAX version: core types not available.")

    if isinstance(jaxpr, ClosedJaxpr):
        closed_jaxpr = jaxpr
    elif isinstance(jaxpr, Jaxpr):
        closed_jaxpr = ClosedJaxpr(jaxpr, consts=[])
    else:
        raise TypeError(
            "from_jaxpr expects a jax.core.ClosedJaxpr or Jaxpr. "
            f"Received: {type(jaxpr)!r}"
        )

    inner = closed_jaxpr.jaxpr
    const_vals = list(closed_jaxpr.consts)

    graph = Graph(metadata={"framework": "jaxpr"})

    def _aval_size(aval: Any) -> int:
        if not hasattr(aval, "shape") or not hasattr(aval, "dtype"):
            return 0
        try:
            numel = int(math.prod(int(dim) for dim in aval.shape))
            itemsize = np.dtype(aval.dtype).itemsize
        except TypeError:
            return 0
        return int(numel * itemsize)

    def _value_size(value: Any) -> int:
        if value is None:
            return 0
        if hasattr(value, "size") and hasattr(value, "dtype"):
            try:
                return int(value.size) * np.dtype(value.dtype).itemsize
            except TypeError:
                return 0
        if isinstance(value, (int, float, bool)):
            return value.__sizeof__()
        return 0

    var_to_node: Dict[Any, str] = {}

    for idx, (var, const_val) in enumerate(zip(inner.constvars, const_vals)):
        name = f"const_{idx}"
        graph.add_node(
            Node(
                name=name,
                op="constant",
                outputs_size=_aval_size(var.aval) or _value_size(const_val),
                attrs={"aval": _sanitize(getattr(var, "aval", None))},
                kind=CONSTANT,
            )
        )
        var_to_node[var] = name

    for pos, var in enumerate(inner.invars):
        node_name = f"input_{pos}"
        graph.add_node(
            Node(
                name=node_name,
                op="input",
                outputs_size=_aval_size(var.aval),
                attrs={"var": str(var), "aval": _sanitize(var.aval)},
                kind=VAR,
            )
        )
        graph.inputs.append(node_name)
        var_to_node[var] = node_name

    for idx, eqn in enumerate(inner.eqns):
        input_nodes: List[str] = []
        for pos, invar in enumerate(eqn.invars):
            if Literal is not None and isinstance(invar, Literal):
                # Keep literal operands so argument arity matches the program.
                literal_name = f"literal_{idx}_{pos}"
                graph.add_node(
                    Node(
                        name=literal_name,
                        op="constant",
                        outputs_size=_value_size(invar.val),
                        attrs={"value": _sanitize(invar.val)},
                        kind=CONSTANT,
                    )
                )
                input_nodes.append(literal_name)
                continue
            producer = var_to_node.get(invar)
            if producer is None:
                raise KeyError(
                    f"JAXPR contains var `{invar}` with no registered producer."
                )
            input_nodes.append(producer)

        primitive = str(eqn.primitive.name)
        node_name = f"{primitive}_{idx}"
        graph.add_node(
            Node(
                name=node_name,
                op=primitive,
                inputs=input_nodes,
                outputs_size=sum(
                    _aval_size(outvar.aval)
                    for outvar in eqn.outvars
                    if isinstance(outvar, Var)
                ),
                attrs={
                    "params": _sanitize(dict(eqn.params)),
                    "outvars": [str(v) for v in eqn.outvars],
                },
                kind=FUNCTION_CALL if primitive in _JAX_FUNCTION_PRIMITIVES else CALL,
            )
        )

        for outvar in eqn.outvars:
            if isinstance(outvar, Var):
                var_to_node[outvar] = node_name

    outputs: List[str] = []
    for pos, outvar in enumerate(inner.outvars):
        if Literal is not None and isinstance(outvar, Literal):
            name = f"literal_output_{pos}"
            graph.add_node(
                Node(
                    name=name,
                    op="constant",
                    outputs_size=_value_size(outvar.val),
                    attrs={"value": _sanitize(outvar.val)},
                    kind=CONSTANT,
                ),
                allow_overwrite=True,
            )
            outputs.append(name)
            continue

        producer = var_to_node.get(outvar)
        if producer is None:
            raise KeyError(
                f"Output variable `{outvar}` has no registered producer in graph."
            )
        outputs.append(producer)

    graph.outputs = outputs
    graph.validate()
    return graph


@lru_cache(maxsize=None)
def _torch_dtype_size(dtype: Any) -> int:
    import torch

    return int(torch.tensor(0, dtype=dtype).element_size())
