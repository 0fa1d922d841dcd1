"""
JAX integration helpers.
"""

from .jaxpr_capture import capture_graph_jaxpr, function_candidates

__all__ = ["capture_graph_jaxpr", "function_candidates"]
