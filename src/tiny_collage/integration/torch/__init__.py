"""
PyTorch integration for tiny-collage.

Exports:
- `capture_graph`: trace a module with FX into a `Graph`.
- `module_candidates`: trace a module and gather candidates for some specs.
"""

from .fx_capture import capture_graph, module_candidates

__all__ = ["capture_graph", "module_candidates"]
