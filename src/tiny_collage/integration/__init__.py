"""
Framework integration entry points.

Subpackages:
- `torch`: capture a `torch.nn.Module` with FX and gather its candidates.
- `jax`: capture a JAX function via its JAXPR and gather its candidates.

Import the subpackages directly; each requires its framework to be installed.
"""
