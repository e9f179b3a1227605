"""Configuration helpers and validated types.

The solver attributes of the modeling bridge are validated by the
[`pydantic`](https://docs.pydantic.dev/) model `SolverAttributes`, exported
from [`nlopt_bridge.model`][nlopt_bridge.model]. This package contains that
model together with the annotated types and conversion helpers it is built
from, which are also used by the [`Opt`][nlopt_bridge.opt.Opt] property
setters.
"""

from .validated_types import AlgorithmTag, Array1D

__all__ = [
    "AlgorithmTag",
    "Array1D",
]
