"""Python bindings and a modeling interface for the NLopt optimization library.

The [`nlopt_bridge.opt`][nlopt_bridge.opt] module exposes the native library
through the [`Opt`][nlopt_bridge.opt.Opt] class. The
[`nlopt_bridge.model`][nlopt_bridge.model] module provides an
[`Optimizer`][nlopt_bridge.model.Optimizer] that solves declaratively
described problems with it.
"""

from ._seed import reset_seed_from_system_time, set_seed
from .enums import Algorithm, ObjectiveSense, Result
from .exceptions import (
    DimensionMismatch,
    EvaluatorFailure,
    ForcedStop,
    InvalidArgument,
    SolverFailure,
)
from .opt import Opt, OptimizeResult

__all__ = [
    "Algorithm",
    "DimensionMismatch",
    "EvaluatorFailure",
    "ForcedStop",
    "InvalidArgument",
    "ObjectiveSense",
    "Opt",
    "OptimizeResult",
    "Result",
    "SolverFailure",
    "reset_seed_from_system_time",
    "set_seed",
]
