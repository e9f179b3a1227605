"""Object interface to the native NLopt library.

The central class is [`Opt`][nlopt_bridge.opt.Opt], which owns a native
handle and exposes the algorithm settings as properties. Objective and
constraint functions are wrapped by evaluator adapters that count
evaluations and capture exceptions, so that an exception raised by a user
function is re-raised unchanged by [`Opt.optimize`][nlopt_bridge.opt.Opt.optimize].
"""

from ._constraints import ConstraintEntry, ConstraintRegistry
from ._driver import OptimizeResult
from ._evaluator import (
    FailureSlot,
    ObjectiveFunction,
    VectorConstraintFunction,
)
from ._opt import Opt

__all__ = [
    "ConstraintEntry",
    "ConstraintRegistry",
    "FailureSlot",
    "ObjectiveFunction",
    "OptimizeResult",
    "Opt",
    "VectorConstraintFunction",
]
