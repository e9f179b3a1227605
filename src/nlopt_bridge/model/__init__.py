"""Modeling interface to the NLopt solver.

Problems are described declaratively, with variables, scalar functions of
the variables, and sets that constrain the function values:

- Functions: [`VariableIndex`][nlopt_bridge.model.VariableIndex],
  [`ScalarAffineFunction`][nlopt_bridge.model.ScalarAffineFunction],
  [`ScalarQuadraticFunction`][nlopt_bridge.model.ScalarQuadraticFunction],
  and [`NonlinearFunction`][nlopt_bridge.model.NonlinearFunction].
- Sets: [`LessThan`][nlopt_bridge.model.LessThan],
  [`GreaterThan`][nlopt_bridge.model.GreaterThan],
  [`EqualTo`][nlopt_bridge.model.EqualTo], and
  [`Interval`][nlopt_bridge.model.Interval].

A [`Model`][nlopt_bridge.model.Model] stores such a description. The
[`Optimizer`][nlopt_bridge.model.Optimizer] builds a model incrementally, or
copies one, and solves it with an [`Opt`][nlopt_bridge.opt.Opt] object
configured from its [`SolverAttributes`][nlopt_bridge.model.SolverAttributes].
"""

from nlopt_bridge.config._attributes import SolverAttributes

from ._functions import (
    NonlinearFunction,
    ScalarAffineFunction,
    ScalarAffineTerm,
    ScalarFunction,
    ScalarQuadraticFunction,
    ScalarQuadraticTerm,
    VariableIndex,
)
from ._model import ConstraintIndex, Model, ModelConstraint
from ._optimizer import Optimizer
from ._sets import EqualTo, GreaterThan, Interval, LessThan, ScalarSet

__all__ = [
    "ConstraintIndex",
    "EqualTo",
    "GreaterThan",
    "Interval",
    "LessThan",
    "Model",
    "ModelConstraint",
    "NonlinearFunction",
    "Optimizer",
    "ScalarAffineFunction",
    "ScalarAffineTerm",
    "ScalarFunction",
    "ScalarQuadraticFunction",
    "ScalarQuadraticTerm",
    "ScalarSet",
    "SolverAttributes",
    "VariableIndex",
]
