"""The optimizer that solves a model with the native NLopt library."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from nlopt_bridge._seed import set_seed
from nlopt_bridge.config._attributes import SolverAttributes
from nlopt_bridge.enums import (
    Algorithm,
    ModelPhase,
    ObjectiveSense,
    Result,
    ResultStatus,
    TerminationStatus,
)
from nlopt_bridge.exceptions import InvalidArgument, ResultUnavailable, SolverFailure
from nlopt_bridge.opt import Opt

from ._functions import NonlinearFunction, ScalarAffineFunction, VariableIndex
from ._model import Model
from ._sets import EqualTo, set_bounds

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ._functions import ScalarFunction
    from ._model import ConstraintIndex, ModelConstraint
    from ._sets import ScalarSet

_logger = logging.getLogger(__name__)

_ZERO = ScalarAffineFunction(terms=())


class _FunctionEvaluator:
    """Evaluates `scale * (function(x) - rhs)` in the native calling convention."""

    def __init__(
        self, function: ScalarFunction, rhs: float = 0.0, scale: float = 1.0
    ) -> None:
        self.function = function
        self.rhs = rhs
        self.scale = scale

    def __call__(self, x: NDArray[np.float64], grad: NDArray[np.float64]) -> float:
        if grad.size > 0:
            self.function.gradient(x, grad)
            if self.scale != 1.0:
                grad *= self.scale
        return self.scale * (self.function.value(x) - self.rhs)


def _status(result: Result) -> tuple[TerminationStatus, ResultStatus]:
    match result:
        case Result.MAXEVAL_REACHED | Result.MAXTIME_REACHED:
            return (
                TerminationStatus.ITERATION_LIMIT,
                ResultStatus.UNKNOWN_RESULT_STATUS,
            )
        case _ if result.is_success:
            return TerminationStatus.LOCALLY_SOLVED, ResultStatus.FEASIBLE_POINT
        case _:
            return TerminationStatus.OTHER_ERROR, ResultStatus.NO_SOLUTION


@dataclass(frozen=True, slots=True)
class _Solution:
    result: Result
    termination_status: TerminationStatus
    primal_status: ResultStatus
    objective_value: float | None
    x: NDArray[np.float64] | None
    solve_time: float


class Optimizer:
    """Solves a [`Model`][nlopt_bridge.model.Model] with NLopt.

    The optimizer keeps a model, built incrementally with the same methods as
    a `Model`, or loaded at once with `copy_to`. Calling `optimize` builds an
    [`Opt`][nlopt_bridge.opt.Opt] object from the model and the solver
    attributes and runs it:

    - Variable bounds become the bounds of the `Opt` object.
    - General constraints are normalized to the native form: `f(x) <= u`
      becomes `f(x) - u <= 0`, `f(x) >= l` becomes `l - f(x) <= 0`,
      `f(x) == v` becomes the equality `f(x) - v == 0`, and an interval
      becomes two inequalities. Infinite limits are dropped. All constraints
      use the `constrtol_abs` attribute as tolerance.
    - A feasibility problem is solved by minimizing zero.
    - The starting point consists of the start values of the variables, or
      zero where none is set, projected into the bounds.

    The optimizer goes through the phases
    [`ModelPhase`][nlopt_bridge.enums.ModelPhase] `EMPTY`, `BUILT`, and
    `SOLVED`. Any change to the model after a solve discards the results and
    returns to `BUILT`; `empty` returns to `EMPTY`. Changing a solver attribute
    keeps the results of the last solve.

    Infeasible and unbounded problems are not detected; they are reported as
    a failure or as a point that does not satisfy the constraints.

    **Example**:
    ```py
    from nlopt_bridge.enums import ObjectiveSense
    from nlopt_bridge.model import GreaterThan, NonlinearFunction, Optimizer

    optimizer = Optimizer(algorithm="LD_SLSQP")
    x, y = optimizer.add_variables(2)
    optimizer.add_constraint(x, GreaterThan(1.0))
    optimizer.set_objective(
        NonlinearFunction(lambda v: v[0] ** 2 + v[1] ** 2, lambda v: 2 * v),
        ObjectiveSense.MINIMIZE,
    )
    optimizer.optimize()
    print(optimizer.variable_primal(x))
    ```
    """

    def __init__(self, **attributes: Any) -> None:  # noqa: ANN401
        """Initialize an optimizer with an empty model.

        Args:
            attributes: Initial solver attributes, see `set_attribute`.
        """
        self._attributes = SolverAttributes()
        for name, value in attributes.items():
            self.set_attribute(name, value)
        self._model = Model()
        self._solution: _Solution | None = None

    @property
    def solver_name(self) -> str:
        """The name of the solver."""
        return "NLopt"

    @property
    def phase(self) -> ModelPhase:
        """The current phase of the optimizer."""
        if self._solution is not None:
            return ModelPhase.SOLVED
        return ModelPhase.EMPTY if self._model.is_empty() else ModelPhase.BUILT

    # Attributes

    @property
    def attributes(self) -> SolverAttributes:
        """The current solver attributes."""
        return self._attributes

    def set_attribute(self, name: str, value: Any) -> None:  # noqa: ANN401
        """Set a solver attribute.

        See [`SolverAttributes`][nlopt_bridge.model.SolverAttributes] for the
        supported attributes.

        Args:
            name:  The attribute name.
            value: The value; `None` resets an optional attribute.

        Raises:
            InvalidArgument: If the name is unknown or the value is invalid.
        """
        self._attributes = self._attributes.with_attribute(name, value)

    def get_attribute(self, name: str) -> Any:  # noqa: ANN401
        """Return the value of a solver attribute.

        Args:
            name: The attribute name.

        Returns:
            The value.

        Raises:
            InvalidArgument: If the name is unknown.
        """
        return getattr(self._attributes, SolverAttributes.check_name(name))

    # Model

    def empty(self) -> None:
        """Remove the model and the results; the attributes are kept."""
        self._model.empty()
        self._solution = None

    def is_empty(self) -> bool:
        """Whether the model is empty."""
        return self._model.is_empty()

    def _modified(self) -> None:
        if self._solution is not None:
            _logger.debug("Model modified, discarding the results")
        self._solution = None

    def add_variable(self) -> VariableIndex:
        """Add a variable, see [`Model.add_variable`][nlopt_bridge.model.Model]."""
        self._modified()
        return self._model.add_variable()

    def add_variables(self, count: int) -> list[VariableIndex]:
        """Add variables, see [`Model.add_variables`][nlopt_bridge.model.Model]."""
        self._modified()
        return self._model.add_variables(count)

    def add_constraint(
        self, function: ScalarFunction, scalar_set: ScalarSet
    ) -> ConstraintIndex:
        """Add a constraint, see [`Model.add_constraint`][nlopt_bridge.model.Model]."""
        self._modified()
        return self._model.add_constraint(function, scalar_set)

    def set_objective(
        self,
        function: ScalarFunction | None,
        sense: ObjectiveSense = ObjectiveSense.MINIMIZE,
    ) -> None:
        """Set the objective, see [`Model.set_objective`][nlopt_bridge.model.Model]."""
        self._modified()
        self._model.set_objective(function, sense)

    def set_start(self, variable: VariableIndex, value: float | None) -> None:
        """Set a start value, see [`Model.set_start`][nlopt_bridge.model.Model]."""
        self._modified()
        self._model.set_start(variable, value)

    def copy_to(self, model: Model) -> dict[Any, Any]:
        """Replace the model of the optimizer by a copy of another model.

        Args:
            model: The model to copy.

        Returns:
            A map from the variable and constraint indices of `model` to the
            indices in the optimizer.
        """
        self.empty()
        return model.copy_to(self._model)

    @property
    def num_variables(self) -> int:
        """The number of variables."""
        return self._model.num_variables

    @property
    def lower_bounds(self) -> NDArray[np.float64]:
        """The lower bounds of the variables."""
        return self._model.lower_bounds

    @property
    def upper_bounds(self) -> NDArray[np.float64]:
        """The upper bounds of the variables."""
        return self._model.upper_bounds

    @property
    def start(self) -> tuple[float | None, ...]:
        """The start values of the variables, `None` where not set."""
        return self._model.start

    @property
    def constraints(self) -> tuple[ModelConstraint, ...]:
        """All constraints, including variable bounds."""
        return self._model.constraints

    def get_constraint(self, index: ConstraintIndex) -> ModelConstraint:
        """Return a constraint by its index."""
        return self._model.get_constraint(index)

    @property
    def objective(self) -> ScalarFunction | None:
        """The objective function, or `None`."""
        return self._model.objective

    @property
    def sense(self) -> ObjectiveSense:
        """The optimization sense."""
        return self._model.sense

    # Solving

    def _build(self) -> Opt:
        attributes = self._attributes
        if attributes.algorithm is None:
            msg = "the algorithm attribute must be set before optimizing"
            raise InvalidArgument(msg)
        dimension = self._model.num_variables
        if dimension == 0:
            msg = "the model has no variables"
            raise InvalidArgument(msg)
        if attributes.algorithm.uses_derivatives:
            self._check_gradients(attributes.algorithm)

        opt = Opt(attributes.algorithm, dimension)
        opt.lower_bounds = self._model.lower_bounds
        opt.upper_bounds = self._model.upper_bounds

        match self._model.sense:
            case ObjectiveSense.MAXIMIZE if self._model.objective is not None:
                opt.max_objective = _FunctionEvaluator(self._model.objective)
            case ObjectiveSense.MINIMIZE if self._model.objective is not None:
                opt.min_objective = _FunctionEvaluator(self._model.objective)
            case _:
                opt.min_objective = _FunctionEvaluator(_ZERO)

        tol = attributes.constrtol_abs
        for constraint in self._model.constraints:
            if isinstance(constraint.function, VariableIndex):
                continue
            lower, upper = set_bounds(constraint.set)
            if isinstance(constraint.set, EqualTo):
                opt.add_equality_constraint(
                    _FunctionEvaluator(constraint.function, rhs=upper), tol
                )
                continue
            if not math.isinf(upper):
                opt.add_inequality_constraint(
                    _FunctionEvaluator(constraint.function, rhs=upper), tol
                )
            if not math.isinf(lower):
                opt.add_inequality_constraint(
                    _FunctionEvaluator(constraint.function, rhs=lower, scale=-1.0),
                    tol,
                )

        self._apply_attributes(opt)
        _logger.debug("Built %r with %d constraints", opt, len(opt.constraints))
        return opt

    def _check_gradients(self, algorithm: Algorithm) -> None:
        functions = [constraint.function for constraint in self._model.constraints]
        if self._model.objective is not None:
            functions.append(self._model.objective)
        if any(
            isinstance(function, NonlinearFunction) and not function.has_gradient
            for function in functions
        ):
            msg = f"{algorithm.name} requires gradients of all nonlinear functions"
            raise InvalidArgument(msg)

    def _apply_attributes(self, opt: Opt) -> None:
        attributes = self._attributes
        if attributes.stopval is not None:
            opt.stopval = attributes.stopval
        opt.ftol_rel = attributes.ftol_rel
        opt.ftol_abs = attributes.ftol_abs
        opt.xtol_rel = attributes.xtol_rel
        if attributes.xtol_abs is not None:
            opt.xtol_abs = _broadcast(attributes.xtol_abs)
        opt.maxeval = attributes.maxeval
        opt.maxtime = attributes.maxtime
        if attributes.initial_step is not None:
            opt.initial_step = _broadcast(attributes.initial_step)
        opt.population = attributes.population
        opt.vector_storage = attributes.vector_storage
        match attributes.local_optimizer:
            case Algorithm() as algorithm:
                local_optimizer = Opt(algorithm, opt.dimension)
                local_optimizer.ftol_rel = attributes.ftol_rel
                local_optimizer.ftol_abs = attributes.ftol_abs
                local_optimizer.xtol_rel = attributes.xtol_rel
                opt.local_optimizer = local_optimizer
            case Opt() as local_optimizer:
                opt.local_optimizer = local_optimizer

    def _starting_point(self) -> NDArray[np.float64]:
        x0 = np.array(
            [0.0 if value is None else value for value in self._model.start],
            dtype=np.float64,
        )
        return np.clip(x0, self._model.lower_bounds, self._model.upper_bounds)

    def optimize(self) -> None:
        """Solve the model.

        A failure reported by the native library is not raised, it is
        available through `termination_status` and `raw_status`. An exception
        raised while evaluating a nonlinear function propagates to the caller,
        leaving the optimizer without results.

        Raises:
            InvalidArgument: If no algorithm is set, if the model has no
                             variables, if a derivative-based algorithm
                             lacks a gradient, or if the attributes do not
                             fit the model.
        """
        self._solution = None
        opt = self._build()
        x0 = self._starting_point()
        if self._attributes.seed is not None:
            set_seed(self._attributes.seed)

        start_time = time.perf_counter()
        try:
            value, x, result = opt.optimize(x0)
        except SolverFailure as err:
            _logger.debug("Solve failed: %s", err)
            value, x, result = None, None, err.result
        solve_time = time.perf_counter() - start_time

        termination_status, primal_status = _status(result)
        if primal_status == ResultStatus.NO_SOLUTION:
            value, x = None, None
        elif self._model.sense == ObjectiveSense.FEASIBILITY:
            value = 0.0
        self._solution = _Solution(
            result=result,
            termination_status=termination_status,
            primal_status=primal_status,
            objective_value=value,
            x=x,
            solve_time=solve_time,
        )
        _logger.debug("Solved with result %s in %.3g seconds", result.name, solve_time)

    # Results

    def _get_solution(self) -> _Solution:
        if self._solution is None:
            msg = "the model has not been solved"
            raise ResultUnavailable(msg)
        return self._solution

    def _get_point(self) -> NDArray[np.float64]:
        solution = self._get_solution()
        if solution.x is None:
            msg = f"no solution available, the solver returned {solution.result.name}"
            raise ResultUnavailable(msg)
        return solution.x

    @property
    def termination_status(self) -> TerminationStatus:
        """Why the last solve stopped."""
        if self._solution is None:
            return TerminationStatus.OPTIMIZE_NOT_CALLED
        return self._solution.termination_status

    @property
    def primal_status(self) -> ResultStatus:
        """The status of the primal solution of the last solve."""
        if self._solution is None:
            return ResultStatus.NO_SOLUTION
        return self._solution.primal_status

    @property
    def raw_status(self) -> str:
        """The name of the native result code of the last solve."""
        return self._get_solution().result.name

    @property
    def result_count(self) -> int:
        """The number of available solutions, 0 or 1."""
        if self._solution is None or self._solution.x is None:
            return 0
        return 1

    @property
    def solve_time(self) -> float:
        """The wall-clock duration of the last solve, in seconds."""
        return self._get_solution().solve_time

    @property
    def objective_value(self) -> float:
        """The objective value of the solution."""
        self._get_point()
        value = self._get_solution().objective_value
        assert value is not None
        return value

    def variable_primal(self, variable: VariableIndex) -> float:
        """Return the value of a variable in the solution.

        Args:
            variable: The variable.

        Returns:
            The value.

        Raises:
            ResultUnavailable: If no solution is available.
        """
        x = self._get_point()
        if not isinstance(variable, VariableIndex) or not (
            0 <= variable.index < x.size
        ):
            msg = f"invalid variable: {variable!r}"
            raise InvalidArgument(msg)
        return float(x[variable.index])

    def constraint_primal(self, index: ConstraintIndex) -> float:
        """Return the value of a constrained function in the solution.

        Args:
            index: The constraint.

        Returns:
            The value of the function of the constraint.

        Raises:
            ResultUnavailable: If no solution is available.
        """
        x = self._get_point()
        return self._model.get_constraint(index).function.value(x)


def _broadcast(values: NDArray[np.float64]) -> float | NDArray[np.float64]:
    return float(values[0]) if values.size == 1 else values
