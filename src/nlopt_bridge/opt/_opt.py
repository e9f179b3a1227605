"""The optimizer object wrapping a native NLopt handle."""

from __future__ import annotations

import numbers
from typing import TYPE_CHECKING, Any, Self

import nlopt
import numpy as np

from nlopt_bridge.config.utils import (
    broadcast_1d_array,
    check_non_negative_int,
    convert_algorithm,
    immutable_array,
)
from nlopt_bridge.enums import Algorithm, ConstraintKind, ObjectiveSense
from nlopt_bridge.exceptions import DimensionMismatch, InvalidArgument

from ._constraints import ConstraintEntry, ConstraintRegistry
from ._driver import OptimizeResult, run_optimization
from ._evaluator import EvaluationContext, ObjectiveAdapter

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from ._evaluator import ObjectiveFunction, UserFunction, VectorConstraintFunction


def _to_float(value: Any, name: str) -> float:  # noqa: ANN401
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        msg = f"{name} must be a real number, got {value!r}"
        raise InvalidArgument(msg)
    return float(value)


class Opt:
    """An optimization problem configured for the native NLopt library.

    An `Opt` object owns a native handle, created with a fixed algorithm and
    number of variables. All other settings are mutable properties:

    - **Bounds**: `lower_bounds` and `upper_bounds` accept a scalar, which is
      applied to all variables, or a vector with one entry per variable. They
      read back as vectors. The default is unbounded.
    - **Objective**: `min_objective` or `max_objective`. Setting one clears
      the other.
    - **Stopping criteria**: `stopval`, `ftol_rel`, `ftol_abs`, `xtol_rel`,
      `xtol_abs`, `maxeval`, and `maxtime`. All are disabled by default.
    - **Algorithm parameters**: `initial_step`, `population`,
      `vector_storage`, and `local_optimizer`.

    Constraints are added with the `add_*_constraint` methods; each call adds
    a constraint and never replaces earlier ones.

    Bounds are not checked against each other when they are set. A lower bound
    above the corresponding upper bound, or a starting point outside the
    bounds, is reported by the native library when `optimize` is called, as a
    [`SolverFailure`][nlopt_bridge.exceptions.SolverFailure] with result
    [`INVALID_ARGS`][nlopt_bridge.enums.Result.INVALID_ARGS].

    An `Opt` object must not be used by more than one thread at a time.

    **Example**:
    ```py
    from nlopt_bridge import Opt

    opt = Opt("LD_MMA", 2)
    opt.lower_bounds = [-float("inf"), 0.0]
    opt.xtol_rel = 1e-4

    def objective(x, grad):
        if grad.size > 0:
            grad[:] = [0.0, 0.5 / x[1] ** 0.5]
        return x[1] ** 0.5

    opt.min_objective = objective
    value, x, result = opt.optimize([1.234, 5.678])
    ```
    """

    def __init__(self, algorithm: Algorithm | int | str, dimension: int) -> None:
        """Initialize an optimizer object.

        Args:
            algorithm: The algorithm, as an `Algorithm`, its value, or its name.
            dimension: The number of variables.

        Raises:
            InvalidArgument: If the algorithm is not recognized or the
                             dimension is not a positive integer.
        """
        self._algorithm = convert_algorithm(algorithm)
        if (
            not isinstance(dimension, numbers.Integral)
            or isinstance(dimension, bool)
            or dimension <= 0
        ):
            msg = f"dimension must be a positive integer, got {dimension!r}"
            raise InvalidArgument(msg)
        self._dimension = int(dimension)
        self._handle = nlopt.opt(int(self._algorithm), self._dimension)
        self._context = EvaluationContext(self.force_stop)
        self._constraints = ConstraintRegistry(self._handle, self._context)
        self._objective: UserFunction | None = None
        self._sense = ObjectiveSense.MINIMIZE
        self._initial_step: NDArray[np.float64] | None = None
        self._local_optimizer: Opt | None = None

    def __repr__(self) -> str:
        """Return a string representation of the optimizer."""
        return f"Opt({self._algorithm.name}, {self._dimension})"

    @property
    def algorithm(self) -> Algorithm:
        """The algorithm, fixed at construction."""
        return self._algorithm

    @property
    def algorithm_name(self) -> str:
        """A description of the algorithm provided by the native library."""
        return str(self._handle.get_algorithm_name())

    @property
    def dimension(self) -> int:
        """The number of variables, fixed at construction."""
        return self._dimension

    @property
    def numevals(self) -> int:
        """The number of objective evaluations of the last `optimize` call."""
        return self._context.numevals

    # Bounds

    @property
    def lower_bounds(self) -> NDArray[np.float64]:
        """The lower bounds of the variables."""
        return immutable_array(self._handle.get_lower_bounds(), dtype=np.float64)

    @lower_bounds.setter
    def lower_bounds(self, value: ArrayLike) -> None:
        self._handle.set_lower_bounds(
            broadcast_1d_array(value, "lower_bounds", self._dimension)
        )

    @property
    def upper_bounds(self) -> NDArray[np.float64]:
        """The upper bounds of the variables."""
        return immutable_array(self._handle.get_upper_bounds(), dtype=np.float64)

    @upper_bounds.setter
    def upper_bounds(self, value: ArrayLike) -> None:
        self._handle.set_upper_bounds(
            broadcast_1d_array(value, "upper_bounds", self._dimension)
        )

    # Objective

    @property
    def objective(self) -> UserFunction | None:
        """The current objective function, or `None`."""
        return self._objective

    @property
    def sense(self) -> ObjectiveSense:
        """Whether the objective is minimized or maximized."""
        return self._sense

    @property
    def min_objective(self) -> UserFunction | None:
        """The objective function to minimize, or `None`.

        The function is called as `f(x, grad)` and returns the objective
        value. If `grad` is not empty, the gradient must be written into it.
        """
        return self._objective if self._sense == ObjectiveSense.MINIMIZE else None

    @min_objective.setter
    def min_objective(self, function: ObjectiveFunction) -> None:
        self._set_objective(function, ObjectiveSense.MINIMIZE)

    @property
    def max_objective(self) -> UserFunction | None:
        """The objective function to maximize, or `None`.

        See [`min_objective`][nlopt_bridge.opt.Opt.min_objective].
        """
        return self._objective if self._sense == ObjectiveSense.MAXIMIZE else None

    @max_objective.setter
    def max_objective(self, function: ObjectiveFunction) -> None:
        self._set_objective(function, ObjectiveSense.MAXIMIZE)

    def _set_objective(
        self, function: ObjectiveFunction, sense: ObjectiveSense
    ) -> None:
        if not callable(function):
            msg = "objective must be callable"
            raise InvalidArgument(msg)
        adapter = ObjectiveAdapter(function, self._context)
        if sense == ObjectiveSense.MAXIMIZE:
            self._handle.set_max_objective(adapter)
        else:
            self._handle.set_min_objective(adapter)
        self._context.maximize = sense == ObjectiveSense.MAXIMIZE
        self._objective = function
        self._sense = sense

    # Constraints

    @property
    def constraints(self) -> tuple[ConstraintEntry, ...]:
        """The registered constraints, in registration order."""
        return self._constraints.entries

    def add_inequality_constraint(
        self, function: ObjectiveFunction, tol: float = 0.0
    ) -> None:
        """Add a scalar inequality constraint `c(x) <= 0`.

        Args:
            function: The function `c(x, grad) -> float`.
            tol:      The feasibility tolerance.
        """
        self._constraints.add(ConstraintKind.INEQUALITY, function, tol)

    def add_equality_constraint(
        self, function: ObjectiveFunction, tol: float = 0.0
    ) -> None:
        """Add a scalar equality constraint `h(x) = 0`.

        Args:
            function: The function `h(x, grad) -> float`.
            tol:      The feasibility tolerance.
        """
        self._constraints.add(ConstraintKind.EQUALITY, function, tol)

    def add_inequality_mconstraint(
        self, function: VectorConstraintFunction, tol: ArrayLike
    ) -> None:
        """Add a vector-valued inequality constraint `c(x) <= 0`.

        Args:
            function: The function `c(result, x, grad) -> None`.
            tol:      The tolerances, one per constraint component.
        """
        self._constraints.add_vector(ConstraintKind.INEQUALITY, function, tol)

    def add_equality_mconstraint(
        self, function: VectorConstraintFunction, tol: ArrayLike
    ) -> None:
        """Add a vector-valued equality constraint `h(x) = 0`.

        Args:
            function: The function `h(result, x, grad) -> None`.
            tol:      The tolerances, one per constraint component.
        """
        self._constraints.add_vector(ConstraintKind.EQUALITY, function, tol)

    def remove_inequality_constraints(self) -> None:
        """Remove all inequality constraints."""
        self._constraints.remove(ConstraintKind.INEQUALITY)

    def remove_equality_constraints(self) -> None:
        """Remove all equality constraints."""
        self._constraints.remove(ConstraintKind.EQUALITY)

    def remove_all_constraints(self) -> None:
        """Remove all inequality and equality constraints."""
        self._constraints.clear()

    # Stopping criteria

    @property
    def stopval(self) -> float:
        """Stop when the objective reaches this value."""
        return float(self._handle.get_stopval())

    @stopval.setter
    def stopval(self, value: float) -> None:
        self._handle.set_stopval(_to_float(value, "stopval"))

    @property
    def ftol_rel(self) -> float:
        """Relative tolerance on the objective value (0 disables)."""
        return float(self._handle.get_ftol_rel())

    @ftol_rel.setter
    def ftol_rel(self, value: float) -> None:
        self._handle.set_ftol_rel(_to_float(value, "ftol_rel"))

    @property
    def ftol_abs(self) -> float:
        """Absolute tolerance on the objective value (0 disables)."""
        return float(self._handle.get_ftol_abs())

    @ftol_abs.setter
    def ftol_abs(self, value: float) -> None:
        self._handle.set_ftol_abs(_to_float(value, "ftol_abs"))

    @property
    def xtol_rel(self) -> float:
        """Relative tolerance on the variables (0 disables)."""
        return float(self._handle.get_xtol_rel())

    @xtol_rel.setter
    def xtol_rel(self, value: float) -> None:
        self._handle.set_xtol_rel(_to_float(value, "xtol_rel"))

    @property
    def xtol_abs(self) -> NDArray[np.float64]:
        """Absolute tolerances on the variables, one per variable (0 disables)."""
        return immutable_array(self._handle.get_xtol_abs(), dtype=np.float64)

    @xtol_abs.setter
    def xtol_abs(self, value: ArrayLike) -> None:
        self._handle.set_xtol_abs(
            broadcast_1d_array(value, "xtol_abs", self._dimension)
        )

    @property
    def maxeval(self) -> int:
        """Maximum number of objective evaluations (0 or less disables)."""
        return int(self._handle.get_maxeval())

    @maxeval.setter
    def maxeval(self, value: int) -> None:
        if not isinstance(value, numbers.Integral) or isinstance(value, bool):
            msg = f"maxeval must be an integer, got {value!r}"
            raise InvalidArgument(msg)
        self._handle.set_maxeval(int(value))

    @property
    def maxtime(self) -> float:
        """Maximum run time in seconds (0 or less disables)."""
        return float(self._handle.get_maxtime())

    @maxtime.setter
    def maxtime(self, value: float) -> None:
        self._handle.set_maxtime(_to_float(value, "maxtime"))

    def force_stop(self) -> None:
        """Halt a running optimization after the current evaluation.

        This may be called from within an objective or constraint function.
        Unlike raising an exception, the optimization then returns normally
        with the result [`FORCED_STOP`][nlopt_bridge.enums.Result.FORCED_STOP].
        """
        self._handle.force_stop()

    @property
    def force_stop_value(self) -> int:
        """The forced-stop flag of the native handle (0 when not set)."""
        return int(self._handle.get_force_stop())

    @force_stop_value.setter
    def force_stop_value(self, value: int) -> None:
        if not isinstance(value, numbers.Integral) or isinstance(value, bool):
            msg = f"force_stop_value must be an integer, got {value!r}"
            raise InvalidArgument(msg)
        self._handle.set_force_stop(int(value))

    # Algorithm parameters

    @property
    def initial_step(self) -> NDArray[np.float64] | None:
        """Initial step sizes of derivative-free algorithms, or `None`.

        `None` lets the algorithm choose the steps from the starting point and
        the bounds.
        """
        if self._initial_step is None:
            return None
        return immutable_array(self._initial_step)

    @initial_step.setter
    def initial_step(self, value: ArrayLike) -> None:
        step = broadcast_1d_array(value, "initial_step", self._dimension)
        self._handle.set_initial_step(step)
        self._initial_step = step

    @property
    def population(self) -> int:
        """Population size of stochastic algorithms (0 for the default)."""
        return int(self._handle.get_population())

    @population.setter
    def population(self, value: int) -> None:
        self._handle.set_population(check_non_negative_int(value, "population"))

    @property
    def vector_storage(self) -> int:
        """Number of gradients stored by limited-memory algorithms (0 for default)."""
        return int(self._handle.get_vector_storage())

    @vector_storage.setter
    def vector_storage(self, value: int) -> None:
        self._handle.set_vector_storage(
            check_non_negative_int(value, "vector_storage")
        )

    @property
    def local_optimizer(self) -> Opt | None:
        """The optimizer used as a subroutine by meta-algorithms, or `None`.

        Only the algorithm and stopping criteria of the local optimizer are
        used. Assigning an optimizer stores a copy of it: later changes to the
        assigned object do not affect this optimizer.
        """
        return self._local_optimizer

    @local_optimizer.setter
    def local_optimizer(self, value: Opt) -> None:
        if not isinstance(value, Opt):
            msg = f"local_optimizer must be an Opt object, got {value!r}"
            raise InvalidArgument(msg)
        if value is self:
            msg = "an optimizer cannot be its own local optimizer"
            raise InvalidArgument(msg)
        if value.dimension != self._dimension:
            msg = (
                f"local optimizer has dimension {value.dimension}, "
                f"expected {self._dimension}"
            )
            raise DimensionMismatch(msg)
        local_optimizer = value.copy()
        self._handle.set_local_optimizer(local_optimizer._handle)  # noqa: SLF001
        self._local_optimizer = local_optimizer

    # Optimization

    def _check_point(self, x: ArrayLike) -> NDArray[np.float64]:
        try:
            point = np.array(x, dtype=np.float64)
        except (TypeError, ValueError) as err:
            msg = "the starting point must be a vector of real numbers"
            raise InvalidArgument(msg) from err
        if point.ndim != 1 or point.size != self._dimension:
            msg = (
                f"the starting point must have length {self._dimension}, "
                f"got shape {point.shape}"
            )
            raise DimensionMismatch(msg)
        return point

    def optimize(self, x0: ArrayLike) -> OptimizeResult:
        """Run the optimization from a starting point.

        If an objective or constraint function raises an exception, the
        optimization is stopped and that exception is re-raised here unchanged.

        Args:
            x0: The starting point.

        Returns:
            The optimal value, point, and termination code.

        Raises:
            DimensionMismatch: If `x0` does not have `dimension` entries.
            SolverFailure:     If the native library reports a failure.
        """
        return run_optimization(self._handle, self._context, self._check_point(x0))

    def optimize_inplace(self, x: NDArray[np.float64]) -> OptimizeResult:
        """Run the optimization, overwriting the starting point with the result.

        Args:
            x: The starting point, a writable float64 array.

        Returns:
            The optimal value, point, and termination code.
        """
        if (
            not isinstance(x, np.ndarray)
            or x.dtype != np.float64
            or not x.flags.writeable
        ):
            msg = "optimize_inplace requires a writable float64 numpy array"
            raise InvalidArgument(msg)
        result = self.optimize(x)
        x[:] = result.x
        return result

    # Copying

    def copy(self) -> Self:
        """Return an independent copy of the optimizer.

        The copy has its own native handle, its own evaluation counter, and a
        copy of the local optimizer. Objective and constraint functions are
        shared, but their failures are reported to the optimizer that called
        them.

        Returns:
            The copy.
        """
        other = self.__class__(self._algorithm, self._dimension)
        other.lower_bounds = self.lower_bounds
        other.upper_bounds = self.upper_bounds
        if self._objective is not None:
            other._set_objective(self._objective, self._sense)  # noqa: SLF001
        self._constraints.copy_to(other._constraints)  # noqa: SLF001
        other.stopval = self.stopval
        other.ftol_rel = self.ftol_rel
        other.ftol_abs = self.ftol_abs
        other.xtol_rel = self.xtol_rel
        other.xtol_abs = self.xtol_abs
        other.maxeval = self.maxeval
        other.maxtime = self.maxtime
        other.population = self.population
        other.vector_storage = self.vector_storage
        if self._initial_step is not None:
            other.initial_step = self._initial_step
        if self._local_optimizer is not None:
            other.local_optimizer = self._local_optimizer
        other._context.numevals = self._context.numevals  # noqa: SLF001
        return other

    def __copy__(self) -> Self:
        """Return an independent copy, see `copy`."""
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> Self:
        """Return an independent copy, see `copy`."""
        return self.copy()
