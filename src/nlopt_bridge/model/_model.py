"""A declarative container for optimization problems."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np

from nlopt_bridge.config.utils import immutable_array
from nlopt_bridge.enums import ObjectiveSense
from nlopt_bridge.exceptions import (
    InvalidArgument,
    LowerBoundAlreadySet,
    UpperBoundAlreadySet,
)

from ._functions import VariableIndex, check_function
from ._sets import SCALAR_SETS, GreaterThan, LessThan, set_bounds

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from ._functions import ScalarFunction
    from ._sets import ScalarSet


@dataclass(frozen=True, slots=True, order=True)
class ConstraintIndex:
    """Refers to a constraint of a model.

    Attributes:
        index: The zero-based position of the constraint, in order of addition.
    """

    index: int


class ModelConstraint(NamedTuple):
    """A constraint `function(x) in set` of a model.

    Attributes:
        index:    The index of the constraint.
        function: The constrained function.
        set:      The set the function value must lie in.
    """

    index: ConstraintIndex
    function: ScalarFunction
    set: ScalarSet


class Model:
    """Describes an optimization problem without solving it.

    A model holds variables with optional bounds and start values, an
    objective with its sense, and scalar constraints of the form
    `function(x) in set`. A constraint on a single
    [`VariableIndex`][nlopt_bridge.model.VariableIndex] sets a bound of that
    variable instead of adding a general constraint; each bound can only be
    set once.

    A new model is empty, and its sense is
    [`FEASIBILITY`][nlopt_bridge.enums.ObjectiveSense.FEASIBILITY].
    """

    def __init__(self) -> None:
        """Initialize an empty model."""
        self.empty()

    def empty(self) -> None:
        """Remove all variables, constraints, and the objective."""
        self._lower: list[float] = []
        self._upper: list[float] = []
        self._has_lower: list[bool] = []
        self._has_upper: list[bool] = []
        self._start: list[float | None] = []
        self._constraints: list[ModelConstraint] = []
        self._objective: ScalarFunction | None = None
        self._sense = ObjectiveSense.FEASIBILITY

    def is_empty(self) -> bool:
        """Whether the model has no variables, constraints, or objective."""
        return (
            not self._lower
            and not self._constraints
            and self._objective is None
            and self._sense == ObjectiveSense.FEASIBILITY
        )

    # Variables

    @property
    def num_variables(self) -> int:
        """The number of variables."""
        return len(self._lower)

    @property
    def variables(self) -> tuple[VariableIndex, ...]:
        """The indices of all variables."""
        return tuple(VariableIndex(index) for index in range(len(self._lower)))

    def add_variable(self) -> VariableIndex:
        """Add an unbounded variable.

        Returns:
            The index of the new variable.
        """
        self._lower.append(-math.inf)
        self._upper.append(math.inf)
        self._has_lower.append(False)
        self._has_upper.append(False)
        self._start.append(None)
        return VariableIndex(len(self._lower) - 1)

    def add_variables(self, count: int) -> list[VariableIndex]:
        """Add a number of unbounded variables.

        Args:
            count: The number of variables to add.

        Returns:
            The indices of the new variables.
        """
        if (
            not isinstance(count, numbers.Integral)
            or isinstance(count, bool)
            or count < 0
        ):
            msg = f"count must be a non-negative integer, got {count!r}"
            raise InvalidArgument(msg)
        return [self.add_variable() for _ in range(count)]

    def _check_variable(self, variable: Any) -> VariableIndex:  # noqa: ANN401
        if not isinstance(variable, VariableIndex) or not (
            0 <= variable.index < len(self._lower)
        ):
            msg = f"invalid variable: {variable!r}"
            raise InvalidArgument(msg)
        return variable

    @property
    def lower_bounds(self) -> NDArray[np.float64]:
        """The lower bounds of the variables."""
        return immutable_array(self._lower, dtype=np.float64)

    @property
    def upper_bounds(self) -> NDArray[np.float64]:
        """The upper bounds of the variables."""
        return immutable_array(self._upper, dtype=np.float64)

    def set_start(self, variable: VariableIndex, value: float | None) -> None:
        """Set or clear the start value of a variable.

        Args:
            variable: The variable.
            value:    The start value, or `None` to use the default.
        """
        self._check_variable(variable)
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                msg = f"start value must be a real number, got {value!r}"
                raise InvalidArgument(msg)
            value = float(value)
        self._start[variable.index] = value

    def get_start(self, variable: VariableIndex) -> float | None:
        """Return the start value of a variable, or `None` if not set."""
        return self._start[self._check_variable(variable).index]

    @property
    def start(self) -> tuple[float | None, ...]:
        """The start values of the variables, `None` where not set."""
        return tuple(self._start)

    # Constraints

    def add_constraint(
        self, function: ScalarFunction, scalar_set: ScalarSet
    ) -> ConstraintIndex:
        """Add the constraint `function(x) in scalar_set`.

        If the function is a `VariableIndex`, the set is applied to the bounds
        of the variable: `LessThan` sets the upper bound, `GreaterThan` the
        lower bound, and `EqualTo` and `Interval` set both.

        Args:
            function:   The constrained function.
            scalar_set: The set.

        Returns:
            The index of the constraint.

        Raises:
            InvalidArgument:      If the function or set is not supported.
            LowerBoundAlreadySet: If the lower bound of the variable was set.
            UpperBoundAlreadySet: If the upper bound of the variable was set.
        """
        check_function(function, len(self._lower))
        if not isinstance(scalar_set, SCALAR_SETS):
            msg = f"unsupported set type: {type(scalar_set).__name__}"
            raise InvalidArgument(msg)
        if isinstance(function, VariableIndex):
            self._set_bounds(function, scalar_set)
        index = ConstraintIndex(len(self._constraints))
        self._constraints.append(ModelConstraint(index, function, scalar_set))
        return index

    def _set_bounds(self, variable: VariableIndex, scalar_set: ScalarSet) -> None:
        lower, upper = set_bounds(scalar_set)
        sets_lower = not isinstance(scalar_set, LessThan)
        sets_upper = not isinstance(scalar_set, GreaterThan)
        if sets_lower and self._has_lower[variable.index]:
            msg = f"the lower bound of variable {variable.index} is already set"
            raise LowerBoundAlreadySet(msg)
        if sets_upper and self._has_upper[variable.index]:
            msg = f"the upper bound of variable {variable.index} is already set"
            raise UpperBoundAlreadySet(msg)
        if sets_lower:
            self._lower[variable.index] = lower
            self._has_lower[variable.index] = True
        if sets_upper:
            self._upper[variable.index] = upper
            self._has_upper[variable.index] = True

    @property
    def constraints(self) -> tuple[ModelConstraint, ...]:
        """All constraints, including variable bounds, in order of addition."""
        return tuple(self._constraints)

    def get_constraint(self, index: ConstraintIndex) -> ModelConstraint:
        """Return a constraint by its index.

        Raises:
            InvalidArgument: If the index does not refer to a constraint.
        """
        if not isinstance(index, ConstraintIndex) or not (
            0 <= index.index < len(self._constraints)
        ):
            msg = f"invalid constraint: {index!r}"
            raise InvalidArgument(msg)
        return self._constraints[index.index]

    # Objective

    @property
    def objective(self) -> ScalarFunction | None:
        """The objective function, or `None`."""
        return self._objective

    @property
    def sense(self) -> ObjectiveSense:
        """The optimization sense."""
        return self._sense

    def set_objective(
        self,
        function: ScalarFunction | None,
        sense: ObjectiveSense = ObjectiveSense.MINIMIZE,
    ) -> None:
        """Set the objective function and sense.

        Args:
            function: The objective, or `None` for a feasibility problem.
            sense:    The optimization sense.
        """
        if function is not None:
            check_function(function, len(self._lower))
        self._objective = function
        self._sense = ObjectiveSense(sense)

    # Copying

    def copy_to(self, other: Model) -> dict[Any, Any]:
        """Add the contents of this model to another model.

        Args:
            other: The destination model.

        Returns:
            A map from the variable and constraint indices of this model to the
            corresponding indices in the destination.
        """
        variable_map: dict[VariableIndex, VariableIndex] = {}
        for variable in self.variables:
            new_variable = other.add_variable()
            variable_map[variable] = new_variable
            other.set_start(new_variable, self._start[variable.index])
        constraint_map: dict[ConstraintIndex, ConstraintIndex] = {
            constraint.index: other.add_constraint(
                constraint.function.map_variables(variable_map), constraint.set
            )
            for constraint in self._constraints
        }
        objective = self._objective
        other.set_objective(
            None if objective is None else objective.map_variables(variable_map),
            self._sense,
        )
        return {**variable_map, **constraint_map}
