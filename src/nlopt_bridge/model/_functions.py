"""Scalar functions of the model variables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Self, TypeAlias

import numpy as np

from nlopt_bridge.exceptions import EvaluatorFailure, InvalidArgument

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True, slots=True, order=True)
class VariableIndex:
    """Refers to a variable of a model.

    Used as a function, a variable index evaluates to the value of the
    variable. A constraint on a variable index sets a bound of the variable.

    Attributes:
        index: The zero-based position of the variable.
    """

    index: int

    def value(self, x: NDArray[np.float64]) -> float:
        """Return the value of the variable.

        Args:
            x: The values of all variables.

        Returns:
            The value.
        """
        return float(x[self.index])

    def gradient(
        self,
        x: NDArray[np.float64],  # noqa: ARG002
        out: NDArray[np.float64],
    ) -> None:
        """Write the gradient into `out`.

        Args:
            x:   The values of all variables.
            out: The output buffer.
        """
        out[:] = 0.0
        out[self.index] = 1.0

    def variables(self) -> frozenset[VariableIndex]:
        """Return the variables the function refers to."""
        return frozenset({self})

    def map_variables(
        self, mapping: Mapping[VariableIndex, VariableIndex]
    ) -> VariableIndex:
        """Return the function with its variables replaced.

        Args:
            mapping: Maps the old variables to the new ones.

        Returns:
            The mapped function.
        """
        return mapping[self]


@dataclass(frozen=True, slots=True)
class ScalarAffineTerm:
    """The term `coefficient * variable` of an affine function."""

    coefficient: float
    variable: VariableIndex


@dataclass(frozen=True, slots=True)
class ScalarAffineFunction:
    """An affine function `sum(terms) + constant`.

    Terms that refer to the same variable are summed.

    Attributes:
        terms:    The linear terms.
        constant: The constant.
    """

    terms: tuple[ScalarAffineTerm, ...]
    constant: float = 0.0

    def __post_init__(self) -> None:
        """Store the terms as a tuple."""
        object.__setattr__(self, "terms", tuple(self.terms))

    def value(self, x: NDArray[np.float64]) -> float:
        """Return the value of the function at `x`."""
        return self.constant + sum(
            term.coefficient * float(x[term.variable.index]) for term in self.terms
        )

    def gradient(
        self,
        x: NDArray[np.float64],  # noqa: ARG002
        out: NDArray[np.float64],
    ) -> None:
        """Write the gradient at `x` into `out`."""
        out[:] = 0.0
        for term in self.terms:
            out[term.variable.index] += term.coefficient

    def variables(self) -> frozenset[VariableIndex]:
        """Return the variables the function refers to."""
        return frozenset(term.variable for term in self.terms)

    def map_variables(self, mapping: Mapping[VariableIndex, VariableIndex]) -> Self:
        """Return the function with its variables replaced."""
        return self.__class__(
            terms=tuple(
                ScalarAffineTerm(term.coefficient, mapping[term.variable])
                for term in self.terms
            ),
            constant=self.constant,
        )


@dataclass(frozen=True, slots=True)
class ScalarQuadraticTerm:
    """The term `coefficient * variable_1 * variable_2` of a quadratic function.

    A diagonal term, where both variables are the same, evaluates to
    `coefficient * x**2`.
    """

    coefficient: float
    variable_1: VariableIndex
    variable_2: VariableIndex


@dataclass(frozen=True, slots=True)
class ScalarQuadraticFunction:
    """A quadratic function `sum(quadratic_terms) + sum(affine_terms) + constant`.

    Attributes:
        quadratic_terms: The quadratic terms.
        affine_terms:    The linear terms.
        constant:        The constant.
    """

    quadratic_terms: tuple[ScalarQuadraticTerm, ...]
    affine_terms: tuple[ScalarAffineTerm, ...] = ()
    constant: float = 0.0

    def __post_init__(self) -> None:
        """Store the terms as tuples."""
        object.__setattr__(self, "quadratic_terms", tuple(self.quadratic_terms))
        object.__setattr__(self, "affine_terms", tuple(self.affine_terms))

    def value(self, x: NDArray[np.float64]) -> float:
        """Return the value of the function at `x`."""
        value = self.constant
        for term in self.affine_terms:
            value += term.coefficient * float(x[term.variable.index])
        for quadratic in self.quadratic_terms:
            value += (
                quadratic.coefficient
                * float(x[quadratic.variable_1.index])
                * float(x[quadratic.variable_2.index])
            )
        return value

    def gradient(self, x: NDArray[np.float64], out: NDArray[np.float64]) -> None:
        """Write the gradient at `x` into `out`."""
        out[:] = 0.0
        for term in self.affine_terms:
            out[term.variable.index] += term.coefficient
        for quadratic in self.quadratic_terms:
            i, j = quadratic.variable_1.index, quadratic.variable_2.index
            out[i] += quadratic.coefficient * x[j]
            out[j] += quadratic.coefficient * x[i]

    def variables(self) -> frozenset[VariableIndex]:
        """Return the variables the function refers to."""
        return frozenset(term.variable for term in self.affine_terms) | frozenset(
            variable
            for term in self.quadratic_terms
            for variable in (term.variable_1, term.variable_2)
        )

    def map_variables(self, mapping: Mapping[VariableIndex, VariableIndex]) -> Self:
        """Return the function with its variables replaced."""
        return self.__class__(
            quadratic_terms=tuple(
                ScalarQuadraticTerm(
                    term.coefficient,
                    mapping[term.variable_1],
                    mapping[term.variable_2],
                )
                for term in self.quadratic_terms
            ),
            affine_terms=tuple(
                ScalarAffineTerm(term.coefficient, mapping[term.variable])
                for term in self.affine_terms
            ),
            constant=self.constant,
        )


class NonlinearFunction:
    """A general function of the vector of all model variables.

    The function is called as `function(x)` and must return a scalar. The
    optional gradient is called as `gradient(x)` and must return a vector with
    one entry per variable. Algorithms that use derivatives require a
    gradient; if it is missing, the evaluation fails with an
    [`EvaluatorFailure`][nlopt_bridge.exceptions.EvaluatorFailure].

    Since a nonlinear function sees the whole vector of variables, it cannot
    be moved to another variable numbering.
    """

    __slots__ = ("_function", "_gradient")

    def __init__(
        self,
        function: Callable[[NDArray[np.float64]], float],
        gradient: Callable[[NDArray[np.float64]], ArrayLike] | None = None,
    ) -> None:
        """Initialize a nonlinear function.

        Args:
            function: Returns the value at a point.
            gradient: Returns the gradient at a point (optional).
        """
        if not callable(function) or (
            gradient is not None and not callable(gradient)
        ):
            msg = "function and gradient must be callable"
            raise InvalidArgument(msg)
        self._function = function
        self._gradient = gradient

    def __repr__(self) -> str:
        """Return a string representation of the function."""
        return f"NonlinearFunction({self._function!r}, {self._gradient!r})"

    @property
    def has_gradient(self) -> bool:
        """Whether a gradient was provided."""
        return self._gradient is not None

    def value(self, x: NDArray[np.float64]) -> float:
        """Return the value of the function at `x`."""
        return float(self._function(x))

    def gradient(self, x: NDArray[np.float64], out: NDArray[np.float64]) -> None:
        """Write the gradient at `x` into `out`.

        Raises:
            EvaluatorFailure: If no gradient was provided, or if it has the
                              wrong shape.
        """
        if self._gradient is None:
            msg = "a gradient is required by the algorithm but was not provided"
            raise EvaluatorFailure(msg)
        gradient = np.asarray(self._gradient(x), dtype=np.float64)
        if gradient.shape != out.shape:
            msg = f"gradient has shape {gradient.shape}, expected {out.shape}"
            raise EvaluatorFailure(msg)
        out[:] = gradient

    def variables(self) -> frozenset[VariableIndex]:
        """Return an empty set, the function refers to all variables."""
        return frozenset()

    def map_variables(self, mapping: Mapping[VariableIndex, VariableIndex]) -> Self:
        """Return the function if the mapping keeps all variables in place.

        Raises:
            InvalidArgument: If the mapping moves a variable.
        """
        if any(old != new for old, new in mapping.items()):
            msg = "a nonlinear function cannot be moved to other variables"
            raise InvalidArgument(msg)
        return self


ScalarFunction: TypeAlias = (
    VariableIndex | ScalarAffineFunction | ScalarQuadraticFunction | NonlinearFunction
)
"""Any of the supported scalar functions."""

SCALAR_FUNCTIONS = (
    VariableIndex,
    ScalarAffineFunction,
    ScalarQuadraticFunction,
    NonlinearFunction,
)


def check_function(function: Any, num_variables: int) -> ScalarFunction:  # noqa: ANN401
    """Check that a function is supported and refers to existing variables.

    Args:
        function:      The function to check.
        num_variables: The number of variables of the model.

    Returns:
        The function.

    Raises:
        InvalidArgument: If the function is not supported or refers to an
                         unknown variable.
    """
    if not isinstance(function, SCALAR_FUNCTIONS):
        msg = f"unsupported function type: {type(function).__name__}"
        raise InvalidArgument(msg)
    _check_variables(function.variables(), num_variables)
    return function


def _check_variables(variables: Iterable[VariableIndex], num_variables: int) -> None:
    for variable in variables:
        if not 0 <= variable.index < num_variables:
            msg = f"invalid variable index: {variable.index}"
            raise InvalidArgument(msg)
