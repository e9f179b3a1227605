"""Registry of the non-linear constraints of an optimizer."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from nlopt_bridge.config.utils import immutable_array
from nlopt_bridge.enums import ConstraintKind
from nlopt_bridge.exceptions import InvalidArgument

from ._evaluator import ScalarConstraintAdapter, VectorConstraintAdapter

if TYPE_CHECKING:
    import nlopt
    from numpy.typing import ArrayLike, NDArray

    from ._evaluator import EvaluationContext, UserFunction

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConstraintEntry:
    """A registered constraint.

    Inequality constraints are satisfied when every component of the
    evaluator output is less than or equal to zero, equality constraints when
    every component is zero. `tolerances[i]` is the feasibility slack
    tolerated on component `i`.

    Attributes:
        kind:             Inequality or equality.
        evaluator:        The user function.
        output_dimension: Number of components of the constraint.
        tolerances:       Per-component tolerances.
        vector:           Whether the evaluator uses the vector convention.
    """

    kind: ConstraintKind
    evaluator: UserFunction
    output_dimension: int
    tolerances: NDArray[np.float64]
    vector: bool


def _check_tolerance(tol: Any) -> float:  # noqa: ANN401
    try:
        value = float(tol)
    except (TypeError, ValueError) as err:
        msg = f"constraint tolerance must be a real number, got {tol!r}"
        raise InvalidArgument(msg) from err
    if not math.isfinite(value) or value < 0:
        msg = f"constraint tolerance must be finite and non-negative, got {value}"
        raise InvalidArgument(msg)
    return value


def _check_tolerances(tol: ArrayLike) -> NDArray[np.float64]:
    try:
        tolerances = np.array(tol, dtype=np.float64)
    except (TypeError, ValueError) as err:
        msg = "constraint tolerances must be a vector of real numbers"
        raise InvalidArgument(msg) from err
    if tolerances.ndim != 1:
        msg = f"constraint tolerances must be a vector, got shape {tolerances.shape}"
        raise InvalidArgument(msg)
    if tolerances.size == 0:
        msg = "constraint tolerances must have at least one entry"
        raise InvalidArgument(msg)
    if not np.all(np.isfinite(tolerances)) or np.any(tolerances < 0):
        msg = "constraint tolerances must be finite and non-negative"
        raise InvalidArgument(msg)
    return tolerances


def _unsupported(handle: nlopt.opt, kind: ConstraintKind) -> str:
    return (
        f"{kind.name.lower()} constraints are not supported by "
        f"{handle.get_algorithm_name()}"
    )


class ConstraintRegistry:
    """Accumulates the constraints registered with a native handle.

    Adding a constraint never replaces earlier ones. The entries are kept in
    registration order so that a copy of the optimizer can re-register them
    with fresh adapters.
    """

    def __init__(self, handle: nlopt.opt, context: EvaluationContext) -> None:
        self._handle = handle
        self._context = context
        self._entries: list[ConstraintEntry] = []

    @property
    def entries(self) -> tuple[ConstraintEntry, ...]:
        """The registered constraints, in registration order."""
        return tuple(self._entries)

    def add(
        self, kind: ConstraintKind, evaluator: UserFunction, tol: float = 0.0
    ) -> None:
        """Register a scalar constraint.

        Args:
            kind:      Inequality or equality.
            evaluator: The function `c(x, grad) -> float`.
            tol:       The feasibility tolerance.
        """
        if not callable(evaluator):
            msg = "constraint evaluator must be callable"
            raise InvalidArgument(msg)
        tolerance = _check_tolerance(tol)
        adapter = ScalarConstraintAdapter(evaluator, self._context)
        try:
            if kind == ConstraintKind.INEQUALITY:
                self._handle.add_inequality_constraint(adapter, tolerance)
            else:
                self._handle.add_equality_constraint(adapter, tolerance)
        except Exception as err:
            raise InvalidArgument(_unsupported(self._handle, kind)) from err
        self._entries.append(
            ConstraintEntry(
                kind=kind,
                evaluator=evaluator,
                output_dimension=1,
                tolerances=immutable_array([tolerance], dtype=np.float64),
                vector=False,
            )
        )

    def add_vector(
        self, kind: ConstraintKind, evaluator: UserFunction, tol: ArrayLike
    ) -> None:
        """Register a vector-valued constraint.

        The length of `tol` determines the number of constraint components.

        Args:
            kind:      Inequality or equality.
            evaluator: The function `c(result, x, grad) -> None`.
            tol:       The per-component tolerances.
        """
        if not callable(evaluator):
            msg = "constraint evaluator must be callable"
            raise InvalidArgument(msg)
        tolerances = _check_tolerances(tol)
        adapter = VectorConstraintAdapter(evaluator, self._context)
        try:
            if kind == ConstraintKind.INEQUALITY:
                self._handle.add_inequality_mconstraint(adapter, tolerances)
            else:
                self._handle.add_equality_mconstraint(adapter, tolerances)
        except Exception as err:
            raise InvalidArgument(_unsupported(self._handle, kind)) from err
        self._entries.append(
            ConstraintEntry(
                kind=kind,
                evaluator=evaluator,
                output_dimension=tolerances.size,
                tolerances=immutable_array(tolerances),
                vector=True,
            )
        )

    def remove(self, kind: ConstraintKind) -> None:
        """Remove all constraints of one kind.

        Args:
            kind: The kind of constraints to remove.
        """
        if kind == ConstraintKind.INEQUALITY:
            self._handle.remove_inequality_constraints()
        else:
            self._handle.remove_equality_constraints()
        self._entries = [entry for entry in self._entries if entry.kind != kind]

    def clear(self) -> None:
        """Remove all constraints."""
        self._handle.remove_inequality_constraints()
        self._handle.remove_equality_constraints()
        self._entries = []
        _logger.debug("Removed all constraints")

    def copy_to(self, registry: ConstraintRegistry) -> None:
        """Register all entries with another registry, in order.

        Args:
            registry: The registry to copy the entries to.
        """
        for entry in self._entries:
            if entry.vector:
                registry.add_vector(entry.kind, entry.evaluator, entry.tolerances)
            else:
                registry.add(entry.kind, entry.evaluator, entry.tolerances[0])
