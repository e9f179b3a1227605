"""Evaluator adapters for the native calling convention.

The native library calls back into Python with a point buffer and an
in-place gradient buffer. The adapters in this module sit between those
calls and the user functions: they count objective evaluations, hand the
user a read-only view of the point, and make sure that no exception escapes
into the native code. A raised exception is parked in a
[`FailureSlot`][nlopt_bridge.opt.FailureSlot], the native solver is told to
stop, and the driver re-raises the exception once the native call returns.
"""

from __future__ import annotations

import logging
import math
import weakref
from typing import TYPE_CHECKING, Any, Callable, Protocol

import numpy as np

from nlopt_bridge.exceptions import EvaluatorFailure

if TYPE_CHECKING:
    from numpy.typing import NDArray

_logger = logging.getLogger(__name__)


class ObjectiveFunction(Protocol):
    """Protocol for objective functions.

    The function receives the point to evaluate and a gradient buffer. If the
    buffer is not empty, the gradient must be written into it in place. The
    objective value is returned.
    """

    def __call__(
        self, x: NDArray[np.float64], grad: NDArray[np.float64], /
    ) -> float: ...


class VectorConstraintFunction(Protocol):
    """Protocol for vector-valued constraint functions.

    The function writes the `m` constraint values into `result`. If the
    gradient buffer is not empty it has shape `(m, n)`, and row `i` must
    receive the gradient of constraint `i`.
    """

    def __call__(
        self,
        result: NDArray[np.float64],
        x: NDArray[np.float64],
        grad: NDArray[np.float64],
        /,
    ) -> None: ...


class FailureSlot:
    """Holds at most one exception captured during an evaluation.

    A new failure replaces a failure that has not been consumed yet.
    """

    __slots__ = ("_failure",)

    def __init__(self) -> None:
        self._failure: BaseException | None = None

    @property
    def occupied(self) -> bool:
        """Whether a failure is waiting to be consumed."""
        return self._failure is not None

    def capture(self, failure: BaseException) -> None:
        """Store a failure, replacing any unconsumed one.

        Args:
            failure: The exception to store.
        """
        self._failure = failure

    def pop(self) -> BaseException | None:
        """Return the stored failure and clear the slot.

        Returns:
            The stored exception, or `None` if the slot was empty.
        """
        failure, self._failure = self._failure, None
        return failure


class EvaluationContext:
    """State shared by the adapters of a single optimizer.

    The context only keeps a weak reference to the `force_stop` method of its
    optimizer. The native handle owns the adapters, and the adapters own the
    context, so a strong reference would create a cycle through the extension
    module that the garbage collector cannot see.
    """

    def __init__(self, force_stop: Callable[[], None]) -> None:
        self._force_stop = weakref.WeakMethod(force_stop)  # type: ignore[arg-type]
        self.failure = FailureSlot()
        self.numevals = 0
        self.maximize = False
        self.best_value: float | None = None
        self.best_point: NDArray[np.float64] | None = None

    def reset(self) -> None:
        """Prepare for a new optimization run."""
        self.failure.pop()
        self.numevals = 0
        self.best_value = None
        self.best_point = None

    def force_stop(self) -> None:
        """Ask the native solver to stop after the current evaluation."""
        force_stop = self._force_stop()
        if force_stop is not None:
            force_stop()

    def fail(self, failure: BaseException) -> None:
        """Capture a failure and stop the native solver.

        Args:
            failure: The exception to re-raise after the native call.
        """
        _logger.debug("Evaluator failed, forcing stop: %r", failure)
        self.failure.capture(failure)
        self.force_stop()

    def record(self, value: float, x: NDArray[np.float64]) -> None:
        """Track the best objective value seen in the current run.

        Args:
            value: The objective value.
            x:     The point at which it was computed.
        """
        if math.isnan(value):
            return
        if (
            self.best_value is None
            or (self.maximize and value > self.best_value)
            or (not self.maximize and value < self.best_value)
        ):
            self.best_value = value
            self.best_point = np.array(x, dtype=np.float64)


def _read_only(x: NDArray[np.float64]) -> NDArray[np.float64]:
    view = np.asarray(x, dtype=np.float64).view()
    view.flags.writeable = False
    return view


def _to_scalar(value: Any, what: str) -> float:  # noqa: ANN401
    try:
        array = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as err:
        msg = f"{what} must return a real number, got {value!r}"
        raise EvaluatorFailure(msg) from err
    if array.ndim != 0:
        msg = f"{what} must return a scalar, got an array of shape {array.shape}"
        raise EvaluatorFailure(msg)
    return float(array)


class ObjectiveAdapter:
    """Wraps an objective function for the native calling convention.

    Each call counts as one evaluation, whether or not the user function
    succeeds.
    """

    def __init__(self, function: ObjectiveFunction, context: EvaluationContext) -> None:
        self.function = function
        self._context = context

    def __call__(self, x: NDArray[np.float64], grad: NDArray[np.float64]) -> float:
        self._context.numevals += 1
        try:
            value = _to_scalar(self.function(_read_only(x), grad), "the objective")
        except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
            self._context.fail(exc)
            return math.nan
        self._context.record(value, x)
        return value


class ScalarConstraintAdapter:
    """Wraps a scalar constraint function `c(x, grad) -> float`."""

    def __init__(
        self, function: ObjectiveFunction, context: EvaluationContext
    ) -> None:
        self.function = function
        self._context = context

    def __call__(self, x: NDArray[np.float64], grad: NDArray[np.float64]) -> float:
        try:
            return _to_scalar(self.function(_read_only(x), grad), "a constraint")
        except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
            self._context.fail(exc)
            return math.nan


class VectorConstraintAdapter:
    """Wraps a vector constraint function `c(result, x, grad) -> None`."""

    def __init__(
        self, function: VectorConstraintFunction, context: EvaluationContext
    ) -> None:
        self.function = function
        self._context = context

    def __call__(
        self,
        result: NDArray[np.float64],
        x: NDArray[np.float64],
        grad: NDArray[np.float64],
    ) -> None:
        try:
            self.function(result, _read_only(x), grad)
        except (Exception, KeyboardInterrupt) as exc:  # noqa: BLE001
            self._context.fail(exc)
            result[:] = math.nan


Adapter = ObjectiveAdapter | ScalarConstraintAdapter | VectorConstraintAdapter
"""Any of the evaluator adapters."""

UserFunction = Callable[..., Any]
"""A user-supplied objective or constraint function."""
