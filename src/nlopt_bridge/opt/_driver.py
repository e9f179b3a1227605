"""Invocation of the native solver."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

import numpy as np

from nlopt_bridge.enums import Result
from nlopt_bridge.exceptions import SolverFailure

if TYPE_CHECKING:
    import nlopt
    from numpy.typing import NDArray

    from ._evaluator import EvaluationContext

_logger = logging.getLogger(__name__)


class OptimizeResult(NamedTuple):
    """The outcome of an optimization run.

    The tuple unpacks as `value, x, result = opt.optimize(x0)`.

    Attributes:
        value:  The optimal objective value.
        x:      The optimal point.
        result: The termination code.
    """

    value: float
    x: NDArray[np.float64]
    result: Result


def _native_result(handle: nlopt.opt) -> Result:
    try:
        code = Result(handle.last_optimize_result())
    except ValueError:
        return Result.FAILURE
    # A raised native call never counts as a success.
    return Result.FAILURE if code.is_success else code


def run_optimization(
    handle: nlopt.opt, context: EvaluationContext, x0: NDArray[np.float64]
) -> OptimizeResult:
    """Run the native solver from a starting point.

    A failure captured by the evaluator adapters takes precedence over
    whatever the native call reports, and is re-raised unchanged. Native
    failure codes are raised as
    [`SolverFailure`][nlopt_bridge.exceptions.SolverFailure], except for a
    forced stop without a captured failure, which is returned together with
    the best point seen so far.

    Args:
        handle:  The native handle.
        context: The evaluation context of the handle's adapters.
        x0:      The starting point, already validated.

    Returns:
        The optimal value, point, and termination code.
    """
    context.reset()
    _logger.debug(
        "Starting %s with %d variables", handle.get_algorithm_name(), x0.size
    )

    x: NDArray[np.float64] | None = None
    code: Result | None = None
    try:
        x = np.asarray(handle.optimize(x0.copy()), dtype=np.float64)
    except Exception as exc:  # noqa: BLE001
        if not context.failure.occupied:
            _logger.debug("Native solver raised %r", exc)
        code = _native_result(handle)

    failure = context.failure.pop()
    if failure is not None:
        _logger.debug(
            "Re-raising evaluator failure after %d evaluations", context.numevals
        )
        raise failure

    if code is None:
        code = Result(handle.last_optimize_result())
        if code.is_success:
            assert x is not None
            value = float(handle.last_optimum_value())
            _logger.debug(
                "Finished with %s after %d evaluations, value %g",
                code.name,
                context.numevals,
                value,
            )
            return OptimizeResult(value=value, x=x, result=code)

    if code == Result.FORCED_STOP:
        _logger.debug("Forced stop after %d evaluations", context.numevals)
        if context.best_point is not None and context.best_value is not None:
            return OptimizeResult(
                value=context.best_value,
                x=context.best_point.copy(),
                result=Result.FORCED_STOP,
            )
        return OptimizeResult(
            value=float(handle.last_optimum_value()),
            x=x0.copy(),
            result=Result.FORCED_STOP,
        )

    raise SolverFailure(
        code,
        message=handle.get_errmsg() or None,
        value=float(handle.last_optimum_value()),
    )
