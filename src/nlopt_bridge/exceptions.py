"""Exceptions raised within the `nlopt_bridge` library."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .enums import Result


class InvalidArgument(ValueError):
    """Raised when an argument is invalid.

    Examples are a non-positive dimension, an unrecognized algorithm tag, or a
    malformed tolerance vector. These errors are raised at the call site,
    before the native library is involved.
    """


class DimensionMismatch(InvalidArgument):
    """Raised when the length of a vector does not match the problem dimension.

    This applies to starting points, bound vectors, per-variable tolerances,
    initial steps, and to local optimizers of a different dimension.
    """


class LowerBoundAlreadySet(InvalidArgument):
    """Raised when a lower bound is set twice on the same model variable."""


class UpperBoundAlreadySet(InvalidArgument):
    """Raised when an upper bound is set twice on the same model variable."""


class EvaluatorFailure(Exception):
    """Raised when an evaluator produced a value that cannot be used.

    Exceptions raised by the user functions themselves are re-raised
    unchanged; this exception only reports malformed return values, such as a
    non-scalar objective value.
    """


class ForcedStop(Exception):  # noqa: N818
    """Raise inside an evaluator to halt the optimization.

    The exception is captured at the native call boundary and re-raised by
    `optimize` once the native solver has returned.
    """


class SolverFailure(RuntimeError):
    """Raised when the native solver terminates with a failure code.

    It must be initialized with a [`Result`][nlopt_bridge.enums.Result] from
    the failure family, which can be accessed via the `result` attribute.
    """

    def __init__(
        self, result: Result, message: str | None = None, value: float | None = None
    ) -> None:
        """Initialize the SolverFailure exception.

        Args:
            result:  The native termination code.
            message: Optional error message reported by the native library.
            value:   The last optimum value reported by the native library.
        """
        self.result = result
        self.message = message
        self.value = value
        text = f"NLopt failed with result {result.name}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class ResultUnavailable(RuntimeError):
    """Raised when a model result is requested but no solution is available."""
