"""Scalar sets that constrain the value of a function."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, TypeAlias

from nlopt_bridge.exceptions import InvalidArgument


def _check_rhs(value: Any, name: str) -> float:  # noqa: ANN401
    try:
        rhs = float(value)
    except (TypeError, ValueError) as err:
        msg = f"{name} must be a real number, got {value!r}"
        raise InvalidArgument(msg) from err
    if math.isnan(rhs):
        msg = f"{name} must not be NaN"
        raise InvalidArgument(msg)
    return rhs


@dataclass(frozen=True, slots=True)
class LessThan:
    """The set `(-inf, upper]`."""

    upper: float

    def __post_init__(self) -> None:
        """Check the bound."""
        object.__setattr__(self, "upper", _check_rhs(self.upper, "upper"))


@dataclass(frozen=True, slots=True)
class GreaterThan:
    """The set `[lower, inf)`."""

    lower: float

    def __post_init__(self) -> None:
        """Check the bound."""
        object.__setattr__(self, "lower", _check_rhs(self.lower, "lower"))


@dataclass(frozen=True, slots=True)
class EqualTo:
    """The set `{value}`."""

    value: float

    def __post_init__(self) -> None:
        """Check the value."""
        object.__setattr__(self, "value", _check_rhs(self.value, "value"))


@dataclass(frozen=True, slots=True)
class Interval:
    """The set `[lower, upper]`.

    The bounds are not checked against each other; an empty interval is
    reported by the solver.
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        """Check the bounds."""
        object.__setattr__(self, "lower", _check_rhs(self.lower, "lower"))
        object.__setattr__(self, "upper", _check_rhs(self.upper, "upper"))


ScalarSet: TypeAlias = LessThan | GreaterThan | EqualTo | Interval
"""Any of the supported sets."""

SCALAR_SETS = (LessThan, GreaterThan, EqualTo, Interval)


def set_bounds(scalar_set: ScalarSet) -> tuple[float, float]:
    """Return the lower and upper limit of a set.

    Args:
        scalar_set: The set.

    Returns:
        The limits, infinite where the set is unbounded.
    """
    match scalar_set:
        case LessThan(upper=upper):
            return -math.inf, upper
        case GreaterThan(lower=lower):
            return lower, math.inf
        case EqualTo(value=value):
            return value, value
        case Interval(lower=lower, upper=upper):
            return lower, upper
    msg = f"unsupported set type: {type(scalar_set).__name__}"
    raise InvalidArgument(msg)
