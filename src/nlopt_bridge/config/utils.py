"""Utilities for checking and converting configuration values.

This module provides helper functions used by the optimizer wrapper and by
the Pydantic models of the configuration package. They convert inputs into
standardized NumPy arrays, broadcast scalars to the problem dimension, and
resolve algorithm tags.
"""

from __future__ import annotations

import numbers
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from nlopt_bridge.enums import Algorithm
from nlopt_bridge.exceptions import DimensionMismatch, InvalidArgument


def immutable_array(
    array_like: ArrayLike,
    **kwargs: Any,  # noqa: ANN401
) -> NDArray[Any]:
    """Convert input to an immutable NumPy array.

    Args:
        array_like: The input data to convert (e.g., list, tuple, NumPy array).
        kwargs:     Additional keyword arguments passed directly to `numpy.array`.

    Returns:
        A new NumPy array, with its `writeable` flag set to `False`.
    """
    array = np.array(array_like, **kwargs)
    array.setflags(write=False)
    return array


def broadcast_1d_array(value: ArrayLike, name: str, size: int) -> NDArray[np.float64]:
    """Broadcast a scalar or vector to a 1D float array of a specific size.

    A scalar is repeated `size` times. A vector must already have `size`
    entries; it is not broadcast from a length-one vector, since a bound or
    tolerance vector of the wrong length is almost always a mistake.

    Args:
        value: The scalar or array-like input.
        name:  A descriptive name for the value (used in error messages).
        size:  The target number of elements.

    Returns:
        A new, writable 1D NumPy array of `size` float values.

    Raises:
        InvalidArgument:   If the value cannot be converted to floats.
        DimensionMismatch: If a vector of the wrong length is passed.
    """
    try:
        array = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as err:
        msg = f"{name} must be a real number or a vector of real numbers"
        raise InvalidArgument(msg) from err
    if array.ndim == 0:
        return np.full(size, float(array), dtype=np.float64)
    if array.ndim != 1 or array.size != size:
        msg = f"{name} must have length {size}, got shape {array.shape}"
        raise DimensionMismatch(msg)
    return array.copy()


def convert_algorithm(value: Algorithm | int | str) -> Algorithm:
    """Resolve an algorithm tag.

    The tag may be an [`Algorithm`][nlopt_bridge.enums.Algorithm] member, its
    integer value, or its name. Names are case-insensitive and may carry the
    `NLOPT_` prefix used by the C library.

    Args:
        value: The algorithm tag.

    Returns:
        The corresponding algorithm.

    Raises:
        InvalidArgument: If the tag is not recognized.
    """
    if isinstance(value, Algorithm):
        return value
    if isinstance(value, str):
        name = value.strip().upper().removeprefix("NLOPT_")
        if name in Algorithm.__members__:
            return Algorithm[name]
    elif isinstance(value, numbers.Integral) and not isinstance(value, bool):
        try:
            return Algorithm(int(value))
        except ValueError:
            pass
    msg = f"unrecognized algorithm: {value!r}"
    raise InvalidArgument(msg)


def check_non_negative_int(value: Any, name: str) -> int:  # noqa: ANN401
    """Check that a value is a non-negative integer.

    Args:
        value: The value to check.
        name:  A descriptive name for the value (used in error messages).

    Returns:
        The value as a Python integer.

    Raises:
        InvalidArgument: If the value is not a non-negative integer.
    """
    if (
        not isinstance(value, numbers.Integral)
        or isinstance(value, bool)
        or value < 0
    ):
        msg = f"{name} must be a non-negative integer, got {value!r}"
        raise InvalidArgument(msg)
    return int(value)


def _convert_1d_array(array: ArrayLike | None) -> NDArray[np.float64] | None:
    if array is None:
        return array
    return immutable_array(array, dtype=np.float64, ndmin=1)


def _convert_algorithm(value: Any) -> Any:  # noqa: ANN401
    if value is None:
        return value
    return convert_algorithm(value)
