"""Annotated types for Pydantic models providing input conversion and validation.

These types leverage Pydantic's `BeforeValidator` to convert input values
during model initialization:

- [`Array1D`][nlopt_bridge.config.validated_types.Array1D]: Converts input to
  an immutable 1D `np.float64` array.
- [`AlgorithmTag`][nlopt_bridge.config.validated_types.AlgorithmTag]: Converts
  an algorithm name or integer to an [`Algorithm`][nlopt_bridge.enums.Algorithm].
"""

from typing import Annotated

import numpy as np
from numpy.typing import NDArray
from pydantic import BeforeValidator

from nlopt_bridge.enums import Algorithm

from .utils import _convert_1d_array, _convert_algorithm

Array1D = Annotated[NDArray[np.float64], BeforeValidator(_convert_1d_array)]
"""Convert to an immutable 1D numpy array of floating point values."""

AlgorithmTag = Annotated[Algorithm, BeforeValidator(_convert_algorithm)]
"""Convert an algorithm name or number to an `Algorithm` member."""
