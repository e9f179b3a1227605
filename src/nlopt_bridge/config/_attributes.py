"""Configuration class for the solver attributes of the modeling bridge."""

from __future__ import annotations

from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeFloat,
    NonNegativeInt,
    ValidationError,
)

from nlopt_bridge.exceptions import InvalidArgument
from nlopt_bridge.opt import Opt  # noqa: TC001

from .validated_types import AlgorithmTag, Array1D  # noqa: TC001


class SolverAttributes(BaseModel):
    """Configuration class for the attributes of an `Optimizer`.

    The attributes are the solver settings that the
    [`Optimizer`][nlopt_bridge.model.Optimizer] applies to the
    [`Opt`][nlopt_bridge.opt.Opt] object it builds for each solve:

    - **`algorithm`**: The algorithm to use, as an
      [`Algorithm`][nlopt_bridge.enums.Algorithm], its value, or its name.
      There is no default; a solve without an algorithm fails.
    - **Stopping criteria**: `stopval`, `ftol_rel`, `ftol_abs`, `xtol_rel`,
      `xtol_abs`, `maxeval`, and `maxtime`, forwarded unchanged. The relative
      tolerances default to `1e-7`, all others are disabled.
    - **`constrtol_abs`**: The absolute feasibility tolerance of every
      constraint of the model (default `1e-7`).
    - **`initial_step`**: Initial step sizes; a single value applies to all
      variables. `None` lets the algorithm decide.
    - **`population`**, **`vector_storage`**: Algorithm parameters, 0 lets the
      algorithm decide.
    - **`seed`**: If not `None`, the native random number generator is seeded
      with this value before each solve.
    - **`local_optimizer`**: The subsidiary optimizer of a meta-algorithm,
      either as an algorithm tag or as a configured `Opt` object. An `Opt` is
      copied when the solver is built, and its dimension must match the number
      of variables of the model.

    Unknown attribute names are rejected.

    Attributes:
        algorithm:       The algorithm (optional).
        stopval:         Objective value to stop at (optional).
        ftol_rel:        Relative objective tolerance (default: `1e-7`).
        ftol_abs:        Absolute objective tolerance (default: disabled).
        xtol_rel:        Relative variable tolerance (default: `1e-7`).
        xtol_abs:        Absolute variable tolerances (optional).
        constrtol_abs:   Constraint tolerance (default: `1e-7`).
        maxeval:         Maximum number of evaluations (default: disabled).
        maxtime:         Maximum run time in seconds (default: disabled).
        initial_step:    Initial step sizes (optional).
        population:      Population size (default: 0).
        seed:            Random seed (optional).
        vector_storage:  Number of stored gradients (default: 0).
        local_optimizer: Subsidiary optimizer (optional).
    """

    algorithm: AlgorithmTag | None = None
    stopval: float | None = None
    ftol_rel: NonNegativeFloat = 1e-7
    ftol_abs: NonNegativeFloat = 0.0
    xtol_rel: NonNegativeFloat = 1e-7
    xtol_abs: Array1D | None = None
    constrtol_abs: NonNegativeFloat = 1e-7
    maxeval: int = 0
    maxtime: float = 0.0
    initial_step: Array1D | None = None
    population: NonNegativeInt = 0
    seed: NonNegativeInt | None = None
    vector_storage: NonNegativeInt = 0
    local_optimizer: AlgorithmTag | Opt | None = None

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra="forbid",
        frozen=True,
    )

    @classmethod
    def check_name(cls, name: str) -> str:
        """Check that a name refers to a supported attribute.

        Args:
            name: The attribute name.

        Returns:
            The name.

        Raises:
            InvalidArgument: If the attribute is not supported.
        """
        if name not in cls.model_fields:
            msg = f"unsupported solver attribute: {name!r}"
            raise InvalidArgument(msg)
        return name

    def with_attribute(self, name: str, value: Any) -> Self:  # noqa: ANN401
        """Return a copy with a single attribute changed and validated.

        Args:
            name:  The attribute name.
            value: The new value; `None` restores an optional attribute.

        Returns:
            The new attributes.

        Raises:
            InvalidArgument: If the name is unknown or the value is invalid.
        """
        self.check_name(name)
        try:
            return self.model_validate({**dict(self), name: value})
        except ValidationError as err:
            msg = f"invalid value for solver attribute {name!r}: {value!r}"
            raise InvalidArgument(msg) from err
