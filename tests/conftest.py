from functools import partial
from typing import Any, Callable, Sequence

import numpy as np
import pytest
from numpy.typing import NDArray

from nlopt_bridge.model import (
    EqualTo,
    GreaterThan,
    Interval,
    Model,
    NonlinearFunction,
    ScalarQuadraticFunction,
    ScalarQuadraticTerm,
)

_Objective = Callable[[NDArray[np.float64], NDArray[np.float64]], float]


def pytest_addoption(parser: Any) -> Any:
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="run slow tests"
    )


def pytest_collection_modifyitems(config: Any, items: Sequence[Any]) -> None:
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


def _sqrt_objective(x: NDArray[np.float64], grad: NDArray[np.float64]) -> float:
    if grad.size > 0:
        grad[0] = 0.0
        grad[1] = 0.5 / np.sqrt(x[1])
    return float(np.sqrt(x[1]))


def _cubic_constraint(
    x: NDArray[np.float64], grad: NDArray[np.float64], a: float, b: float
) -> float:
    if grad.size > 0:
        grad[0] = 3.0 * a * (a * x[0] + b) ** 2
        grad[1] = -1.0
    return float((a * x[0] + b) ** 3 - x[1])


def _distance_squared(
    x: NDArray[np.float64],
    grad: NDArray[np.float64],
    target: NDArray[np.float64],
) -> float:
    if grad.size > 0:
        grad[:] = 2.0 * (x - target)
    return float(((x - target) ** 2).sum())


@pytest.fixture(name="sqrt_objective", scope="session")
def fixture_sqrt_objective() -> _Objective:
    return _sqrt_objective


@pytest.fixture(name="cubic_constraints", scope="session")
def fixture_cubic_constraints() -> tuple[_Objective, _Objective]:
    return (
        partial(_cubic_constraint, a=2.0, b=0.0),
        partial(_cubic_constraint, a=-1.0, b=1.0),
    )


@pytest.fixture(name="distance_squared", scope="session")
def fixture_distance_squared() -> _Objective:
    return partial(_distance_squared, target=np.array([1.0, 2.0]))


def _hs071_objective(x: NDArray[np.float64]) -> float:
    return float(x[0] * x[3] * (x[0] + x[1] + x[2]) + x[2])


def _hs071_objective_gradient(x: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.array(
        [
            x[0] * x[3] + x[3] * (x[0] + x[1] + x[2]),
            x[0] * x[3],
            x[0] * x[3] + 1.0,
            x[0] * (x[0] + x[1] + x[2]),
        ]
    )


def _hs071_product(x: NDArray[np.float64]) -> float:
    return float(np.prod(x))


def _hs071_product_gradient(x: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.array(
        [
            x[1] * x[2] * x[3],
            x[0] * x[2] * x[3],
            x[0] * x[1] * x[3],
            x[0] * x[1] * x[2],
        ]
    )


@pytest.fixture(name="hs071")
def fixture_hs071() -> Model:
    model = Model()
    variables = model.add_variables(4)
    for variable, start in zip(variables, [1.0, 5.0, 5.0, 1.0], strict=True):
        model.add_constraint(variable, Interval(1.0, 5.0))
        model.set_start(variable, start)
    model.add_constraint(
        NonlinearFunction(_hs071_product, _hs071_product_gradient),
        GreaterThan(25.0),
    )
    model.add_constraint(
        ScalarQuadraticFunction(
            quadratic_terms=[
                ScalarQuadraticTerm(1.0, variable, variable) for variable in variables
            ]
        ),
        EqualTo(40.0),
    )
    model.set_objective(
        NonlinearFunction(_hs071_objective, _hs071_objective_gradient)
    )
    return model
