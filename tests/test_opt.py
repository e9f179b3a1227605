import copy
from typing import Any

import nlopt
import numpy as np
import pytest

from nlopt_bridge import Algorithm, Opt, Result
from nlopt_bridge.enums import ObjectiveSense
from nlopt_bridge.exceptions import DimensionMismatch, InvalidArgument, SolverFailure


@pytest.mark.parametrize(
    ("algorithm", "dimension"),
    [(Algorithm.LD_MMA, 2), ("LN_COBYLA", 5), ("nlopt_gn_direct", 1)],
)
def test_opt_create(algorithm: Any, dimension: int) -> None:
    opt = Opt(algorithm, dimension)
    expected = algorithm if isinstance(algorithm, Algorithm) else None
    assert opt.dimension == dimension
    assert opt.algorithm in Algorithm
    if expected is not None:
        assert opt.algorithm is expected
    algorithm = opt.algorithm

    opt.lower_bounds = 0.0
    opt.upper_bounds = 1.0
    opt.xtol_rel = 1e-4
    opt.maxeval = 10
    assert opt.dimension == dimension
    assert opt.algorithm is algorithm


def test_opt_algorithm_tags() -> None:
    assert Opt(int(Algorithm.LD_SLSQP), 2).algorithm is Algorithm.LD_SLSQP
    assert Opt(" ld_slsqp ", 2).algorithm is Algorithm.LD_SLSQP
    assert Opt("NLOPT_LD_SLSQP", 2).algorithm is Algorithm.LD_SLSQP
    native = nlopt.opt(nlopt.LD_SLSQP, 2)
    assert Opt("LD_SLSQP", 2).algorithm_name == native.get_algorithm_name()
    assert repr(Opt("LD_SLSQP", 2)) == "Opt(LD_SLSQP, 2)"


@pytest.mark.parametrize("algorithm", ["FOO", -1, 10000, 1.0, None, True])
def test_opt_invalid_algorithm(algorithm: Any) -> None:
    with pytest.raises(InvalidArgument, match="unrecognized algorithm"):
        Opt(algorithm, 2)


@pytest.mark.parametrize("dimension", [0, -1, 1.5, True, "2"])
def test_opt_invalid_dimension(dimension: Any) -> None:
    with pytest.raises(InvalidArgument, match="dimension must be a positive integer"):
        Opt("LD_MMA", dimension)


def test_opt_default_settings() -> None:
    opt = Opt("LD_MMA", 3)
    assert np.all(opt.lower_bounds == -np.inf)
    assert np.all(opt.upper_bounds == np.inf)
    assert opt.stopval == -np.inf
    assert opt.ftol_rel == 0.0
    assert opt.ftol_abs == 0.0
    assert opt.xtol_rel == 0.0
    assert np.all(opt.xtol_abs == 0.0)
    assert opt.maxeval <= 0
    assert opt.maxtime <= 0
    assert opt.population == 0
    assert opt.initial_step is None
    assert opt.local_optimizer is None
    assert opt.objective is None
    assert opt.sense == ObjectiveSense.MINIMIZE
    assert opt.constraints == ()
    assert opt.numevals == 0


def test_opt_scalar_bounds_broadcast() -> None:
    opt = Opt("LD_MMA", 4)
    opt.lower_bounds = -2.5
    assert opt.lower_bounds.shape == (4,)
    assert np.all(opt.lower_bounds == -2.5)
    opt.upper_bounds = np.float32(3.0)
    assert np.all(opt.upper_bounds == 3.0)


def test_opt_vector_bounds() -> None:
    opt = Opt("LD_MMA", 3)
    opt.lower_bounds = [1, 2, 3]
    assert np.array_equal(opt.lower_bounds, [1.0, 2.0, 3.0])
    assert opt.lower_bounds.dtype == np.float64
    with pytest.raises(ValueError):  # noqa: PT011
        opt.lower_bounds[0] = 0.0


@pytest.mark.parametrize(
    "value", [[1.0, 2.0], [1.0, 2.0, 3.0, 4.0], [[1.0, 2.0, 3.0]]]
)
def test_opt_bounds_dimension_mismatch(value: Any) -> None:
    opt = Opt("LD_MMA", 3)
    with pytest.raises(DimensionMismatch):
        opt.lower_bounds = value
    with pytest.raises(DimensionMismatch):
        opt.upper_bounds = value
    with pytest.raises(DimensionMismatch):
        opt.xtol_abs = value
    with pytest.raises(DimensionMismatch):
        opt.initial_step = value
    assert np.all(opt.lower_bounds == -np.inf)


def test_opt_bounds_not_numeric() -> None:
    opt = Opt("LD_MMA", 2)
    with pytest.raises(InvalidArgument):
        opt.lower_bounds = ["a", "b"]


def test_opt_stopping_criteria() -> None:
    opt = Opt("LN_COBYLA", 2)
    opt.stopval = 1.5
    opt.ftol_rel = 1e-3
    opt.ftol_abs = 1e-4
    opt.xtol_rel = 1e-5
    opt.xtol_abs = 1e-6
    opt.maxeval = 100
    opt.maxtime = 2.5
    assert opt.stopval == 1.5
    assert opt.ftol_rel == 1e-3
    assert opt.ftol_abs == 1e-4
    assert opt.xtol_rel == 1e-5
    assert np.allclose(opt.xtol_abs, [1e-6, 1e-6])
    assert opt.maxeval == 100
    assert opt.maxtime == 2.5

    opt.xtol_abs = [1e-3, 1e-4]
    assert np.allclose(opt.xtol_abs, [1e-3, 1e-4])

    with pytest.raises(InvalidArgument):
        opt.ftol_rel = "small"
    with pytest.raises(InvalidArgument):
        opt.maxeval = 1.5


def test_opt_algorithm_parameters() -> None:
    opt = Opt("GN_CRS2_LM", 3)
    opt.population = 50
    opt.vector_storage = 5
    opt.initial_step = 0.1
    assert opt.population == 50
    assert opt.vector_storage == 5
    assert opt.initial_step is not None
    assert np.allclose(opt.initial_step, [0.1, 0.1, 0.1])
    with pytest.raises(InvalidArgument):
        opt.population = -1
    with pytest.raises(InvalidArgument):
        opt.vector_storage = -5


def test_opt_force_stop_value() -> None:
    opt = Opt("LN_COBYLA", 2)
    assert opt.force_stop_value == 0
    opt.force_stop_value = 3
    assert opt.force_stop_value == 3


def test_opt_objective_sense(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.min_objective = distance_squared
    assert opt.min_objective is distance_squared
    assert opt.max_objective is None
    assert opt.sense == ObjectiveSense.MINIMIZE

    opt.max_objective = distance_squared
    assert opt.max_objective is distance_squared
    assert opt.min_objective is None
    assert opt.objective is distance_squared
    assert opt.sense == ObjectiveSense.MAXIMIZE

    with pytest.raises(InvalidArgument):
        opt.min_objective = 1.0


def test_opt_clone_is_independent() -> None:
    opt = Opt("LD_MMA", 2)
    opt.xtol_rel = 1e-4
    opt.lower_bounds = [0.0, 1.0]
    clone = opt.copy()
    opt.xtol_rel = 1e-2
    opt.lower_bounds = -1.0
    assert clone.xtol_rel == 1e-4
    assert np.array_equal(clone.lower_bounds, [0.0, 1.0])
    assert clone.algorithm is opt.algorithm
    assert clone.dimension == opt.dimension


@pytest.mark.parametrize("copy_function", [copy.copy, copy.deepcopy])
def test_opt_copy_module(copy_function: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.xtol_rel = 1e-4
    clone = copy_function(opt)
    assert clone is not opt
    opt.xtol_rel = 1e-2
    assert clone.xtol_rel == 1e-4


def test_opt_copy_settings(distance_squared: Any, cubic_constraints: Any) -> None:
    opt = Opt("AUGLAG", 2)
    opt.max_objective = distance_squared
    opt.add_inequality_constraint(cubic_constraints[0], 1e-8)
    opt.stopval = 10.0
    opt.maxeval = 7
    opt.initial_step = [0.5, 0.25]
    local_optimizer = Opt("LD_LBFGS", 2)
    local_optimizer.xtol_rel = 1e-3
    opt.local_optimizer = local_optimizer

    clone = opt.copy()
    assert clone.max_objective is distance_squared
    assert len(clone.constraints) == 1
    assert clone.constraints[0].evaluator is cubic_constraints[0]
    assert clone.stopval == 10.0
    assert clone.maxeval == 7
    assert clone.initial_step is not None
    assert np.array_equal(clone.initial_step, [0.5, 0.25])
    assert clone.local_optimizer is not None
    assert clone.local_optimizer is not opt.local_optimizer
    assert clone.local_optimizer.xtol_rel == 1e-3


def test_opt_local_optimizer_is_copied() -> None:
    opt = Opt("AUGLAG", 2)
    local_optimizer = Opt("LD_LBFGS", 2)
    local_optimizer.xtol_rel = 1e-3
    opt.local_optimizer = local_optimizer
    local_optimizer.xtol_rel = 1e-1
    assert opt.local_optimizer is not None
    assert opt.local_optimizer.xtol_rel == 1e-3


def test_opt_local_optimizer_dimension_mismatch() -> None:
    opt = Opt("AUGLAG", 2)
    with pytest.raises(DimensionMismatch, match="local optimizer has dimension 3"):
        opt.local_optimizer = Opt("LD_LBFGS", 3)
    assert opt.local_optimizer is None


def test_opt_local_optimizer_invalid() -> None:
    opt = Opt("AUGLAG", 2)
    with pytest.raises(InvalidArgument, match="its own local optimizer"):
        opt.local_optimizer = opt
    with pytest.raises(InvalidArgument, match="must be an Opt object"):
        opt.local_optimizer = "LD_LBFGS"


def test_opt_mma_tutorial(sqrt_objective: Any, cubic_constraints: Any) -> None:
    opt = Opt(Algorithm.LD_MMA, 2)
    opt.lower_bounds = [-np.inf, 0.0]
    opt.min_objective = sqrt_objective
    for constraint in cubic_constraints:
        opt.add_inequality_constraint(constraint, 1e-8)
    opt.xtol_rel = 1e-4

    value, x, result = opt.optimize([1.234, 5.678])
    assert value == pytest.approx(0.5443310476200902, rel=1e-6)
    assert x == pytest.approx([0.3333333346933468, 0.29629628940318486], abs=1e-6)
    assert result == Result.XTOL_REACHED
    assert opt.numevals > 0


def test_opt_mma_tutorial_mconstraint(sqrt_objective: Any) -> None:
    def constraints(result: Any, x: Any, grad: Any) -> None:
        for idx, (a, b) in enumerate([(2.0, 0.0), (-1.0, 1.0)]):
            if grad.size > 0:
                grad[idx, 0] = 3.0 * a * (a * x[0] + b) ** 2
                grad[idx, 1] = -1.0
            result[idx] = (a * x[0] + b) ** 3 - x[1]

    opt = Opt(Algorithm.LD_MMA, 2)
    opt.lower_bounds = [-np.inf, 0.0]
    opt.min_objective = sqrt_objective
    opt.add_inequality_mconstraint(constraints, [1e-8, 1e-8])
    opt.xtol_rel = 1e-4

    value, x, result = opt.optimize([1.234, 5.678])
    assert value == pytest.approx(0.5443310476200902, rel=1e-6)
    assert x == pytest.approx([0.3333333346933468, 0.29629628940318486], abs=1e-6)
    assert result == Result.XTOL_REACHED


def test_opt_remove_all_constraints(
    distance_squared: Any, cubic_constraints: Any
) -> None:
    def _make_opt() -> Opt:
        opt = Opt(Algorithm.LD_MMA, 2)
        opt.lower_bounds = [-10.0, 0.0]
        opt.upper_bounds = 10.0
        opt.min_objective = distance_squared
        opt.xtol_rel = 1e-6
        return opt

    unconstrained = _make_opt().optimize([0.5, 3.0])

    opt = _make_opt()
    for constraint in cubic_constraints:
        opt.add_inequality_constraint(constraint, 1e-8)
    constrained = opt.optimize([0.5, 3.0])
    assert constrained.value > unconstrained.value + 1e-3

    opt.remove_all_constraints()
    assert opt.constraints == ()
    value, x, result = opt.optimize([0.5, 3.0])
    assert result == unconstrained.result
    assert value == pytest.approx(unconstrained.value)
    assert x == pytest.approx(unconstrained.x)
    assert x == pytest.approx([1.0, 2.0], abs=1e-4)


def test_opt_maximize(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.lower_bounds = [0.0, 0.0]
    opt.upper_bounds = [3.0, 3.0]
    opt.max_objective = distance_squared
    opt.xtol_rel = 1e-6
    value, x, result = opt.optimize([2.0, 1.0])
    assert result.is_success
    assert x == pytest.approx([3.0, 0.0])
    assert value == pytest.approx(8.0)


def test_opt_derivative_free(distance_squared: Any) -> None:
    opt = Opt("LN_NELDERMEAD", 2)
    opt.min_objective = distance_squared
    opt.xtol_rel = 1e-8
    value, x, result = opt.optimize([0.0, 0.0])
    assert result.is_success
    assert value == pytest.approx(0.0, abs=1e-8)
    assert x == pytest.approx([1.0, 2.0], abs=1e-4)


def test_opt_optimize_dimension_mismatch(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.min_objective = distance_squared
    with pytest.raises(DimensionMismatch, match="starting point must have length 2"):
        opt.optimize([0.0, 0.0, 0.0])
    with pytest.raises(InvalidArgument):
        opt.optimize(["a", "b"])


def test_opt_optimize_inplace(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.min_objective = distance_squared
    opt.xtol_rel = 1e-8
    x = np.array([0.0, 0.0])
    result = opt.optimize_inplace(x)
    assert result.result.is_success
    assert x == pytest.approx([1.0, 2.0], abs=1e-4)
    assert np.array_equal(x, result.x)

    with pytest.raises(InvalidArgument):
        opt.optimize_inplace([0.0, 0.0])  # type: ignore[arg-type]
    with pytest.raises(InvalidArgument):
        opt.optimize_inplace(np.array([0, 0]))


def test_opt_bounds_checked_at_optimize(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.min_objective = distance_squared
    opt.lower_bounds = [2.0, 0.0]
    opt.upper_bounds = [1.0, 5.0]
    assert opt.lower_bounds[0] > opt.upper_bounds[0]
    with pytest.raises(SolverFailure) as exc_info:
        opt.optimize([1.5, 1.0])
    assert exc_info.value.result == Result.INVALID_ARGS
    assert isinstance(exc_info.value, RuntimeError)
    assert str(exc_info.value).startswith("NLopt failed with result INVALID_ARGS")


def test_opt_start_outside_bounds(distance_squared: Any) -> None:
    opt = Opt("LD_MMA", 2)
    opt.min_objective = distance_squared
    opt.lower_bounds = 0.0
    opt.upper_bounds = 1.0
    with pytest.raises(SolverFailure) as exc_info:
        opt.optimize([5.0, 0.5])
    assert exc_info.value.result == Result.INVALID_ARGS
    assert exc_info.value.value is not None

    opt.lower_bounds = -10.0
    opt.upper_bounds = 10.0
    _, x, result = opt.optimize([5.0, 0.5])
    assert result.is_success
    assert x == pytest.approx([1.0, 2.0], abs=1e-4)


def test_opt_unsupported_constraints(cubic_constraints: Any) -> None:
    opt = Opt("LN_NELDERMEAD", 2)
    with pytest.raises(InvalidArgument, match="inequality constraints are not"):
        opt.add_inequality_constraint(cubic_constraints[0])
    with pytest.raises(InvalidArgument, match="equality constraints are not"):
        opt.add_equality_constraint(cubic_constraints[0])
    assert opt.constraints == ()


def test_opt_unsupported_vector_constraints() -> None:
    def _constraints(result: Any, x: Any, grad: Any) -> None:  # noqa: ARG001
        result[:] = x

    opt = Opt("LN_NELDERMEAD", 2)
    with pytest.raises(InvalidArgument, match="inequality constraints are not"):
        opt.add_inequality_mconstraint(_constraints, [0.0, 0.0])
    with pytest.raises(InvalidArgument, match="equality constraints are not"):
        opt.add_equality_mconstraint(_constraints, [0.0, 0.0])
    assert opt.constraints == ()


def test_opt_numevals_reset(distance_squared: Any) -> None:
    opt = Opt("LN_NELDERMEAD", 2)
    opt.min_objective = distance_squared
    opt.maxeval = 5
    _, _, result = opt.optimize([0.0, 0.0])
    assert result == Result.MAXEVAL_REACHED
    assert opt.numevals == 5
    opt.maxeval = 3
    opt.optimize([0.0, 0.0])
    assert opt.numevals == 3
    assert opt.copy().numevals == 3
