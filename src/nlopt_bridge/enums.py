"""Enumerations used within the `nlopt_bridge` library."""

from enum import IntEnum, StrEnum

import nlopt


class Algorithm(IntEnum):
    """Enumerates the optimization algorithms of the native NLopt library.

    The values are the algorithm constants exported by the `nlopt` extension
    module. The two-letter prefix encodes the algorithm family: `G` or `L` for
    global or local search, followed by `D` or `N` for derivative-based or
    derivative-free methods. Meta-algorithms such as
    [`AUGLAG`][nlopt_bridge.enums.Algorithm.AUGLAG] and
    [`G_MLSL`][nlopt_bridge.enums.Algorithm.G_MLSL] delegate to a configurable
    local optimizer.
    """

    GN_DIRECT = nlopt.GN_DIRECT
    GN_DIRECT_L = nlopt.GN_DIRECT_L
    GN_DIRECT_L_RAND = nlopt.GN_DIRECT_L_RAND
    GN_DIRECT_NOSCAL = nlopt.GN_DIRECT_NOSCAL
    GN_DIRECT_L_NOSCAL = nlopt.GN_DIRECT_L_NOSCAL
    GN_DIRECT_L_RAND_NOSCAL = nlopt.GN_DIRECT_L_RAND_NOSCAL
    GN_ORIG_DIRECT = nlopt.GN_ORIG_DIRECT
    GN_ORIG_DIRECT_L = nlopt.GN_ORIG_DIRECT_L
    GD_STOGO = nlopt.GD_STOGO
    GD_STOGO_RAND = nlopt.GD_STOGO_RAND
    LD_LBFGS_NOCEDAL = nlopt.LD_LBFGS_NOCEDAL
    LD_LBFGS = nlopt.LD_LBFGS
    LN_PRAXIS = nlopt.LN_PRAXIS
    LD_VAR1 = nlopt.LD_VAR1
    LD_VAR2 = nlopt.LD_VAR2
    LD_TNEWTON = nlopt.LD_TNEWTON
    LD_TNEWTON_RESTART = nlopt.LD_TNEWTON_RESTART
    LD_TNEWTON_PRECOND = nlopt.LD_TNEWTON_PRECOND
    LD_TNEWTON_PRECOND_RESTART = nlopt.LD_TNEWTON_PRECOND_RESTART
    GN_CRS2_LM = nlopt.GN_CRS2_LM
    GN_MLSL = nlopt.GN_MLSL
    GD_MLSL = nlopt.GD_MLSL
    GN_MLSL_LDS = nlopt.GN_MLSL_LDS
    GD_MLSL_LDS = nlopt.GD_MLSL_LDS
    LD_MMA = nlopt.LD_MMA
    LN_COBYLA = nlopt.LN_COBYLA
    LN_NEWUOA = nlopt.LN_NEWUOA
    LN_NEWUOA_BOUND = nlopt.LN_NEWUOA_BOUND
    LN_NELDERMEAD = nlopt.LN_NELDERMEAD
    LN_SBPLX = nlopt.LN_SBPLX
    LN_AUGLAG = nlopt.LN_AUGLAG
    LD_AUGLAG = nlopt.LD_AUGLAG
    LN_AUGLAG_EQ = nlopt.LN_AUGLAG_EQ
    LD_AUGLAG_EQ = nlopt.LD_AUGLAG_EQ
    LN_BOBYQA = nlopt.LN_BOBYQA
    GN_ISRES = nlopt.GN_ISRES
    AUGLAG = nlopt.AUGLAG
    AUGLAG_EQ = nlopt.AUGLAG_EQ
    G_MLSL = nlopt.G_MLSL
    G_MLSL_LDS = nlopt.G_MLSL_LDS
    LD_SLSQP = nlopt.LD_SLSQP
    LD_CCSAQ = nlopt.LD_CCSAQ
    GN_ESCH = nlopt.GN_ESCH
    GN_AGS = nlopt.GN_AGS

    @property
    def uses_derivatives(self) -> bool:
        """Whether the algorithm itself requests gradients.

        Meta-algorithms report `False`; whether they request gradients depends
        on the local optimizer they are combined with.
        """
        prefix, sep, _ = self.name.partition("_")
        return sep == "_" and len(prefix) == 2 and prefix[1] == "D"  # noqa: PLR2004


class Result(IntEnum):
    """Enumerates the termination codes of an optimization run.

    The values equal the native return codes. Positive values form the
    success family, negative values the failure family.
    """

    FAILURE = -1
    """Generic failure."""

    INVALID_ARGS = -2
    """Invalid arguments, for instance bounds with `lower > upper`."""

    OUT_OF_MEMORY = -3
    """The native library ran out of memory."""

    ROUNDOFF_LIMITED = -4
    """Progress was halted by roundoff errors."""

    FORCED_STOP = -5
    """The optimization was halted by a forced stop."""

    SUCCESS = 1
    """Generic success."""

    STOPVAL_REACHED = 2
    """The objective reached the configured `stopval`."""

    FTOL_REACHED = 3
    """The `ftol_rel` or `ftol_abs` criterion was met."""

    XTOL_REACHED = 4
    """The `xtol_rel` or `xtol_abs` criterion was met."""

    MAXEVAL_REACHED = 5
    """The maximum number of evaluations was reached."""

    MAXTIME_REACHED = 6
    """The maximum run time was reached."""

    @property
    def is_success(self) -> bool:
        """Whether the code belongs to the success family."""
        return self.value > 0


class ObjectiveSense(IntEnum):
    """Enumerates the optimization directions."""

    MINIMIZE = 1
    "Minimize the objective."

    MAXIMIZE = 2
    "Maximize the objective."

    FEASIBILITY = 3
    """Only search for a feasible point (model interface only)."""


class ConstraintKind(IntEnum):
    """Enumerates the kinds of non-linear constraints.

    Inequality constraints are satisfied when the constraint value is less
    than or equal to zero, equality constraints when it is zero.
    """

    INEQUALITY = 1
    EQUALITY = 2


class ModelPhase(StrEnum):
    """Enumerates the phases of a model-interface optimizer."""

    EMPTY = "empty"
    """No variables, objective or constraints are attached."""

    BUILT = "built"
    """A problem is loaded but has not been solved since the last change."""

    SOLVED = "solved"
    """Results of the last solve are available."""


class TerminationStatus(StrEnum):
    """Enumerates why a model-interface solve stopped."""

    OPTIMIZE_NOT_CALLED = "optimize_not_called"
    LOCALLY_SOLVED = "locally_solved"
    ITERATION_LIMIT = "iteration_limit"
    OTHER_ERROR = "other_error"


class ResultStatus(StrEnum):
    """Enumerates the status of a primal result."""

    NO_SOLUTION = "no_solution"
    FEASIBLE_POINT = "feasible_point"
    UNKNOWN_RESULT_STATUS = "unknown_result_status"
