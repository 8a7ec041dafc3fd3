from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np
from scipy.optimize import Bounds, NonlinearConstraint, minimize

from assemble_model import PaletteModel
from build_constraints import required_lightness_gap
from lab_convert import lightness_range


class TerminationStatus(str, Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    ITERATION_LIMIT = "iteration_limit"
    INDETERMINATE = "indeterminate"
    INVALID_BOUNDS = "invalid_bounds"


STATUS_MESSAGES = {
    TerminationStatus.OPTIMAL: "palette found",
    TerminationStatus.INFEASIBLE: "no palette satisfies the given constraints",
    TerminationStatus.ITERATION_LIMIT: (
        "solver hit its iteration limit without a definitive answer"
    ),
    TerminationStatus.INDETERMINATE: "solver could not certify the result",
    TerminationStatus.INVALID_BOUNDS: (
        "empty channel range: margin must be below 0.5"
    ),
}

METHODS = ("SLSQP", "trust-constr")

# scipy result.status values meaning "ran out of iterations"
ITERATION_LIMIT_CODES = {
    "SLSQP": {9},
    "trust-constr": {0},
}

# result.status values that show the linearized constraints have no solution;
# any other stop at an infeasible point (line search, singular subproblem,
# small step) is a local stall
INFEASIBLE_CODES = {
    "SLSQP": {4},
    "trust-constr": set(),
}


def to_rgb255(values) -> np.ndarray:
    """
    [0, 1] channel values -> 0..255 integers, round(v * 255).
    """
    return np.round(np.asarray(values, dtype=float) * 255.0).astype(np.uint8)


def rgb255_to_hex(rgb) -> str:
    r, g, b = (int(v) for v in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


@dataclass
class PaletteSolution:
    status: TerminationStatus
    message: str
    names: List[str]
    x: Optional[np.ndarray] = None
    # rows: base first, then colored; columns r, g, b in [0, 1]
    background: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    foreground: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    max_violation: float = float("nan")
    slack: Dict[str, float] = field(default_factory=dict)
    n_iter: int = 0
    objective_value: Optional[float] = None

    @property
    def is_optimal(self) -> bool:
        return self.status is TerminationStatus.OPTIMAL

    @property
    def description(self) -> str:
        return STATUS_MESSAGES[self.status]

    @property
    def values(self) -> Dict[str, float]:
        if self.x is None:
            return {}
        return {n: float(v) for n, v in zip(self.names, self.x)}

    def background_rgb255(self) -> np.ndarray:
        return to_rgb255(self.background)

    def foreground_rgb255(self) -> np.ndarray:
        return to_rgb255(self.foreground)

    def hex_colors(self, role: str) -> List[str]:
        rows = {"background": self.background, "foreground": self.foreground}[role]
        return [rgb255_to_hex(c) for c in to_rgb255(rows)]


# ------------------------------------------------------------
# Diagnostics
# ------------------------------------------------------------


def check_solution(model: PaletteModel, x: np.ndarray) -> Dict[str, float]:
    """
    Smallest constraint value per family (negative = violated).
    """
    slack: Dict[str, float] = {}
    for c in model.constraints:
        v = c.fun(x)
        slack[c.family] = min(slack.get(c.family, np.inf), v)
    return slack


def _colors(colors, x) -> np.ndarray:
    return np.array([c.rgb(x) for c in colors], dtype=float).reshape(-1, 3)


def _classify(
    model: PaletteModel, res, method: str, feasible: bool
) -> TerminationStatus:
    hit_limit = res.status in ITERATION_LIMIT_CODES.get(method, set())
    if feasible and (model.objective is None or res.success):
        # feasibility mode: a verified feasible point is the answer
        return TerminationStatus.OPTIMAL
    if hit_limit:
        return TerminationStatus.ITERATION_LIMIT
    if not feasible and res.status in INFEASIBLE_CODES.get(method, set()):
        return TerminationStatus.INFEASIBLE
    return TerminationStatus.INDETERMINATE


# ------------------------------------------------------------
# Solve
# ------------------------------------------------------------


def solve_model(
    model: PaletteModel,
    *,
    method: str = "SLSQP",
    max_iter: int = 1000,
    seed: int = 0,
    x0: Optional[np.ndarray] = None,
    feasibility_tol: float = 1e-5,
) -> PaletteSolution:
    """
    Hand the model to scipy and report the outcome.

    Without an objective the solver minimizes a constant zero, i.e. it only
    looks for a point meeting every constraint. Failures come back as a
    status, never as an exception, and are never retried.
    """
    if method not in METHODS:
        raise ValueError(
            f"Unknown method {method!r}; choose from {', '.join(METHODS)}"
        )

    if np.any(model.lower >= model.upper):
        return PaletteSolution(
            status=TerminationStatus.INVALID_BOUNDS,
            message="lower bound >= upper bound",
            names=list(model.names),
        )

    lo_L, hi_L = lightness_range(model.config.margin)
    gap = required_lightness_gap(model.config)
    if gap > hi_L - lo_L:
        return PaletteSolution(
            status=TerminationStatus.INFEASIBLE,
            message=(
                f"an L* gap of {gap:g} is needed but the channel bounds "
                f"only reach L* {lo_L:.1f}..{hi_L:.1f}"
            ),
            names=list(model.names),
        )

    n = model.n_vars
    if model.objective is None:

        def fun(x):
            return 0.0

        def jac(x):
            return np.zeros(n)

    else:
        fun, jac = model.objective.fun, model.objective.jac

    if x0 is None:
        x0 = model.initial_point(seed)
    x0 = np.clip(model.complete_point(x0), model.lower, model.upper)

    constraint = NonlinearConstraint(
        model.constraint_values, 0.0, np.inf, jac=model.constraint_jacobian
    )
    kwargs = {}
    if method == "SLSQP":
        options = {"maxiter": max_iter, "ftol": 1e-6}
    else:
        # both objectives are linear in x
        kwargs["hess"] = lambda x: np.zeros((n, n))
        options = {"maxiter": max_iter}

    res = minimize(
        fun,
        x0,
        jac=jac,
        method=method,
        bounds=Bounds(model.lower, model.upper),
        constraints=[constraint],
        options=options,
        **kwargs,
    )

    x = np.clip(res.x, model.lower, model.upper)
    slack = check_solution(model, x)
    max_violation = max(0.0, -min(slack.values(), default=0.0))
    status = _classify(model, res, method, max_violation <= feasibility_tol)

    return PaletteSolution(
        status=status,
        message=str(res.message),
        names=list(model.names),
        x=x,
        background=_colors(model.background, x),
        foreground=_colors(model.foreground, x),
        max_violation=float(max_violation),
        slack=slack,
        n_iter=int(getattr(res, "nit", 0)),
        objective_value=float(fun(x)) if model.objective is not None else None,
    )
