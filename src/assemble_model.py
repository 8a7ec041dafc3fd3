from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Dict, List, Optional

import numpy as np

from build_constraints import (
    ColorVar,
    Constraint,
    build_constraints,
    distance_floor_constraint,
)
from palette_config import PaletteConfig

CHANNELS = ("r", "g", "b")


@dataclass(frozen=True)
class Objective:
    """
    Scalar objective to *minimize*, with its gradient.

    ``aux_names`` are decision variables the objective appends after the
    color variables; ``extra_constraints`` tie them to the colors and
    ``start`` gives their initial values from a point whose color slots are
    already set.
    """

    name: str
    fun: Callable[[np.ndarray], float]
    jac: Callable[[np.ndarray], np.ndarray]
    aux_names: List[str] = field(default_factory=list)
    aux_lower: List[float] = field(default_factory=list)
    aux_upper: List[float] = field(default_factory=list)
    extra_constraints: List[Constraint] = field(default_factory=list)
    start: Optional[Callable[[np.ndarray], List[float]]] = None


@dataclass
class PaletteModel:
    """
    Variables + bounds + constraints, ready for a general NLP solver.
    """

    config: PaletteConfig
    names: List[str]
    lower: np.ndarray
    upper: np.ndarray
    background: List[ColorVar]
    foreground: List[ColorVar]
    constraints: List[Constraint]
    objective: Optional[Objective] = None

    @property
    def n_vars(self) -> int:
        return len(self.names)

    @property
    def n_colors(self) -> int:
        n_aux = len(self.objective.aux_names) if self.objective else 0
        return self.n_vars - n_aux

    def constraint_values(self, x: np.ndarray) -> np.ndarray:
        return np.array([c.fun(x) for c in self.constraints], dtype=float)

    def constraint_jacobian(self, x: np.ndarray) -> np.ndarray:
        if not self.constraints:
            return np.zeros((0, self.n_vars))
        return np.vstack([c.jac(x) for c in self.constraints])

    def families(self) -> Dict[str, int]:
        return dict(Counter(c.family for c in self.constraints))

    def complete_point(self, colors: np.ndarray) -> np.ndarray:
        """
        Append the objective's auxiliary variables to a color-only point.
        """
        colors = np.asarray(colors, dtype=float)
        if self.objective is None or len(colors) == self.n_vars:
            return colors
        x = np.concatenate([colors, np.zeros(self.n_vars - len(colors))])
        if self.objective.start is not None:
            x[self.n_colors :] = self.objective.start(x)
        return x

    def initial_point(self, seed: int = 0) -> np.ndarray:
        """
        Uniform draw of the colors inside their bounds.

        Equal colors have zero distance gradients, so the start must not put
        every color at the same point.
        """
        rng = np.random.default_rng(seed)
        n = self.n_colors
        lo, hi = self.lower[:n], self.upper[:n]
        colors = lo + rng.random(n) * np.maximum(hi - lo, 0.0)
        return self.complete_point(colors)


# ------------------------------------------------------------
# Variable layout
# ------------------------------------------------------------


def _declare_colors(config: PaletteConfig):
    """
    Layout: bbase, fbase, then b1.r b1.g b1.b ..., then f1.r ...
    """
    names = ["bbase", "fbase"]
    background = [ColorVar("b0", (0, 0, 0), is_base=True)]
    foreground = [ColorVar("f0", (1, 1, 1), is_base=True)]

    for prefix, n, colors in (
        ("b", config.n_bg, background),
        ("f", config.n_fg, foreground),
    ):
        for i in range(1, n + 1):
            start = len(names)
            names.extend(f"{prefix}{i}.{ch}" for ch in CHANNELS)
            colors.append(ColorVar(f"{prefix}{i}", (start, start + 1, start + 2)))

    return names, background, foreground


# ------------------------------------------------------------
# Optional objective
# ------------------------------------------------------------


def distance_scale(config: PaletteConfig) -> float:
    """
    Squared Lab distance that the max-min variable is measured in.
    """
    return max(config.min_dist_b, config.min_dist_f, 1.0) ** 2


def max_min_distance_objective(
    config: PaletteConfig,
    background: List[ColorVar],
    foreground: List[ColorVar],
    aux_slot: int,
) -> Objective:
    """
    Maximize the smallest same-role squared Lab distance.

    Max-min via an auxiliary s: dist^2(x, y) / scale - s >= 0 for every
    same-role pair (base included), then minimize -s. scale is the larger
    squared distance threshold, so s is about 1 at the thresholds.
    """
    scale = distance_scale(config)
    n_vars = aux_slot + 1
    floors = [
        distance_floor_constraint(c1, c2, aux_slot, n_vars, scale)
        for colors in (background, foreground)
        for c1, c2 in combinations(colors, 2)
    ]

    def fun(x):
        return -float(x[aux_slot])

    def jac(x):
        g = np.zeros(n_vars)
        g[aux_slot] = -1.0
        return g

    def start(x):
        # smallest scaled distance, so every floor holds at the start
        y = np.array(x, dtype=float)
        y[aux_slot] = 0.0
        return [max(min((f.fun(y) for f in floors), default=0.0), 0.0)]

    return Objective(
        name="max_min_distance",
        fun=fun,
        jac=jac,
        aux_names=["min_dist_sq_ratio"],
        aux_lower=[0.0],
        aux_upper=[np.inf],
        extra_constraints=floors,
        start=start,
    )


OBJECTIVES = {
    "none": None,
    "max-min-distance": max_min_distance_objective,
}


# ------------------------------------------------------------
# Assembly
# ------------------------------------------------------------


def assemble_model(
    config: PaletteConfig, objective: Optional[str] = None
) -> PaletteModel:
    """
    Declare bounded color variables and all constraint families.

    With ``objective=None`` (or "none") the model is feasibility only.
    """
    names, background, foreground = _declare_colors(config)
    n_colors = len(names)

    key = objective or "none"
    if key not in OBJECTIVES:
        raise ValueError(
            f"Unknown objective {objective!r}; choose from {', '.join(OBJECTIVES)}"
        )
    make_objective = OBJECTIVES[key]

    obj = None
    n_vars = n_colors
    if make_objective is not None:
        obj = make_objective(config, background, foreground, n_colors)
        n_vars += len(obj.aux_names)

    lower = np.full(n_colors, config.margin, dtype=float)
    upper = np.full(n_colors, 1.0 - config.margin, dtype=float)
    constraints = build_constraints(config, background, foreground, n_vars)

    if obj is not None:
        names = names + obj.aux_names
        lower = np.concatenate([lower, obj.aux_lower])
        upper = np.concatenate([upper, obj.aux_upper])
        constraints = constraints + obj.extra_constraints

    return PaletteModel(
        config=config,
        names=names,
        lower=lower,
        upper=upper,
        background=background,
        foreground=foreground,
        constraints=constraints,
        objective=obj,
    )
