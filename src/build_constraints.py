from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations
from typing import Callable, List, Sequence, Tuple

import numpy as np

from lab_convert import hue_vec, hue_vec_jacobian, lab_jacobian, rgb_to_lab
from palette_config import PaletteConfig

# ------------------------------------------------------------
# Model pieces
# ------------------------------------------------------------

VISIBILITY = "visibility"
DISTINCT = "distinct"
HUE = "hue"
OBJECTIVE = "objective"


@dataclass(frozen=True)
class ColorVar:
    """
    One palette color, as three slots of the flat decision vector.

    A base color points all three slots at the same scalar, which makes it
    gray.
    """

    name: str
    slots: Tuple[int, int, int]
    is_base: bool = False

    def rgb(self, x: np.ndarray) -> np.ndarray:
        return x[list(self.slots)]

    def scatter(self, grad_rgb: np.ndarray, out: np.ndarray) -> None:
        # repeated slots accumulate (chain rule for base colors)
        np.add.at(out, list(self.slots), grad_rgb)


@dataclass(frozen=True)
class Constraint:
    """
    Nonlinear inequality ``fun(x) >= 0`` with gradient ``jac(x)``.
    """

    name: str
    family: str
    fun: Callable[[np.ndarray], float]
    jac: Callable[[np.ndarray], np.ndarray]


# ------------------------------------------------------------
# Single constraints
# ------------------------------------------------------------


def lightness_gap(
    hi: ColorVar, lo: ColorVar, sign: float, threshold: float, n_vars: int
) -> Constraint:
    """
    sign * (L*(hi) - L*(lo)) - threshold >= 0
    """

    def fun(x):
        L_hi = rgb_to_lab(hi.rgb(x))[0]
        L_lo = rgb_to_lab(lo.rgb(x))[0]
        return float(sign * (L_hi - L_lo) - threshold)

    def jac(x):
        g = np.zeros(n_vars)
        hi.scatter(sign * lab_jacobian(hi.rgb(x))[0], g)
        lo.scatter(-sign * lab_jacobian(lo.rgb(x))[0], g)
        return g

    return Constraint(f"vis[{lo.name},{hi.name}]", VISIBILITY, fun, jac)


def _distance_sq(c1: ColorVar, c2: ColorVar, x: np.ndarray) -> float:
    d = rgb_to_lab(c1.rgb(x)) - rgb_to_lab(c2.rgb(x))
    return float(d @ d)


def _distance_sq_grad(c1: ColorVar, c2: ColorVar, x: np.ndarray, out: np.ndarray):
    rgb1, rgb2 = c1.rgb(x), c2.rgb(x)
    d = rgb_to_lab(rgb1) - rgb_to_lab(rgb2)
    c1.scatter(2.0 * d @ lab_jacobian(rgb1), out)
    c2.scatter(-2.0 * d @ lab_jacobian(rgb2), out)


def distance_constraint(
    c1: ColorVar, c2: ColorVar, min_dist: float, n_vars: int
) -> Constraint:
    """
    |Lab(c1) - Lab(c2)|^2 - min_dist^2 >= 0

    Squared on both sides so the gradient has no square root in it.
    """
    bound = float(min_dist) ** 2

    def fun(x):
        return _distance_sq(c1, c2, x) - bound

    def jac(x):
        g = np.zeros(n_vars)
        _distance_sq_grad(c1, c2, x, g)
        return g

    return Constraint(f"dist[{c1.name},{c2.name}]", DISTINCT, fun, jac)


def distance_floor_constraint(
    c1: ColorVar, c2: ColorVar, aux_slot: int, n_vars: int, scale: float = 1.0
) -> Constraint:
    """
    |Lab(c1) - Lab(c2)|^2 / scale - s >= 0, with s = x[aux_slot].
    """

    def fun(x):
        return _distance_sq(c1, c2, x) / scale - float(x[aux_slot])

    def jac(x):
        g = np.zeros(n_vars)
        _distance_sq_grad(c1, c2, x, g)
        g /= scale
        g[aux_slot] -= 1.0
        return g

    return Constraint(f"floor[{c1.name},{c2.name}]", OBJECTIVE, fun, jac)


def _norm_and_unit(h: np.ndarray) -> Tuple[float, np.ndarray]:
    n = float(np.linalg.norm(h))
    if n == 0.0:
        return 0.0, np.zeros_like(h)
    return n, h / n


def hue_constraint(
    c1: ColorVar, c2: ColorVar, min_theta: float, n_vars: int
) -> Constraint:
    """
    |h1| |h2| cos(min_theta) - h1 . h2 >= 0

    Since h1 . h2 = |h1| |h2| cos(theta), this holds iff theta >= min_theta
    (cos decreases on [0, pi]).
    """
    cos_t = math.cos(min_theta)

    def fun(x):
        h1, h2 = hue_vec(c1.rgb(x)), hue_vec(c2.rgb(x))
        n1 = np.linalg.norm(h1)
        n2 = np.linalg.norm(h2)
        return float(n1 * n2 * cos_t - h1 @ h2)

    def jac(x):
        rgb1, rgb2 = c1.rgb(x), c2.rgb(x)
        h1, h2 = hue_vec(rgb1), hue_vec(rgb2)
        n1, u1 = _norm_and_unit(h1)
        n2, u2 = _norm_and_unit(h2)
        # gradients w.r.t. h1 and h2, then through d(a*, b*)/d(rgb)
        dh1 = cos_t * n2 * u1 - h2
        dh2 = cos_t * n1 * u2 - h1
        g = np.zeros(n_vars)
        c1.scatter(dh1 @ hue_vec_jacobian(rgb1), g)
        c2.scatter(dh2 @ hue_vec_jacobian(rgb2), g)
        return g

    return Constraint(f"hue[{c1.name},{c2.name}]", HUE, fun, jac)


# ------------------------------------------------------------
# Constraint families
# ------------------------------------------------------------


def visibility_constraints(
    config: PaletteConfig,
    background: Sequence[ColorVar],
    foreground: Sequence[ColorVar],
    n_vars: int,
) -> List[Constraint]:
    """
    L* gaps between every background and every foreground.

    Both sequences hold the base color first. Base against non-base uses
    d_vivid_base, every other pairing d_vivid_colored.
    """
    sign = config.is_dark
    bbase, bgs = background[0], background[1:]
    fbase, fgs = foreground[0], foreground[1:]

    out = []
    for b in bgs:
        for f in fgs:
            out.append(lightness_gap(f, b, sign, config.d_vivid_colored, n_vars))
    for f in fgs:
        out.append(lightness_gap(f, bbase, sign, config.d_vivid_base, n_vars))
    for b in bgs:
        out.append(lightness_gap(fbase, b, sign, config.d_vivid_base, n_vars))
    out.append(lightness_gap(fbase, bbase, sign, config.d_vivid_colored, n_vars))
    return out


def distinctiveness_constraints(
    colors: Sequence[ColorVar], min_dist: float, n_vars: int
) -> List[Constraint]:
    # one base per role, so this is colored-colored plus colored-base
    return [
        distance_constraint(c1, c2, min_dist, n_vars)
        for c1, c2 in combinations(colors, 2)
    ]


def hue_constraints(
    colors: Sequence[ColorVar], min_theta: float, n_vars: int
) -> List[Constraint]:
    """
    Hue separation between non-base colors of one role.

    A zero angle is always satisfied, so nothing is emitted for it.
    """
    if min_theta == 0:
        return []
    colored = [c for c in colors if not c.is_base]
    return [
        hue_constraint(c1, c2, min_theta, n_vars)
        for c1, c2 in combinations(colored, 2)
    ]


def build_constraints(
    config: PaletteConfig,
    background: Sequence[ColorVar],
    foreground: Sequence[ColorVar],
    n_vars: int,
) -> List[Constraint]:
    return [
        *visibility_constraints(config, background, foreground, n_vars),
        *distinctiveness_constraints(background, config.min_dist_b, n_vars),
        *distinctiveness_constraints(foreground, config.min_dist_f, n_vars),
        *hue_constraints(background, config.min_theta_bg, n_vars),
        *hue_constraints(foreground, config.min_theta_fg, n_vars),
    ]


def required_lightness_gap(config: PaletteConfig) -> float:
    """
    Largest L* gap the visibility family asks for.

    The base pair always uses d_vivid_colored; d_vivid_base only appears once
    a role has a colored entry.
    """
    if config.n_bg + config.n_fg == 0:
        return config.d_vivid_colored
    return max(config.d_vivid_colored, config.d_vivid_base)
