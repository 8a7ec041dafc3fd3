import numpy as np

# ------------------------------------------------------------
# RGB -> XYZ -> CIELAB (no gamma decoding)
# ------------------------------------------------------------

TRANSMAT = np.array(
    [
        [0.49, 0.31, 0.20],
        [0.17697, 0.81240, 0.01063],
        [0.0, 0.01, 0.99],
    ],
    dtype=float,
)

DELTA = 6 / 29
T0 = DELTA**3  # branch point of the cube-root response
LINEAR_SLOPE = (1 / 3) * (29 / 6) ** 2
LINEAR_OFFSET = 4 / 29

# d(L*, a*, b*) / d(fX, fY, fZ)
LAB_FROM_F = np.array(
    [
        [0.0, 116.0, 0.0],
        [500.0, -500.0, 0.0],
        [0.0, 200.0, -200.0],
    ],
    dtype=float,
)


def modified_cube_root(t):
    """
    Cube root above (6/29)^3, linear below it.

    The linear segment keeps the derivative finite at t = 0.
    """
    t = np.asarray(t, dtype=float)
    return np.where(t >= T0, np.cbrt(t), LINEAR_SLOPE * t + LINEAR_OFFSET)


def modified_cube_root_deriv(t):
    t = np.asarray(t, dtype=float)
    # clamp inside the power so the unused branch never sees t <= 0
    return np.where(
        t >= T0, (1 / 3) * np.maximum(t, T0) ** (-2 / 3), LINEAR_SLOPE
    )


def rgb_to_xyz(rgb) -> np.ndarray:
    return np.asarray(rgb, dtype=float) @ TRANSMAT.T


def rgb_to_lab(rgb) -> np.ndarray:
    """
    Convert RGB in [0, 1] (shape (..., 3)) to CIELAB (L*, a*, b*).
    """
    f = modified_cube_root(rgb_to_xyz(rgb))
    return f @ LAB_FROM_F.T + np.array([-16.0, 0.0, 0.0])


def lab_jacobian(rgb) -> np.ndarray:
    """
    Jacobian d(L*, a*, b*) / d(r, g, b), shape (..., 3, 3).
    """
    fp = modified_cube_root_deriv(rgb_to_xyz(rgb))
    # A @ diag(f') @ M
    return (LAB_FROM_F * fp[..., None, :]) @ TRANSMAT


def lightness(rgb) -> np.ndarray:
    return rgb_to_lab(rgb)[..., 0]


def hue_vec(rgb) -> np.ndarray:
    """
    Hue vector (a*, b*).
    """
    return rgb_to_lab(rgb)[..., 1:]


def hue_vec_jacobian(rgb) -> np.ndarray:
    return lab_jacobian(rgb)[..., 1:, :]


def hue_angle_deg(rgb) -> np.ndarray:
    h = hue_vec(rgb)
    return np.degrees(np.arctan2(h[..., 1], h[..., 0])) % 360.0


def hue_angle_between(rgb1, rgb2) -> np.ndarray:
    """
    Unsigned angle (radians, in [0, pi]) between two hue vectors.
    """
    h1, h2 = hue_vec(rgb1), hue_vec(rgb2)
    n = np.linalg.norm(h1, axis=-1) * np.linalg.norm(h2, axis=-1)
    cos = np.sum(h1 * h2, axis=-1) / np.where(n > 0, n, 1.0)
    return np.arccos(np.clip(cos, -1.0, 1.0))


def lightness_range(margin: float):
    """
    Smallest and largest L* over the cube [margin, 1 - margin]^3.

    Y has only positive weights, so both ends are grays.
    """
    lo, hi = lightness(np.array([[margin] * 3, [1.0 - margin] * 3]))
    return float(lo), float(hi)
