from pathlib import Path

from palette_config import PaletteConfig

CONFIGS = Path(__file__).resolve().parent.parent / "configs"

MINIMAL = dict(
    n_bg=1,
    n_fg=1,
    d_vivid_base=20,
    d_vivid_colored=15,
    margin=0.1,
    min_theta_bg=0,
    min_theta_fg=0,
    min_dist_b=10,
    min_dist_f=10,
    is_dark=1,
)


def minimal_config(**overrides) -> PaletteConfig:
    return PaletteConfig.from_dict({**MINIMAL, **overrides})
