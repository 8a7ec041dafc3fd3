from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping


class PaletteConfigError(ValueError):
    pass


def _whole_number(name: str, value: Any) -> int:
    try:
        f = float(value)
    except (TypeError, ValueError) as e:
        raise PaletteConfigError(f"Bad config value for {name}: {value!r}") from e
    if isinstance(value, bool) or not f.is_integer():
        raise PaletteConfigError(f"{name} must be a whole number, got {value!r}")
    return int(f)


@dataclass(frozen=True)
class PaletteConfig:
    """
    Counts and thresholds for one palette optimization run.

    Only types are checked, plus is_dark being 1 or -1: contradictory
    thresholds show up as an unsuccessful solve, and margin >= 0.5 as an
    invalid-bounds status.
    """

    # non-base background colors wanted
    n_bg: int
    # non-base foreground colors wanted
    n_fg: int
    # L* gap between a color and the opposite-role base
    d_vivid_base: float
    # L* gap between non-base bg/fg pairs, and between the two bases
    d_vivid_colored: float
    # fraction of each RGB channel cut off at both ends
    margin: float
    # min hue angle (radians) between two non-base backgrounds
    min_theta_bg: float
    # min hue angle (radians) between two non-base foregrounds
    min_theta_fg: float
    # min Lab distance between two backgrounds (base included)
    min_dist_b: float
    # min Lab distance between two foregrounds (base included)
    min_dist_f: float
    # +1 dark theme (fg lighter than bg), -1 light theme
    is_dark: int

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PaletteConfig":
        """
        Build a config from a mapping, e.g. a parsed JSON preset.

        ``min_theta_bg_deg`` / ``min_theta_fg_deg`` are accepted in place of
        the radian fields.
        """
        d = dict(d)
        for role in ("bg", "fg"):
            rad_key, deg_key = f"min_theta_{role}", f"min_theta_{role}_deg"
            if deg_key in d:
                if d.get(rad_key) is not None:
                    raise PaletteConfigError(
                        f"Give either {rad_key} or {deg_key}, not both"
                    )
                deg = d.pop(deg_key)
                d[rad_key] = math.radians(float(deg)) if deg is not None else None

        names = cls.field_names()
        unknown = sorted(set(d) - set(names))
        if unknown:
            raise PaletteConfigError(f"Unknown config fields: {', '.join(unknown)}")

        missing = [k for k in names if d.get(k) is None]
        if missing:
            raise PaletteConfigError(
                f"Missing required config fields: {', '.join(missing)}"
            )

        if isinstance(d["is_dark"], bool):
            d["is_dark"] = 1 if d["is_dark"] else -1
        n_bg = _whole_number("n_bg", d["n_bg"])
        n_fg = _whole_number("n_fg", d["n_fg"])
        is_dark = _whole_number("is_dark", d["is_dark"])
        if is_dark not in (1, -1):
            raise PaletteConfigError(f"is_dark must be 1 or -1, got {d['is_dark']!r}")

        try:
            return cls(
                n_bg=n_bg,
                n_fg=n_fg,
                d_vivid_base=float(d["d_vivid_base"]),
                d_vivid_colored=float(d["d_vivid_colored"]),
                margin=float(d["margin"]),
                min_theta_bg=float(d["min_theta_bg"]),
                min_theta_fg=float(d["min_theta_fg"]),
                min_dist_b=float(d["min_dist_b"]),
                min_dist_f=float(d["min_dist_f"]),
                is_dark=is_dark,
            )
        except (TypeError, ValueError) as e:
            raise PaletteConfigError(f"Bad config value: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def read_config_json(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise PaletteConfigError(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise PaletteConfigError(f"Config {path} must hold a JSON object")
    return data


def load_config(path: str | Path) -> PaletteConfig:
    return PaletteConfig.from_dict(read_config_json(path))
