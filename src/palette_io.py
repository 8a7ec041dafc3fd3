import json
from pathlib import Path

import numpy as np
import pandas as pd

from lab_convert import hue_angle_deg, rgb_to_lab
from palette_config import PaletteConfig
from solve_palette import PaletteSolution, rgb255_to_hex, to_rgb255

ROLES = ("background", "foreground")
COLUMNS = ["role", "index", "is_base", "R", "G", "B", "hex", "L", "a", "b", "hue_deg"]

# ------------------------------------------------------------
# Tabular form
# ------------------------------------------------------------


def solution_to_frame(solution: PaletteSolution) -> pd.DataFrame:
    """
    One row per color, base first within each role:
    [role, index, is_base, R, G, B, hex, L, a, b, hue_deg]
    """
    rows = []
    for role in ROLES:
        values = getattr(solution, role)
        if len(values) == 0:
            continue
        rgb255 = to_rgb255(values)
        lab = rgb_to_lab(values)
        hues = hue_angle_deg(values)
        for i in range(len(values)):
            rows.append(
                {
                    "role": role,
                    "index": i,
                    "is_base": i == 0,
                    "R": int(rgb255[i, 0]),
                    "G": int(rgb255[i, 1]),
                    "B": int(rgb255[i, 2]),
                    "hex": rgb255_to_hex(rgb255[i]),
                    "L": float(lab[i, 0]),
                    "a": float(lab[i, 1]),
                    "b": float(lab[i, 2]),
                    "hue_deg": float(hues[i]),
                }
            )
    return pd.DataFrame(rows, columns=COLUMNS)


# ------------------------------------------------------------
# JSON
# ------------------------------------------------------------


def solution_to_dict(solution: PaletteSolution, config: PaletteConfig) -> dict:
    out = {
        "config": config.to_dict(),
        "status": solution.status.value,
        "description": solution.description,
        "message": solution.message,
        "n_iter": solution.n_iter,
        "max_violation": solution.max_violation,
        "objective_value": solution.objective_value,
        "slack": solution.slack,
    }
    for role in ROLES:
        values = getattr(solution, role)
        out[role] = [
            {
                "hex": rgb255_to_hex(c),
                "rgb": [int(v) for v in c],
                "value": [float(v) for v in raw],
            }
            for c, raw in zip(to_rgb255(values), values)
        ]
    return out


def write_solution_json(
    solution: PaletteSolution, config: PaletteConfig, path: Path
) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # nan/inf are not valid JSON
    data = json.loads(
        json.dumps(solution_to_dict(solution, config), default=float),
        parse_constant=lambda _: None,
    )
    path.write_text(json.dumps(data, indent=2))


def write_solution_csv(solution: PaletteSolution, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    solution_to_frame(solution).to_csv(path, index=False)


def read_solution_json(path: Path) -> dict:
    """
    Load a palette JSON; colors come back as (n, 3) uint8 arrays.
    """
    data = json.loads(Path(path).read_text())
    for role in ROLES:
        data[role] = np.array(
            [c["rgb"] for c in data.get(role, [])], dtype=np.uint8
        ).reshape(-1, 3)
    return data
