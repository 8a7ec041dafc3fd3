from pathlib import Path

import click
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from lab_convert import rgb_to_lab
from palette_io import read_solution_json
from solve_palette import rgb255_to_hex

MARKERS = {"background": "s", "foreground": "o"}


def _label(role: str, i: int) -> str:
    return f"{role[0]}{'base' if i == 0 else i}"


def _scatter3d(ax, points, colors, markers, axis_labels, title):
    for p, c, m in zip(points, colors, markers):
        ax.scatter(*p, color=c, marker=m, s=80, edgecolors="black", linewidths=0.5)
    ax.set_xlabel(axis_labels[0])
    ax.set_ylabel(axis_labels[1])
    ax.set_zlabel(axis_labels[2])
    ax.set_title(title)


def plot_palette(
    bg255: np.ndarray, fg255: np.ndarray, out_png: Path, title: str = ""
):
    """
    RGB cube, CIELAB space, hue angles and the fg x bg L* contrast matrix.
    """
    rgb255 = np.vstack([bg255, fg255]).astype(float)
    roles = ["background"] * len(bg255) + ["foreground"] * len(fg255)
    idx = list(range(len(bg255))) + list(range(len(fg255)))
    hexes = [rgb255_to_hex(c) for c in rgb255]
    markers = [MARKERS[r] for r in roles]
    lab = rgb_to_lab(rgb255 / 255.0)

    sns.set_theme(style="whitegrid")
    fig = plt.figure(figsize=(13, 11))

    ax = fig.add_subplot(2, 2, 1, projection="3d")
    _scatter3d(ax, rgb255, hexes, markers, ("R", "G", "B"), "RGB")

    ax = fig.add_subplot(2, 2, 2, projection="3d")
    # a*, b*, L* so lightness is vertical
    _scatter3d(ax, lab[:, [1, 2, 0]], hexes, markers, ("a*", "b*", "L*"), "CIELAB")

    ax = fig.add_subplot(2, 2, 3, projection="polar")
    theta = np.arctan2(lab[:, 2], lab[:, 1])
    chroma = np.hypot(lab[:, 1], lab[:, 2])
    for t, r, c, m, role, i in zip(theta, chroma, hexes, markers, roles, idx):
        ax.scatter(t, r, color=c, marker=m, s=80, edgecolors="black", linewidths=0.5)
        if i > 0:
            ax.annotate(_label(role, i), (t, r), fontsize=7)
    ax.set_title("Hue angle / chroma")

    ax = fig.add_subplot(2, 2, 4)
    L_bg = lab[: len(bg255), 0]
    L_fg = lab[len(bg255) :, 0]
    delta = pd.DataFrame(
        L_fg[:, None] - L_bg[None, :],
        index=[_label("foreground", i) for i in range(len(fg255))],
        columns=[_label("background", i) for i in range(len(bg255))],
    )
    sns.heatmap(delta, annot=True, fmt=".0f", cmap="vlag", center=0, ax=ax)
    ax.set_title("ΔL* (foreground − background)")

    if title:
        fig.suptitle(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=200, bbox_inches="tight")
    plt.close(fig)


@click.command()
@click.argument(
    "palette_json",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--out",
    default="palette.png",
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
)
def main(palette_json: Path, out: Path):
    """
    Plot an optimized palette.
    """
    data = read_solution_json(palette_json)
    if data["status"] != "optimal":
        raise click.ClickException(
            f"{palette_json} holds no palette (status: {data['status']})"
        )

    out.parent.mkdir(parents=True, exist_ok=True)
    plot_palette(data["background"], data["foreground"], out, title=palette_json.stem)
    click.echo(f"✓ Wrote {out}")


if __name__ == "__main__":
    main()
