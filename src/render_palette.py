from pathlib import Path
from typing import Optional

import click
import numpy as np
from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

from lab_convert import hue_angle_deg, rgb_to_lab
from palette_io import read_solution_json
from solve_palette import rgb255_to_hex

# ============================================================
# Terminal preview
# ============================================================

SAMPLE_TEXT = "Hello, world!"
TRIAD_TEXT = "foo bar"

# translucent terminal background, blended toward white
ALPHA = 0.15


def blend_toward_white(rgb255: np.ndarray, alpha: float = ALPHA) -> np.ndarray:
    rgb = np.asarray(rgb255, dtype=float)
    return np.round(rgb * (1 - alpha) + 255 * alpha).astype(np.uint8)


def _style(fg, bg) -> Style:
    return Style(color=rgb255_to_hex(fg), bgcolor=rgb255_to_hex(bg))


def render_pairs(bg255: np.ndarray, fg255: np.ndarray) -> Text:
    """
    Every foreground (rows) over every background (columns).
    """
    out = Text()
    for fg in fg255:
        for bg in bg255:
            out.append(SAMPLE_TEXT, style=_style(fg, bg))
            out.append("  ")
        out.append("\n")
    return out


def render_base_triads(bg255: np.ndarray, fg255: np.ndarray) -> Text:
    """
    Base foreground over bg_j | bg_i | bg_j, for every pair of backgrounds.
    """
    fbase = fg255[0]
    out = Text()
    for outer in bg255:
        for inner in bg255:
            out.append(f"{TRIAD_TEXT} ", style=_style(fbase, outer))
            out.append(f" {TRIAD_TEXT} ", style=_style(fbase, inner))
            out.append(f" {TRIAD_TEXT}", style=_style(fbase, outer))
            out.append("  ")
        out.append("\n")
    return out


def render_table(bg255: np.ndarray, fg255: np.ndarray, title: str = "") -> Table:
    table = Table(title=title or None)

    table.add_column("Role", style="cyan", no_wrap=True)
    table.add_column("#", justify="right")
    table.add_column("Hex", no_wrap=True)
    table.add_column(" ")
    table.add_column("L*", justify="right")
    table.add_column("a*", justify="right")
    table.add_column("b*", justify="right")
    table.add_column("Hue", justify="right")

    for role, rows in (("background", bg255), ("foreground", fg255)):
        if len(rows) == 0:
            continue
        rgb = np.asarray(rows, dtype=float) / 255.0
        lab = rgb_to_lab(rgb)
        hues = hue_angle_deg(rgb)
        for i, (c, (L, a, b), h) in enumerate(zip(rows, lab, hues)):
            hx = rgb255_to_hex(c)
            table.add_row(
                role,
                "base" if i == 0 else str(i),
                hx,
                Text("   ", style=Style(bgcolor=hx)),
                f"{L:.1f}",
                f"{a:.1f}",
                f"{b:.1f}",
                "" if i == 0 else f"{h:.0f}°",
            )
    return table


def render_preview(
    bg255: np.ndarray,
    fg255: np.ndarray,
    console: Optional[Console] = None,
    title: str = "",
) -> None:
    console = console or Console()
    console.print(render_table(bg255, fg255, title))
    console.print(render_pairs(bg255, fg255))
    console.print(render_base_triads(bg255, fg255))

    console.rule(f"[dim]backgrounds blended {ALPHA:.0%} toward white[/dim]")
    blended = blend_toward_white(bg255)
    console.print(render_pairs(blended, fg255))
    console.print(render_base_triads(blended, fg255))


# ============================================================
# CLI
# ============================================================


@click.command()
@click.argument(
    "palette_json",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def main(palette_json: Path):
    """
    Preview an optimized palette in the terminal.
    """
    data = read_solution_json(palette_json)
    if data["status"] != "optimal":
        raise click.ClickException(
            f"{palette_json} holds no palette (status: {data['status']})"
        )
    render_preview(data["background"], data["foreground"], title=palette_json.stem)


if __name__ == "__main__":
    main()
