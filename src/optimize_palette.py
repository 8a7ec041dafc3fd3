from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from assemble_model import OBJECTIVES, assemble_model
from palette_config import PaletteConfig, PaletteConfigError, read_config_json
from palette_io import write_solution_csv, write_solution_json
from render_palette import render_preview
from solve_palette import METHODS, PaletteSolution, solve_model


def render_summary(solution: PaletteSolution, families: dict, console: Console):
    table = Table(title=f"status: {solution.status.value}", show_header=True)
    table.add_column("Family", style="cyan", no_wrap=True)
    table.add_column("Constraints", justify="right")
    table.add_column("Min slack", justify="right")

    for family, count in families.items():
        s = solution.slack.get(family)
        cell = "" if s is None else f"{s:.3g}"
        if s is not None and s < 0:
            cell = f"[red]{cell}[/red]"
        table.add_row(family, str(count), cell)

    console.print(table)
    console.print(
        f"{solution.description} "
        f"[dim]({solution.n_iter} iterations, solver: {solution.message})[/dim]"
    )


def merge_config(config_json, overrides: dict) -> PaletteConfig:
    """
    Preset file values, overridden by whatever was given on the command line.
    """
    raw = read_config_json(config_json) if config_json else {}
    for k, v in overrides.items():
        if v is None:
            continue
        if k.endswith("_deg"):
            raw.pop(k[: -len("_deg")], None)
        raw[k] = v
    return PaletteConfig.from_dict(raw)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--config-json",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="PaletteConfig preset (see configs/).",
)
@click.option("--n-bg", type=int, help="Non-base background colors.")
@click.option("--n-fg", type=int, help="Non-base foreground colors.")
@click.option("--d-vivid-base", type=float, help="L* gap against the opposite base.")
@click.option("--d-vivid-colored", type=float, help="L* gap between colored bg/fg.")
@click.option("--margin", type=float, help="Channel fraction cut at both ends.")
@click.option("--min-theta-bg-deg", type=float, help="Background hue gap (degrees).")
@click.option("--min-theta-fg-deg", type=float, help="Foreground hue gap (degrees).")
@click.option("--min-dist-b", type=float, help="Background Lab distance.")
@click.option("--min-dist-f", type=float, help="Foreground Lab distance.")
@click.option("--dark/--light", "dark", default=None, help="Theme polarity.")
@click.option(
    "--objective",
    type=click.Choice(list(OBJECTIVES)),
    default="none",
    show_default=True,
)
@click.option(
    "--method", type=click.Choice(list(METHODS)), default="SLSQP", show_default=True
)
@click.option("--max-iter", default=1000, show_default=True)
@click.option("--seed", default=0, show_default=True, help="Start point seed.")
@click.option(
    "--out-json",
    type=click.Path(dir_okay=False, path_type=Path),
    default="palette.json",
    show_default=True,
)
@click.option(
    "--out-csv",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Optional per-color table (hex, RGB, Lab).",
)
@click.option(
    "--no-render", is_flag=True, default=False, help="Disable terminal preview."
)
def main(
    config_json,
    n_bg,
    n_fg,
    d_vivid_base,
    d_vivid_colored,
    margin,
    min_theta_bg_deg,
    min_theta_fg_deg,
    min_dist_b,
    min_dist_f,
    dark,
    objective,
    method,
    max_iter,
    seed,
    out_json,
    out_csv,
    no_render,
):
    """
    Optimize a background/foreground palette under visibility and
    distinctiveness constraints.
    """
    overrides = {
        "n_bg": n_bg,
        "n_fg": n_fg,
        "d_vivid_base": d_vivid_base,
        "d_vivid_colored": d_vivid_colored,
        "margin": margin,
        "min_theta_bg_deg": min_theta_bg_deg,
        "min_theta_fg_deg": min_theta_fg_deg,
        "min_dist_b": min_dist_b,
        "min_dist_f": min_dist_f,
        "is_dark": None if dark is None else (1 if dark else -1),
    }
    try:
        config = merge_config(config_json, overrides)
    except PaletteConfigError as e:
        raise click.ClickException(str(e)) from e

    model = assemble_model(config, objective=objective)
    solution = solve_model(model, method=method, max_iter=max_iter, seed=seed)

    console = Console()
    render_summary(solution, model.families(), console)

    write_solution_json(solution, config, out_json)
    click.echo(f"✓ Wrote {out_json}")

    if not solution.is_optimal:
        raise click.ClickException(
            f"{solution.description} (status: {solution.status.value})"
        )

    if out_csv:
        write_solution_csv(solution, out_csv)
        click.echo(f"✓ Wrote {out_csv}")

    if not no_render:
        render_preview(
            solution.background_rgb255(), solution.foreground_rgb255(), console
        )


if __name__ == "__main__":
    main()
