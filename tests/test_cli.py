"""
Command-line entry points and palette file round trips.
"""
import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

import numpy as np
import pandas as pd
from click.testing import CliRunner

from assemble_model import assemble_model
from helpers import CONFIGS, minimal_config
from optimize_palette import main as optimize_main
from palette_io import (
    read_solution_json,
    solution_to_frame,
    write_solution_json,
)
from plot_palette import main as plot_main
from render_palette import blend_toward_white, render_preview
from render_palette import main as render_main
from solve_palette import solve_model


class TestPaletteIO(unittest.TestCase):
    def test_frame_and_json(self):
        config = minimal_config()
        sol = solve_model(assemble_model(config))
        df = solution_to_frame(sol)
        self.assertEqual(len(df), 4)
        self.assertEqual(list(df["role"]), ["background"] * 2 + ["foreground"] * 2)
        self.assertEqual(list(df["is_base"]), [True, False, True, False])

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out" / "palette.json"
            write_solution_json(sol, config, path)
            data = read_solution_json(path)
        self.assertEqual(data["status"], "optimal")
        self.assertEqual(data["config"], config.to_dict())
        self.assertEqual(data["background"].shape, (2, 3))
        self.assertEqual(list(data["background"][0]), list(sol.background_rgb255()[0]))

    def test_invalid_bounds_json_is_valid(self):
        config = minimal_config(margin=0.5)
        sol = solve_model(assemble_model(config))
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "palette.json"
            write_solution_json(sol, config, path)
            raw = json.loads(path.read_text())
        self.assertEqual(raw["status"], "invalid_bounds")
        self.assertIsNone(raw["max_violation"])
        self.assertEqual(raw["background"], [])


class TestOptimizeCommand(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_minimal_preset(self):
        with tempfile.TemporaryDirectory() as tmp:
            out_json = Path(tmp) / "p.json"
            out_csv = Path(tmp) / "p.csv"
            result = self.runner.invoke(
                optimize_main,
                [
                    "--config-json",
                    str(CONFIGS / "minimal.json"),
                    "--out-json",
                    str(out_json),
                    "--out-csv",
                    str(out_csv),
                    "--no-render",
                ],
            )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("✓ Wrote", result.output)
            self.assertEqual(json.loads(out_json.read_text())["status"], "optimal")
            df = pd.read_csv(out_csv)
            self.assertEqual(len(df), 4)
            self.assertTrue(df["hex"].str.match(r"^#[0-9a-f]{6}$").all())

    def test_preview_renders(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self.runner.invoke(
                optimize_main,
                [
                    "--config-json",
                    str(CONFIGS / "minimal.json"),
                    "--out-json",
                    str(Path(tmp) / "p.json"),
                ],
            )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Hello, world!", result.output)

    def test_options_without_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self.runner.invoke(
                optimize_main,
                [
                    "--n-bg", "1",
                    "--n-fg", "1",
                    "--d-vivid-base", "20",
                    "--d-vivid-colored", "15",
                    "--margin", "0.1",
                    "--min-theta-bg-deg", "0",
                    "--min-theta-fg-deg", "0",
                    "--min-dist-b", "10",
                    "--min-dist-f", "10",
                    "--light",
                    "--out-json", str(Path(tmp) / "p.json"),
                    "--no-render",
                ],
            )
            self.assertEqual(result.exit_code, 0, result.output)
            data = json.loads((Path(tmp) / "p.json").read_text())
        self.assertEqual(data["config"]["is_dark"], -1)

    def test_missing_field(self):
        result = self.runner.invoke(optimize_main, ["--n-bg", "2", "--no-render"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("Missing required config fields", result.output)
        self.assertIn("min_dist_f", result.output)

    def test_override_preset_angle(self):
        with tempfile.TemporaryDirectory() as tmp:
            out_json = Path(tmp) / "p.json"
            result = self.runner.invoke(
                optimize_main,
                [
                    "--config-json",
                    str(CONFIGS / "minimal.json"),
                    "--n-bg", "2",
                    "--min-theta-bg-deg", "20",
                    "--out-json", str(out_json),
                    "--no-render",
                ],
            )
            # config is recorded whatever the solve outcome
            self.assertIn(result.exit_code, (0, 1), result.output)
            cfg = json.loads(out_json.read_text())["config"]
        self.assertEqual(cfg["n_bg"], 2)
        self.assertAlmostEqual(cfg["min_theta_bg"], 0.3490658503988659)

    def test_infeasible_reports_status(self):
        with tempfile.TemporaryDirectory() as tmp:
            out_json = Path(tmp) / "p.json"
            result = self.runner.invoke(
                optimize_main,
                [
                    "--config-json",
                    str(CONFIGS / "minimal.json"),
                    "--d-vivid-base", "80",
                    "--out-json", str(out_json),
                    "--no-render",
                ],
            )
            self.assertEqual(result.exit_code, 1)
            status = json.loads(out_json.read_text())["status"]
        self.assertEqual(status, "infeasible")
        self.assertIn("status: infeasible", result.output)

    def test_degenerate_margin(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self.runner.invoke(
                optimize_main,
                [
                    "--config-json",
                    str(CONFIGS / "minimal.json"),
                    "--margin", "0.5",
                    "--out-json", str(Path(tmp) / "p.json"),
                ],
            )
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid_bounds", result.output)


class TestRenderAndPlot(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.tmp = tempfile.TemporaryDirectory()
        self.palette = Path(self.tmp.name) / "p.json"
        config = minimal_config()
        # already feasible start: dark gray, dark red, light gray, light yellow
        x0 = np.array([0.1, 0.9, 0.5, 0.1, 0.1, 0.85, 0.85, 0.3])
        sol = solve_model(assemble_model(config), x0=x0)
        self.assertTrue(sol.is_optimal)
        write_solution_json(sol, config, self.palette)

    def tearDown(self):
        self.tmp.cleanup()

    def test_render(self):
        result = self.runner.invoke(render_main, [str(self.palette)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("foo bar", result.output)
        self.assertIn("background", result.output)

    def test_plot(self):
        out = Path(self.tmp.name) / "figs" / "p.png"
        result = self.runner.invoke(plot_main, [str(self.palette), "--out", str(out)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(out.exists())

    def test_render_rejects_failed_palette(self):
        config = minimal_config(margin=0.5)
        sol = solve_model(assemble_model(config))
        bad = Path(self.tmp.name) / "bad.json"
        write_solution_json(sol, config, bad)
        result = self.runner.invoke(render_main, [str(bad)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("holds no palette", result.output)

    def test_preview_default_console(self):
        data = read_solution_json(self.palette)
        with redirect_stdout(io.StringIO()) as buf:
            render_preview(data["background"], data["foreground"])
        self.assertIn("Hello, world!", buf.getvalue())

    def test_blend_toward_white(self):
        out = blend_toward_white([[0, 0, 0], [255, 255, 255]], alpha=0.15)
        self.assertEqual(out.tolist(), [[38, 38, 38], [255, 255, 255]])


if __name__ == "__main__":
    unittest.main()
