"""
Model layout: variables, bounds, base colors and the optional objective.
"""
import unittest
from itertools import combinations

import numpy as np

from assemble_model import assemble_model, distance_scale
from build_constraints import OBJECTIVE
from helpers import minimal_config


class TestLayout(unittest.TestCase):
    def setUp(self):
        self.config = minimal_config(n_bg=2, n_fg=3, margin=0.05)
        self.model = assemble_model(self.config)

    def test_variable_count_and_order(self):
        m = self.model
        self.assertEqual(m.n_vars, 2 + 3 * (2 + 3))
        self.assertEqual(m.names[:5], ["bbase", "fbase", "b1.r", "b1.g", "b1.b"])
        self.assertEqual(m.names[-1], "f3.b")

    def test_bounds(self):
        np.testing.assert_allclose(self.model.lower, 0.05)
        np.testing.assert_allclose(self.model.upper, 0.95)

    def test_base_colors_are_gray(self):
        bbase, fbase = self.model.background[0], self.model.foreground[0]
        self.assertTrue(bbase.is_base and fbase.is_base)
        self.assertEqual(bbase.slots, (0, 0, 0))
        self.assertEqual(fbase.slots, (1, 1, 1))
        x = self.model.initial_point(1)
        rgb = bbase.rgb(x)
        self.assertTrue(rgb[0] == rgb[1] == rgb[2])

    def test_role_sizes_are_stable(self):
        self.assertEqual([c.name for c in self.model.background], ["b0", "b1", "b2"])
        self.assertEqual(len(self.model.foreground), 4)
        again = assemble_model(self.config)
        self.assertEqual(
            [c.name for c in again.constraints],
            [c.name for c in self.model.constraints],
        )

    def test_no_objective_by_default(self):
        self.assertIsNone(self.model.objective)
        self.assertNotIn(OBJECTIVE, self.model.families())

    def test_config_passes_through(self):
        self.assertIs(self.model.config, self.config)

    def test_initial_point_seeded_and_bounded(self):
        a = self.model.initial_point(4)
        b = self.model.initial_point(4)
        np.testing.assert_array_equal(a, b)
        self.assertTrue(np.all(a >= self.model.lower))
        self.assertTrue(np.all(a <= self.model.upper))
        self.assertFalse(np.allclose(a, a[0]))

    def test_unknown_objective(self):
        with self.assertRaises(ValueError):
            assemble_model(self.config, objective="maximize-fun")


class TestMaxMinObjective(unittest.TestCase):
    def setUp(self):
        self.config = minimal_config(n_bg=2, n_fg=3, min_dist_f=20)
        self.model = assemble_model(self.config, objective="max-min-distance")

    def test_aux_variable(self):
        m = self.model
        self.assertEqual(m.names[-1], "min_dist_sq_ratio")
        self.assertEqual(m.lower[-1], 0.0)
        self.assertTrue(np.isinf(m.upper[-1]))
        self.assertEqual(m.n_colors, m.n_vars - 1)

    def test_scale_is_largest_threshold(self):
        self.assertEqual(distance_scale(self.config), 400.0)
        no_dist = minimal_config(min_dist_b=0, min_dist_f=0)
        self.assertEqual(distance_scale(no_dist), 1.0)

    def test_floor_constraints_cover_same_role_pairs(self):
        expected = len(list(combinations(range(3), 2))) + len(
            list(combinations(range(4), 2))
        )
        self.assertEqual(self.model.families()[OBJECTIVE], expected)

    def test_objective_is_minus_aux(self):
        x = self.model.initial_point(0)
        x[-1] = 1.5
        self.assertAlmostEqual(self.model.objective.fun(x), -1.5)
        g = self.model.objective.jac(x)
        self.assertAlmostEqual(g[-1], -1.0)
        self.assertEqual(np.count_nonzero(g), 1)

    def test_floor_value(self):
        x = self.model.initial_point(0)
        x[-1] = 0.0
        floors = [c for c in self.model.constraints if c.family == OBJECTIVE]
        dists = [c for c in self.model.constraints if c.name.startswith("dist[")]
        self.assertEqual([f.name[5:] for f in floors], [d.name[4:] for d in dists])
        thresholds = [self.config.min_dist_b**2] * 3 + [self.config.min_dist_f**2] * 6
        for f, d, bound in zip(floors, dists, thresholds):
            self.assertAlmostEqual(f.fun(x), (d.fun(x) + bound) / 400.0)

    def test_floor_gradient(self):
        x = self.model.initial_point(3)
        floor = next(c for c in self.model.constraints if c.family == OBJECTIVE)
        g = floor.jac(x)
        h = 1e-6
        for k in range(len(x)):
            e = np.zeros_like(x)
            e[k] = h
            fd = (floor.fun(x + e) - floor.fun(x - e)) / (2 * h)
            self.assertAlmostEqual(g[k], fd, places=5)

    def test_start_meets_every_floor(self):
        x = self.model.initial_point(0)
        floors = [c for c in self.model.constraints if c.family == OBJECTIVE]
        values = [f.fun(x) for f in floors]
        self.assertGreater(x[-1], 0.0)
        self.assertGreaterEqual(min(values), -1e-12)
        # the tightest floor is exactly active
        self.assertAlmostEqual(min(values), 0.0)

    def test_same_colors_as_feasibility_start(self):
        plain = assemble_model(self.config)
        np.testing.assert_array_equal(
            self.model.initial_point(4)[:-1], plain.initial_point(4)
        )

    def test_complete_point(self):
        colors = assemble_model(self.config).initial_point(1)
        x = self.model.complete_point(colors)
        self.assertEqual(len(x), self.model.n_vars)
        np.testing.assert_array_equal(x, self.model.initial_point(1))

    def test_feasibility_constraints_unchanged(self):
        plain = assemble_model(self.config)
        n_plain = len(plain.constraints)
        self.assertEqual(
            [c.name for c in self.model.constraints[:n_plain]],
            [c.name for c in plain.constraints],
        )


if __name__ == "__main__":
    unittest.main()
