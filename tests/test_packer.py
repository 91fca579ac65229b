import itertools
import unittest
import numpy as np
from gasketpack.config import GasketConfig, AngleMode
from gasketpack.geometry import Circle, distance
from gasketpack.packer import GasketPacker, PackingNode, PackingTree
from gasketpack.palette import to_rgba

TOL = 1e-6


class TestPackerLogic(unittest.TestCase):
    def setUp(self):
        """A 200x200 canvas with a parent circle of radius 90 at its center."""
        self.config = GasketConfig(
            canvas_size=200, max_depth=4, min_circle_size=3, increment=0.5, seed=1
        )
        self.packer = GasketPacker(self.config)
        self.parent = PackingNode(Circle(100.0, 100.0, 90.0))

    # --- Validity predicate ---

    def test_rejects_center_on_parent_center(self):
        self.assertFalse(self.packer.is_valid(self.parent, Circle(100.2, 100.0, 20.0)))

    def test_rejects_below_minimum_size(self):
        self.assertFalse(self.packer.is_valid(self.parent, Circle(150.0, 100.0, 2.0)))

    def test_rejects_circle_leaving_parent(self):
        # 70 from the center, allowed at most 90 - 30 + 1
        self.assertFalse(self.packer.is_valid(self.parent, Circle(170.0, 100.0, 30.0)))

    def test_accepts_internally_tangent_circle(self):
        self.assertTrue(self.packer.is_valid(self.parent, Circle(160.0, 100.0, 30.0)))

    def test_sibling_overlap(self):
        self.parent.add_baby(Circle(160.0, 100.0, 30.0))
        # 40 apart, needs 20 + 30 - 1
        self.assertFalse(self.packer.is_valid(self.parent, Circle(120.0, 100.0, 20.0)))
        # exactly touching
        self.assertTrue(self.packer.is_valid(self.parent, Circle(110.0, 100.0, 20.0)))

    def test_valid_mask_matches_single_checks(self):
        self.parent.add_baby(Circle(160.0, 100.0, 30.0))
        candidates = [
            Circle(100.2, 100.0, 20.0),
            Circle(110.0, 100.0, 20.0),
            Circle(120.0, 100.0, 20.0),
            Circle(60.0, 100.0, 40.0),
        ]
        centers = np.array([c.center for c in candidates])
        radii = np.array([c.radius for c in candidates])
        mask = self.packer.valid_mask(self.parent, centers, radii)
        self.assertEqual(list(mask), [self.packer.is_valid(self.parent, c) for c in candidates])

    # --- Stochastic placement ---

    def test_placed_child_touches_parent(self):
        child = self.packer.try_place_child(self.parent, 1)
        self.assertIsNotNone(child)
        self.assertIs(self.parent.babies[-1], child)

        c = child.papa
        self.assertAlmostEqual(distance(self.parent.papa.center, c.center), 90.0 - c.radius, places=6)
        self.assertGreaterEqual(c.radius, 0.55 * 90.0 - TOL)
        self.assertLessEqual(c.radius, 0.85 * 90.0 + TOL)
        self.assertEqual(c.color, self.packer.color_for_depth(1))

    def test_placement_exhausts_quietly(self):
        """A parent too small for any child reports failure instead of raising."""
        tiny = PackingNode(Circle(100.0, 100.0, 3.0))
        self.assertIsNone(self.packer.try_place_child(tiny, 1))
        self.assertEqual(tiny.babies, [])
        self.assertEqual(self.packer.progress.failed_placements, 1)

    def test_depth_linear_angle(self):
        config = GasketConfig(
            canvas_size=200, max_depth=4, min_circle_size=3,
            angle_mode=AngleMode.DEPTH_LINEAR, seed=3
        )
        packer = GasketPacker(config)
        child = packer.try_place_child(self.parent, 1)
        # theta = 2pi * 1 / 4 points straight along +y
        self.assertAlmostEqual(child.papa.x, 100.0, places=6)
        self.assertGreater(child.papa.y, 100.0)

    def test_theta_increment_turns_later_children(self):
        config = GasketConfig(
            canvas_size=200, max_depth=4, min_circle_size=3,
            angle_mode=AngleMode.DEPTH_LINEAR, theta_increment=0.3, seed=3
        )
        packer = GasketPacker(config)
        depth = config.max_depth - 1
        base = 2.0 * np.pi * depth / config.max_depth

        first = PackingNode(Circle(100.0, 100.0, 90.0))
        second = PackingNode(Circle(100.0, 100.0, 90.0))
        self.assertTrue(packer.populate(first, depth))
        self.assertTrue(packer.populate(second, depth))

        for node, theta in ((first, base), (second, base + 0.3)):
            direction = node.babies[0].papa.center - node.papa.center
            np.testing.assert_allclose(
                direction / np.linalg.norm(direction), [np.cos(theta), np.sin(theta)], atol=1e-9
            )

    def test_depth_jump_skips_colours_and_keeps_depth_bound(self):
        palette = np.array([[i / 10.0] * 3 for i in range(6)])
        config = GasketConfig(
            canvas_size=200, max_depth=6, min_circle_size=3, increment=0.5, depth_jump=2, seed=8
        )
        packer = GasketPacker(config, palette=palette)

        self.assertTrue(packer.populate(self.parent, 1))
        child = self.parent.babies[0]
        self.assertEqual(child.papa.color, to_rgba(palette[1]))
        self.assertGreater(len(child.babies), 0)
        for grandchild in child.babies:
            self.assertEqual(grandchild.papa.color, to_rgba(palette[3]))

        tree = GasketPacker(config, palette=palette).pack()
        self.assertLessEqual(tree.depth(), config.max_depth - 1)
        self.assertLess(tree.progress.deepest, config.max_depth)
        # the driver starts at depth_jump, so the root's children skip palette[1]
        self.assertEqual(tree.root.babies[0].papa.color, to_rgba(palette[2]))

    # --- Gap filling ---

    def test_fillers_are_tangent_to_parent_and_child(self):
        child = self.parent.add_baby(Circle(140.0, 100.0, 50.0))
        # at the last depth the fillers are not grown further
        placed = self.packer.fill_gap(self.parent, child, self.config.max_depth - 1)

        self.assertGreater(placed, 0)
        self.assertEqual(len(self.parent.babies), placed + 1)
        for filler in self.parent.babies[1:]:
            f = filler.papa
            self.assertTrue(np.isfinite([f.x, f.y, f.radius]).all())
            self.assertAlmostEqual(distance(f.center, self.parent.papa.center), 90.0 - f.radius, places=6)
            self.assertAlmostEqual(distance(f.center, child.papa.center), 50.0 + f.radius, places=6)
            self.assertEqual(filler.babies, [])

    def test_fillers_do_not_overlap(self):
        child = self.parent.add_baby(Circle(140.0, 100.0, 50.0))
        self.packer.fill_gap(self.parent, child, self.config.max_depth - 1)
        for a, b in itertools.combinations(self.parent.babies, 2):
            gap = distance(a.papa.center, b.papa.center)
            self.assertGreaterEqual(gap, a.papa.radius + b.papa.radius - self.config.epsilon - TOL)

    def test_fillers_grow_their_own_subtrees(self):
        child = self.parent.add_baby(Circle(140.0, 100.0, 50.0))
        self.packer.fill_gap(self.parent, child, 1)
        self.assertTrue(any(filler.babies for filler in self.parent.babies[1:]))

    def test_no_gap_no_fillers(self):
        """A child filling its parent leaves no room for the sweep."""
        child = self.parent.add_baby(Circle(100.5, 100.0, 89.5))
        self.assertEqual(self.packer.fill_gap(self.parent, child, 1), 0)
        self.assertEqual(len(self.parent.babies), 1)

    # --- Populate ---

    def test_populate_respects_depth_bound(self):
        self.assertFalse(self.packer.populate(self.parent, self.config.max_depth))
        self.assertEqual(self.parent.babies, [])

    def test_populate_grows_node(self):
        self.assertTrue(self.packer.populate(self.parent, 1))
        self.assertGreaterEqual(len(self.parent.babies), 1)
        # the stochastic child was grown before the gap was filled
        self.assertGreater(len(self.parent.babies[0].babies), 0)

    # --- Colour ---

    def test_color_wraps_around_palette(self):
        palette = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        packer = GasketPacker(self.config, palette=palette)
        self.assertEqual(packer.color_for_depth(0), (255, 0, 0, 255))
        self.assertEqual(packer.color_for_depth(3), to_rgba(palette[1]))

    def test_randomized_colors(self):
        config = GasketConfig(canvas_size=200, min_circle_size=3, randomize_colors=True, seed=5)
        packer = GasketPacker(config)
        colors = {packer.color_for_depth(0) for _ in range(10)}
        self.assertGreater(len(colors), 1)


class TestGasketInvariants(unittest.TestCase):
    """Grow one seeded gasket and check every node in it."""

    @classmethod
    def setUpClass(cls):
        cls.config = GasketConfig(
            canvas_size=2000,
            max_depth=5,
            min_radius_ratio=0.5,
            max_radius_ratio=0.85,
            min_circle_size=10,
            retry_bound=1000,
            seed=2024,
        )
        cls.tree = GasketPacker(cls.config).pack()

    def test_root(self):
        root = self.tree.root.papa
        self.assertEqual((root.x, root.y), (1000.0, 1000.0))
        self.assertEqual(root.radius, 1000.0 - self.config.border_thickness)
        self.assertGreater(len(self.tree.root.babies), 0)

    def test_containment(self):
        eps = self.config.epsilon
        for papa, baby in self.tree.links():
            self.assertLessEqual(distance(papa.center, baby.center), papa.radius - baby.radius + eps + TOL)

    def test_siblings_do_not_overlap(self):
        eps = self.config.epsilon
        for node, _ in self.tree.walk():
            for a, b in itertools.combinations(node.babies, 2):
                gap = distance(a.papa.center, b.papa.center)
                self.assertGreaterEqual(gap, a.papa.radius + b.papa.radius - eps - TOL)

    def test_size_floor(self):
        for circle in self.tree.circles():
            self.assertGreaterEqual(circle.radius, self.config.min_circle_size)

    def test_no_degenerate_children(self):
        for papa, baby in self.tree.links():
            self.assertGreaterEqual(distance(papa.center, baby.center), self.config.degenerate_distance)

    def test_depth_bound(self):
        # populate refuses at max_depth, so the deepest level is one less
        self.assertGreaterEqual(self.tree.depth(), 1)
        self.assertLessEqual(self.tree.depth(), self.config.max_depth - 1)

    def test_progress_counts_every_circle(self):
        self.assertEqual(self.tree.progress.circles_placed, len(self.tree))
        self.assertGreaterEqual(self.tree.progress.failed_placements, 1)

    def test_same_seed_same_tree(self):
        again = GasketPacker(self.config).pack()
        self.assertEqual(len(again), len(self.tree))
        self.assertEqual(list(again.circles()), list(self.tree.circles()))

    def test_walk_is_preorder(self):
        nodes = [node for node, _ in self.tree.walk()]
        self.assertIs(nodes[0], self.tree.root)
        self.assertIs(nodes[1], self.tree.root.babies[0])
        depths = [depth for _, depth in self.tree.walk()]
        self.assertEqual(depths[:2], [0, 1])


class TestPackingTree(unittest.TestCase):
    def test_small_tree_helpers(self):
        root = PackingNode(Circle(0.0, 0.0, 10.0))
        a = root.add_baby(Circle(5.0, 0.0, 5.0))
        a.add_baby(Circle(7.0, 0.0, 3.0))
        root.add_baby(Circle(-5.0, 0.0, 5.0))
        tree = PackingTree(root, GasketConfig(canvas_size=20, min_circle_size=1))

        self.assertEqual(len(tree), 4)
        self.assertEqual(tree.depth(), 2)
        self.assertEqual([c.x for c in tree.circles()], [0.0, 5.0, 7.0, -5.0])
        self.assertEqual(len(list(tree.links())), 3)
        np.testing.assert_allclose(root.baby_centers, [[5.0, 0.0], [-5.0, 0.0]])
        np.testing.assert_allclose(root.baby_radii, [5.0, 5.0])


if __name__ == '__main__':
    unittest.main()
