import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Iterator, Tuple

from .config import GasketConfig, GrowthProgress, AngleMode, Point, RGBA
from .geometry import Circle, intersect_batch
from .palette import generate_palette, random_hsv_rgba, to_rgba

# Upper bound on candidate/sibling pairs compared in one numpy pass
MAX_PAIRS_PER_PASS = 1_000_000

# The gap sweep starts this far below the full gap
GAP_START_OFFSET = 0.01

# Verbose mode prints progress every this many circles
PROGRESS_EVERY = 100


@dataclass(eq=False)
class PackingNode:
    """
    One circle ("papa") and the circles packed inside it ("babies"), in
    creation order. Nodes never point back at their parent.
    """
    papa: Circle
    babies: List["PackingNode"] = field(default_factory=list)

    _centers: np.ndarray = field(default_factory=lambda: np.empty((0, 2)), repr=False)
    _radii: np.ndarray = field(default_factory=lambda: np.empty(0), repr=False)

    def add_baby(self, circle: Circle) -> "PackingNode":
        """Append a child circle and keep the sibling arrays in step."""
        baby = PackingNode(circle)
        self.babies.append(baby)
        self._centers = np.vstack([self._centers, circle.center])
        self._radii = np.append(self._radii, circle.radius)
        return baby

    @property
    def baby_centers(self) -> np.ndarray:
        return self._centers

    @property
    def baby_radii(self) -> np.ndarray:
        return self._radii


@dataclass
class PackingTree:
    """A finished packing: the root node plus the settings that grew it."""
    root: PackingNode
    config: GasketConfig
    progress: GrowthProgress = field(default_factory=GrowthProgress)

    def walk(self) -> Iterator[Tuple[PackingNode, int]]:
        """Depth-first pre-order traversal yielding (node, depth)."""
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            stack.extend((baby, depth + 1) for baby in reversed(node.babies))

    def circles(self) -> Iterator[Circle]:
        for node, _ in self.walk():
            yield node.papa

    def links(self) -> Iterator[Tuple[Circle, Circle]]:
        """Yield (parent, child) circle pairs."""
        for node, _ in self.walk():
            for baby in node.babies:
                yield node.papa, baby.papa

    def depth(self) -> int:
        return max(depth for _, depth in self.walk())

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())


class GasketPacker:
    """
    Grows a gasket: circles nested inside circles, each parent's free space
    filled by a chain of circles tangent to it and to one of its children.
    """

    def __init__(
        self,
        config: Optional[GasketConfig] = None,
        palette: Optional[np.ndarray] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or GasketConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        if palette is None:
            palette = generate_palette(self.config.palette, self.config.max_depth, self.rng)
        self.palette = np.asarray(palette, dtype=float)
        self._palette_rgba = [to_rgba(c) for c in self.palette]
        self.progress = GrowthProgress()
        self._theta_offset = 0.0

    def color_for_depth(self, depth: int) -> RGBA:
        if self.config.randomize_colors:
            return random_hsv_rgba(self.rng)
        return self._palette_rgba[depth % len(self._palette_rgba)]

    # =========================================================================
    # Validity
    # =========================================================================

    def _clear_of(
        self,
        centers: np.ndarray,
        radii: np.ndarray,
        other_centers: np.ndarray,
        other_radii: np.ndarray,
    ) -> np.ndarray:
        """Mask of candidates that do not overlap any of the other circles."""
        clear = np.ones(len(radii), dtype=bool)
        if len(other_radii) == 0 or len(radii) == 0:
            return clear

        rows = max(1, MAX_PAIRS_PER_PASS // len(other_radii))
        for start in range(0, len(radii), rows):
            stop = start + rows
            gaps = np.linalg.norm(
                centers[start:stop, np.newaxis, :] - other_centers[np.newaxis, :, :],
                axis=2
            )
            allowed = radii[start:stop, np.newaxis] + other_radii[np.newaxis, :] - self.config.epsilon
            clear[start:stop] = np.all(gaps >= allowed, axis=1)
        return clear

    def valid_mask(self, parent: PackingNode, centers: np.ndarray, radii: np.ndarray) -> np.ndarray:
        """
        Vectorized acceptance test for candidate circles under parent.

        A candidate is rejected when its center (nearly) coincides with the
        parent's, when it is smaller than the minimum size, when it pokes out
        of the parent, or when it overlaps one of the parent's children.
        """
        cfg = self.config
        papa = parent.papa
        to_papa = np.linalg.norm(centers - papa.center, axis=1)

        mask = to_papa >= cfg.degenerate_distance
        mask &= radii >= cfg.min_circle_size
        mask &= to_papa <= papa.radius - radii + cfg.epsilon
        if parent.babies and np.any(mask):
            mask[mask] = self._clear_of(
                centers[mask], radii[mask], parent.baby_centers, parent.baby_radii
            )
        return mask

    def is_valid(self, parent: PackingNode, candidate: Circle) -> bool:
        """Check a single candidate circle against parent and its children."""
        mask = self.valid_mask(
            parent, candidate.center[np.newaxis, :], np.array([candidate.radius])
        )
        return bool(mask[0])

    # =========================================================================
    # Placement
    # =========================================================================

    def _attach(self, node: PackingNode, center: Point, radius: float, depth: int) -> PackingNode:
        circle = Circle(float(center[0]), float(center[1]), float(radius), self.color_for_depth(depth))
        baby = node.add_baby(circle)

        self.progress.circles_placed += 1
        self.progress.deepest = max(self.progress.deepest, depth)
        if self.config.verbose and self.progress.circles_placed % PROGRESS_EVERY == 0:
            print(self.progress, end="\r", flush=True)

        return baby

    def _sample_thetas(self, depth: int, count: int) -> np.ndarray:
        if self.config.angle_mode is AngleMode.RANDOM:
            return self.rng.uniform(0.0, 2.0 * np.pi, count)
        theta = 2.0 * np.pi * depth / self.config.max_depth + self._theta_offset
        return np.full(count, theta)

    def try_place_child(self, node: PackingNode, depth: int) -> Optional[PackingNode]:
        """
        Rejection-sample one child touching the inside of node's circle.

        Up to retry_bound trials are drawn, sample_batch_size at a time; the
        first trial that passes the validity test becomes the new child.
        Returns None once every trial has been rejected, meaning node is full.
        """
        cfg = self.config
        papa = node.papa
        remaining = cfg.retry_bound

        while remaining > 0:
            count = min(cfg.sample_batch_size, remaining)
            remaining -= count

            radii = self.rng.uniform(cfg.min_radius_ratio, cfg.max_radius_ratio, count) * papa.radius
            thetas = self._sample_thetas(depth, count)
            directions = np.column_stack([np.cos(thetas), np.sin(thetas)])
            centers = papa.center + (papa.radius - radii)[:, np.newaxis] * directions

            hits = np.flatnonzero(self.valid_mask(node, centers, radii))
            if hits.size:
                best = hits[0]
                return self._attach(node, centers[best], radii[best], depth)

        self.progress.failed_placements += 1
        return None

    # =========================================================================
    # Gap filling
    # =========================================================================

    def _gap_candidates(self, papa: Circle, child: Circle) -> Tuple[np.ndarray, np.ndarray]:
        """
        Filler candidates for the crescent between papa and child, in sweep
        order.

        For each radius r a circle of radius r centered on the intersection
        of (papa shrunk by r) and (child grown by r) touches papa from the
        inside and child from the outside. Radii run from just under the gap
        down to the floor; both intersection points are kept per radius, and
        radii with no intersection are dropped.
        """
        cfg = self.config
        start = papa.radius - child.radius - GAP_START_OFFSET
        floor = max(cfg.fill_floor, cfg.min_circle_size)
        if start < floor:
            return np.empty((0, 2)), np.empty(0)

        steps = int(np.floor((start - floor) / cfg.increment)) + 1
        radii = start - cfg.increment * np.arange(steps)

        first, second, ok = intersect_batch(
            papa.center, papa.radius - radii, child.center, child.radius + radii
        )

        centers = np.empty((2 * steps, 2))
        centers[0::2] = first
        centers[1::2] = second
        keep = np.repeat(ok, 2)
        return centers[keep], np.repeat(radii, 2)[keep]

    def fill_gap(self, node: PackingNode, child: PackingNode, depth: int) -> int:
        """
        Thread tangent filler circles through the gap between node and child.

        Every accepted filler is appended to node and fully populated before
        the sweep moves on. Returns the number of fillers placed.
        """
        centers, radii = self._gap_candidates(node.papa, child.papa)
        if len(radii) == 0:
            return 0

        mask = self.valid_mask(node, centers, radii)
        placed = 0
        i = 0

        while i < len(radii):
            hits = np.flatnonzero(mask[i:])
            if not hits.size:
                break
            i += hits[0]

            filler = self._attach(node, centers[i], radii[i], depth)
            placed += 1
            self.populate(filler, depth + 1)

            i += 1
            mask[i:] &= self._clear_of(
                centers[i:], radii[i:],
                filler.papa.center[np.newaxis, :], np.array([filler.papa.radius])
            )

        return placed

    def populate(self, node: PackingNode, depth: int) -> bool:
        """
        Grow node by one stochastic child plus the fillers around it.

        The child's own subtree is grown first, then the gap between node and
        child is filled. Returns False when depth is exhausted or no child
        fits, True when node grew.
        """
        self.progress.populate_calls += 1
        if depth >= self.config.max_depth:
            return False

        child = self.try_place_child(node, depth)
        if child is None:
            return False

        self.populate(child, depth + self.config.depth_jump)
        self.fill_gap(node, child, depth)
        self._theta_offset += self.config.theta_increment
        return True

    # =========================================================================
    # Main Entry Points
    # =========================================================================

    def make_root(self) -> PackingNode:
        """The bounding circle, centered on the canvas."""
        c = self.config.canvas_radius
        return PackingNode(Circle(c, c, self.config.root_radius, self.color_for_depth(0)))

    def pack(self) -> PackingTree:
        """
        Grow a complete gasket.

        populate is called on the root until the root refuses another child.
        """
        self.progress = GrowthProgress(circles_placed=1)
        self._theta_offset = 0.0
        root = self.make_root()

        while self.populate(root, self.config.depth_jump):
            continue

        if self.config.verbose:
            print()
            print(f"Done! {self.progress}")

        return PackingTree(root, self.config, self.progress)
