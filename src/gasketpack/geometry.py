"""
Geometry kernel for gasket packing.

Contains:
- 2D vector helpers on numpy points
- Circle: immutable circle value type
- circles_intersect / intersect_batch: radical-line intersection of two circles
"""

import numpy as np
from typing import NamedTuple, Optional, Tuple

from .config import Point, RGBA

# Centers closer than this are treated as coincident
COINCIDENT_EPSILON = 1e-12

OPAQUE_BLACK: RGBA = (0x0, 0x0, 0x0, 0xff)


def point(x: float, y: float) -> Point:
    return np.array([x, y], dtype=float)


def add(a: Point, b: Point) -> Point:
    return a + b


def sub(a: Point, b: Point) -> Point:
    return a - b


def scale(s: float, p: Point) -> Point:
    return s * p


def midpoint(a: Point, b: Point) -> Point:
    return scale(0.5, add(a, b))


def normalize(p: Point) -> Point:
    """Unit vector along p. The zero vector is returned unchanged."""
    length = np.linalg.norm(p)
    if length == 0:
        return np.array(p, dtype=float)
    return p / length


def distance(a: Point, b: Point) -> float:
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


class Circle(NamedTuple):
    """A circle with its draw colour. Immutable once constructed."""
    x: float
    y: float
    radius: float
    color: RGBA = OPAQUE_BLACK

    @property
    def center(self) -> Point:
        return point(self.x, self.y)

    def with_color(self, color: RGBA) -> "Circle":
        return self._replace(color=color)


def intersect_batch(
    a_center: Point, a_radii: np.ndarray, b_center: Point, b_radii: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Intersect circle pairs that share the centers a_center and b_center but
    differ in radius.

    The base point lies on the center line at the signed fraction
    (ra^2 - rb^2) / (2 d^2) past the midpoint; the two solutions are offset
    from it perpendicular to the center line by

        C = 0.5 * sqrt(2 (ra^2 + rb^2) / d^2 - (ra^2 - rb^2)^2 / d^4 - 1)

    times the center distance.

    Returns:
        (first, second, ok): two (n, 2) arrays of points and a boolean mask.
        Where ok is False the pair does not intersect (negative radicand or
        coincident centers) and the corresponding points are meaningless
        but finite.
    """
    a_radii, b_radii = np.broadcast_arrays(
        np.atleast_1d(np.asarray(a_radii, dtype=float)),
        np.atleast_1d(np.asarray(b_radii, dtype=float)),
    )
    a_center = np.asarray(a_center, dtype=float)
    b_center = np.asarray(b_center, dtype=float)
    delta = b_center - a_center
    d_sq = float(np.dot(delta, delta))

    if d_sq < COINCIDENT_EPSILON:
        placeholder = np.tile(a_center, (len(a_radii), 1))
        return placeholder, placeholder.copy(), np.zeros(len(a_radii), dtype=bool)

    ra_sq = a_radii ** 2
    rb_sq = b_radii ** 2
    diff = ra_sq - rb_sq
    radicand = 2.0 * (ra_sq + rb_sq) / d_sq - diff ** 2 / d_sq ** 2 - 1.0
    ok = radicand >= 0

    half_length = 0.5 * np.sqrt(np.where(ok, radicand, 0.0))
    base = midpoint(a_center, b_center) + (diff / (2.0 * d_sq))[:, np.newaxis] * delta
    perpendicular = np.array([delta[1], -delta[0]])
    offset = half_length[:, np.newaxis] * perpendicular

    return base + offset, base - offset, ok


def circles_intersect(a: Circle, b: Circle) -> Optional[Tuple[Point, Point]]:
    """
    Find where the boundaries of two circles cross.

    Returns the two crossing points (equal when the circles touch), or None
    when the circles are disjoint, one strictly contains the other, or they
    are concentric.
    """
    first, second, ok = intersect_batch(a.center, a.radius, b.center, b.radius)
    if not ok[0]:
        return None
    return first[0], second[0]
