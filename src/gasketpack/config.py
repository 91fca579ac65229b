"""
Configuration and type definitions for gasket packing.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum

# Type aliases
Point = np.ndarray
RGB = np.ndarray          # floats in [0, 1]
RGBA = Tuple[int, int, int, int]


class AngleMode(Enum):
    """How the stochastic child's angle around its parent is chosen."""
    RANDOM = "random"              # uniform on [0, 2pi)
    DEPTH_LINEAR = "depth_linear"  # 2pi * depth / max_depth


class StrokePolicy(Enum):
    """Line width used when circles are stroked."""
    CONSTANT = "constant"          # 2.0 units
    PROPORTIONAL = "proportional"  # 0.3 * radius


class RadiusPolicy(Enum):
    """Radius at which a circle is drawn."""
    FULL = "full"
    SHRUNK = "shrunk"  # 0.75 * radius


@dataclass
class GasketConfig:
    """
    Configuration parameters for the gasket generator. Fixed for a run.

    Canvas:
        canvas_size: Side of the square canvas; the bounding circle has
            radius canvas_size / 2
        border_thickness: Root radius is canvas radius - border_thickness

    Growth:
        max_depth: Recursion depth bound, also the palette length
        min_radius_ratio, max_radius_ratio: Child radius as a fraction of
            its parent's radius
        min_circle_size: Absolute radius floor. None means
            max(3, canvas_size / 2000)
        angle_mode: Angle sampling for the stochastic child
        theta_increment: Offset added to the depth-linear angle after each
            successful populate
        depth_jump: Depth step between a node and its stochastic child

    Gap filling:
        increment: Decrement of the filler radius per sweep step
        fill_floor: Smallest filler radius tried by the sweep

    Search:
        retry_bound: Placement trials before a node is declared full
        sample_batch_size: Trials evaluated together per numpy batch
        epsilon: Tolerance for the containment and overlap tests
        degenerate_distance: Candidates closer than this to their parent's
            center are rejected

    Colour:
        palette: Name of a palette strategy (see gasketpack.palette)
        randomize_colors: Random HSV colour per circle instead of palette
    """
    # Canvas
    canvas_size: float = 8000
    border_thickness: float = 2.0

    # Growth
    max_depth: int = 15
    min_radius_ratio: float = 0.55
    max_radius_ratio: float = 0.85
    min_circle_size: Optional[float] = None
    angle_mode: AngleMode = AngleMode.RANDOM
    theta_increment: float = 0.0
    depth_jump: int = 1

    # Gap filling
    increment: float = 0.125 / 4.0
    fill_floor: float = 1.0

    # Search
    retry_bound: int = 1000
    sample_batch_size: int = 50
    epsilon: float = 1.0
    degenerate_distance: float = 0.5

    # Colour
    palette: str = "gradient"
    randomize_colors: bool = False

    # Run
    seed: Optional[int] = None
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.min_circle_size is None:
            self.min_circle_size = max(3.0, float(self.canvas_size) / 2000.0)
        if isinstance(self.angle_mode, str):
            self.angle_mode = AngleMode(self.angle_mode)

        if self.canvas_size <= 0:
            raise ValueError(f"canvas_size must be positive, got {self.canvas_size}")
        if self.root_radius <= 0:
            raise ValueError(
                f"border_thickness {self.border_thickness} leaves no room on a "
                f"canvas of size {self.canvas_size}"
            )
        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.depth_jump <= 0:
            raise ValueError(f"depth_jump must be positive, got {self.depth_jump}")
        if not 0 < self.min_radius_ratio < 1 or not 0 < self.max_radius_ratio < 1:
            raise ValueError(
                "radius ratios must lie strictly between 0 and 1, got "
                f"min={self.min_radius_ratio} max={self.max_radius_ratio}"
            )
        if self.max_radius_ratio < self.min_radius_ratio:
            raise ValueError(
                f"max_radius_ratio ({self.max_radius_ratio}) is smaller than "
                f"min_radius_ratio ({self.min_radius_ratio})"
            )
        if self.min_circle_size <= 0:
            raise ValueError(f"min_circle_size must be positive, got {self.min_circle_size}")
        if self.increment <= 0:
            raise ValueError(f"increment must be positive, got {self.increment}")
        if self.fill_floor <= 0:
            raise ValueError(f"fill_floor must be positive, got {self.fill_floor}")
        if self.retry_bound <= 0:
            raise ValueError(f"retry_bound must be positive, got {self.retry_bound}")
        if self.sample_batch_size <= 0:
            raise ValueError(f"sample_batch_size must be positive, got {self.sample_batch_size}")
        if self.epsilon < 0:
            raise ValueError(f"epsilon must not be negative, got {self.epsilon}")

    @property
    def canvas_radius(self) -> float:
        return self.canvas_size / 2.0

    @property
    def root_radius(self) -> float:
        return self.canvas_radius - self.border_thickness


@dataclass
class RenderConfig:
    """
    Options for the rasterizer. None of these affect the packing itself.

        fill: Fill circles instead of stroking their outline
        stroke_policy: Line width rule for stroked circles
        radius_policy: Radius rule for drawn circles
        jitter: Random offset of each drawn center, as a fraction of radius
        draw_links: Overlay a line from every parent center to its children
        supersample: Render this many times larger, then downscale
        quality: JPEG quality for the saved image
    """
    fill: bool = False
    stroke_policy: StrokePolicy = StrokePolicy.PROPORTIONAL
    radius_policy: RadiusPolicy = RadiusPolicy.SHRUNK
    jitter: float = 0.4
    background: Tuple[int, int, int] = (0xff, 0xff, 0xff)
    draw_links: bool = False
    link_color: Tuple[int, int, int] = (0x22, 0x77, 0x24)
    link_width: float = 2.0
    supersample: int = 1
    quality: int = 95

    def __post_init__(self) -> None:
        if isinstance(self.stroke_policy, str):
            self.stroke_policy = StrokePolicy(self.stroke_policy)
        if isinstance(self.radius_policy, str):
            self.radius_policy = RadiusPolicy(self.radius_policy)

        if self.jitter < 0:
            raise ValueError(f"jitter must not be negative, got {self.jitter}")
        if self.supersample < 1:
            raise ValueError(f"supersample must be at least 1, got {self.supersample}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"quality must be between 1 and 100, got {self.quality}")


@dataclass
class GrowthProgress:
    """Tracks the state of a gasket run."""
    circles_placed: int = 0
    populate_calls: int = 0
    failed_placements: int = 0
    deepest: int = 0

    def __str__(self) -> str:
        return (
            f"Placed: {self.circles_placed} | Populated: {self.populate_calls} | "
            f"Full nodes: {self.failed_placements} | Depth: {self.deepest}"
        )
