"""
gasketpack - Recursive tangent-circle gaskets.

Usage:
    from gasketpack import GasketPacker, GasketConfig, RenderConfig, render_tree

    # Basic usage
    tree = GasketPacker().pack()

    # With configuration
    config = GasketConfig(canvas_size=2000, max_depth=8, seed=7, verbose=True)
    tree = GasketPacker(config).pack()

    # Rasterize
    image = render_tree(tree, RenderConfig(fill=True))
    image.save("gasket.png")

Growth:
    - A child circle is rejection-sampled against the inside of its parent
    - The child's subtree is grown first (depth-first)
    - The crescent between parent and child is then filled by a sweep of
      circles tangent to both, each grown in turn
"""

from .config import (
    GasketConfig, RenderConfig, GrowthProgress,
    AngleMode, StrokePolicy, RadiusPolicy, Point,
)
from .geometry import Circle, circles_intersect, intersect_batch
from .packer import GasketPacker, PackingNode, PackingTree
from .palette import GradientTable, PALETTES, blend_hcl, generate_palette
from .render import CircleStyle, render_tree, save_image

__all__ = [
    "GasketPacker",
    "GasketConfig",
    "RenderConfig",
    "GrowthProgress",
    "AngleMode",
    "StrokePolicy",
    "RadiusPolicy",
    "PackingNode",
    "PackingTree",
    "Circle",
    "CircleStyle",
    "GradientTable",
    "PALETTES",
    "blend_hcl",
    "generate_palette",
    "circles_intersect",
    "intersect_batch",
    "render_tree",
    "save_image",
    "Point",
]

__version__ = "0.1.0"
