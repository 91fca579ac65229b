"""
Rasterization of a finished packing with Pillow.

The packing is drawn depth-first, parents before children, so nested
circles land on top of the circles that contain them.
"""

import time
import numpy as np
from typing import Iterator, NamedTuple, Optional, Tuple

from PIL import Image, ImageDraw

from .config import RenderConfig, StrokePolicy, RadiusPolicy
from .geometry import Circle
from .packer import PackingTree

CONSTANT_STROKE_WIDTH = 2.0
PROPORTIONAL_STROKE_FACTOR = 0.3
SHRUNK_RADIUS_FACTOR = 0.75


class CircleStyle(NamedTuple):
    """How one circle is drawn."""
    fill: bool
    width: float   # stroke width, unused when filling
    radius: float  # drawn radius


def circle_style(circle: Circle, config: RenderConfig) -> CircleStyle:
    if config.fill:
        return CircleStyle(True, 0.0, circle.radius)

    if config.stroke_policy is StrokePolicy.CONSTANT:
        width = CONSTANT_STROKE_WIDTH
    else:
        width = circle.radius * PROPORTIONAL_STROKE_FACTOR

    if config.radius_policy is RadiusPolicy.SHRUNK:
        radius = circle.radius * SHRUNK_RADIUS_FACTOR
    else:
        radius = circle.radius

    return CircleStyle(False, width, radius)


def iter_styled(tree: PackingTree, config: RenderConfig) -> Iterator[Tuple[Circle, CircleStyle]]:
    for circle in tree.circles():
        yield circle, circle_style(circle, config)


def _jittered(circle: Circle, jitter: float, rng: np.random.Generator) -> Tuple[float, float]:
    if jitter == 0.0:
        return circle.x, circle.y
    r = rng.random() * jitter * circle.radius
    angle = rng.random() * np.pi * 2.0
    return circle.x + np.cos(angle) * r, circle.y + np.sin(angle) * r


def _draw_circle(
    draw: ImageDraw.ImageDraw, x: float, y: float, circle: Circle, style: CircleStyle, k: float
) -> None:
    rgb = tuple(circle.color[:3])
    if style.fill:
        r = style.radius * k
        draw.ellipse([x * k - r, y * k - r, x * k + r, y * k + r], fill=rgb)
        return

    # Pillow strokes inward from the bounding box; widen it by half the
    # line so the stroke is centered on the drawn radius.
    width = max(1, int(round(style.width * k)))
    r = style.radius * k + width / 2.0
    draw.ellipse([x * k - r, y * k - r, x * k + r, y * k + r], outline=rgb, width=width)


def render_tree(
    tree: PackingTree,
    config: Optional[RenderConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> Image.Image:
    """
    Rasterize a packing onto a square RGB image of side canvas_size.

    Jitter is drawn from rng and only moves the drawn circles.
    """
    config = config or RenderConfig()
    rng = rng if rng is not None else np.random.default_rng()

    size = int(round(tree.config.canvas_size))
    k = float(config.supersample)
    canvas = Image.new("RGB", (int(round(size * k)),) * 2, tuple(config.background))
    draw = ImageDraw.Draw(canvas)

    for circle, style in iter_styled(tree, config):
        x, y = _jittered(circle, config.jitter, rng)
        _draw_circle(draw, x, y, circle, style, k)

    if config.draw_links:
        width = max(1, int(round(config.link_width * k)))
        for papa, baby in tree.links():
            draw.line(
                [papa.x * k, papa.y * k, baby.x * k, baby.y * k],
                fill=tuple(config.link_color), width=width
            )

    if config.supersample > 1:
        canvas = canvas.resize((size, size), Image.Resampling.LANCZOS)
    return canvas


def default_filename() -> str:
    return f"circles-{int(time.time())}.jpg"


def save_image(image: Image.Image, path: str, quality: int = 95) -> str:
    """Encode image to path; the format follows the file extension."""
    image.save(path, quality=quality)
    return path
