"""
Depth palettes.

A palette is an ordered (n, 3) array of RGB floats in [0, 1]; the circle at
depth d is drawn with palette[d % n]. Palettes are sampled from gradient
tables whose keypoints are blended in CIE LCh (HCL) space so that equal
steps look equally far apart.
"""

import colorsys
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from PIL import ImageColor
from skimage import color as skcolor

from .config import RGB, RGBA

# Below this chroma a colour has no meaningful hue
ACHROMATIC_CHROMA = 0.015

PaletteStrategy = Callable[[int, np.random.Generator], np.ndarray]


def hsv(hue: float, saturation: float, value: float) -> RGB:
    """HSV with hue in degrees to an RGB float triple."""
    return np.array(colorsys.hsv_to_rgb((hue % 360.0) / 360.0, saturation, value))


def parse_hex(value: str) -> RGB:
    r, g, b = ImageColor.getrgb(value)[:3]
    return np.array([r, g, b], dtype=float) / 255.0


def to_rgba(rgb: RGB) -> RGBA:
    """Truncate an RGB float triple to an opaque 8-bit RGBA tuple."""
    r, g, b = (int(c * 255.0) for c in np.clip(rgb, 0.0, 1.0))
    return (r, g, b, 0xff)


def random_hsv_rgba(rng: np.random.Generator) -> RGBA:
    return to_rgba(hsv(rng.random() * 360.0, 0.5, 0.9))


def _to_lch(rgb: RGB) -> np.ndarray:
    lab = skcolor.rgb2lab(np.asarray(rgb, dtype=float).reshape(1, 1, 3))
    return skcolor.lab2lch(lab)[0, 0]


def _from_lch(lch: np.ndarray) -> RGB:
    lab = skcolor.lch2lab(np.asarray(lch, dtype=float).reshape(1, 1, 3))
    return np.clip(skcolor.lab2rgb(lab)[0, 0], 0.0, 1.0)


def blend_hcl(c1: RGB, c2: RGB, t: float) -> RGB:
    """
    Blend two colours at fraction t in LCh space.

    Lightness and chroma are interpolated linearly, hue along the shorter
    arc. When one end is (nearly) grey it takes the other end's hue so the
    blend does not swing through unrelated hues. The result is clamped to
    the RGB cube.
    """
    l1, ch1, h1 = _to_lch(c1)
    l2, ch2, h2 = _to_lch(c2)

    if ch1 <= ACHROMATIC_CHROMA and ch2 > ACHROMATIC_CHROMA:
        h1 = h2
    elif ch2 <= ACHROMATIC_CHROMA and ch1 > ACHROMATIC_CHROMA:
        h2 = h1

    delta = (h2 - h1 + np.pi) % (2.0 * np.pi) - np.pi
    hue = (h1 + t * delta) % (2.0 * np.pi)
    return _from_lch([l1 + t * (l2 - l1), ch1 + t * (ch2 - ch1), hue])


@dataclass
class GradientTable:
    """Colour keypoints at positions in [0, 1], kept sorted by position."""
    keypoints: List[Tuple[RGB, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.keypoints:
            raise ValueError("a gradient needs at least one keypoint")
        self.keypoints = sorted(
            ((np.asarray(c, dtype=float), float(p)) for c, p in self.keypoints),
            key=lambda kp: kp[1],
        )

    def color_at(self, t: float) -> RGB:
        for (c1, p1), (c2, p2) in zip(self.keypoints, self.keypoints[1:]):
            if p1 <= t <= p2:
                if p2 == p1 or t == p1:
                    return c1.copy()
                if t == p2:
                    return c2.copy()
                return blend_hcl(c1, c2, (t - p1) / (p2 - p1))

        # At or past the last keypoint
        return self.keypoints[-1][0].copy()

    def sample(self, n: int) -> np.ndarray:
        return np.array([self.color_at(i / n) for i in range(n)])


def _hex_table(stops: Sequence[Tuple[str, float]]) -> GradientTable:
    return GradientTable([(parse_hex(h), p) for h, p in stops])


# =========================================================================
# Strategies
# =========================================================================

def gradient_palette(depth_count: int, rng: np.random.Generator) -> np.ndarray:
    """Light, dark, washed out, dark, black sweep around one random hue."""
    hue = rng.random() * 360.0
    table = GradientTable([
        (hsv(hue, 0.3, 0.9), 0.0),
        (hsv(hue, 0.3, 0.4), 0.25),
        (hsv(hue, 0.05, 1.0), 0.5),
        (hsv(hue, 0.3, 0.4), 0.75),
        (hsv(hue, 0.3, 0.05), 1.0),
    ])
    return table.sample(depth_count)


def two_tone_palette(depth_count: int, rng: np.random.Generator) -> np.ndarray:
    hue = rng.random() * 360.0
    return np.array([[1.0, 1.0, 1.0], hsv(hue, 0.3, 0.9)])


def single_palette(depth_count: int, rng: np.random.Generator) -> np.ndarray:
    hue = rng.random() * 360.0
    return np.array([hsv(hue, 0.7, 0.95)])


SPECTRAL_STOPS = [
    ("#9e0142", 0.0), ("#d53e4f", 0.1), ("#f46d43", 0.2), ("#fdae61", 0.3),
    ("#fee090", 0.4), ("#ffffbf", 0.5), ("#e6f598", 0.6), ("#abdda4", 0.7),
    ("#66c2a5", 0.8), ("#3288bd", 0.9), ("#5e4fa2", 1.0),
]

CORAL_STOPS = [
    ("#fe8282", 0.0), ("#fe6262", 0.3), ("#eeebee", 0.5),
    ("#fe6262", 0.8), ("#eeebee", 1.0),
]


def spectral_palette(depth_count: int, rng: np.random.Generator) -> np.ndarray:
    return _hex_table(SPECTRAL_STOPS).sample(depth_count)


def coral_palette(depth_count: int, rng: np.random.Generator) -> np.ndarray:
    return _hex_table(CORAL_STOPS).sample(depth_count)


PALETTES: Dict[str, PaletteStrategy] = {
    "gradient": gradient_palette,
    "two_tone": two_tone_palette,
    "single": single_palette,
    "spectral": spectral_palette,
    "coral": coral_palette,
}


def generate_palette(name: str, depth_count: int, rng: np.random.Generator) -> np.ndarray:
    """Build the named palette for depth_count depths."""
    try:
        strategy = PALETTES[name]
    except KeyError:
        raise ValueError(
            f"unknown palette {name!r}, expected one of {', '.join(sorted(PALETTES))}"
        ) from None
    return strategy(depth_count, rng)
