"""
Command line entry point: grow a gasket and write it to an image file.

    $ gasketpack --size 4000 --max-depth 12 --palette spectral -o gasket.png
"""

import argparse
import sys
from typing import Optional, Sequence

from .config import GasketConfig, RenderConfig, AngleMode, StrokePolicy, RadiusPolicy
from .packer import GasketPacker
from .palette import PALETTES
from .render import default_filename, render_tree, save_image


def build_parser() -> argparse.ArgumentParser:
    defaults = GasketConfig.__dataclass_fields__
    ap = argparse.ArgumentParser(description="Grow a self-similar circle gasket and save it as an image")

    ap.add_argument("-o", "--output", default=None, help="Output image path (default: circles-<unix time>.jpg)")
    ap.add_argument("--size", type=float, default=defaults["canvas_size"].default, help="Canvas side in pixels")
    ap.add_argument("--max-depth", type=int, default=defaults["max_depth"].default)
    ap.add_argument("--min-ratio", type=float, default=defaults["min_radius_ratio"].default,
                    help="Smallest child radius as a fraction of its parent's")
    ap.add_argument("--max-ratio", type=float, default=defaults["max_radius_ratio"].default,
                    help="Largest child radius as a fraction of its parent's")
    ap.add_argument("--min-circle-size", type=float, default=None,
                    help="Smallest radius in pixels (default: max(3, size / 2000))")
    ap.add_argument("--increment", type=float, default=defaults["increment"].default,
                    help="Radius step of the gap-filling sweep")
    ap.add_argument("--retries", type=int, default=defaults["retry_bound"].default,
                    help="Placement trials before a circle counts as full")
    ap.add_argument("--epsilon", type=float, default=defaults["epsilon"].default,
                    help="Tangency tolerance in pixels")
    ap.add_argument("--angle-mode", default=AngleMode.RANDOM.value, choices=[m.value for m in AngleMode])
    ap.add_argument("--theta-increment", type=float, default=0.0,
                    help="Angle offset added per grown circle in depth_linear mode")
    ap.add_argument("--palette", default=defaults["palette"].default, choices=sorted(PALETTES))
    ap.add_argument("--random-colors", action="store_true", help="Random colour per circle instead of a palette")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("-v", "--verbose", action="store_true")

    render = ap.add_argument_group("rendering")
    render.add_argument("--fill", action="store_true", help="Fill circles instead of stroking them")
    render.add_argument("--stroke", default=StrokePolicy.PROPORTIONAL.value, choices=[p.value for p in StrokePolicy])
    render.add_argument("--radius-policy", default=RadiusPolicy.SHRUNK.value, choices=[p.value for p in RadiusPolicy])
    render.add_argument("--jitter", type=float, default=0.4, help="Draw-time center jitter as a fraction of radius")
    render.add_argument("--links", action="store_true", help="Draw parent-to-child center lines")
    render.add_argument("--supersample", type=int, default=1,
                        help="Render this many times larger, then downscale (anti-aliasing)")
    render.add_argument("--quality", type=int, default=95, help="JPEG quality")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        config = GasketConfig(
            canvas_size=args.size,
            max_depth=args.max_depth,
            min_radius_ratio=args.min_ratio,
            max_radius_ratio=args.max_ratio,
            min_circle_size=args.min_circle_size,
            angle_mode=AngleMode(args.angle_mode),
            theta_increment=args.theta_increment,
            increment=args.increment,
            retry_bound=args.retries,
            epsilon=args.epsilon,
            palette=args.palette,
            randomize_colors=args.random_colors,
            seed=args.seed,
            verbose=args.verbose,
        )
        render_config = RenderConfig(
            fill=args.fill,
            stroke_policy=StrokePolicy(args.stroke),
            radius_policy=RadiusPolicy(args.radius_policy),
            jitter=args.jitter,
            draw_links=args.links,
            supersample=args.supersample,
            quality=args.quality,
        )
    except ValueError as e:
        ap.error(str(e))

    packer = GasketPacker(config)
    tree = packer.pack()
    image = render_tree(tree, render_config, packer.rng)

    output = args.output or default_filename()
    try:
        save_image(image, output, quality=render_config.quality)
    except (OSError, ValueError) as e:
        print(f"error: could not write {output}: {e}", file=sys.stderr)
        return 1

    print(f"{len(tree)} circles, depth {tree.depth()} -> {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
