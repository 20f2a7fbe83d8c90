#!/usr/bin/env python3
"""
randpattern CLI - random calibration pattern tools.

Usage:
    randpattern generate OUT.png    - Write a new random pattern image
    randpattern match PATTERN IMG.. - Match images against a pattern, save points
    randpattern --help              - Show this help
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

logger = logging.getLogger("randpattern")


def _setup_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose >= 2 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def generate_main(argv: list[str]) -> int:
    import cv2

    from .calibration.generator import RandomPatternGenerator

    parser = argparse.ArgumentParser(prog="randpattern generate",
                                     description="Generate a random calibration pattern")
    parser.add_argument("output", type=str, help="Output image path (e.g. pattern.png)")
    parser.add_argument("--width", type=int, default=1000, help="Image width in pixels (default: 1000)")
    parser.add_argument("--height", type=int, default=750, help="Image height in pixels (default: 750)")
    parser.add_argument("--style", choices=["noise", "blobs"], default="noise",
                        help="Texture style (default: noise)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args(argv)

    _setup_logging(1)

    generator = RandomPatternGenerator(args.width, args.height, style=args.style, seed=args.seed)
    generator.generate_pattern()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(output), generator.get_pattern()):
        logger.error("Could not write %s", output)
        return 1

    logger.info("Wrote %dx%d pattern to %s", args.width, args.height, output)
    return 0


def match_main(argv: list[str]) -> int:
    import cv2
    from tqdm import tqdm

    from .calibration.corner_finder import RandomPatternCornerFinder
    from .config import load_project_config, save_points
    from .types import FinderConfig

    parser = argparse.ArgumentParser(prog="randpattern match",
                                     description="Find object/image points of a random pattern")
    parser.add_argument("pattern", type=str, help="Pattern image")
    parser.add_argument("images", nargs="+", help="Observation images")
    parser.add_argument("-c", "--config", type=str, default=None, help="config.toml with a [finder] section")
    parser.add_argument("--width", type=float, default=None, help="Physical pattern width")
    parser.add_argument("--height", type=float, default=None, help="Physical pattern height")
    parser.add_argument("--min-matches", type=int, default=None, help="Minimum inliers per image")
    parser.add_argument("-o", "--output", type=str, default="points.npz",
                        help="Output .npz file (default: points.npz)")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    try:
        if args.config:
            config = load_project_config(Path(args.config)).finder
        elif args.width is not None and args.height is not None:
            config = FinderConfig(pattern_width=args.width, pattern_height=args.height)
        else:
            parser.error("either --config or both --width and --height are required")

        overrides = {}
        if args.width is not None:
            overrides["pattern_width"] = args.width
        if args.height is not None:
            overrides["pattern_height"] = args.height
        if args.min_matches is not None:
            overrides["min_matches"] = args.min_matches
        if args.verbose:
            overrides["verbose"] = args.verbose
        config = replace(config, **overrides)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    pattern = cv2.imread(args.pattern, cv2.IMREAD_GRAYSCALE)
    if pattern is None:
        logger.error("Could not read pattern image %s", args.pattern)
        return 1

    finder = RandomPatternCornerFinder(config)
    finder.load_pattern(pattern)

    for path in tqdm(args.images, desc="Matching images"):
        image = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
        if image is None:
            logger.warning("Skipping unreadable image %s", path)
            continue
        finder.compute_object_image_points([image])

    image_points = finder.get_image_points()
    object_points = finder.get_object_points()
    save_points(Path(args.output), image_points, object_points)

    logger.info(
        "%d of %d images accepted, %d points total, saved to %s",
        len(image_points),
        len(args.images),
        sum(len(p) for p in image_points),
        args.output,
    )
    return 0


def main():
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(__doc__)
        return 0

    command = sys.argv[1]
    argv = sys.argv[2:]

    if command == "generate":
        return generate_main(argv)

    elif command == "match":
        return match_main(argv)

    else:
        print(f"Unknown command: {command}")
        print("Run 'randpattern --help' for usage")
        return 1


if __name__ == "__main__":
    sys.exit(main())
