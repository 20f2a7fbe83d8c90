"""
"Random" pattern image generation.

The texture has to be rich at several scales so the detector finds
distinctive, repeatable keypoints wherever the camera sees the pattern.
"""

from __future__ import annotations

import cv2
import numpy as np

from ..types import GeneratorConfig


# ============================================================================
# Texture Styles
# ============================================================================


def _noise_pattern(width: int, height: int, rng: np.random.Generator) -> np.ndarray:
    """
    Sum of Gaussian noise octaves upscaled to full size.

    Octave grids start 5 cells wide and double until they reach the image
    width, so coarse blobs carry fine detail on top.
    """
    pattern = np.zeros((height, width), dtype=np.float32)
    m = 5
    count = 0
    while m < width:
        n = int(np.floor(height / width * m)) + 1
        octave = rng.standard_normal((n, m)).astype(np.float32)
        octave = cv2.resize(octave, (width, height), interpolation=cv2.INTER_LINEAR)
        lo, hi = float(octave.min()), float(octave.max())
        if hi > lo:
            octave = (octave - lo) / (hi - lo)
        pattern += octave
        m *= 2
        count += 1

    if count == 0:
        # Narrower than one octave grid
        pattern = rng.random((height, width), dtype=np.float32)

    # Stretch to the full 8-bit range
    lo, hi = float(pattern.min()), float(pattern.max())
    if hi > lo:
        pattern = (pattern - lo) / (hi - lo)
    pattern = np.clip(pattern * 255.0, 0, 255).astype(np.uint8)

    # Summed octaves pile up around mid-gray; flatten the histogram so the
    # detector sees full contrast
    return cv2.equalizeHist(pattern)


def _blob_pattern(width: int, height: int, rng: np.random.Generator) -> np.ndarray:
    """Non-overlapping discs of random position, radius and gray level."""
    pattern = np.full((height, width), 128, dtype=np.uint8)
    occupied = np.zeros((height, width), dtype=np.uint8)

    short_side = min(width, height)
    min_radius = max(2, short_side // 100)
    max_radius = max(min_radius + 1, short_side // 15)
    attempts = 8 * (width * height) // (max_radius * max_radius) + 100

    for _ in range(attempts):
        radius = int(rng.integers(min_radius, max_radius))
        cx = int(rng.integers(0, width))
        cy = int(rng.integers(0, height))

        # Only the disc's bounding window can overlap
        r = radius + 1
        x0, x1 = max(0, cx - r), min(width, cx + r + 1)
        y0, y1 = max(0, cy - r), min(height, cy + r + 1)
        yy, xx = np.ogrid[y0:y1, x0:x1]
        disc = (xx - cx) ** 2 + (yy - cy) ** 2 <= r * r
        window = occupied[y0:y1, x0:x1]
        if np.any(window[disc]):
            continue

        shade = int(rng.integers(0, 256))
        cv2.circle(pattern, (cx, cy), radius, shade, thickness=-1, lineType=cv2.LINE_AA)
        window[disc] = 1

    return pattern


_STYLES = {
    "noise": _noise_pattern,
    "blobs": _blob_pattern,
}


def generate_pattern_image(
    width: int,
    height: int,
    style: str = "noise",
    seed: int | None = None,
) -> np.ndarray:
    """
    Generate a random pattern image.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        style: "noise" (multi-octave noise) or "blobs" (random discs)
        seed: Optional seed for reproducible patterns

    Returns:
        (height, width) uint8 grayscale image
    """
    config = GeneratorConfig(width=width, height=height, style=style, seed=seed)
    rng = np.random.default_rng(config.seed)
    return _STYLES[config.style](config.width, config.height, rng)


# ============================================================================
# Generator
# ============================================================================


class RandomPatternGenerator:
    """Produce-then-retrieve wrapper around generate_pattern_image."""

    def __init__(
        self,
        width: int,
        height: int,
        style: str = "noise",
        seed: int | None = None,
    ):
        self.config = GeneratorConfig(width=width, height=height, style=style, seed=seed)
        self._rng = np.random.default_rng(seed)
        self._pattern: np.ndarray | None = None

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> RandomPatternGenerator:
        return cls(config.width, config.height, style=config.style, seed=config.seed)

    def generate_pattern(self) -> None:
        """Generate a new pattern, replacing the previous one."""
        style = _STYLES[self.config.style]
        self._pattern = style(self.config.width, self.config.height, self._rng)

    def get_pattern(self) -> np.ndarray:
        """
        Return the last generated pattern.

        Raises:
            RuntimeError: If generate_pattern() has not been called
        """
        if self._pattern is None:
            raise RuntimeError("No pattern generated; call generate_pattern() first")
        return self._pattern.copy()
