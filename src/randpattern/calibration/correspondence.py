"""
Pattern pixel to planar object point conversion and per-image acceptance.

Pure functions - no classes, no state.
"""

from __future__ import annotations

import logging

import numpy as np

from ..types import Abandoned, Accepted, MatchedLocations

logger = logging.getLogger(__name__)


def pattern_scale(
    pattern_width: float,
    pattern_height: float,
    pixel_size: tuple[int, int],
) -> tuple[float, float]:
    """
    Physical units per pattern pixel.

    Args:
        pattern_width: Physical width of the pattern
        pattern_height: Physical height of the pattern
        pixel_size: (width, height) of the pattern image in pixels

    Returns:
        (sx, sy)
    """
    pixel_width, pixel_height = pixel_size
    if pixel_width <= 0 or pixel_height <= 0:
        raise ValueError(f"Pattern image has no pixels: {pixel_size}")
    return pattern_width / pixel_width, pattern_height / pixel_height


def pattern_to_object_points(
    pattern_points: np.ndarray,
    scale: tuple[float, float],
    dtype: type = np.float32,
) -> np.ndarray:
    """
    Map pattern pixels onto the z = 0 plane in physical units.

    Returns:
        (n, 3) array of (x * sx, y * sy, 0)
    """
    pattern_points = np.asarray(pattern_points, dtype=np.float64).reshape(-1, 2)
    sx, sy = scale

    object_points = np.zeros((len(pattern_points), 3), dtype=dtype)
    object_points[:, 0] = pattern_points[:, 0] * sx
    object_points[:, 1] = pattern_points[:, 1] * sy
    return object_points


def build_correspondences(
    inliers: MatchedLocations,
    scale: tuple[float, float],
    min_matches: int,
    dtype: type = np.float32,
    index: int = 0,
    match_count: int | None = None,
) -> Accepted | Abandoned:
    """
    Turn inlier matches into object/image point arrays, or abandon the image.

    Args:
        inliers: Geometrically filtered matched locations
        scale: (sx, sy) from pattern_scale
        min_matches: Images with fewer inliers are abandoned
        dtype: Output precision (np.float32 or np.float64)
        index: Position of the image in its batch
        match_count: Cross-checked match count, recorded on abandonment

    Returns:
        Accepted with equal-length point arrays, or Abandoned
    """
    n = len(inliers)
    if match_count is None:
        match_count = n

    if n < min_matches:
        return Abandoned(
            reason=f"{n} inliers, need at least {min_matches}",
            match_count=match_count,
            inlier_count=n,
            index=index,
        )

    return Accepted(
        image_points=np.asarray(inliers.image_points, dtype=dtype).reshape(-1, 2),
        object_points=pattern_to_object_points(inliers.pattern_points, scale, dtype),
        index=index,
    )
