"""
Geometric outlier rejection for matched pattern/observation pixels.

The pattern is planar, so true correspondences are related by one
homography up to noise. Pure functions - no classes, no state.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from ..types import MatchedLocations

logger = logging.getLogger(__name__)

MIN_HOMOGRAPHY_SAMPLES = 4
MIN_FUNDAMENTAL_SAMPLES = 8


# ============================================================================
# Inlier Masks
# ============================================================================


def homography_inlier_mask(
    image_points: np.ndarray,
    pattern_points: np.ndarray,
    threshold: float,
    confidence: float = 0.995,
    max_iters: int = 2000,
) -> np.ndarray:
    """
    Classify matches against a RANSAC homography from image to pattern pixels.

    Args:
        image_points: (n, 2) observation pixels
        pattern_points: (n, 2) pattern pixels
        threshold: Max reprojection error in pattern pixels for an inlier
        confidence: RANSAC confidence
        max_iters: RANSAC iteration cap

    Returns:
        (n,) bool mask. All False if n < 4 or no model could be fitted.
    """
    n = len(image_points)
    if n < MIN_HOMOGRAPHY_SAMPLES:
        return np.zeros(n, dtype=bool)

    src = np.asarray(image_points, dtype=np.float32).reshape(-1, 1, 2)
    dst = np.asarray(pattern_points, dtype=np.float32).reshape(-1, 1, 2)

    try:
        H, mask = cv2.findHomography(
            src,
            dst,
            cv2.RANSAC,
            ransacReprojThreshold=float(threshold),
            maxIters=int(max_iters),
            confidence=float(confidence),
        )
    except cv2.error as e:
        logger.debug("Homography fit failed: %s", e)
        return np.zeros(n, dtype=bool)

    if H is None or mask is None:
        return np.zeros(n, dtype=bool)

    return mask.ravel().astype(bool)


def fundamental_inlier_mask(
    image_points: np.ndarray,
    pattern_points: np.ndarray,
    threshold: float = 1.0,
    confidence: float = 0.995,
) -> np.ndarray:
    """
    Epipolar pre-filter using a RANSAC fundamental matrix.

    With fewer than 8 matches there is nothing to fit, so every match is
    kept and the homography stage decides.

    Returns:
        (n,) bool mask
    """
    n = len(image_points)
    if n < MIN_FUNDAMENTAL_SAMPLES:
        return np.ones(n, dtype=bool)

    src = np.asarray(image_points, dtype=np.float32).reshape(-1, 2)
    dst = np.asarray(pattern_points, dtype=np.float32).reshape(-1, 2)

    try:
        F, mask = cv2.findFundamentalMat(src, dst, cv2.FM_RANSAC, threshold, confidence)
    except cv2.error as e:
        logger.debug("Fundamental matrix fit failed: %s", e)
        return np.zeros(n, dtype=bool)

    if F is None or mask is None:
        return np.zeros(n, dtype=bool)

    return mask.ravel().astype(bool)


def apply_mask(locations: MatchedLocations, mask: np.ndarray) -> MatchedLocations:
    """Keep the rows of locations where mask is True."""
    mask = np.asarray(mask, dtype=bool).ravel()
    return MatchedLocations(
        image_points=locations.image_points[mask],
        pattern_points=locations.pattern_points[mask],
    )


def filter_matched_locations(
    locations: MatchedLocations,
    threshold: float,
    confidence: float = 0.995,
    epipolar_check: bool = False,
    epipolar_threshold: float = 1.0,
) -> tuple[MatchedLocations, np.ndarray]:
    """
    Run the geometric filter stages on matched locations.

    Args:
        locations: Cross-checked matched locations
        threshold: Homography tolerance in pattern pixels
        confidence: RANSAC confidence for both stages
        epipolar_check: Run the fundamental-matrix stage first
        epipolar_threshold: Tolerance of the fundamental-matrix stage

    Returns:
        (inlier locations, (n,) bool mask over the input rows)
    """
    keep = np.ones(len(locations), dtype=bool)

    if epipolar_check:
        keep &= fundamental_inlier_mask(
            locations.image_points,
            locations.pattern_points,
            threshold=epipolar_threshold,
            confidence=confidence,
        )
        logger.debug("Epipolar check kept %d of %d", int(keep.sum()), len(locations))

    candidates = apply_mask(locations, keep)
    inliers = homography_inlier_mask(
        candidates.image_points,
        candidates.pattern_points,
        threshold=threshold,
        confidence=confidence,
    )
    keep[keep] = inliers

    return apply_mask(locations, keep), keep


# ============================================================================
# Diagnostics
# ============================================================================


def reprojection_errors(
    image_points: np.ndarray,
    pattern_points: np.ndarray,
    homography: np.ndarray,
) -> np.ndarray:
    """
    Distance in pattern pixels between H(image_points) and pattern_points.

    Returns:
        (n,) array of errors
    """
    if len(image_points) == 0:
        return np.zeros(0, dtype=np.float64)
    src = np.asarray(image_points, dtype=np.float64).reshape(-1, 1, 2)
    projected = cv2.perspectiveTransform(src, homography).reshape(-1, 2)
    return np.linalg.norm(projected - np.asarray(pattern_points).reshape(-1, 2), axis=1)
