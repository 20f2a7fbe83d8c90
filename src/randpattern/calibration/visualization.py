"""
Optional drawing of pattern/observation matches.

Only used when FinderConfig.show_extraction is set.
"""

from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

WINDOW_NAME = "randpattern matches"


def draw_correspondence(
    image: np.ndarray,
    image_keypoints: Sequence,
    pattern: np.ndarray,
    pattern_keypoints: Sequence,
    matches: Sequence,
    mask: np.ndarray | None = None,
    max_draw: int = 200,
) -> np.ndarray:
    """
    Draw observation (left) and pattern (right) with match lines.

    Args:
        image: Observation image
        image_keypoints: Keypoints of the observation (queryIdx side)
        pattern: Pattern image
        pattern_keypoints: Keypoints of the pattern (trainIdx side)
        matches: Matches to draw
        mask: Optional (n,) bool mask; only True matches are drawn
        max_draw: Draw at most this many matches

    Returns:
        BGR image
    """
    matches = list(matches)[:max_draw]
    matches_mask = None
    if mask is not None and len(mask) >= len(matches):
        matches_mask = [int(bool(v)) for v in np.asarray(mask).ravel()[: len(matches)]]

    return cv2.drawMatches(
        image,
        list(image_keypoints),
        pattern,
        list(pattern_keypoints),
        matches,
        None,
        matchColor=(0, 255, 0),
        singlePointColor=(255, 0, 0),
        matchesMask=matches_mask,
        flags=cv2.DrawMatchesFlags_NOT_DRAW_SINGLE_POINTS,
    )


def show_correspondence(drawing: np.ndarray, wait_ms: int = 0) -> None:
    """Display a drawing from draw_correspondence in a HighGUI window."""
    cv2.imshow(WINDOW_NAME, drawing)
    cv2.waitKey(wait_ms)
