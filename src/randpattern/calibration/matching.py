"""
Cross-check descriptor matching.

Pure functions - the matcher is passed in, nothing is cached.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from ..types import MatchedLocations, Matcher

logger = logging.getLogger(__name__)


def _is_empty(descriptors: np.ndarray | None) -> bool:
    return descriptors is None or len(descriptors) == 0


def cross_check_matching(
    matcher: Matcher,
    query_descriptors: np.ndarray | None,
    train_descriptors: np.ndarray | None,
    knn: int = 1,
) -> list:
    """
    Keep only mutually-best matches between two descriptor sets.

    A forward match (query q -> train t) survives when one of the top-knn
    backward matches of t points back to q. For each query the first
    surviving candidate wins.

    Args:
        matcher: Object with cv2.DescriptorMatcher.knnMatch semantics
        query_descriptors: (n, d) descriptors of the observation
        train_descriptors: (m, d) descriptors of the pattern
        knn: Number of candidates considered in each direction

    Returns:
        List of cv2.DMatch with queryIdx into query_descriptors and
        trainIdx into train_descriptors. Empty if either set is empty.
    """
    if knn < 1:
        raise ValueError(f"knn must be >= 1, got {knn}")

    if _is_empty(query_descriptors) or _is_empty(train_descriptors):
        return []

    forward = matcher.knnMatch(query_descriptors, train_descriptors, k=knn) or []
    backward = matcher.knnMatch(train_descriptors, query_descriptors, k=knn) or []

    filtered = []
    for candidates in forward:
        for match in candidates:
            if match.trainIdx >= len(backward):
                continue
            if any(back.trainIdx == match.queryIdx for back in backward[match.trainIdx]):
                filtered.append(match)
                break

    logger.debug(
        "Cross-check kept %d of %d query descriptors", len(filtered), len(forward)
    )
    return filtered


def match_pairs(matches: Sequence) -> set[tuple[int, int]]:
    """(queryIdx, trainIdx) pairs of a match list, for set comparisons."""
    return {(m.queryIdx, m.trainIdx) for m in matches}


def keypoints_to_matched_locations(
    image_keypoints: Sequence,
    pattern_keypoints: Sequence,
    matches: Sequence,
) -> MatchedLocations:
    """
    Look up the pixel locations of matched keypoints.

    Args:
        image_keypoints: Keypoints of the observation (indexed by queryIdx)
        pattern_keypoints: Keypoints of the pattern (indexed by trainIdx)
        matches: Matches from cross_check_matching

    Returns:
        MatchedLocations with one row per match
    """
    if len(matches) == 0:
        empty = np.empty((0, 2), dtype=np.float64)
        return MatchedLocations(image_points=empty, pattern_points=empty.copy())

    image_points = np.array(
        [image_keypoints[m.queryIdx].pt for m in matches], dtype=np.float64
    )
    pattern_points = np.array(
        [pattern_keypoints[m.trainIdx].pt for m in matches], dtype=np.float64
    )
    return MatchedLocations(image_points=image_points, pattern_points=pattern_points)
