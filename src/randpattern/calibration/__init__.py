"""
Calibration module for randpattern.

The matching, geometry and correspondence functions are pure - they take
arrays and dataclasses and return dataclasses. RandomPatternCornerFinder
ties them together and holds the loaded pattern and accumulated results.
"""

from .matching import (
    cross_check_matching,
    keypoints_to_matched_locations,
    match_pairs,
)

from .geometry import (
    MIN_HOMOGRAPHY_SAMPLES,
    apply_mask,
    filter_matched_locations,
    fundamental_inlier_mask,
    homography_inlier_mask,
    reprojection_errors,
)

from .correspondence import (
    build_correspondences,
    pattern_scale,
    pattern_to_object_points,
)

from .corner_finder import (
    RandomPatternCornerFinder,
    create_detector,
    create_matcher,
    to_grayscale,
)

from .generator import (
    RandomPatternGenerator,
    generate_pattern_image,
)

from .visualization import (
    draw_correspondence,
    show_correspondence,
)

__all__ = [
    # Matching
    "cross_check_matching",
    "keypoints_to_matched_locations",
    "match_pairs",
    # Geometry
    "MIN_HOMOGRAPHY_SAMPLES",
    "apply_mask",
    "filter_matched_locations",
    "fundamental_inlier_mask",
    "homography_inlier_mask",
    "reprojection_errors",
    # Correspondence
    "build_correspondences",
    "pattern_scale",
    "pattern_to_object_points",
    # Corner finder
    "RandomPatternCornerFinder",
    "create_detector",
    "create_matcher",
    "to_grayscale",
    # Generator
    "RandomPatternGenerator",
    "generate_pattern_image",
    # Visualization
    "draw_correspondence",
    "show_correspondence",
]
