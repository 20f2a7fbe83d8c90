"""
Core data structures for randpattern.

Results and stores are frozen dataclasses with slots for immutability.
Logic is in separate pure functions - these are data containers only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Protocol, Sequence

import numpy as np


DTYPES = {
    "float32": np.float32,
    "float64": np.float64,
}

DETECTORS = ("akaze", "orb")

PATTERN_STYLES = ("noise", "blobs")


# ============================================================================
# Collaborator Protocols
# ============================================================================


class Detector(Protocol):
    """Anything with cv2.Feature2D.detect semantics."""

    def detect(self, image: np.ndarray, mask: Any = None) -> Sequence[Any]: ...


class DescriptorExtractor(Protocol):
    """
    Anything with cv2.Feature2D.compute semantics.

    May drop keypoints it cannot describe; the returned keypoints are
    1:1 with the returned descriptor rows.
    """

    def compute(
        self, image: np.ndarray, keypoints: Sequence[Any]
    ) -> tuple[Sequence[Any], np.ndarray | None]: ...


class Matcher(Protocol):
    """Anything with cv2.DescriptorMatcher.knnMatch semantics."""

    def knnMatch(
        self, queryDescriptors: np.ndarray, trainDescriptors: np.ndarray, k: int
    ) -> Sequence[Sequence[Any]]: ...


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)  # No slots - need properties
class FinderConfig:
    """
    Configuration for RandomPatternCornerFinder.

    pattern_width/pattern_height are the physical size of the printed
    pattern in any unit; object points come out in that unit.
    """

    pattern_width: float
    pattern_height: float
    min_matches: int = 20  # Fewer inliers and the image is abandoned
    dtype: Literal["float32", "float64"] = "float32"
    verbose: int = 0
    show_extraction: bool = False
    knn: int = 1
    ransac_threshold: float | None = None  # Pattern pixels; None = 3% of width
    epipolar_check: bool = False
    epipolar_threshold: float = 1.0
    confidence: float = 0.995
    max_workers: int | None = None  # None = process images sequentially
    detector: str = "akaze"
    matcher: str = "BruteForce-Hamming"

    def __post_init__(self):
        # Written so NaN fails too
        if not (self.pattern_width > 0 and self.pattern_height > 0):
            raise ValueError(
                f"Pattern size must be positive, got "
                f"({self.pattern_width}, {self.pattern_height})"
            )
        if self.min_matches < 1:
            raise ValueError(f"min_matches must be >= 1, got {self.min_matches}")
        if self.knn < 1:
            raise ValueError(f"knn must be >= 1, got {self.knn}")
        if self.dtype not in DTYPES:
            raise ValueError(f"Unsupported dtype: {self.dtype}")
        if self.detector not in DETECTORS:
            raise ValueError(f"Unsupported detector: {self.detector}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @property
    def numpy_dtype(self) -> type:
        return DTYPES[self.dtype]

    def homography_threshold(self, pattern_pixel_width: int) -> float:
        """RANSAC tolerance in pattern pixels for a pattern of this width."""
        if self.ransac_threshold is not None:
            return float(self.ransac_threshold)
        return 30.0 * pattern_pixel_width / 1000.0


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    """Configuration for RandomPatternGenerator."""

    width: int = 1000
    height: int = 750
    style: Literal["noise", "blobs"] = "noise"
    seed: int | None = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Pattern image size must be positive, got ({self.width}, {self.height})"
            )
        if self.style not in PATTERN_STYLES:
            raise ValueError(f"Unsupported pattern style: {self.style}")


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """
    Complete project configuration.
    Loaded from TOML file with [finder] and [generator] sections.
    """

    finder: FinderConfig
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)


# ============================================================================
# Pattern State
# ============================================================================


class FinderState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    PROCESSING = "processing"
    IDLE = "idle"


@dataclass(frozen=True, slots=True)
class PatternStore:
    """
    Loaded pattern image and its features.
    Replaced wholesale on every load_pattern() call.
    """

    image: np.ndarray  # (h, w) uint8 grayscale
    keypoints: tuple  # tuple[cv2.KeyPoint, ...]
    descriptors: np.ndarray | None  # (n, d), row i describes keypoints[i]

    @property
    def pixel_size(self) -> tuple[int, int]:
        """(width, height) of the pattern image in pixels."""
        return (self.image.shape[1], self.image.shape[0])


# ============================================================================
# Match Data
# ============================================================================


@dataclass(frozen=True, slots=True)
class MatchedLocations:
    """
    Pixel locations implied by a list of matches.
    Row i of both arrays belongs to the same match.
    """

    image_points: np.ndarray  # (n, 2) observation pixels (x, y)
    pattern_points: np.ndarray  # (n, 2) pattern pixels (x, y)

    def __len__(self) -> int:
        return int(self.image_points.shape[0])


# ============================================================================
# Per-Image Results
# ============================================================================


@dataclass(frozen=True, slots=True)
class Accepted:
    """Correspondences for an observation that passed the match threshold."""

    image_points: np.ndarray  # (n, 2)
    object_points: np.ndarray  # (n, 3), z == 0
    index: int = 0  # Position of the image in its batch

    @property
    def count(self) -> int:
        return int(self.image_points.shape[0])


@dataclass(frozen=True, slots=True)
class Abandoned:
    """An observation that contributes no points."""

    reason: str
    match_count: int = 0  # Cross-checked matches before geometric filtering
    inlier_count: int = 0
    index: int = 0

    @property
    def count(self) -> int:
        return 0


PerImageResult = Accepted | Abandoned
