"""
Corner finder for "random" calibration patterns.

Holds the loaded pattern and the accumulated per-image results. The
per-image pipeline itself is built from the pure functions in
matching, geometry and correspondence.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

import cv2
import numpy as np

from ..types import (
    Abandoned,
    Accepted,
    DescriptorExtractor,
    Detector,
    FinderConfig,
    FinderState,
    Matcher,
    PatternStore,
)
from .correspondence import build_correspondences, pattern_scale
from .geometry import filter_matched_locations
from .matching import cross_check_matching, keypoints_to_matched_locations
from .visualization import draw_correspondence, show_correspondence

logger = logging.getLogger(__name__)


# ============================================================================
# Default Collaborators
# ============================================================================


def create_detector(name: str = "akaze"):
    """
    Create an OpenCV Feature2D usable as both detector and descriptor.

    Args:
        name: "akaze" (MLDB descriptors) or "orb"

    Returns:
        cv2.Feature2D
    """
    if name == "akaze":
        return cv2.AKAZE_create(
            descriptor_type=cv2.AKAZE_DESCRIPTOR_MLDB,
            descriptor_size=0,
            descriptor_channels=3,
            threshold=0.005,
        )
    if name == "orb":
        return cv2.ORB_create(nfeatures=5000)
    raise ValueError(f"Unsupported detector: {name}")


def create_matcher(name: str = "BruteForce-Hamming"):
    """Create an OpenCV DescriptorMatcher by name, e.g. "BruteForce-Hamming"."""
    return cv2.DescriptorMatcher_create(name)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Validate an 8-bit image and convert it to single-channel grayscale.

    Raises:
        ValueError: If the image is empty, not 8-bit, or has an odd layout
    """
    if image is None or not isinstance(image, np.ndarray) or image.size == 0:
        raise ValueError("Expected a non-empty image array")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected an 8-bit image, got {image.dtype}")

    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    raise ValueError(f"Unsupported image shape: {image.shape}")


# ============================================================================
# Corner Finder
# ============================================================================


class RandomPatternCornerFinder:
    """
    Find object/image point correspondences of a random pattern.

    Usage:
        finder = RandomPatternCornerFinder(FinderConfig(200.0, 150.0))
        finder.load_pattern(pattern_image)
        finder.compute_object_image_points(images)
        object_points = finder.get_object_points()
        image_points = finder.get_image_points()

    detector, descriptor and matcher default to AKAZE (MLDB) with a
    brute-force Hamming matcher. With config.max_workers set, they are called
    from several threads and must tolerate that.
    """

    def __init__(
        self,
        config: FinderConfig,
        detector: Detector | None = None,
        descriptor: DescriptorExtractor | None = None,
        matcher: Matcher | None = None,
        visualizer: Callable[[np.ndarray], None] | None = None,
    ):
        self.config = config

        if detector is None:
            detector = create_detector(config.detector)
        if descriptor is None:
            descriptor = detector if hasattr(detector, "compute") else create_detector(config.detector)

        self.detector = detector
        self.descriptor = descriptor
        self.matcher = matcher if matcher is not None else create_matcher(config.matcher)
        self.visualizer = visualizer if visualizer is not None else show_correspondence

        self._pattern: PatternStore | None = None
        self._state = FinderState.UNLOADED
        self._object_points: list[np.ndarray] = []
        self._image_points: list[np.ndarray] = []
        self._abandoned = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> FinderState:
        return self._state

    @property
    def pattern(self) -> PatternStore | None:
        return self._pattern

    @property
    def abandoned_count(self) -> int:
        """Images abandoned by compute_object_image_points so far."""
        return self._abandoned

    def _require_pattern(self) -> PatternStore:
        if self._pattern is None:
            raise RuntimeError("Pattern not loaded; call load_pattern() first")
        return self._pattern

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def _detect_and_describe(self, gray: np.ndarray) -> tuple[list, np.ndarray | None]:
        keypoints = self.detector.detect(gray, None) or ()
        if len(keypoints) == 0:
            return [], None

        keypoints, descriptors = self.descriptor.compute(gray, keypoints)
        if descriptors is None or keypoints is None or len(keypoints) == 0:
            return [], None
        return list(keypoints), descriptors

    def load_pattern(self, pattern_image: np.ndarray) -> None:
        """
        Detect and describe features on the pattern image.

        Replaces any previously loaded pattern. Accumulated results are
        kept.

        Args:
            pattern_image: 8-bit grayscale or BGR image of the pattern

        Raises:
            ValueError: If the image is empty or not 8-bit
        """
        gray = to_grayscale(pattern_image)
        keypoints, descriptors = self._detect_and_describe(gray)

        self._pattern = PatternStore(
            image=gray.copy(),
            keypoints=tuple(keypoints),
            descriptors=descriptors,
        )
        self._state = FinderState.LOADED

        if self.config.verbose:
            logger.info(
                "Loaded %dx%d pattern with %d keypoints",
                gray.shape[1],
                gray.shape[0],
                len(keypoints),
            )

    # ------------------------------------------------------------------
    # Per-image pipeline
    # ------------------------------------------------------------------

    def process_image(self, image: np.ndarray, index: int = 0) -> Accepted | Abandoned:
        """
        Match one observation against the pattern.

        Does not touch the accumulated results.

        Args:
            image: 8-bit grayscale or BGR observation
            index: Position of the image in its batch (carried on the result)

        Returns:
            Accepted with the image's points, or Abandoned

        Raises:
            RuntimeError: If no pattern has been loaded
        """
        store = self._require_pattern()
        gray = to_grayscale(image)

        keypoints, descriptors = self._detect_and_describe(gray)
        matches = cross_check_matching(
            self.matcher, descriptors, store.descriptors, knn=self.config.knn
        )
        locations = keypoints_to_matched_locations(keypoints, store.keypoints, matches)

        inliers, mask = filter_matched_locations(
            locations,
            threshold=self.config.homography_threshold(store.pixel_size[0]),
            confidence=self.config.confidence,
            epipolar_check=self.config.epipolar_check,
            epipolar_threshold=self.config.epipolar_threshold,
        )

        if self.config.verbose >= 2:
            logger.info(
                "Image %d: %d keypoints, %d cross-checked matches, %d inliers",
                index,
                len(keypoints),
                len(matches),
                len(inliers),
            )

        if self.config.show_extraction and len(matches) > 0:
            drawing = draw_correspondence(
                gray, keypoints, store.image, store.keypoints, matches, mask
            )
            self.visualizer(drawing)

        result = build_correspondences(
            inliers,
            scale=pattern_scale(
                self.config.pattern_width, self.config.pattern_height, store.pixel_size
            ),
            min_matches=self.config.min_matches,
            dtype=self.config.numpy_dtype,
            index=index,
            match_count=len(matches),
        )

        if isinstance(result, Abandoned) and self.config.verbose:
            logger.info("Image %d abandoned: %s", index, result.reason)

        return result

    def _accumulate(self, result: Accepted | Abandoned) -> None:
        with self._lock:
            if isinstance(result, Accepted):
                self._object_points.append(result.object_points)
                self._image_points.append(result.image_points)
            else:
                self._abandoned += 1

    def _process_safely(self, image: np.ndarray, index: int) -> Accepted | Abandoned:
        """process_image for batch use: a malformed image becomes Abandoned."""
        try:
            return self.process_image(image, index)
        except (ValueError, IndexError, cv2.error) as e:
            logger.warning("Image %d abandoned: %s", index, e)
            return Abandoned(reason=f"Image could not be processed: {e}", index=index)

    # ------------------------------------------------------------------
    # Public compute API
    # ------------------------------------------------------------------

    def compute_object_image_points(
        self, images: Sequence[np.ndarray]
    ) -> list[Accepted | Abandoned]:
        """
        Process a batch of observations and accumulate accepted results.

        Accepted images are appended in input order as each one finishes.
        An image that cannot be processed (wrong dtype, odd shape, a
        collaborator failing on it) is abandoned; the rest of the batch
        still runs.

        Args:
            images: 8-bit grayscale or BGR observations

        Returns:
            Per-image results, in input order

        Raises:
            RuntimeError: If no pattern has been loaded
        """
        self._require_pattern()
        images = list(images)
        results: list[Accepted | Abandoned] = []

        self._state = FinderState.PROCESSING
        try:
            workers = self.config.max_workers
            if workers is not None and workers > 1 and len(images) > 1:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    # map yields in input order
                    for result in executor.map(
                        self._process_safely, images, range(len(images))
                    ):
                        self._accumulate(result)
                        results.append(result)
            else:
                for i, img in enumerate(images):
                    result = self._process_safely(img, i)
                    self._accumulate(result)
                    results.append(result)
        finally:
            self._state = FinderState.IDLE

        if self.config.verbose:
            accepted = sum(isinstance(r, Accepted) for r in results)
            logger.info(
                "Processed %d images: %d accepted, %d abandoned",
                len(results),
                accepted,
                len(results) - accepted,
            )

        return results

    def compute_object_image_points_for_single(
        self, image: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Compute points for a single image without accumulating them.

        Args:
            image: 8-bit grayscale or BGR observation

        Returns:
            (image_points (n, 2), object_points (n, 3)); both empty if the
            image is abandoned

        Raises:
            RuntimeError: If no pattern has been loaded
            ValueError: If the image is empty or not 8-bit
        """
        self._require_pattern()

        self._state = FinderState.PROCESSING
        try:
            result = self.process_image(image)
        finally:
            self._state = FinderState.IDLE

        if isinstance(result, Accepted):
            return result.image_points, result.object_points

        dtype = self.config.numpy_dtype
        return np.empty((0, 2), dtype=dtype), np.empty((0, 3), dtype=dtype)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_object_points(self) -> list[np.ndarray]:
        """(n_i, 3) object points of every accepted image so far."""
        with self._lock:
            return [p.copy() for p in self._object_points]

    def get_image_points(self) -> list[np.ndarray]:
        """(n_i, 2) image points of every accepted image so far."""
        with self._lock:
            return [p.copy() for p in self._image_points]

    def clear(self) -> None:
        """Drop accumulated results. The loaded pattern is kept."""
        with self._lock:
            self._object_points.clear()
            self._image_points.clear()
            self._abandoned = 0
