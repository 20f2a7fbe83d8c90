"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest


# Observation = this affine warp of the pattern pixels
AFFINE = np.array([
    [0.8, 0.1, 40.0],
    [-0.05, 0.85, 30.0],
], dtype=np.float64)

# Added to mismatched observation points, far outside any RANSAC tolerance
MISMATCH_OFFSET = np.array([300.0, -200.0])


def warp_points(points, affine=AFFINE):
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points @ affine[:, :2].T + affine[:, 2]


def make_image(marker, width, height):
    """Blank uint8 image whose (0, 0) pixel identifies its synthetic scene."""
    img = np.zeros((height, width), dtype=np.uint8)
    img[0, 0] = marker
    return img


class FakeFeatures:
    """
    Detector and descriptor extractor returning registered keypoints.

    Images are told apart by the marker value in pixel (0, 0).
    """

    def __init__(self):
        self._scenes = {}

    def register(self, marker, points, descriptors):
        self._scenes[marker] = (
            np.asarray(points, dtype=np.float64).reshape(-1, 2),
            np.asarray(descriptors, dtype=np.float32),
        )

    def detect(self, image, mask=None):
        points, _ = self._scenes.get(int(image[0, 0]), (np.empty((0, 2)), None))
        return [cv2.KeyPoint(float(x), float(y), 8.0) for x, y in points]

    def compute(self, image, keypoints):
        _, descriptors = self._scenes[int(image[0, 0])]
        return keypoints, descriptors


class SyntheticScene:
    """
    1000 x 750 px pattern with random keypoints, plus observations built by
    warping a subset of them. Pattern keypoints left out of an observation
    have no counterpart there, so cross-checking drops them.
    """

    def __init__(self, features, n_pattern=60, seed=7):
        rng = np.random.default_rng(seed)
        self.features = features
        self.points = np.column_stack([
            rng.uniform(20.0, 980.0, n_pattern),
            rng.uniform(20.0, 730.0, n_pattern),
        ])
        self.descriptors = (rng.standard_normal((n_pattern, 32)) * 10.0).astype(np.float32)
        self.pattern_image = make_image(0, 1000, 750)
        features.register(0, self.points, self.descriptors)
        self._next_marker = 1

    def observation(self, n_correct, n_mismatch=0):
        """
        Observation with n_correct warped pattern points followed by
        n_mismatch points whose descriptors match but whose location is wrong.
        """
        ids = np.arange(n_correct + n_mismatch)
        points = warp_points(self.points[ids])
        points[n_correct:] += MISMATCH_OFFSET
        descriptors = self.descriptors[ids] + np.float32(0.01)

        marker = self._next_marker
        self._next_marker += 1
        self.features.register(marker, points, descriptors)
        return make_image(marker, 800, 600)


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def features():
    return FakeFeatures()


@pytest.fixture
def scene(features):
    return SyntheticScene(features)


@pytest.fixture
def l2_matcher():
    return cv2.BFMatcher(cv2.NORM_L2)


@pytest.fixture
def finder_config():
    """200 x 150 unit pattern printed from the 1000 x 750 px scene pattern."""
    from randpattern.types import FinderConfig
    return FinderConfig(pattern_width=200.0, pattern_height=150.0)


@pytest.fixture
def make_finder(features, l2_matcher, finder_config):
    """Factory for finders wired to the fake collaborators."""
    from randpattern.calibration.corner_finder import RandomPatternCornerFinder

    def _make(config=None, **kwargs):
        return RandomPatternCornerFinder(
            config or finder_config,
            detector=features,
            descriptor=features,
            matcher=l2_matcher,
            **kwargs,
        )

    return _make


@pytest.fixture
def loaded_finder(make_finder, scene):
    finder = make_finder()
    finder.load_pattern(scene.pattern_image)
    return finder
