"""
Tests for randpattern.types dataclasses.
"""

import numpy as np
import pytest

from randpattern.types import (
    Abandoned,
    Accepted,
    FinderConfig,
    GeneratorConfig,
    MatchedLocations,
    PatternStore,
    ProjectConfig,
)


class TestFinderConfig:
    def test_creation_with_defaults(self):
        config = FinderConfig(pattern_width=200.0, pattern_height=150.0)
        assert config.min_matches == 20
        assert config.dtype == "float32"
        assert config.verbose == 0
        assert config.show_extraction is False
        assert config.knn == 1
        assert config.ransac_threshold is None
        assert config.epipolar_check is False
        assert config.max_workers is None
        assert config.detector == "akaze"
        assert config.numpy_dtype is np.float32

    def test_frozen(self):
        config = FinderConfig(pattern_width=200.0, pattern_height=150.0)
        with pytest.raises(AttributeError):
            config.min_matches = 5

    @pytest.mark.parametrize("width,height", [
        (0.0, 150.0),
        (200.0, 0.0),
        (-1.0, 150.0),
        (float("nan"), 150.0),
        (200.0, float("nan")),
    ])
    def test_rejects_non_positive_size(self, width, height):
        with pytest.raises(ValueError):
            FinderConfig(pattern_width=width, pattern_height=height)

    @pytest.mark.parametrize("kwargs", [
        {"min_matches": 0},
        {"knn": 0},
        {"dtype": "float16"},
        {"detector": "sift"},
        {"max_workers": 0},
    ])
    def test_rejects_invalid_options(self, kwargs):
        with pytest.raises(ValueError):
            FinderConfig(pattern_width=200.0, pattern_height=150.0, **kwargs)

    def test_homography_threshold_scales_with_pattern_width(self):
        config = FinderConfig(pattern_width=200.0, pattern_height=150.0)
        assert config.homography_threshold(1000) == pytest.approx(30.0)
        assert config.homography_threshold(2000) == pytest.approx(60.0)

    def test_explicit_homography_threshold(self):
        config = FinderConfig(pattern_width=200.0, pattern_height=150.0, ransac_threshold=4.0)
        assert config.homography_threshold(1000) == 4.0


class TestGeneratorConfig:
    def test_defaults(self):
        config = GeneratorConfig()
        assert (config.width, config.height) == (1000, 750)
        assert config.style == "noise"
        assert config.seed is None

    def test_rejects_invalid(self):
        with pytest.raises(ValueError):
            GeneratorConfig(width=-5)
        with pytest.raises(ValueError):
            GeneratorConfig(style="checkerboard")


class TestProjectConfig:
    def test_default_generator(self):
        config = ProjectConfig(finder=FinderConfig(pattern_width=1.0, pattern_height=1.0))
        assert config.generator == GeneratorConfig()


class TestPatternStore:
    def test_pixel_size_is_width_height(self):
        store = PatternStore(
            image=np.zeros((750, 1000), dtype=np.uint8),
            keypoints=(),
            descriptors=None,
        )
        assert store.pixel_size == (1000, 750)


class TestMatchedLocations:
    def test_len(self):
        locations = MatchedLocations(image_points=np.zeros((7, 2)), pattern_points=np.zeros((7, 2)))
        assert len(locations) == 7


class TestResults:
    def test_accepted_count(self):
        result = Accepted(image_points=np.zeros((21, 2)), object_points=np.zeros((21, 3)), index=2)
        assert result.count == 21
        assert result.index == 2

    def test_abandoned_count_is_zero(self):
        result = Abandoned(reason="too few", match_count=12, inlier_count=8)
        assert result.count == 0

    def test_frozen(self):
        result = Abandoned(reason="too few")
        with pytest.raises(AttributeError):
            result.reason = "other"
