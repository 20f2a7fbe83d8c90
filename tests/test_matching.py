"""
Tests for randpattern.calibration.matching.
"""

import cv2
import numpy as np
import pytest

from randpattern.calibration.matching import (
    cross_check_matching,
    keypoints_to_matched_locations,
    match_pairs,
)


@pytest.fixture
def descriptor_sets():
    rng = np.random.default_rng(3)
    a = rng.random((50, 16)).astype(np.float32)
    b = rng.random((40, 16)).astype(np.float32)
    return a, b


class TestCrossCheckMatching:
    def test_recovers_permutation(self, l2_matcher):
        rng = np.random.default_rng(0)
        train = rng.standard_normal((30, 16)).astype(np.float32)
        perm = rng.permutation(30)
        query = train[perm] + np.float32(0.001)

        matches = cross_check_matching(l2_matcher, query, train)

        assert len(matches) == 30
        for m in matches:
            assert m.trainIdx == perm[m.queryIdx]

    def test_symmetric_under_argument_swap(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets

        forward = match_pairs(cross_check_matching(l2_matcher, a, b))
        backward = match_pairs(cross_check_matching(l2_matcher, b, a))

        assert forward == {(t, q) for q, t in backward}

    def test_pairs_are_mutual_nearest_neighbors(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets
        matches = cross_check_matching(l2_matcher, a, b)

        dist = np.linalg.norm(a[:, None, :] - b[None, :, :], axis=2)
        for m in matches:
            assert np.argmin(dist[m.queryIdx]) == m.trainIdx
            assert np.argmin(dist[:, m.trainIdx]) == m.queryIdx

    def test_one_match_per_query(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets
        matches = cross_check_matching(l2_matcher, a, b, knn=3)
        query_ids = [m.queryIdx for m in matches]
        assert len(query_ids) == len(set(query_ids))

    def test_larger_knn_keeps_knn1_pairs(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets
        k1 = match_pairs(cross_check_matching(l2_matcher, a, b, knn=1))
        k2 = match_pairs(cross_check_matching(l2_matcher, a, b, knn=2))
        assert k1 <= k2

    def test_empty_descriptors(self, l2_matcher, descriptor_sets):
        a, _ = descriptor_sets
        empty = np.empty((0, 16), dtype=np.float32)

        assert cross_check_matching(l2_matcher, empty, a) == []
        assert cross_check_matching(l2_matcher, a, empty) == []
        assert cross_check_matching(l2_matcher, None, a) == []
        assert cross_check_matching(l2_matcher, a, None) == []

    def test_does_not_mutate_inputs(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets
        a_before, b_before = a.copy(), b.copy()
        cross_check_matching(l2_matcher, a, b)
        np.testing.assert_array_equal(a, a_before)
        np.testing.assert_array_equal(b, b_before)

    def test_invalid_knn(self, l2_matcher, descriptor_sets):
        a, b = descriptor_sets
        with pytest.raises(ValueError):
            cross_check_matching(l2_matcher, a, b, knn=0)

    def test_matcher_returning_nothing(self, descriptor_sets):
        class SilentMatcher:
            def knnMatch(self, query, train, k):
                return None

        a, b = descriptor_sets
        assert cross_check_matching(SilentMatcher(), a, b) == []


class TestKeypointsToMatchedLocations:
    def test_locations_follow_indices(self):
        image_kps = [cv2.KeyPoint(10.0, 20.0, 5.0), cv2.KeyPoint(30.0, 40.0, 5.0)]
        pattern_kps = [
            cv2.KeyPoint(1.0, 2.0, 5.0),
            cv2.KeyPoint(3.0, 4.0, 5.0),
            cv2.KeyPoint(5.0, 6.0, 5.0),
        ]
        matches = [cv2.DMatch(1, 2, 0.5), cv2.DMatch(0, 0, 0.1)]

        locations = keypoints_to_matched_locations(image_kps, pattern_kps, matches)

        assert len(locations) == 2
        np.testing.assert_array_equal(locations.image_points, [[30.0, 40.0], [10.0, 20.0]])
        np.testing.assert_array_equal(locations.pattern_points, [[5.0, 6.0], [1.0, 2.0]])

    def test_no_matches(self):
        locations = keypoints_to_matched_locations([], [], [])
        assert len(locations) == 0
        assert locations.image_points.shape == (0, 2)
        assert locations.pattern_points.shape == (0, 2)
