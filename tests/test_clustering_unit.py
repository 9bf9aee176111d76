"""
Unit tests for palette clustering.

Tests both methods (k-means centroids and PAM medoids), cluster count
validation, determinism and the end-to-end color pipeline on synthetic grids.
"""

import re

import numpy as np
import pytest

from earthtones.errors import InvalidClusterCount, InvalidParameter
from earthtones.services.colors.clustering import (
    ClusterMethod,
    check_cluster_count,
    cluster_samples,
    extract_palette,
    representatives_to_hex,
    sort_by_lightness,
)
from earthtones.services.colors.conversion import to_perceptual
from earthtones.services.colors.sampling import sample_pixels

HEX_RE = r"^#[0-9A-F]{6}$"


@pytest.fixture
def lab_blobs():
    """Three well separated L*a*b* blobs of 60 points each."""
    rng = np.random.default_rng(7)
    centers = np.array([[30.0, 10.0, 20.0], [60.0, -30.0, 40.0], [85.0, 5.0, -25.0]])
    points = np.vstack([c + rng.normal(scale=2.0, size=(60, 3)) for c in centers])
    return points, centers


class TestClusterMethod:
    """Method name resolution"""

    @pytest.mark.parametrize("value,expected", [
        ("MEDOID", ClusterMethod.MEDOID),
        ("centroid", ClusterMethod.CENTROID),
        ("pam", ClusterMethod.MEDOID),
        ("kmeans", ClusterMethod.CENTROID),
        (ClusterMethod.CENTROID, ClusterMethod.CENTROID),
    ])
    def test_parse(self, value, expected):
        assert ClusterMethod.parse(value) is expected

    def test_parse_invalid_lists_supported_methods(self):
        with pytest.raises(InvalidParameter) as exc_info:
            ClusterMethod.parse("invalid")
        message = str(exc_info.value)
        assert "CENTROID" in message
        assert "MEDOID" in message


class TestClusterCount:
    """k must satisfy 1 <= k <= number of samples"""

    def test_zero_clusters(self, lab_blobs):
        points, _ = lab_blobs
        with pytest.raises(InvalidClusterCount):
            cluster_samples(points, 0, ClusterMethod.CENTROID)

    @pytest.mark.parametrize("method", list(ClusterMethod))
    def test_more_clusters_than_samples(self, method):
        points = np.array([[50.0, 0.0, 0.0], [60.0, 1.0, 1.0]])
        with pytest.raises(InvalidClusterCount, match="number of samples"):
            cluster_samples(points, 3, method)

    def test_non_integer_k(self, lab_blobs):
        points, _ = lab_blobs
        with pytest.raises(InvalidClusterCount):
            cluster_samples(points, 2.5, ClusterMethod.MEDOID)

    def test_check_without_sample_count(self):
        assert check_cluster_count(np.int64(4)) == 4
        with pytest.raises(InvalidClusterCount):
            check_cluster_count(True)


class TestCentroidClustering:
    """k-means in L*a*b*"""

    def test_returns_exactly_k(self, lab_blobs):
        points, _ = lab_blobs
        for k in (1, 2, 3, 5):
            result = cluster_samples(points, k, ClusterMethod.CENTROID, random_state=0)
            assert result.representatives.shape == (k, 3)
            assert result.labels.shape == (len(points),)
            assert result.medoid_indices is None

    def test_recovers_blob_centers(self, lab_blobs):
        points, centers = lab_blobs
        result = cluster_samples(points, 3, ClusterMethod.CENTROID, random_state=0)
        found = result.representatives[np.argsort(result.representatives[:, 0])]
        np.testing.assert_allclose(found, centers, atol=1.5)

    def test_deterministic_with_seed(self, lab_blobs):
        points, _ = lab_blobs
        first = cluster_samples(points, 4, ClusterMethod.CENTROID, random_state=42)
        second = cluster_samples(points, 4, ClusterMethod.CENTROID, random_state=42)
        np.testing.assert_array_equal(first.representatives, second.representatives)
        np.testing.assert_array_equal(first.labels, second.labels)


class TestMedoidClustering:
    """Partitioning around medoids in L*a*b*"""

    def test_returns_exactly_k(self, lab_blobs):
        points, _ = lab_blobs
        for k in (1, 2, 3, 6):
            result = cluster_samples(points, k, ClusterMethod.MEDOID, random_state=0)
            assert result.representatives.shape == (k, 3)
            assert len(set(result.medoid_indices.tolist())) == k

    def test_representatives_are_observed_samples(self, lab_blobs):
        points, _ = lab_blobs
        result = cluster_samples(points, 3, ClusterMethod.MEDOID, random_state=0)
        np.testing.assert_array_equal(result.representatives, points[result.medoid_indices])

    def test_one_medoid_per_blob(self, lab_blobs):
        points, _ = lab_blobs
        result = cluster_samples(points, 3, ClusterMethod.MEDOID, random_state=0)
        blobs = sorted(int(i) // 60 for i in result.medoid_indices)
        assert blobs == [0, 1, 2]

    def test_single_medoid_minimizes_total_distance(self, lab_blobs):
        points, _ = lab_blobs
        result = cluster_samples(points, 1, ClusterMethod.MEDOID)
        totals = np.linalg.norm(points[:, None, :] - points[None, :, :], axis=2).sum(axis=1)
        assert result.medoid_indices[0] == int(np.argmin(totals))

    def test_labels_point_to_nearest_medoid(self, lab_blobs):
        points, _ = lab_blobs
        result = cluster_samples(points, 3, ClusterMethod.MEDOID, random_state=0)
        dists = np.linalg.norm(points[:, None, :] - result.representatives[None, :, :], axis=2)
        np.testing.assert_array_equal(result.labels, np.argmin(dists, axis=1))

    def test_exemplars_stable_with_seed(self, lab_blobs):
        points, _ = lab_blobs
        first = cluster_samples(points, 4, ClusterMethod.MEDOID, random_state=3)
        second = cluster_samples(points, 4, ClusterMethod.MEDOID, random_state=3)
        np.testing.assert_array_equal(first.medoid_indices, second.medoid_indices)

    def test_fewer_distinct_points_than_k(self):
        """Duplicate data still yields k (repeated) representatives"""
        points = np.repeat(np.array([[40.0, 0.0, 0.0], [70.0, 0.0, 0.0]]), 5, axis=0)
        result = cluster_samples(points, 4, ClusterMethod.MEDOID, random_state=0)
        assert result.k == 4
        assert {tuple(r) for r in result.representatives} == {(40.0, 0.0, 0.0), (70.0, 0.0, 0.0)}


class TestOrdering:
    """Optional canonical lightness order"""

    @pytest.mark.parametrize("method", list(ClusterMethod))
    def test_sort_lightness(self, lab_blobs, method):
        points, _ = lab_blobs
        result = cluster_samples(points, 3, method, random_state=1, sort_lightness=True)
        lightness = result.representatives[:, 0]
        assert np.all(np.diff(lightness) >= 0)

    def test_sort_relabels_samples(self, lab_blobs):
        points, _ = lab_blobs
        result = cluster_samples(points, 3, ClusterMethod.MEDOID, random_state=1)
        ordered = sort_by_lightness(result)
        np.testing.assert_array_equal(
            ordered.representatives[ordered.labels], result.representatives[result.labels]
        )


class TestPalettePipeline:
    """Sampling, conversion, clustering and formatting together"""

    @pytest.mark.parametrize("method", list(ClusterMethod))
    def test_uniform_grey(self, grey_grid, method):
        """A uniform grey grid with k=1 yields exactly #808080"""
        palette = extract_palette(sample_pixels(grey_grid), 1, method, random_state=0)
        assert palette == ["#808080"]

    @pytest.mark.parametrize("method", list(ClusterMethod))
    def test_two_colors(self, two_color_grid, method):
        """Half red, half blue with k=2 recovers both colors"""
        palette = extract_palette(sample_pixels(two_color_grid), 2, method, random_state=0)
        assert len(palette) == 2
        assert set(palette) == {"#FF0000", "#0000FF"}

    def test_out_of_gamut_representatives_are_clamped(self):
        """Adversarial L*a*b* representatives still format as valid hex"""
        palette = representatives_to_hex(np.array([
            [100.0, 127.0, -128.0],
            [0.0, -128.0, 127.0],
            [120.0, 0.0, 0.0],
        ]))
        assert len(palette) == 3
        for color in palette:
            assert re.match(HEX_RE, color)
        assert palette[2] == "#FFFFFF"

    def test_palette_colors_are_valid_hex(self):
        rng = np.random.default_rng(5)
        samples = rng.random((400, 3))
        palette = extract_palette(samples, 5, ClusterMethod.CENTROID, random_state=0)
        assert len(palette) == 5
        assert all(re.match(HEX_RE, c) for c in palette)

    def test_seeded_pipeline_is_reproducible(self):
        samples = np.random.default_rng(11).random((300, 3))
        for method in ClusterMethod:
            first = extract_palette(samples, 4, method, random_state=9)
            second = extract_palette(samples, 4, method, random_state=9)
            assert first == second

    def test_lab_input_shape(self):
        lab = to_perceptual(np.random.default_rng(2).random((50, 3)))
        with pytest.raises(ValueError):
            cluster_samples(lab[:, :2], 2, ClusterMethod.CENTROID)
