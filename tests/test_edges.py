"""Tests for the Canny edge pipeline stages."""
import numpy as np
import pytest

from rasterkit.constants import Connectivity
from rasterkit.core.config import GlobalProcessingConfig, config_context
from rasterkit.core.exceptions import ConfigurationError, DimensionMismatchError
from rasterkit.processing.backends.analysis.edges import (
    EdgeState, canny, classify_edges, double_threshold, edge_map, hysteresis,
    non_maximum_suppression)

S = EdgeState.STRONG
W = EdgeState.WEAK
N = EdgeState.NON_EDGE


def states(rows):
    return np.array(rows, dtype=np.uint8)


class TestHysteresis:

    def test_weak_next_to_strong_is_confirmed(self):
        result = hysteresis(states([[S, W, N]]), Connectivity.FOUR)
        assert result.tolist() == [[S, EdgeState.CONFIRMED, N]]

    def test_isolated_weak_is_discarded(self):
        result = hysteresis(states([[W, N, S]]), Connectivity.EIGHT)
        assert result.tolist() == [[EdgeState.DISCARDED, N, S]]

    def test_chain_of_weak_pixels(self):
        result = hysteresis(states([[S, W, W, W], [N, N, N, W]]), 4)
        assert result[0, 1:].tolist() == [EdgeState.CONFIRMED] * 3
        assert result[1, 3] == EdgeState.CONFIRMED

    def test_diagonal_depends_on_connectivity(self):
        grid = states([[S, N], [N, W]])
        assert hysteresis(grid, Connectivity.FOUR)[1, 1] == EdgeState.DISCARDED
        assert hysteresis(grid, Connectivity.EIGHT)[1, 1] == EdgeState.CONFIRMED

    def test_does_not_traverse_non_edges(self):
        result = hysteresis(states([[S, N, W]]), Connectivity.EIGHT)
        assert result[0, 2] == EdgeState.DISCARDED

    def test_no_weak_pixels_remain(self, rng):
        grid = rng.choice([S, W, N, EdgeState.SUPPRESSED], size=(15, 15)).astype(np.uint8)
        result = hysteresis(grid, Connectivity.EIGHT)
        assert not np.any(result == W)
        assert np.array_equal(result == S, grid == S)

    def test_input_not_modified(self):
        grid = states([[S, W]])
        hysteresis(grid, Connectivity.FOUR)
        assert grid.tolist() == [[S, W]]

    def test_invalid_connectivity(self):
        with pytest.raises(ConfigurationError):
            hysteresis(states([[S]]), 6)


class TestDoubleThreshold:

    def test_classification(self):
        result = double_threshold(np.array([[0.0, 5.0, 9.9, 10.0, 15.0]]), 5, 10)
        assert result.tolist() == [[N, W, W, S, S]]

    def test_suppressed_pixels_stay_suppressed(self):
        magnitudes = np.array([[20.0, 20.0]])
        nms_states = states([[EdgeState.CANDIDATE, EdgeState.SUPPRESSED]])
        result = double_threshold(magnitudes, 5, 10, nms_states)
        assert result.tolist() == [[S, EdgeState.SUPPRESSED]]

    @pytest.mark.parametrize("low,high", [(10, 5), (-1, 5), (0, -2)])
    def test_invalid_thresholds(self, low, high):
        with pytest.raises(ConfigurationError):
            double_threshold(np.zeros((2, 2)), low, high)

    def test_states_shape_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            double_threshold(np.zeros((2, 2)), 1, 2, np.zeros((2, 3), dtype=np.uint8))


class TestNonMaximumSuppression:

    def setup_method(self):
        # Horizontal gradient peaking in column 2
        self.horizontal = np.tile(np.array([0.0, 1.0, 4.0, 1.0, 0.0]), (5, 1))
        self.vertical = np.zeros((5, 5))

    def test_keeps_ridge_along_gradient(self):
        magnitudes, nms_states = non_maximum_suppression(self.horizontal, self.vertical)
        survivors = nms_states == EdgeState.CANDIDATE
        expected = np.zeros((5, 5), dtype=bool)
        expected[1:4, 2] = True
        assert np.array_equal(survivors, expected)
        assert magnitudes[2, 2] == 4.0
        assert magnitudes[2, 1] == 0.0

    def test_vertical_direction(self):
        _, nms_states = non_maximum_suppression(self.vertical, self.horizontal.T.copy())
        survivors = nms_states == EdgeState.CANDIDATE
        assert survivors[2, 1:4].all()
        assert survivors.sum() == 3

    def test_diagonal_direction(self):
        # 45 degree gradient: compare along the main diagonal
        magnitude = np.zeros((5, 5))
        magnitude[1, 1], magnitude[2, 2], magnitude[3, 3] = 1.0, 3.0, 1.0
        magnitude[2, 1] = 2.0
        _, nms_states = non_maximum_suppression(magnitude, magnitude)
        assert nms_states[2, 2] == EdgeState.CANDIDATE
        assert nms_states[1, 1] == EdgeState.SUPPRESSED
        # Its diagonal neighbours (1, 0) and (3, 2) are both weaker
        assert nms_states[2, 1] == EdgeState.CANDIDATE

    def test_plateau_survives(self):
        horizontal = np.tile(np.array([0.0, 2.0, 2.0, 2.0, 0.0]), (3, 1))
        _, nms_states = non_maximum_suppression(horizontal, np.zeros((3, 5)))
        assert (nms_states[1, 1:4] == EdgeState.CANDIDATE).all()

    def test_border_suppressed(self):
        ones = np.ones((4, 4))
        _, nms_states = non_maximum_suppression(ones, np.zeros((4, 4)))
        assert (nms_states[0, :] == EdgeState.SUPPRESSED).all()
        assert (nms_states[:, -1] == EdgeState.SUPPRESSED).all()
        assert (nms_states[1:3, 1:3] == EdgeState.CANDIDATE).all()

    def test_zero_magnitude_suppressed(self):
        _, nms_states = non_maximum_suppression(np.zeros((4, 4)), np.zeros((4, 4)))
        assert (nms_states == EdgeState.SUPPRESSED).all()

    def test_shape_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            non_maximum_suppression(np.zeros((3, 3)), np.zeros((3, 4)))


class TestEdgeMap:

    def test_strong_and_confirmed_are_edges(self):
        grid = states([[S, EdgeState.CONFIRMED, EdgeState.DISCARDED, N, EdgeState.SUPPRESSED]])
        result = edge_map(grid)
        assert result.dtype == np.uint8
        assert result.tolist() == [[1, 1, 0, 0, 0]]


class TestCanny:

    def setup_method(self):
        self.image = np.zeros((20, 20), dtype=np.uint8)
        self.image[6:14, 6:14] = 200

    def test_square_outline(self):
        edges = canny(self.image, 20, 60, Connectivity.EIGHT)
        assert edges.dtype == np.uint8
        assert set(np.unique(edges)) <= {0, 1}
        assert edges.sum() > 0
        # Edges hug the square boundary, away from the centre and the image border
        ys, xs = np.nonzero(edges)
        assert ys.min() >= 4 and ys.max() <= 15
        assert xs.min() >= 4 and xs.max() <= 15
        assert edges[9:11, 9:11].sum() == 0

    def test_uniform_image_has_no_edges(self):
        edges = canny(np.full((10, 10), 77, dtype=np.uint8), 1, 2, Connectivity.FOUR)
        assert edges.sum() == 0

    def test_classify_edges_leaves_no_weak_pixels(self):
        result = classify_edges(self.image, 20, 60, Connectivity.FOUR)
        assert not np.any(result == W)
        assert np.array_equal(edge_map(result), canny(self.image, 20, 60, Connectivity.FOUR))

    def test_sigma_from_config(self):
        with config_context(GlobalProcessingConfig(canny_sigma=2.0)):
            configured = canny(self.image, 20, 60, 8)
        assert np.array_equal(configured, canny(self.image, 20, 60, 8, sigma=2.0))

    def test_float_input(self):
        edges = canny(self.image.astype(np.float32), 20, 60, Connectivity.EIGHT)
        assert np.array_equal(edges, canny(self.image, 20, 60, Connectivity.EIGHT))

    def test_rejects_multichannel(self):
        with pytest.raises(ConfigurationError):
            canny(np.zeros((5, 5, 3), dtype=np.uint8), 1, 2, Connectivity.EIGHT)

    def test_rejects_inverted_thresholds(self):
        with pytest.raises(ConfigurationError):
            canny(self.image, 60, 20, Connectivity.EIGHT)

    def test_rejects_bad_connectivity(self):
        with pytest.raises(ConfigurationError):
            canny(self.image, 20, 60, 6)
