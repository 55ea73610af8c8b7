"""Tests for integral images and rectangle queries."""
import numpy as np
import pytest

from rasterkit.core.exceptions import ConfigurationError, DimensionMismatchError
from rasterkit.processing.backends.analysis.integral_image import (
    area_mean, area_sum, area_variance, build_integral, build_integral_squared)


class TestBuildIntegral:

    def test_uniform_image(self, uniform_image):
        integral = build_integral(uniform_image)
        assert integral.shape == (6, 6)
        assert integral.dtype == np.int64
        assert integral[5, 5] == 250
        assert np.all(integral[0, :] == 0)
        assert np.all(integral[:, 0] == 0)
        assert integral[2, 3] == 60

    def test_matches_cumulative_sums(self, rng, processing_config):
        image = rng.integers(0, 256, (23, 17), dtype=np.uint8)
        integral = build_integral(image)
        expected = np.zeros((24, 18), dtype=np.int64)
        expected[1:, 1:] = image.astype(np.int64).cumsum(axis=0).cumsum(axis=1)
        assert np.array_equal(integral, expected)

    def test_float_input(self, rng):
        image = rng.random((4, 6)).astype(np.float32)
        integral = build_integral(image)
        assert integral.dtype == np.float64
        assert integral[-1, -1] == pytest.approx(image.astype(np.float64).sum())

    def test_no_overflow_on_large_values(self):
        image = np.full((64, 64), 255, dtype=np.uint8)
        assert build_integral(image)[-1, -1] == 255 * 64 * 64

    def test_bool_counts_pixels(self, square_image):
        integral = build_integral(square_image.astype(bool))
        assert integral[-1, -1] == 9

    def test_multichannel(self, rng):
        image = rng.integers(0, 100, (4, 5, 3), dtype=np.uint16)
        integral = build_integral(image)
        assert integral.shape == (5, 6, 3)
        assert integral[-1, -1].tolist() == image.reshape(-1, 3).sum(axis=0).tolist()

    def test_squared(self):
        image = np.array([[1, 2], [3, 4]], dtype=np.uint8)
        integral = build_integral_squared(image)
        assert integral[-1, -1] == 1 + 4 + 9 + 16
        assert integral[1, 2] == 5


class TestAreaQueries:

    def test_full_extent_equals_total(self, rng):
        image = rng.integers(0, 256, (9, 13), dtype=np.uint8)
        integral = build_integral(image)
        assert area_sum(integral, 0, 0, 13, 9) == int(image.astype(np.int64).sum())

    def test_uniform_rectangle(self, uniform_image):
        integral = build_integral(uniform_image)
        assert area_sum(integral, 1, 1, 3, 3) == 40
        assert area_sum(integral, 0, 0, 5, 5) == 250

    def test_random_rectangles(self, rng):
        image = rng.integers(-50, 50, (12, 15), dtype=np.int16)
        integral = build_integral(image)
        for _ in range(50):
            x0, x1 = sorted(rng.integers(0, 16, 2))
            y0, y1 = sorted(rng.integers(0, 13, 2))
            expected = int(image[y0:y1, x0:x1].astype(np.int64).sum())
            assert area_sum(integral, x0, y0, x1, y1) == expected

    def test_returns_python_scalar(self, uniform_image):
        integral = build_integral(uniform_image)
        assert type(area_sum(integral, 0, 0, 2, 2)) is int
        assert type(area_mean(integral, 0, 0, 2, 2)) is float

    def test_empty_rectangle_sum_is_zero(self, uniform_image):
        assert area_sum(build_integral(uniform_image), 2, 2, 2, 4) == 0

    def test_multichannel_sum(self):
        image = np.ones((3, 3, 2), dtype=np.uint8)
        image[..., 1] = 2
        result = area_sum(build_integral(image), 0, 0, 2, 2)
        assert result.tolist() == [4, 8]

    @pytest.mark.parametrize("rect", [
        (3, 0, 2, 1),   # x0 > x1
        (0, 3, 1, 2),   # y0 > y1
        (-1, 0, 2, 2),
        (0, 0, 6, 2),
        (0, 0, 2, 6),
    ])
    def test_invalid_rectangles(self, uniform_image, rect):
        with pytest.raises(ConfigurationError):
            area_sum(build_integral(uniform_image), *rect)

    def test_mean(self):
        image = np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint8)
        assert area_mean(build_integral(image), 1, 0, 3, 2) == pytest.approx(4.0)

    def test_mean_of_empty_rectangle(self, uniform_image):
        with pytest.raises(ConfigurationError):
            area_mean(build_integral(uniform_image), 1, 1, 1, 3)

    def test_variance(self, rng):
        image = rng.integers(0, 256, (8, 8), dtype=np.uint8)
        integral = build_integral(image)
        squared = build_integral_squared(image)
        expected = image[2:7, 1:5].astype(np.float64).var()
        assert area_variance(integral, squared, 1, 2, 5, 7) == pytest.approx(expected)

    def test_variance_of_uniform_is_zero(self, uniform_image):
        integral = build_integral(uniform_image)
        squared = build_integral_squared(uniform_image)
        assert area_variance(integral, squared, 0, 0, 5, 5) == 0.0

    def test_variance_shape_mismatch(self, uniform_image):
        with pytest.raises(DimensionMismatchError):
            area_variance(build_integral(uniform_image),
                          build_integral_squared(uniform_image[:4]), 0, 0, 2, 2)
