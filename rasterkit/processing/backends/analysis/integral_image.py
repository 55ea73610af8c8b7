"""
Integral images (summed-area tables).

An integral image is one row and one column larger than its source; cell
``[y, x]`` holds the sum of the source pixels in ``[0, x) x [0, y)``, so row 0
and column 0 are zero and any rectangle sum is four lookups away.
"""

import logging
from typing import Union

import numpy as np

from rasterkit.core.buffers import (as_channels_last, raster_function,
                                    require_same_shape, restore_channels)
from rasterkit.core.exceptions import ConfigurationError
from rasterkit.core.parallel import map_bands
from rasterkit.core.pixel_types import pixel_type_info

logger = logging.getLogger(__name__)

Scalar = Union[int, float]


def _integral_of(values: np.ndarray) -> np.ndarray:
    """
    Two-pass prefix sums of a (H, W, C) array already in its accumulator dtype.

    The row pass is split into bands of rows, the column pass into bands of
    columns: each cumulative sum only depends on its own row (or column).
    """
    height, width, channels = values.shape
    integral = np.zeros((height + 1, width + 1, channels), dtype=values.dtype)

    def row_pass(start: int, stop: int) -> None:
        np.cumsum(values[start:stop], axis=1, out=integral[start + 1:stop + 1, 1:])

    def column_pass(start: int, stop: int) -> None:
        columns = integral[1:, start + 1:stop + 1]
        np.cumsum(columns, axis=0, out=columns)

    map_bands(row_pass, height)
    map_bands(column_pass, width)
    return integral


@raster_function(category="analysis")
def build_integral(buffer: np.ndarray) -> np.ndarray:
    """
    Compute the integral image of a buffer.

    Args:
        buffer: 2D (H, W) or 3D (H, W, C) pixel buffer

    Returns:
        Array of shape (H + 1, W + 1[, C]); int64 for integer sources,
        float64 for floating sources
    """
    info = pixel_type_info(buffer.dtype)
    integral = _integral_of(info.widen(as_channels_last(buffer)))
    return restore_channels(integral, buffer)


@raster_function(category="analysis")
def build_integral_squared(buffer: np.ndarray) -> np.ndarray:
    """Integral image of the squared pixel values."""
    info = pixel_type_info(buffer.dtype)
    values = info.widen(as_channels_last(buffer))
    integral = _integral_of(values * values)
    return restore_channels(integral, buffer)


def _check_rectangle(integral: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> None:
    if integral.ndim not in (2, 3):
        raise ValueError(f"integral must be a 2D or 3D array, got {integral.ndim}D")
    max_y, max_x = integral.shape[0] - 1, integral.shape[1] - 1
    if not (0 <= x0 <= x1 <= max_x and 0 <= y0 <= y1 <= max_y):
        raise ConfigurationError(
            f"Rectangle [{x0}, {x1}) x [{y0}, {y1}) is not within a "
            f"{max_x}x{max_y} source buffer"
        )


def _to_python(value) -> Union[Scalar, np.ndarray]:
    if np.ndim(value) == 0:
        return value.item()
    return value


def area_sum(integral: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> Union[Scalar, np.ndarray]:
    """
    Sum of source pixels in the half-open rectangle ``[x0, x1) x [y0, y1)``.

    Computed as ``I(x1,y1) - I(x0,y1) - I(x1,y0) + I(x0,y0)``.

    Returns:
        A Python scalar for single-channel integrals, a per-channel array otherwise

    Raises:
        ConfigurationError: If the rectangle is inverted or out of range
    """
    _check_rectangle(integral, x0, y0, x1, y1)
    total = integral[y1, x1] - integral[y1, x0] - integral[y0, x1] + integral[y0, x0]
    return _to_python(total)


def area_mean(integral: np.ndarray, x0: int, y0: int, x1: int, y1: int) -> Union[float, np.ndarray]:
    """
    Mean of source pixels in ``[x0, x1) x [y0, y1)``.

    Raises:
        ConfigurationError: If the rectangle is empty, inverted or out of range
    """
    _check_rectangle(integral, x0, y0, x1, y1)
    count = (x1 - x0) * (y1 - y0)
    if count == 0:
        raise ConfigurationError("Cannot take the mean of an empty rectangle")
    return _to_python(np.asarray(area_sum(integral, x0, y0, x1, y1), dtype=np.float64) / count)


def area_variance(integral: np.ndarray, integral_squared: np.ndarray,
                  x0: int, y0: int, x1: int, y1: int) -> Union[float, np.ndarray]:
    """
    Population variance of source pixels in ``[x0, x1) x [y0, y1)``.

    Args:
        integral: Result of :func:`build_integral`
        integral_squared: Result of :func:`build_integral_squared` on the same source

    Raises:
        DimensionMismatchError: If the two integrals differ in shape
        ConfigurationError: If the rectangle is empty, inverted or out of range
    """
    require_same_shape(integral, integral_squared, "area_variance")
    mean = np.asarray(area_mean(integral, x0, y0, x1, y1), dtype=np.float64)
    count = (x1 - x0) * (y1 - y0)
    mean_of_squares = np.asarray(area_sum(integral_squared, x0, y0, x1, y1), dtype=np.float64) / count
    # Clamp tiny negative values caused by floating cancellation
    return _to_python(np.maximum(mean_of_squares - mean * mean, 0.0))
