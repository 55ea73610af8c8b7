"""
Convolution engine.

Applies a :class:`~rasterkit.processing.backends.filters.kernel.Kernel` to a
pixel buffer and returns a new buffer of the same shape. Kernels are applied
as a sliding-window weighted sum aligned on the kernel anchor (no kernel
flip), each channel independently:

    out[y, x] = sum_{j, i} K[j, i] * src(x + i - anchor_x, y + j - anchor_y)

Out-of-range samples come from the border policy. Sums are accumulated in a
widened dtype and the result is rounded to nearest and clamped to the output
dtype. Output rows are computed in bands on the shared thread pool.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from rasterkit.constants.constants import (DEFAULT_GAUSSIAN_RADIUS_FACTOR,
                                           BorderMode)
from rasterkit.core.buffers import (as_channels_last, raster_function,
                                    restore_channels)
from rasterkit.core.exceptions import ConfigurationError, InvalidKernelError
from rasterkit.core.parallel import map_bands
from rasterkit.core.pixel_types import accumulator_dtype, pixel_type_info
from rasterkit.processing.backends.filters.border import (BorderPolicy, pad,
                                                          resolve_policy)
from rasterkit.processing.backends.filters.kernel import Kernel

logger = logging.getLogger(__name__)


def _padded_source(source: np.ndarray, kernel: Kernel, policy: BorderPolicy,
                   acc_dtype: np.dtype) -> np.ndarray:
    """Widen to the accumulator dtype, then pad so every tap is in range."""
    if (policy.mode is BorderMode.CONSTANT and np.issubdtype(acc_dtype, np.integer)
            and float(policy.value) != int(policy.value)):
        acc_dtype = np.dtype(np.float64)
    return pad(source.astype(acc_dtype), *kernel.padding(), policy)


@raster_function(category="filters")
def convolve(buffer: np.ndarray, kernel: Kernel, border: Optional[BorderPolicy] = None,
             output_dtype=None) -> np.ndarray:
    """
    Convolve a buffer with a kernel.

    Separable kernels run a row pass then a column pass over the once-padded
    buffer; the result equals full 2D convolution up to floating rounding,
    for every border mode.

    Args:
        buffer: 2D (H, W) or 3D (H, W, C) pixel buffer
        kernel: Kernel to apply
        border: Border policy (default: configured border mode)
        output_dtype: dtype of the result (default: buffer dtype)

    Returns:
        New buffer with the input's shape and ``output_dtype``

    Raises:
        TypeError: If kernel is not a Kernel
        EmptyBufferError: If the buffer has zero area
    """
    if not isinstance(kernel, Kernel):
        raise TypeError(f"kernel must be a Kernel, got {type(kernel)}")

    policy = resolve_policy(border)
    out_info = pixel_type_info(output_dtype if output_dtype is not None else buffer.dtype)
    acc_dtype = accumulator_dtype(buffer.dtype, kernel.is_integral)

    source = as_channels_last(buffer)
    height, width, channels = source.shape
    padded = _padded_source(source, kernel, policy, acc_dtype)
    acc_dtype = padded.dtype
    result = np.empty((height, width, channels), dtype=out_info.dtype)

    logger.debug(
        f"convolve: {kernel!r} over {width}x{height}x{channels} {buffer.dtype}, "
        f"border={policy.mode.value}, accumulator={acc_dtype}"
    )

    if kernel.is_separable:
        row = [acc_dtype.type(w) for w in kernel.row]
        column = [acc_dtype.type(w) for w in kernel.column]
        kernel_height = kernel.height

        def run_band(start: int, stop: int) -> None:
            rows = padded[start:stop + kernel_height - 1]
            row_pass = np.zeros((rows.shape[0], width, channels), dtype=acc_dtype)
            for i, weight in enumerate(row):
                if weight != 0:
                    row_pass += weight * rows[:, i:i + width]
            acc = np.zeros((stop - start, width, channels), dtype=acc_dtype)
            for j, weight in enumerate(column):
                if weight != 0:
                    acc += weight * row_pass[j:j + stop - start]
            result[start:stop] = out_info.round_to_type(acc)
    else:
        taps = [(j, i, acc_dtype.type(w))
                for (j, i), w in np.ndenumerate(kernel.weights) if w != 0]

        def run_band(start: int, stop: int) -> None:
            acc = np.zeros((stop - start, width, channels), dtype=acc_dtype)
            for j, i, weight in taps:
                acc += weight * padded[start + j:stop + j, i:i + width]
            result[start:stop] = out_info.round_to_type(acc)

    map_bands(run_band, height)
    return restore_channels(result, buffer)


@raster_function(category="filters")
def separable_filter(buffer: np.ndarray, row: Sequence[float], column: Sequence[float],
                     border: Optional[BorderPolicy] = None, output_dtype=None) -> np.ndarray:
    """Convolve with the separable kernel ``outer(column, row)``."""
    return convolve(buffer, Kernel.separable(row, column), border, output_dtype)


@raster_function(category="filters")
def separable_filter_equal(buffer: np.ndarray, weights: Sequence[float],
                           border: Optional[BorderPolicy] = None, output_dtype=None) -> np.ndarray:
    """Separable filter using the same 1D weights horizontally and vertically."""
    return convolve(buffer, Kernel.separable(weights, weights), border, output_dtype)


@raster_function(category="filters")
def filter3x3(buffer: np.ndarray, weights: Sequence[float],
              border: Optional[BorderPolicy] = None, output_dtype=None) -> np.ndarray:
    """Convolve with a 3x3 kernel given as nine row-major weights."""
    weights = np.asarray(weights, dtype=np.float64).ravel()
    if weights.size != 9:
        raise InvalidKernelError(f"filter3x3 expects 9 weights, got {weights.size}")
    return convolve(buffer, Kernel(weights.reshape(3, 3)), border, output_dtype)


def gaussian_kernel_1d(sigma: float) -> np.ndarray:
    """
    Normalized 1D Gaussian weights with radius ``ceil(3 * sigma)``.

    Raises:
        ConfigurationError: If sigma is not positive
    """
    if not sigma > 0:
        raise ConfigurationError(f"sigma must be positive, got {sigma}")
    radius = max(1, int(math.ceil(DEFAULT_GAUSSIAN_RADIUS_FACTOR * sigma)))
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    weights = np.exp(-(offsets ** 2) / (2.0 * sigma * sigma))
    return weights / weights.sum()


@raster_function(category="filters")
def gaussian_blur(buffer: np.ndarray, sigma: float,
                  border: Optional[BorderPolicy] = None) -> np.ndarray:
    """Blur with a separable Gaussian of standard deviation ``sigma``."""
    weights = gaussian_kernel_1d(sigma)
    return convolve(buffer, Kernel.separable(weights, weights), border)


@raster_function(category="filters")
def box_filter(buffer: np.ndarray, x_radius: int, y_radius: int,
               border: Optional[BorderPolicy] = None) -> np.ndarray:
    """
    Mean over a (2*x_radius+1) x (2*y_radius+1) window around each pixel.

    Window sums come from the integral image of the border-padded buffer,
    so the cost per pixel does not depend on the radii.

    Raises:
        ConfigurationError: If a radius is negative
    """
    from rasterkit.processing.backends.analysis.integral_image import build_integral

    if x_radius < 0 or y_radius < 0:
        raise ConfigurationError(f"Radii must be non-negative, got ({x_radius}, {y_radius})")

    policy = resolve_policy(border)
    info = pixel_type_info(buffer.dtype)
    source = as_channels_last(buffer)
    height, width = source.shape[:2]

    padded = pad(source.astype(info.accumulator), y_radius, y_radius, x_radius, x_radius, policy)
    integral = build_integral(padded)

    window_height = 2 * y_radius + 1
    window_width = 2 * x_radius + 1
    sums = (integral[window_height:window_height + height, window_width:window_width + width]
            - integral[:height, window_width:window_width + width]
            - integral[window_height:window_height + height, :width]
            + integral[:height, :width])
    means = sums / float(window_width * window_height)
    return restore_channels(info.round_to_type(means), buffer)
