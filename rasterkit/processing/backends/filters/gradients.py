"""
Directional derivative operators.

Gradients are computed with the convolution engine using edge-extended
borders. Horizontal kernels respond to intensity increasing to the right,
vertical kernels to intensity increasing downwards.
"""

import logging

import numpy as np

from rasterkit.core.buffers import raster_function, require_same_shape
from rasterkit.core.pixel_types import signed_output_dtype
from rasterkit.processing.backends.filters.border import BorderPolicy
from rasterkit.processing.backends.filters.convolution import convolve
from rasterkit.processing.backends.filters.kernel import Kernel

logger = logging.getLogger(__name__)

# Sobel: smoothing [1, 2, 1] across the derivative [-1, 0, 1]
HORIZONTAL_SOBEL = Kernel.separable([-1, 0, 1], [1, 2, 1])
VERTICAL_SOBEL = Kernel.separable([1, 2, 1], [-1, 0, 1])

HORIZONTAL_SCHARR = Kernel.separable([-1, 0, 1], [3, 10, 3])
VERTICAL_SCHARR = Kernel.separable([3, 10, 3], [-1, 0, 1])

HORIZONTAL_PREWITT = Kernel.separable([-1, 0, 1], [1, 1, 1])
VERTICAL_PREWITT = Kernel.separable([1, 1, 1], [-1, 0, 1])


@raster_function(category="filters")
def horizontal_gradient(buffer: np.ndarray, kernel: Kernel = HORIZONTAL_SOBEL) -> np.ndarray:
    """
    Horizontal derivative of a buffer.

    Returns:
        Signed gradient, int32 for integer input and float64 otherwise
    """
    return convolve(buffer, kernel, BorderPolicy.extend_edge(), signed_output_dtype(buffer.dtype))


@raster_function(category="filters")
def vertical_gradient(buffer: np.ndarray, kernel: Kernel = VERTICAL_SOBEL) -> np.ndarray:
    """
    Vertical derivative of a buffer.

    Returns:
        Signed gradient, int32 for integer input and float64 otherwise
    """
    return convolve(buffer, kernel, BorderPolicy.extend_edge(), signed_output_dtype(buffer.dtype))


def gradient_magnitude(horizontal: np.ndarray, vertical: np.ndarray) -> np.ndarray:
    """
    Euclidean magnitude of a gradient pair.

    Raises:
        DimensionMismatchError: If the two gradients differ in shape
    """
    require_same_shape(horizontal, vertical, "gradient_magnitude")
    return np.hypot(horizontal.astype(np.float64), vertical.astype(np.float64))


def gradient_direction(horizontal: np.ndarray, vertical: np.ndarray) -> np.ndarray:
    """
    Gradient angle in radians, in ``(-pi, pi]``, measured from the +x axis
    towards +y (downwards in image coordinates).

    Raises:
        DimensionMismatchError: If the two gradients differ in shape
    """
    require_same_shape(horizontal, vertical, "gradient_direction")
    return np.arctan2(vertical.astype(np.float64), horizontal.astype(np.float64))


@raster_function(category="filters")
def sobel_gradients(buffer: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude as float64."""
    return gradient_magnitude(horizontal_gradient(buffer), vertical_gradient(buffer))
