"""
Neighbourhood filters.

Border policies, kernels, the convolution engine and the gradient operators
built on top of it.
"""

from rasterkit.processing.backends.filters.border import (BorderPolicy, pad,
                                                          resolve_indices,
                                                          sample)
from rasterkit.processing.backends.filters.convolution import (
    box_filter, convolve, filter3x3, gaussian_blur, gaussian_kernel_1d,
    separable_filter, separable_filter_equal)
from rasterkit.processing.backends.filters.gradients import (
    HORIZONTAL_PREWITT, HORIZONTAL_SCHARR, HORIZONTAL_SOBEL, VERTICAL_PREWITT,
    VERTICAL_SCHARR, VERTICAL_SOBEL, gradient_direction, gradient_magnitude,
    horizontal_gradient, sobel_gradients, vertical_gradient)
from rasterkit.processing.backends.filters.kernel import Kernel

__all__ = [
    "BorderPolicy", "pad", "resolve_indices", "sample",
    "Kernel",
    "convolve", "separable_filter", "separable_filter_equal", "filter3x3",
    "gaussian_kernel_1d", "gaussian_blur", "box_filter",
    "HORIZONTAL_SOBEL", "VERTICAL_SOBEL", "HORIZONTAL_SCHARR", "VERTICAL_SCHARR",
    "HORIZONTAL_PREWITT", "VERTICAL_PREWITT",
    "horizontal_gradient", "vertical_gradient", "gradient_magnitude",
    "gradient_direction", "sobel_gradients",
]
