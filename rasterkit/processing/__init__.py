"""
Image processing operations for rasterkit.

Every public operation is re-exported here and listed in the function
registry, which discovers functions declared with
:func:`~rasterkit.core.buffers.raster_function` for runtime lookup by name.
"""

# Import backend subpackages
from rasterkit.processing.backends import analysis, filters, geometry
from rasterkit.processing.backends.analysis import (
    DisjointSetForest, EdgeState, area_mean, area_sum, area_variance,
    build_integral, build_integral_squared, canny, classify_edges,
    component_areas, connected_components, double_threshold, edge_map,
    hysteresis, label, non_maximum_suppression)
from rasterkit.processing.backends.filters import (
    HORIZONTAL_PREWITT, HORIZONTAL_SCHARR, HORIZONTAL_SOBEL, VERTICAL_PREWITT,
    VERTICAL_SCHARR, VERTICAL_SOBEL, BorderPolicy, Kernel, box_filter,
    convolve, filter3x3, gaussian_blur, gaussian_kernel_1d,
    gradient_direction, gradient_magnitude, horizontal_gradient, pad,
    resolve_indices, sample, separable_filter, separable_filter_equal,
    sobel_gradients, vertical_gradient)
from rasterkit.processing.backends.geometry import (Projection, affine,
                                                    rotate_about_center,
                                                    translate, warp)
# Import function registry components
from rasterkit.processing.func_registry import (FUNC_REGISTRY,
                                                get_all_function_names,
                                                get_function_by_name,
                                                get_function_info,
                                                get_functions_by_category,
                                                initialize_registry,
                                                is_registry_initialized,
                                                register_function)

__all__ = [
    # Backend subpackages
    "filters", "geometry", "analysis",

    # Filters
    "BorderPolicy", "pad", "resolve_indices", "sample", "Kernel",
    "convolve", "separable_filter", "separable_filter_equal", "filter3x3",
    "gaussian_kernel_1d", "gaussian_blur", "box_filter",
    "HORIZONTAL_SOBEL", "VERTICAL_SOBEL", "HORIZONTAL_SCHARR", "VERTICAL_SCHARR",
    "HORIZONTAL_PREWITT", "VERTICAL_PREWITT",
    "horizontal_gradient", "vertical_gradient", "gradient_magnitude",
    "gradient_direction", "sobel_gradients",

    # Geometry
    "Projection", "warp", "rotate_about_center", "translate", "affine",

    # Analysis
    "build_integral", "build_integral_squared", "area_sum", "area_mean", "area_variance",
    "EdgeState", "canny", "classify_edges", "non_maximum_suppression",
    "double_threshold", "hysteresis", "edge_map",
    "DisjointSetForest", "label", "connected_components", "component_areas",

    # Function registry components
    "FUNC_REGISTRY", "register_function", "initialize_registry",
    "get_functions_by_category", "get_function_by_name", "get_all_function_names",
    "get_function_info", "is_registry_initialized",
]
