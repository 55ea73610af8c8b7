"""
Image analysis: integral images, Canny edges and connected components.
"""

from rasterkit.processing.backends.analysis.edges import (
    EdgeState, canny, classify_edges, double_threshold, edge_map, hysteresis,
    non_maximum_suppression)
from rasterkit.processing.backends.analysis.integral_image import (
    area_mean, area_sum, area_variance, build_integral, build_integral_squared)
from rasterkit.processing.backends.analysis.region_labelling import (
    component_areas, connected_components, label)
from rasterkit.processing.backends.analysis.union_find import \
    DisjointSetForest

__all__ = [
    "build_integral", "build_integral_squared", "area_sum", "area_mean", "area_variance",
    "EdgeState", "canny", "classify_edges", "non_maximum_suppression",
    "double_threshold", "hysteresis", "edge_map",
    "DisjointSetForest", "label", "connected_components", "component_areas",
]
