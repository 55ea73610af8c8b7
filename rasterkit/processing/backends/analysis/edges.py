"""
Canny edge detection.

The pipeline runs in stages, each exposed as its own function so the
intermediate maps can be inspected:

1. Gaussian smoothing and Sobel gradients
2. :func:`non_maximum_suppression` thins ridges to one pixel
3. :func:`double_threshold` splits survivors into strong and weak candidates
4. :func:`hysteresis` keeps weak pixels connected to a strong one
5. :func:`edge_map` reduces the states to a binary map
"""

import logging
from collections import deque
from enum import IntEnum
from typing import Optional, Tuple, Union

import numpy as np

from rasterkit.constants.constants import Connectivity
from rasterkit.core.buffers import raster_function, require_same_shape
from rasterkit.core.config import get_current_global_config
from rasterkit.core.exceptions import ConfigurationError
from rasterkit.processing.backends.filters.convolution import gaussian_blur
from rasterkit.processing.backends.filters.gradients import (
    gradient_magnitude, horizontal_gradient, vertical_gradient)

logger = logging.getLogger(__name__)


class EdgeState(IntEnum):
    """Per-pixel classification as it moves through the pipeline."""
    UNCLASSIFIED = 0
    SUPPRESSED = 1
    CANDIDATE = 2
    NON_EDGE = 3
    WEAK = 4
    STRONG = 5
    CONFIRMED = 6
    DISCARDED = 7


# Neighbour offsets (dy, dx) along each quantized gradient direction
_DIRECTION_OFFSETS = (
    (0, 1),    # 0 degrees: compare left/right
    (1, 1),    # 45 degrees: compare down-right/up-left
    (1, 0),    # 90 degrees: compare up/down
    (1, -1),   # 135 degrees: compare down-left/up-right
)


def _check_thresholds(low: float, high: float) -> None:
    if low < 0 or high < 0:
        raise ConfigurationError(f"Thresholds must be non-negative, got low={low}, high={high}")
    if low > high:
        raise ConfigurationError(f"Low threshold {low} exceeds high threshold {high}")


def _quantize_directions(horizontal: np.ndarray, vertical: np.ndarray) -> np.ndarray:
    """Map gradient angles to sector indices 0..3 (0, 45, 90, 135 degrees)."""
    angle = np.degrees(np.arctan2(vertical, horizontal)) % 180.0
    return (np.floor((angle + 22.5) / 45.0).astype(np.int64)) % 4


def non_maximum_suppression(horizontal: np.ndarray,
                            vertical: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Thin gradient ridges to single-pixel width.

    A pixel survives when its magnitude is positive and no smaller than both
    neighbours along its quantized gradient direction. Pixels in the
    outermost rows and columns are always suppressed.

    Args:
        horizontal: Horizontal gradient, 2D
        vertical: Vertical gradient, 2D

    Returns:
        (magnitudes, states): float64 magnitudes with suppressed pixels set to
        zero, and a uint8 map of ``EdgeState.CANDIDATE`` / ``EdgeState.SUPPRESSED``

    Raises:
        DimensionMismatchError: If the gradients differ in shape
    """
    require_same_shape(horizontal, vertical, "non_maximum_suppression")
    if horizontal.ndim != 2:
        raise ConfigurationError(f"Gradients must be 2D, got {horizontal.ndim}D")

    magnitude = gradient_magnitude(horizontal, vertical)
    height, width = magnitude.shape
    survivors = np.zeros((height, width), dtype=bool)

    if height >= 3 and width >= 3:
        sectors = _quantize_directions(horizontal.astype(np.float64), vertical.astype(np.float64))
        centre = magnitude[1:-1, 1:-1]
        inner_sectors = sectors[1:-1, 1:-1]
        keep = centre > 0
        for sector, (dy, dx) in enumerate(_DIRECTION_OFFSETS):
            forward = magnitude[1 + dy:height - 1 + dy, 1 + dx:width - 1 + dx]
            backward = magnitude[1 - dy:height - 1 - dy, 1 - dx:width - 1 - dx]
            in_sector = inner_sectors == sector
            keep &= ~in_sector | ((centre >= forward) & (centre >= backward))
        survivors[1:-1, 1:-1] = keep

    states = np.where(survivors, EdgeState.CANDIDATE, EdgeState.SUPPRESSED).astype(np.uint8)
    return np.where(survivors, magnitude, 0.0), states


def double_threshold(magnitudes: np.ndarray, low: float, high: float,
                     states: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Classify candidate pixels by magnitude.

    ``>= high`` becomes STRONG, ``[low, high)`` WEAK and anything below
    ``low`` NON_EDGE. Pixels already SUPPRESSED keep that state.

    Args:
        magnitudes: Thinned gradient magnitudes
        low: Lower threshold
        high: Upper threshold
        states: Map from :func:`non_maximum_suppression`; when omitted,
            every pixel is treated as a candidate

    Raises:
        ConfigurationError: If a threshold is negative or ``low > high``
    """
    _check_thresholds(low, high)
    if states is None:
        states = np.full(magnitudes.shape, EdgeState.CANDIDATE, dtype=np.uint8)
    else:
        require_same_shape(magnitudes, states, "double_threshold")

    classified = np.full(magnitudes.shape, EdgeState.NON_EDGE, dtype=np.uint8)
    classified[magnitudes >= low] = EdgeState.WEAK
    classified[magnitudes >= high] = EdgeState.STRONG
    classified[states == EdgeState.SUPPRESSED] = EdgeState.SUPPRESSED
    return classified


def hysteresis(states: np.ndarray, connectivity: Union[Connectivity, int]) -> np.ndarray:
    """
    Promote weak pixels connected to a strong pixel.

    Breadth-first traversal from every STRONG seed, through WEAK pixels
    only, under the given connectivity. Reached WEAK pixels become
    CONFIRMED, the remaining ones DISCARDED.

    Returns:
        New state map; the input is not modified
    """
    connectivity = Connectivity.coerce(connectivity)
    result = np.array(states, dtype=np.uint8, copy=True)
    height, width = result.shape
    offsets = connectivity.offsets

    queue = deque(zip(*np.nonzero(result == EdgeState.STRONG)))
    logger.debug(f"hysteresis: {len(queue)} strong seeds, {connectivity.value}-connected")

    while queue:
        y, x = queue.popleft()
        for dy, dx in offsets:
            ny, nx = y + dy, x + dx
            if 0 <= ny < height and 0 <= nx < width and result[ny, nx] == EdgeState.WEAK:
                result[ny, nx] = EdgeState.CONFIRMED
                queue.append((ny, nx))

    result[result == EdgeState.WEAK] = EdgeState.DISCARDED
    return result


def edge_map(states: np.ndarray) -> np.ndarray:
    """Binary uint8 map: 1 where STRONG or CONFIRMED, 0 elsewhere."""
    edges = (states == EdgeState.STRONG) | (states == EdgeState.CONFIRMED)
    return edges.astype(np.uint8)


@raster_function(category="analysis")
def classify_edges(buffer: np.ndarray, low_threshold: float, high_threshold: float,
                   connectivity: Union[Connectivity, int],
                   sigma: Optional[float] = None) -> np.ndarray:
    """
    Run the Canny pipeline and return the final EdgeState of every pixel.

    Args:
        buffer: Single-channel pixel buffer
        low_threshold: Hysteresis lower threshold on gradient magnitude
        high_threshold: Hysteresis upper threshold on gradient magnitude
        connectivity: Neighbourhood used by hysteresis
        sigma: Gaussian smoothing (default: configured ``canny_sigma``)

    Raises:
        ConfigurationError: On invalid thresholds or multi-channel input
    """
    _check_thresholds(low_threshold, high_threshold)
    connectivity = Connectivity.coerce(connectivity)
    if buffer.ndim != 2:
        raise ConfigurationError(
            f"Edge detection needs a single-channel buffer, got shape {buffer.shape}"
        )
    if sigma is None:
        sigma = get_current_global_config().canny_sigma

    logger.debug(
        f"canny: sigma={sigma}, thresholds=[{low_threshold}, {high_threshold}], "
        f"connectivity={connectivity.value}"
    )

    smoothed = gaussian_blur(buffer.astype(np.float64), sigma)
    horizontal = horizontal_gradient(smoothed)
    vertical = vertical_gradient(smoothed)

    magnitudes, states = non_maximum_suppression(horizontal, vertical)
    states = double_threshold(magnitudes, low_threshold, high_threshold, states)
    return hysteresis(states, connectivity)


@raster_function(category="analysis")
def canny(buffer: np.ndarray, low_threshold: float, high_threshold: float,
          connectivity: Union[Connectivity, int], sigma: Optional[float] = None) -> np.ndarray:
    """
    Canny edge detection.

    Returns:
        uint8 map with 1 on edges and 0 elsewhere

    Raises:
        ConfigurationError: On invalid thresholds or multi-channel input
    """
    return edge_map(classify_edges(buffer, low_threshold, high_threshold, connectivity, sigma))
