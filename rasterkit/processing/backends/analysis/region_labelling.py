"""
Connected-component labelling.

Two-pass algorithm over a :class:`DisjointSetForest`: the first raster scan
hands out provisional labels and records equivalences, the second replaces
each provisional label by its set root. Labels are then renumbered ``1..k``
in order of first appearance, so the output does not depend on how the
forest happened to merge.
"""

import logging
from typing import Tuple, Union

import numpy as np

from rasterkit.constants.constants import Connectivity
from rasterkit.core.buffers import raster_function
from rasterkit.core.exceptions import ConfigurationError
from rasterkit.processing.backends.analysis.union_find import DisjointSetForest

logger = logging.getLogger(__name__)


def _pixel_classes(buffer: np.ndarray, background) -> Tuple[np.ndarray, int]:
    """
    Reduce pixels to comparable integer classes.

    Returns:
        (classes, background_class): (H, W) int64 array where equal pixels
        share a class, and the class of background pixels (-1 if none)
    """
    height, width = buffer.shape[:2]
    if buffer.ndim == 2:
        values = buffer.reshape(-1, 1)
    else:
        values = buffer.reshape(height * width, -1)

    uniques, inverse = np.unique(values, axis=0, return_inverse=True)
    classes = inverse.reshape(height, width).astype(np.int64)

    # Compare in the common dtype; a background the buffer cannot hold matches nothing
    background = np.asarray(background)
    common = np.result_type(buffer.dtype, background.dtype)
    background = np.broadcast_to(background.astype(common), values.shape[1:])
    matches = np.nonzero(np.all(uniques.astype(common) == background, axis=1))[0]
    background_class = int(matches[0]) if len(matches) else -1
    return classes, background_class


def _provisional_labels(classes: np.ndarray, background_class: int,
                        connectivity: Connectivity) -> Tuple[np.ndarray, DisjointSetForest]:
    """First pass: provisional labels (1-based) and the equivalence forest."""
    height, width = classes.shape
    labels = np.zeros((height, width), dtype=np.int64)
    foreground = classes != background_class
    forest = DisjointSetForest(int(np.count_nonzero(foreground)))
    offsets = connectivity.causal_offsets

    for y in range(height):
        class_row = classes[y]
        for x in range(width):
            if not foreground[y, x]:
                continue
            value = class_row[x]
            neighbours = []
            for dy, dx in offsets:
                ny, nx = y + dy, x + dx
                if ny >= 0 and 0 <= nx < width and labels[ny, nx] and classes[ny, nx] == value:
                    neighbours.append(labels[ny, nx])

            if not neighbours:
                labels[y, x] = forest.make_set() + 1
                continue

            smallest = min(neighbours)
            labels[y, x] = smallest
            for other in neighbours:
                if other != smallest:
                    forest.union(smallest - 1, other - 1)

    return labels, forest


def _canonical_labels(labels: np.ndarray, forest: DisjointSetForest) -> Tuple[np.ndarray, int]:
    """Second pass plus renumbering by first appearance in the raster scan."""
    if len(forest) == 0:
        return np.zeros(labels.shape, dtype=np.int32), 0

    roots = forest.roots()
    flat = labels.ravel()
    foreground = flat > 0
    resolved = roots[flat[foreground] - 1]

    # First raster position of every root
    first_seen = np.full(len(forest), flat.size, dtype=np.int64)
    np.minimum.at(first_seen, resolved, np.nonzero(foreground)[0])

    present = np.nonzero(first_seen < flat.size)[0]
    order = present[np.argsort(first_seen[present], kind="stable")]
    renumber = np.zeros(len(forest), dtype=np.int32)
    renumber[order] = np.arange(1, len(order) + 1, dtype=np.int32)

    result = np.zeros(flat.size, dtype=np.int32)
    result[foreground] = renumber[resolved]
    return result.reshape(labels.shape), len(order)


@raster_function(category="analysis")
def connected_components(buffer: np.ndarray, connectivity: Union[Connectivity, int],
                         background=0) -> Tuple[np.ndarray, int]:
    """
    Label connected regions of equal-valued foreground pixels.

    Args:
        buffer: 2D buffer, or 3D buffer whose pixels compare as whole vectors
        connectivity: 4- or 8-neighbourhood
        background: Pixel value (or channel vector) treated as background;
            a value the buffer's dtype cannot hold matches no pixel

    Returns:
        (labels, count): int32 (H, W) map with 0 for background and
        ``1..count`` for components numbered by first appearance in a
        row-major scan

    Raises:
        ConfigurationError: If connectivity is not 4 or 8, or background
            does not match the buffer's channel count
    """
    connectivity = Connectivity.coerce(connectivity)
    if buffer.ndim == 3:
        channels = buffer.shape[2]
        if np.ndim(background) not in (0, 1) or np.size(background) not in (1, channels):
            raise ConfigurationError(
                f"background must be a scalar or {channels} channel values, got {background!r}"
            )
    elif np.ndim(background) > 1 or np.size(background) != 1:
        raise ConfigurationError(f"background must be a scalar for a 2D buffer, got {background!r}")

    classes, background_class = _pixel_classes(buffer, background)
    labels, forest = _provisional_labels(classes, background_class, connectivity)
    result, count = _canonical_labels(labels, forest)

    logger.debug(
        f"connected_components: {count} components from {len(forest)} provisional labels, "
        f"{connectivity.value}-connected"
    )
    return result, count


@raster_function(category="analysis")
def label(buffer: np.ndarray, connectivity: Union[Connectivity, int], background=0) -> np.ndarray:
    """
    Connected-component label map.

    Returns:
        int32 (H, W) map; see :func:`connected_components`
    """
    return connected_components(buffer, connectivity, background)[0]


def component_areas(labels: np.ndarray) -> np.ndarray:
    """
    Pixel count per label; index 0 holds the background count.

    Raises:
        TypeError: If labels is not an integer array
        ConfigurationError: If labels contains negative values
    """
    if not isinstance(labels, np.ndarray) or not np.issubdtype(labels.dtype, np.integer):
        raise TypeError(f"labels must be an integer NumPy array, got {type(labels)}")
    if labels.size and labels.min() < 0:
        raise ConfigurationError("labels must be non-negative")
    return np.bincount(labels.ravel())
