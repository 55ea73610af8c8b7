"""
Geometric warping by inverse mapping.

Each output pixel is mapped back through the inverse projection to a
(generally fractional) source coordinate, which is then sampled with the
requested interpolation. Source coordinates that fall outside the buffer are
resolved by a fill :class:`BorderPolicy`.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from rasterkit.constants.constants import (COORDINATE_SNAP_TOLERANCE,
                                           BorderMode, Interpolation)
from rasterkit.core.buffers import (as_channels_last, raster_function,
                                    restore_channels)
from rasterkit.core.config import get_current_global_config
from rasterkit.core.exceptions import ConfigurationError
from rasterkit.core.parallel import map_bands
from rasterkit.core.pixel_types import pixel_type_info
from rasterkit.processing.backends.filters.border import (BorderPolicy,
                                                          resolve_indices)
from rasterkit.processing.backends.geometry.projection import Projection

logger = logging.getLogger(__name__)


def _snap(coords: np.ndarray) -> np.ndarray:
    nearest = np.rint(coords)
    return np.where(np.abs(coords - nearest) <= COORDINATE_SNAP_TOLERANCE, nearest, coords)


def _source_coordinates(inverse: np.ndarray, start: int, stop: int,
                        width: int) -> Tuple[np.ndarray, np.ndarray]:
    """Source (x, y) for output rows ``[start, stop)``; non-finite where w == 0."""
    ys, xs = np.mgrid[start:stop, 0:width].astype(np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        w = inverse[2, 0] * xs + inverse[2, 1] * ys + inverse[2, 2]
        sx = (inverse[0, 0] * xs + inverse[0, 1] * ys + inverse[0, 2]) / w
        sy = (inverse[1, 0] * xs + inverse[1, 1] * ys + inverse[1, 2]) / w
    return _snap(sx), _snap(sy)


def _nearest_indices(coords: np.ndarray, size: int,
                     fill: BorderPolicy) -> Tuple[np.ndarray, np.ndarray]:
    """Round to the closest sample, then resolve it along one axis."""
    finite = np.isfinite(coords)
    rounded = np.floor(np.where(finite, coords, -1.0) + 0.5)
    if fill.mode is BorderMode.WRAP:
        rounded = np.mod(rounded, size)
    else:
        # Keep out-of-range values out of range without overflowing int64
        rounded = np.clip(rounded, -1, size)
    indices, valid = resolve_indices(rounded.astype(np.int64), size, fill)
    return indices, valid & finite


def _bilinear_indices(coords: np.ndarray, size: int, fill: BorderPolicy):
    """
    Lower/upper neighbours, fractional weight and validity along one axis.

    In-range coordinates lie in ``[0, size)``; the upper neighbour of the
    last sample is clamped to the edge, or wraps to 0 under WRAP.
    """
    finite = np.isfinite(coords)
    coords = np.where(finite, coords, -1.0)
    valid = finite

    if fill.mode is BorderMode.WRAP:
        coords = np.mod(coords, size)
        coords = np.where(coords >= size, 0.0, coords)
    elif fill.mode is BorderMode.EXTEND_EDGE:
        coords = np.clip(coords, 0, size - 1)
    else:
        valid = valid & (coords >= 0) & (coords < size)
        coords = np.clip(coords, 0, size - 1)

    lower = np.floor(coords).astype(np.int64)
    fraction = coords - lower
    if fill.mode is BorderMode.WRAP:
        upper = np.mod(lower + 1, size)
    else:
        upper = np.minimum(lower + 1, size - 1)
    return lower, upper, fraction, valid


def _fit_bounds(projection: Projection, width: int, height: int) -> Tuple[Projection, Tuple[int, int]]:
    """Shift ``projection`` so the transformed sample corners start at the origin."""
    corners = np.array([[0, 0], [width - 1, 0], [0, height - 1], [width - 1, height - 1]],
                       dtype=np.float64)
    mapped = projection.map_points(corners)
    if not np.all(np.isfinite(mapped)):
        raise ConfigurationError("Buffer corners map to infinity; cannot fit output bounds")

    low = np.floor(mapped.min(axis=0) + COORDINATE_SNAP_TOLERANCE)
    high = np.ceil(mapped.max(axis=0) - COORDINATE_SNAP_TOLERANCE)
    size = (int(high[0] - low[0]) + 1, int(high[1] - low[1]) + 1)
    return Projection.translate(-low[0], -low[1]) @ projection, size


def _resolve_output_size(output_size: Optional[Sequence[int]]) -> Tuple[int, int]:
    try:
        out_width, out_height = (int(v) for v in output_size)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"output_size must be (width, height), got {output_size!r}") from e
    if out_width <= 0 or out_height <= 0:
        raise ConfigurationError(f"output_size must be positive, got {output_size!r}")
    return out_width, out_height


@raster_function(category="geometry")
def warp(buffer: np.ndarray, projection: Projection,
         interpolation: Optional[Interpolation] = None,
         fill: Optional[BorderPolicy] = None,
         output_size: Optional[Tuple[int, int]] = None,
         fit_bounds: bool = False) -> np.ndarray:
    """
    Apply a projective transform to a buffer.

    Args:
        buffer: 2D (H, W) or 3D (H, W, C) pixel buffer
        projection: Forward transform from source to output coordinates
        interpolation: NEAREST or BILINEAR (default: configured interpolation)
        fill: Policy for source coordinates outside the buffer
            (default: constant 0). Coordinates that map to infinity always
            take the policy's value.
        output_size: (width, height) of the result
        fit_bounds: Size the output to the bounding box of the transformed
            buffer, shifted to start at the origin

    Returns:
        New buffer with the input's dtype and channel count

    Raises:
        TypeError: If projection is not a Projection
        ConfigurationError: If output_size is invalid or combined with fit_bounds
    """
    if not isinstance(projection, Projection):
        raise TypeError(f"projection must be a Projection, got {type(projection)}")
    if interpolation is None:
        interpolation = get_current_global_config().default_interpolation
    if not isinstance(interpolation, Interpolation):
        raise ConfigurationError(f"interpolation must be an Interpolation, got {interpolation!r}")
    if fill is None:
        fill = BorderPolicy.constant(0)
    if not isinstance(fill, BorderPolicy):
        raise ConfigurationError(f"fill must be a BorderPolicy, got {type(fill).__name__}")

    source = as_channels_last(buffer)
    height, width, channels = source.shape

    if fit_bounds:
        if output_size is not None:
            raise ConfigurationError("output_size and fit_bounds are mutually exclusive")
        projection, (out_width, out_height) = _fit_bounds(projection, width, height)
    elif output_size is not None:
        out_width, out_height = _resolve_output_size(output_size)
    else:
        out_width, out_height = width, height

    info = pixel_type_info(buffer.dtype)
    fill_pixel = info.round_to_type(np.asarray(fill.value, dtype=np.float64))
    inverse = projection.inverse_matrix
    result = np.empty((out_height, out_width, channels), dtype=buffer.dtype)

    logger.debug(
        f"warp: {width}x{height} -> {out_width}x{out_height}, "
        f"interpolation={interpolation.value}, fill={fill.mode.value}"
    )

    if interpolation is Interpolation.NEAREST:
        def run_band(start: int, stop: int) -> None:
            sx, sy = _source_coordinates(inverse, start, stop, out_width)
            xi, x_valid = _nearest_indices(sx, width, fill)
            yi, y_valid = _nearest_indices(sy, height, fill)
            band = source[yi, xi]
            band[~(x_valid & y_valid)] = fill_pixel
            result[start:stop] = band
    else:
        values = source.astype(np.float64)

        def run_band(start: int, stop: int) -> None:
            sx, sy = _source_coordinates(inverse, start, stop, out_width)
            x0, x1, fx, x_valid = _bilinear_indices(sx, width, fill)
            y0, y1, fy, y_valid = _bilinear_indices(sy, height, fill)
            fx = fx[..., np.newaxis]
            fy = fy[..., np.newaxis]
            top = values[y0, x0] * (1.0 - fx) + values[y0, x1] * fx
            bottom = values[y1, x0] * (1.0 - fx) + values[y1, x1] * fx
            band = info.round_to_type(top * (1.0 - fy) + bottom * fy)
            band[~(x_valid & y_valid)] = fill_pixel
            result[start:stop] = band

    map_bands(run_band, out_height)
    return restore_channels(result, buffer)


@raster_function(category="geometry")
def rotate_about_center(buffer: np.ndarray, theta: float,
                        interpolation: Optional[Interpolation] = None,
                        fill: Optional[BorderPolicy] = None) -> np.ndarray:
    """Rotate clockwise by ``theta`` radians about the buffer centre, keeping its size."""
    height, width = buffer.shape[:2]
    cx, cy = (width - 1) / 2.0, (height - 1) / 2.0
    projection = (Projection.translate(cx, cy)
                  @ Projection.rotate(theta)
                  @ Projection.translate(-cx, -cy))
    return warp(buffer, projection, interpolation, fill)


@raster_function(category="geometry")
def translate(buffer: np.ndarray, tx: int, ty: int,
              fill: Optional[BorderPolicy] = None) -> np.ndarray:
    """
    Shift a buffer by a whole number of pixels.

    Raises:
        ConfigurationError: If tx or ty is not an integer
    """
    if int(tx) != tx or int(ty) != ty:
        raise ConfigurationError(f"translate expects integer offsets, got ({tx}, {ty})")
    return warp(buffer, Projection.translate(int(tx), int(ty)), Interpolation.NEAREST, fill)


@raster_function(category="geometry")
def affine(buffer: np.ndarray, matrix, interpolation: Optional[Interpolation] = None,
           fill: Optional[BorderPolicy] = None) -> np.ndarray:
    """Warp with the 2x3 affine matrix ``[[a, b, tx], [c, d, ty]]``."""
    return warp(buffer, Projection.from_affine(matrix), interpolation, fill)
