"""
Numeric capabilities of pixel types.

Every operation that accumulates or resamples pixels goes through
:class:`PixelTypeInfo`: values are widened to an accumulator type that cannot
overflow, and results are rounded to nearest and clamped back into the range
of the output type.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

DTypeLike = Union[np.dtype, type, str]

SUPPORTED_DTYPES = frozenset(np.dtype(t) for t in (
    np.bool_,
    np.uint8, np.uint16, np.uint32,
    np.int8, np.int16, np.int32, np.int64,
    np.float32, np.float64,
))


@dataclass(frozen=True)
class PixelTypeInfo:
    """Numeric capability of a pixel dtype: widening, clamping and rounding."""
    dtype: np.dtype
    is_integer: bool
    min_value: float
    max_value: float
    accumulator: np.dtype

    def widen(self, values: np.ndarray) -> np.ndarray:
        """Convert to the accumulator dtype."""
        return np.asarray(values).astype(self.accumulator, copy=False)

    def clamp(self, values: np.ndarray) -> np.ndarray:
        """Clip into the representable range (no-op for floating types)."""
        if not self.is_integer:
            return values
        return np.clip(values, self.min_value, self.max_value)

    def round_to_type(self, values: np.ndarray) -> np.ndarray:
        """Round to nearest, clamp and cast to this dtype."""
        values = np.asarray(values)
        if self.dtype == np.bool_:
            return values != 0
        if not self.is_integer:
            return values.astype(self.dtype, copy=False)
        if np.issubdtype(values.dtype, np.floating):
            values = np.rint(values)
            if self.dtype.itemsize >= 8:
                # float64 cannot hold the int64 maximum exactly
                upper = np.nextafter(float(self.max_value), 0.0)
                return np.clip(values, self.min_value, upper).astype(self.dtype)
        return self.clamp(values).astype(self.dtype)


@lru_cache(maxsize=None)
def _pixel_type_info(dtype: np.dtype) -> PixelTypeInfo:
    if dtype not in SUPPORTED_DTYPES:
        raise TypeError(f"Unsupported pixel dtype: {dtype}")

    if dtype == np.bool_:
        return PixelTypeInfo(dtype, True, 0, 1, np.dtype(np.int64))
    if np.issubdtype(dtype, np.integer):
        limits = np.iinfo(dtype)
        return PixelTypeInfo(dtype, True, int(limits.min), int(limits.max), np.dtype(np.int64))

    limits = np.finfo(dtype)
    return PixelTypeInfo(dtype, False, float(limits.min), float(limits.max), np.dtype(np.float64))


def pixel_type_info(dtype: DTypeLike) -> PixelTypeInfo:
    """
    Look up the numeric capability for a dtype.

    Raises:
        TypeError: If the dtype is not a supported pixel type
    """
    return _pixel_type_info(np.dtype(dtype))


def accumulator_dtype(pixel_dtype: DTypeLike, integral_weights: bool = True) -> np.dtype:
    """
    Accumulator able to hold ``max_pixel * sum(|weights|)`` without overflow.

    Integer pixels with integer weights accumulate exactly in int64; any
    fractional weight, or 64-bit pixels that int64 cannot widen, force float64.
    """
    info = pixel_type_info(pixel_dtype)
    if info.is_integer and integral_weights and info.dtype.itemsize < 8:
        return np.dtype(np.int64)
    return np.dtype(np.float64)


def signed_output_dtype(pixel_dtype: DTypeLike) -> np.dtype:
    """Signed dtype for derivative-like outputs (int32 for integers, float64 otherwise)."""
    if pixel_type_info(pixel_dtype).is_integer:
        return np.dtype(np.int32)
    return np.dtype(np.float64)
