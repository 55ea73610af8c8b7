"""
Pixel buffer validation and the operation declaration decorator.

Buffers are NumPy arrays of shape (height, width) or (height, width, channels)
owned by the caller. :func:`raster_function` declares a public operation: it
records the operation's registry category and validates the buffer argument
before every call.
"""

import functools
import logging
import time
from typing import Any, Callable, Optional, Tuple, TypeVar

import numpy as np

from rasterkit.constants.constants import (SUPPORTED_BUFFER_NDIMS,
                                           VALID_FUNCTION_CATEGORIES)
from rasterkit.core.exceptions import DimensionMismatchError, EmptyBufferError
from rasterkit.core.pixel_types import pixel_type_info

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def validate_buffer(buffer: Any, name: str = "buffer") -> np.ndarray:
    """
    Validate that the input is a usable pixel buffer.

    Args:
        buffer: Array to validate
        name: Name of the array for error messages

    Returns:
        The buffer, unchanged

    Raises:
        TypeError: If the buffer is not a NumPy array or has an unsupported dtype
        ValueError: If the buffer is not 2D or 3D
        EmptyBufferError: If the buffer has zero width, height or channels
    """
    if not isinstance(buffer, np.ndarray):
        raise TypeError(f"{name} must be a NumPy array, got {type(buffer)}")

    if buffer.ndim not in SUPPORTED_BUFFER_NDIMS:
        raise ValueError(f"{name} must be a 2D or 3D array, got {buffer.ndim}D")

    if buffer.size == 0:
        raise EmptyBufferError(f"{name} has zero area (shape {buffer.shape})")

    pixel_type_info(buffer.dtype)
    return buffer


def buffer_size(buffer: np.ndarray) -> Tuple[int, int]:
    """(width, height) of a buffer."""
    return buffer.shape[1], buffer.shape[0]


def require_same_shape(first: np.ndarray, second: np.ndarray, context: str = "") -> None:
    """
    Raises:
        DimensionMismatchError: If the two arrays differ in shape
    """
    if first.shape != second.shape:
        raise DimensionMismatchError(first.shape, second.shape, context)


def as_channels_last(buffer: np.ndarray) -> np.ndarray:
    """View a 2D buffer as (height, width, 1); 3D buffers are returned as-is."""
    if buffer.ndim == 2:
        return buffer[:, :, np.newaxis]
    return buffer


def restore_channels(result: np.ndarray, like: np.ndarray) -> np.ndarray:
    """Undo :func:`as_channels_last` so the result matches the input layout."""
    if like.ndim == 2:
        return result[:, :, 0]
    return result


def raster_function(func: Optional[F] = None, *, category: str, buffer_arg: str = "buffer") -> Any:
    """
    Declare a function as a public rasterkit operation.

    Sets the ``raster_category`` attribute used by the function registry and
    wraps the function so that its first positional argument is validated
    with :func:`validate_buffer`.

    Args:
        func: The function to decorate (optional)
        category: Registry category ("filters", "geometry", "analysis")
        buffer_arg: Name used for the buffer in error messages

    Raises:
        ValueError: If category is not a valid registry category
    """
    if category not in VALID_FUNCTION_CATEGORIES:
        raise ValueError(
            f"category '{category}' is not supported. "
            f"Supported categories are: {', '.join(sorted(VALID_FUNCTION_CATEGORIES))}"
        )

    def decorator(f: F) -> F:
        if hasattr(f, 'raster_category') and f.raster_category != category:
            raise ValueError(
                f"Function '{f.__name__}' already has category "
                f"'{f.raster_category}', cannot change to '{category}'."
            )

        @functools.wraps(f)
        def wrapper(buffer, *args, **kwargs):
            validate_buffer(buffer, buffer_arg)
            start_time = time.perf_counter()
            result = f(buffer, *args, **kwargs)
            logger.debug(
                f"{f.__name__}: shape={buffer.shape} dtype={buffer.dtype} "
                f"took {(time.perf_counter() - start_time) * 1000:.2f} ms"
            )
            return result

        wrapper.raster_category = category
        return wrapper

    # Handle both @raster_function(category=...) and direct application
    if func is None:
        return decorator

    return decorator(func)
