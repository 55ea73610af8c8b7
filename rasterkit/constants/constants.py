"""
Consolidated constants for rasterkit.

This module defines the enumerations shared by every operation (border modes,
interpolation, connectivity, registry categories) and the library defaults.
"""

from enum import Enum
from typing import Set, Union


class BorderMode(Enum):
    """How out-of-range coordinates are resolved by neighbourhood operations."""
    EXTEND_EDGE = "extend_edge"  # Replicate the nearest edge pixel
    CONSTANT = "constant"        # Use a fixed fill value
    WRAP = "wrap"                # Wrap around periodically

    @property
    def numpy_pad_mode(self) -> str:
        """Equivalent ``numpy.pad`` mode."""
        return _NUMPY_PAD_MODES[self]


_NUMPY_PAD_MODES = {
    BorderMode.EXTEND_EDGE: "edge",
    BorderMode.CONSTANT: "constant",
    BorderMode.WRAP: "wrap",
}


class Interpolation(Enum):
    """Resampling strategy for fractional source coordinates."""
    NEAREST = "nearest"
    BILINEAR = "bilinear"


class Connectivity(Enum):
    """Pixel adjacency rule for labelling and hysteresis traversal."""
    FOUR = 4
    EIGHT = 8

    @classmethod
    def coerce(cls, value: Union["Connectivity", int]) -> "Connectivity":
        """
        Accept a Connectivity or the integers 4/8.

        Raises:
            ConfigurationError: For any other value
        """
        from rasterkit.core.exceptions import ConfigurationError

        if isinstance(value, cls):
            return value
        # bool is an int subclass; True/False are never a valid connectivity
        if isinstance(value, int) and not isinstance(value, bool):
            for member in cls:
                if member.value == value:
                    return member
        raise ConfigurationError(f"Connectivity must be 4 or 8, got {value!r}")

    @property
    def offsets(self):
        """All (dy, dx) neighbour offsets for this connectivity."""
        if self is Connectivity.FOUR:
            return ((-1, 0), (0, -1), (0, 1), (1, 0))
        return ((-1, -1), (-1, 0), (-1, 1),
                (0, -1), (0, 1),
                (1, -1), (1, 0), (1, 1))

    @property
    def causal_offsets(self):
        """Neighbour offsets already visited by a row-major raster scan."""
        if self is Connectivity.FOUR:
            return ((-1, 0), (0, -1))
        return ((-1, -1), (-1, 0), (-1, 1), (0, -1))


class FunctionCategory(Enum):
    """Registry categories for public operations."""
    FILTERS = "filters"
    GEOMETRY = "geometry"
    ANALYSIS = "analysis"


VALID_FUNCTION_CATEGORIES: Set[str] = {category.value for category in FunctionCategory}

# Buffer-related constants
SUPPORTED_BUFFER_NDIMS = (2, 3)

# Default values
DEFAULT_BORDER_MODE = BorderMode.EXTEND_EDGE
DEFAULT_INTERPOLATION = Interpolation.BILINEAR
DEFAULT_CANNY_SIGMA = 1.4
DEFAULT_GAUSSIAN_RADIUS_FACTOR = 3.0
DEFAULT_MIN_ROWS_PER_TASK = 32
DEFAULT_LOG_LEVEL = "INFO"

# Numerical tolerances
SINGULAR_DETERMINANT_TOLERANCE = 1e-12
# Roughly 1 / (16 * float64 epsilon); larger condition numbers count as singular
SINGULAR_CONDITION_LIMIT = 2.8e14
COORDINATE_SNAP_TOLERANCE = 1e-9
SEPARABLE_RANK_TOLERANCE = 1e-10
