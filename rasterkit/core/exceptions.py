"""
Custom exceptions for the rasterkit core.
Errors are specific and raised at the call that violates a precondition.
"""

from typing import Tuple


class RasterKitError(Exception):
    """Base class for all rasterkit custom exceptions."""
    pass


class ConfigurationError(RasterKitError, ValueError):
    """Raised when an operation is called with invalid parameters."""
    pass


class InvalidKernelError(ConfigurationError):
    """Raised when a kernel has non-positive dimensions or a misplaced anchor."""
    pass


class EmptyBufferError(ConfigurationError):
    """Raised when a buffer has zero width or height."""
    pass


class SingularTransformError(ConfigurationError):
    """
    Raised when a geometric transform cannot be inverted.

    Attributes:
        determinant: Determinant of the offending matrix
    """

    def __init__(self, determinant: float, message: str = ""):
        self.determinant = determinant
        super().__init__(
            message or f"Transform matrix is not invertible (determinant={determinant!r})"
        )


class DimensionMismatchError(RasterKitError, ValueError):
    """
    Raised when a multi-input operation receives differently sized buffers.

    Attributes:
        first_shape: Shape of the first input
        second_shape: Shape of the second input
    """

    def __init__(self, first_shape: Tuple[int, ...], second_shape: Tuple[int, ...], context: str = ""):
        self.first_shape = tuple(first_shape)
        self.second_shape = tuple(second_shape)
        prefix = f"{context}: " if context else ""
        super().__init__(
            f"{prefix}input shapes differ ({self.first_shape} vs {self.second_shape})"
        )
