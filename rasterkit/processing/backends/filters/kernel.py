"""
Convolution kernels.

A :class:`Kernel` is an immutable rectangle of weights plus the anchor
position that is aligned with the output pixel. Rank-1 kernels may carry
their row/column factors so the convolution engine can run two 1D passes
instead of one 2D pass.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import linalg

from rasterkit.constants.constants import SEPARABLE_RANK_TOLERANCE
from rasterkit.core.exceptions import InvalidKernelError

logger = logging.getLogger(__name__)


def _as_weight_array(weights, ndim: int, name: str) -> np.ndarray:
    try:
        array = np.array(weights, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidKernelError(f"{name} weights must be numeric: {e}") from e
    if array.ndim != ndim:
        raise InvalidKernelError(f"{name} weights must be {ndim}D, got {array.ndim}D")
    if array.size == 0 or 0 in array.shape:
        raise InvalidKernelError(f"{name} has zero dimensions (shape {array.shape})")
    if not np.all(np.isfinite(array)):
        raise InvalidKernelError(f"{name} weights must be finite")
    array.setflags(write=False)
    return array


class Kernel:
    """
    Rectangular array of weights with an anchor offset.

    Args:
        weights: 2D array-like of shape (kernel_height, kernel_width)
        anchor: (anchor_x, anchor_y); defaults to the centre
            ``(kernel_width // 2, kernel_height // 2)``

    Raises:
        InvalidKernelError: On zero dimensions, non-finite weights or an
            anchor outside the kernel
    """

    __slots__ = ("_weights", "_anchor", "_row", "_column")

    def __init__(self, weights, anchor: Optional[Tuple[int, int]] = None):
        self._weights = _as_weight_array(weights, 2, "Kernel")
        height, width = self._weights.shape
        if anchor is None:
            anchor = (width // 2, height // 2)
        anchor_x, anchor_y = (int(a) for a in anchor)
        if not (0 <= anchor_x < width and 0 <= anchor_y < height):
            raise InvalidKernelError(
                f"Anchor {(anchor_x, anchor_y)} lies outside a {width}x{height} kernel"
            )
        self._anchor = (anchor_x, anchor_y)
        self._row = None
        self._column = None

    @classmethod
    def separable(cls, row: Sequence[float], column: Sequence[float],
                  anchor: Optional[Tuple[int, int]] = None) -> "Kernel":
        """Build the kernel ``outer(column, row)`` and keep its 1D factors."""
        row = _as_weight_array(row, 1, "Row")
        column = _as_weight_array(column, 1, "Column")
        kernel = cls(np.outer(column, row), anchor)
        kernel._row = row
        kernel._column = column
        return kernel

    @classmethod
    def identity(cls, width: int = 1, height: int = 1,
                 anchor: Optional[Tuple[int, int]] = None) -> "Kernel":
        """Kernel with a single weight 1 at the anchor."""
        if width < 1 or height < 1:
            raise InvalidKernelError(f"Kernel dimensions must be positive, got {width}x{height}")
        anchor_x, anchor_y = anchor if anchor is not None else (width // 2, height // 2)
        if not (0 <= anchor_x < width and 0 <= anchor_y < height):
            raise InvalidKernelError(
                f"Anchor {(anchor_x, anchor_y)} lies outside a {width}x{height} kernel"
            )
        weights = np.zeros((height, width))
        weights[anchor_y, anchor_x] = 1.0
        return cls(weights, (anchor_x, anchor_y))

    @classmethod
    def box(cls, width: int, height: int) -> "Kernel":
        """Normalized averaging kernel."""
        if width < 1 or height < 1:
            raise InvalidKernelError(f"Kernel dimensions must be positive, got {width}x{height}")
        return cls.separable(np.full(width, 1.0 / width), np.full(height, 1.0 / height))

    @property
    def weights(self) -> np.ndarray:
        """Read-only (kernel_height, kernel_width) weights."""
        return self._weights

    @property
    def width(self) -> int:
        return self._weights.shape[1]

    @property
    def height(self) -> int:
        return self._weights.shape[0]

    @property
    def anchor(self) -> Tuple[int, int]:
        """(anchor_x, anchor_y)"""
        return self._anchor

    @property
    def is_separable(self) -> bool:
        """True when 1D row/column factors are attached."""
        return self._row is not None

    @property
    def row(self) -> Optional[np.ndarray]:
        return self._row

    @property
    def column(self) -> Optional[np.ndarray]:
        return self._column

    @property
    def is_integral(self) -> bool:
        """Every weight (and factor) is a whole number."""
        arrays = [self._weights]
        if self.is_separable:
            arrays += [self._row, self._column]
        return all(np.all(a == np.round(a)) for a in arrays)

    @property
    def weight_sum(self) -> float:
        return float(self._weights.sum())

    def padding(self) -> Tuple[int, int, int, int]:
        """Border needed around a buffer: (before_y, after_y, before_x, after_x)."""
        anchor_x, anchor_y = self._anchor
        return (anchor_y, self.height - 1 - anchor_y,
                anchor_x, self.width - 1 - anchor_x)

    def normalized(self) -> "Kernel":
        """Kernel scaled so the weights sum to one."""
        total = self.weight_sum
        if total == 0:
            raise InvalidKernelError("Cannot normalize a kernel whose weights sum to zero")
        if self.is_separable:
            row_sum = self._row.sum()
            column_sum = self._column.sum()
            if row_sum != 0 and column_sum != 0:
                return Kernel.separable(self._row / row_sum, self._column / column_sum, self._anchor)
        return Kernel(self._weights / total, self._anchor)

    def try_separate(self, tolerance: float = SEPARABLE_RANK_TOLERANCE) -> "Kernel":
        """
        Return an equivalent kernel with row/column factors when it has rank 1.

        Uses a singular value decomposition; kernels of higher rank are
        returned unchanged.
        """
        if self.is_separable:
            return self
        u, s, vt = linalg.svd(self._weights)
        if s[0] == 0 or (len(s) > 1 and s[1] > tolerance * s[0]):
            return self
        scale = np.sqrt(s[0])
        column = u[:, 0] * scale
        row = vt[0, :] * scale
        # Keep the sign convention stable: positive-sum row factor when possible
        if row.sum() < 0:
            row, column = -row, -column
        kernel = Kernel.separable(row, column, self._anchor)
        if not np.allclose(kernel.weights, self._weights, atol=tolerance * max(1.0, s[0])):
            return self
        logger.debug(f"Kernel {self.width}x{self.height} decomposed into separable factors")
        return kernel

    def __eq__(self, other):
        if not isinstance(other, Kernel):
            return NotImplemented
        return self._anchor == other._anchor and np.array_equal(self._weights, other._weights)

    def __hash__(self):
        return hash((self._anchor, self._weights.tobytes()))

    def __repr__(self):
        kind = "separable " if self.is_separable else ""
        return f"Kernel({kind}{self.width}x{self.height}, anchor={self._anchor})"
