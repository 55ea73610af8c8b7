"""
Projective transformations of the plane.

A :class:`Projection` is an invertible 3x3 matrix acting on homogeneous
coordinates ``(x, y, 1)``. The inverse is computed once, at construction,
so a singular matrix is rejected before any pixel is touched.
"""

import logging
import math
from typing import Sequence, Tuple

import numpy as np
from scipy import linalg

from rasterkit.constants.constants import (SINGULAR_CONDITION_LIMIT,
                                           SINGULAR_DETERMINANT_TOLERANCE)
from rasterkit.core.exceptions import ConfigurationError, SingularTransformError

logger = logging.getLogger(__name__)


class Projection:
    """
    Invertible projective transform.

    Composition follows matrix multiplication: ``(a @ b)`` applies ``b``
    first, then ``a``.

    Raises:
        ConfigurationError: If the matrix is not 3x3
        SingularTransformError: If the matrix is not invertible
    """

    __slots__ = ("_matrix", "_inverse")

    def __init__(self, matrix):
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ConfigurationError(f"Projection matrix must be 3x3, got {matrix.shape}")
        if not np.all(np.isfinite(matrix)):
            raise SingularTransformError(float("nan"), "Projection matrix has non-finite entries")

        # Normalize so the bottom-right coefficient is 1 when possible
        if abs(matrix[2, 2]) > SINGULAR_DETERMINANT_TOLERANCE:
            matrix = matrix / matrix[2, 2]

        # Singular relative to the matrix's own scale
        condition = np.linalg.cond(matrix)
        if not condition < SINGULAR_CONDITION_LIMIT:
            raise SingularTransformError(float(linalg.det(matrix)))

        self._matrix = matrix
        self._inverse = linalg.inv(matrix)
        self._matrix.setflags(write=False)
        self._inverse.setflags(write=False)

    @classmethod
    def from_matrix(cls, matrix) -> "Projection":
        return cls(matrix)

    @classmethod
    def _from_pair(cls, matrix: np.ndarray, inverse: np.ndarray) -> "Projection":
        projection = cls.__new__(cls)
        projection._matrix = matrix
        projection._inverse = inverse
        return projection

    @classmethod
    def identity(cls) -> "Projection":
        return cls(np.eye(3))

    @classmethod
    def translate(cls, tx: float, ty: float) -> "Projection":
        return cls([[1, 0, tx], [0, 1, ty], [0, 0, 1]])

    @classmethod
    def rotate(cls, theta: float) -> "Projection":
        """Clockwise rotation by ``theta`` radians about the origin (y points down)."""
        c, s = math.cos(theta), math.sin(theta)
        return cls([[c, -s, 0], [s, c, 0], [0, 0, 1]])

    @classmethod
    def scale(cls, sx: float, sy: float) -> "Projection":
        return cls([[sx, 0, 0], [0, sy, 0], [0, 0, 1]])

    @classmethod
    def from_affine(cls, matrix) -> "Projection":
        """Build from a 2x3 affine matrix ``[[a, b, tx], [c, d, ty]]``."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (2, 3):
            raise ConfigurationError(f"Affine matrix must be 2x3, got {matrix.shape}")
        return cls(np.vstack([matrix, [0.0, 0.0, 1.0]]))

    @classmethod
    def from_control_points(cls, source: Sequence[Tuple[float, float]],
                            target: Sequence[Tuple[float, float]]) -> "Projection":
        """
        Projective transform mapping four source points onto four target points.

        Raises:
            ConfigurationError: If either point set does not hold four (x, y) pairs
            SingularTransformError: If the points are degenerate (e.g. three collinear)
        """
        source = np.asarray(source, dtype=np.float64)
        target = np.asarray(target, dtype=np.float64)
        if source.shape != (4, 2) or target.shape != (4, 2):
            raise ConfigurationError(
                f"Expected four (x, y) control points each, got {source.shape} and {target.shape}"
            )

        # Solve for h00..h21 with h22 fixed to 1
        system = np.zeros((8, 8))
        rhs = np.zeros(8)
        for k, ((x, y), (u, v)) in enumerate(zip(source, target)):
            system[2 * k] = [x, y, 1, 0, 0, 0, -u * x, -u * y]
            system[2 * k + 1] = [0, 0, 0, x, y, 1, -v * x, -v * y]
            rhs[2 * k] = u
            rhs[2 * k + 1] = v

        try:
            coefficients = linalg.solve(system, rhs)
        except linalg.LinAlgError as e:
            raise SingularTransformError(0.0, f"Control points are degenerate: {e}") from e

        if not np.all(np.isfinite(coefficients)):
            raise SingularTransformError(0.0, "Control points are degenerate")
        return cls(np.append(coefficients, 1.0).reshape(3, 3))

    @property
    def matrix(self) -> np.ndarray:
        """Read-only 3x3 forward matrix."""
        return self._matrix

    @property
    def inverse_matrix(self) -> np.ndarray:
        """Read-only 3x3 inverse matrix."""
        return self._inverse

    @property
    def is_affine(self) -> bool:
        return bool(np.allclose(self._matrix[2], [0.0, 0.0, 1.0]))

    def invert(self) -> "Projection":
        """The algebraic inverse transform."""
        return Projection._from_pair(self._inverse, self._matrix)

    def __matmul__(self, other: "Projection") -> "Projection":
        if not isinstance(other, Projection):
            return NotImplemented
        return Projection(self._matrix @ other._matrix)

    def map_points(self, points) -> np.ndarray:
        """Apply the forward transform to an (N, 2) array of (x, y) points."""
        return _apply(self._matrix, points)

    def map_inverse_points(self, points) -> np.ndarray:
        """Apply the inverse transform to an (N, 2) array of (x, y) points."""
        return _apply(self._inverse, points)

    def __eq__(self, other):
        if not isinstance(other, Projection):
            return NotImplemented
        return np.array_equal(self._matrix, other._matrix)

    def __hash__(self):
        return hash(self._matrix.tobytes())

    def __repr__(self):
        return f"Projection({self._matrix.tolist()})"


def _apply(matrix: np.ndarray, points) -> np.ndarray:
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ConfigurationError(f"Points must have shape (N, 2), got {points.shape}")
    homogeneous = np.hstack([points, np.ones((points.shape[0], 1))]) @ matrix.T
    w = homogeneous[:, 2:3]
    # Points mapped to the line at infinity have no finite image
    with np.errstate(divide="ignore", invalid="ignore"):
        return homogeneous[:, :2] / w
