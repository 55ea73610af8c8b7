"""
Border policies for neighbourhood operations.

A :class:`BorderPolicy` decides what an operation sees when it samples a
coordinate outside the buffer: the nearest edge pixel, a constant, or the
pixel on the opposite side (wrap). Every filter and warp resolves
out-of-range access through this module, so no operation reads outside
the array.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from rasterkit.constants.constants import BorderMode
from rasterkit.core.config import get_current_global_config
from rasterkit.core.exceptions import ConfigurationError
from rasterkit.core.pixel_types import pixel_type_info

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BorderPolicy:
    """Rule for resolving out-of-range coordinates."""
    mode: BorderMode = BorderMode.EXTEND_EDGE
    value: float = 0
    """Fill value, only used by ``BorderMode.CONSTANT``."""

    def __post_init__(self):
        if not isinstance(self.mode, BorderMode):
            raise ConfigurationError(f"mode must be a BorderMode, got {self.mode!r}")

    @classmethod
    def extend_edge(cls) -> "BorderPolicy":
        return cls(BorderMode.EXTEND_EDGE)

    @classmethod
    def constant(cls, value: float = 0) -> "BorderPolicy":
        return cls(BorderMode.CONSTANT, value)

    @classmethod
    def wrap(cls) -> "BorderPolicy":
        return cls(BorderMode.WRAP)


def resolve_policy(policy: Optional[Union[BorderPolicy, BorderMode]]) -> BorderPolicy:
    """Fill in the configured default when no policy is given."""
    if policy is None:
        return BorderPolicy(get_current_global_config().default_border_mode)
    if isinstance(policy, BorderMode):
        return BorderPolicy(policy)
    if not isinstance(policy, BorderPolicy):
        raise ConfigurationError(f"Expected a BorderPolicy, got {type(policy).__name__}")
    return policy


def pad(buffer: np.ndarray, before_y: int, after_y: int, before_x: int, after_x: int,
        policy: Optional[BorderPolicy] = None) -> np.ndarray:
    """
    Pad the rows and columns of a buffer according to a border policy.

    Channels (a third axis) are never padded. Pad widths larger than the
    buffer are allowed for every mode.

    Args:
        buffer: 2D or 3D array
        before_y, after_y: Rows added above and below
        before_x, after_x: Columns added left and right
        policy: Border policy (default: configured border mode)

    Returns:
        New padded array with the same dtype
    """
    policy = resolve_policy(policy)
    widths = [(before_y, after_y), (before_x, after_x)]
    if min(before_y, after_y, before_x, after_x) < 0:
        raise ConfigurationError(f"Pad widths must be non-negative, got {widths}")
    if buffer.ndim == 3:
        widths.append((0, 0))

    if policy.mode is BorderMode.CONSTANT:
        return np.pad(buffer, widths, mode="constant", constant_values=policy.value)
    return np.pad(buffer, widths, mode=policy.mode.numpy_pad_mode)


def resolve_indices(indices: np.ndarray, size: int,
                    policy: Optional[BorderPolicy] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map integer coordinates along one axis into ``[0, size)``.

    Args:
        indices: Integer coordinates, any shape
        size: Length of the axis
        policy: Border policy (default: configured border mode)

    Returns:
        (resolved indices, valid mask). The mask is False only for
        out-of-range coordinates under ``BorderMode.CONSTANT``; those
        positions must take the policy's fill value instead of the pixel
        at the (clipped) resolved index.
    """
    policy = resolve_policy(policy)
    indices = np.asarray(indices, dtype=np.int64)

    if policy.mode is BorderMode.WRAP:
        return np.mod(indices, size), np.ones(indices.shape, dtype=bool)

    clipped = np.clip(indices, 0, size - 1)
    if policy.mode is BorderMode.EXTEND_EDGE:
        return clipped, np.ones(indices.shape, dtype=bool)
    return clipped, (indices >= 0) & (indices < size)


def sample(buffer: np.ndarray, x: int, y: int, policy: Optional[BorderPolicy] = None):
    """
    Read one pixel, resolving out-of-range coordinates with ``policy``.

    Returns:
        A scalar for 2D buffers, a per-channel array for 3D buffers
    """
    policy = resolve_policy(policy)
    height, width = buffer.shape[:2]
    (xi,), x_valid = resolve_indices(np.array([x]), width, policy)
    (yi,), y_valid = resolve_indices(np.array([y]), height, policy)

    if not (x_valid[0] and y_valid[0]):
        fill = pixel_type_info(buffer.dtype).round_to_type(np.asarray(policy.value, dtype=np.float64))
        if buffer.ndim == 3:
            return np.full(buffer.shape[2], fill, dtype=buffer.dtype)
        return fill[()]
    return buffer[yi, xi]
