"""Projective transforms and warping."""

from rasterkit.processing.backends.geometry.projection import Projection
from rasterkit.processing.backends.geometry.warp import (affine,
                                                         rotate_about_center,
                                                         translate, warp)

__all__ = [
    "Projection",
    "warp",
    "rotate_about_center",
    "translate",
    "affine",
]
