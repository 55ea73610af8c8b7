"""Tests for projective transforms."""
import math

import numpy as np
import pytest

from rasterkit.core.exceptions import ConfigurationError, SingularTransformError
from rasterkit.processing.backends.geometry.projection import Projection


class TestProjectionFactories:

    def test_translate(self):
        assert np.allclose(Projection.translate(3, 4).map_points([[1, 2]]), [[4, 6]])

    def test_rotate_quarter_turn(self):
        # With y pointing down, +x rotates onto +y
        assert np.allclose(Projection.rotate(math.pi / 2).map_points([[1, 0]]), [[0, 1]])

    def test_scale(self):
        assert np.allclose(Projection.scale(2, 3).map_points([[1, 1], [2, -1]]), [[2, 3], [4, -3]])

    def test_from_affine(self):
        projection = Projection.from_affine([[1, 0, 5], [0, 2, 0]])
        assert projection.is_affine
        assert np.allclose(projection.map_points([[1, 1]]), [[6, 2]])

    def test_from_affine_shape(self):
        with pytest.raises(ConfigurationError):
            Projection.from_affine(np.eye(3))

    def test_from_matrix_shape(self):
        with pytest.raises(ConfigurationError):
            Projection.from_matrix(np.eye(2))

    def test_control_points(self):
        source = [(0, 0), (10, 0), (10, 10), (0, 10)]
        target = [(1, 2), (12, 1), (11, 13), (0, 9)]
        projection = Projection.from_control_points(source, target)
        assert np.allclose(projection.map_points(source), target)
        assert not projection.is_affine

    def test_control_points_recover_affine(self):
        source = [(0, 0), (4, 0), (4, 3), (0, 3)]
        expected = Projection.translate(2, -1) @ Projection.scale(2, 2)
        projection = Projection.from_control_points(source, expected.map_points(source))
        assert np.allclose(projection.matrix, expected.matrix)

    def test_control_points_degenerate(self):
        with pytest.raises(SingularTransformError):
            Projection.from_control_points([(0, 0)] * 4, [(0, 0), (1, 0), (1, 1), (0, 1)])

    def test_control_points_count(self):
        with pytest.raises(ConfigurationError):
            Projection.from_control_points([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)])


class TestSingularity:

    @pytest.mark.parametrize("matrix", [
        np.zeros((3, 3)),
        Projection.scale(1, 1).matrix * [[1, 1, 1], [0, 0, 0], [1, 1, 1]],
        [[1, 2, 0], [2, 4, 0], [0, 0, 1]],
    ], ids=["zeros", "zero-row", "dependent-rows"])
    def test_singular_matrices(self, matrix):
        with pytest.raises(SingularTransformError) as excinfo:
            Projection.from_matrix(matrix)
        assert abs(excinfo.value.determinant) < 1e-9

    def test_zero_scale(self):
        with pytest.raises(SingularTransformError):
            Projection.scale(0, 1)

    def test_non_finite(self):
        with pytest.raises(SingularTransformError):
            Projection.from_matrix([[1, 0, np.inf], [0, 1, 0], [0, 0, 1]])

    def test_small_uniform_scale_is_invertible(self):
        projection = Projection.scale(1e-7, 1e-7)
        points = np.array([[3.0, -2.0], [1e6, 5e5]])
        assert np.allclose(projection.map_inverse_points(projection.map_points(points)), points)
        assert np.allclose(projection.invert().matrix, Projection.scale(1e7, 1e7).matrix)

    def test_large_translation_is_invertible(self):
        projection = Projection.translate(1e6, -3e5)
        assert np.allclose(projection.invert().map_points([[1e6, -3e5]]), [[0.0, 0.0]])

    def test_singular_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            Projection.scale(1, 0)


class TestProjectionAlgebra:

    def test_composition_applies_right_operand_first(self):
        composed = Projection.translate(1, 0) @ Projection.scale(2, 2)
        assert np.allclose(composed.map_points([[1, 1]]), [[3, 2]])
        reversed_order = Projection.scale(2, 2) @ Projection.translate(1, 0)
        assert np.allclose(reversed_order.map_points([[1, 1]]), [[4, 2]])

    def test_invert_round_trip(self, rng):
        projection = Projection.from_matrix([[1.2, 0.3, 4.0], [-0.1, 0.9, -2.0], [0.001, 0.002, 1.0]])
        points = rng.random((20, 2)) * 50
        assert np.allclose(projection.invert().map_points(projection.map_points(points)), points)

    def test_map_inverse_points(self, rng):
        projection = Projection.rotate(0.7) @ Projection.translate(3, -2)
        points = rng.random((5, 2))
        assert np.allclose(projection.map_inverse_points(points), projection.invert().map_points(points))

    def test_inverse_of_inverse(self):
        projection = Projection.scale(2, 4)
        assert projection.invert().invert() == projection

    def test_matrices_read_only(self):
        projection = Projection.translate(1, 1)
        with pytest.raises(ValueError):
            projection.matrix[0, 2] = 5

    def test_equality(self):
        assert Projection.translate(1, 2) == Projection.from_matrix([[1, 0, 1], [0, 1, 2], [0, 0, 1]])
        assert hash(Projection.translate(1, 2)) == hash(Projection.translate(1, 2))
        assert Projection.translate(1, 2) != Projection.translate(2, 1)

    def test_perspective_is_not_affine(self):
        assert not Projection.from_matrix([[1, 0, 0], [0, 1, 0], [0.001, 0, 1]]).is_affine
        assert Projection.rotate(0.3).is_affine

    def test_map_points_shape(self):
        with pytest.raises(ConfigurationError):
            Projection.translate(1, 1).map_points([1, 2])
