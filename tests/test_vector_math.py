"""Vector helpers — planar and 3D inputs."""

import math

import numpy as np
import pytest

from pmtsim.core.vector_math import (
    angle_between,
    cross,
    dot,
    norm,
    norm2,
    rotate_z,
    scale,
    unit,
    vec3,
)


class TestPlanarInput:
    """Length-2 sequences behave as vectors with z = 0."""

    def test_norm(self):
        assert norm((3.0, 4.0)) == pytest.approx(5.0)
        assert norm(np.array([3.0, 4.0])) == pytest.approx(5.0)
        assert norm2([1.0, 2.0]) == pytest.approx(5.0)

    def test_dot_mixed_lengths(self):
        assert dot((1.0, 2.0), (3.0, 4.0, 5.0)) == pytest.approx(11.0)

    def test_cross(self):
        np.testing.assert_allclose(cross((1.0, 0.0), (0.0, 1.0)), [0.0, 0.0, 1.0])

    def test_scale_and_unit(self):
        np.testing.assert_allclose(scale((1.0, 2.0), 2.0), [2.0, 4.0, 0.0])
        np.testing.assert_allclose(unit((0.0, -2.0)), [0.0, -1.0, 0.0])

    def test_angle_between(self):
        assert angle_between((1.0, 0.0), (0.0, 1.0)) == pytest.approx(math.pi / 2.0)
        assert angle_between((1.0, 0.0), (-1.0, 0.0)) == pytest.approx(math.pi)

    def test_rotate_z(self):
        np.testing.assert_allclose(rotate_z((1.0, 0.0), math.pi / 2.0),
                                   [0.0, 1.0, 0.0], atol=1e-15)


class TestSpatialInput:
    def test_vec3_promotion(self):
        np.testing.assert_array_equal(vec3((1, 2)), [1.0, 2.0, 0.0])
        np.testing.assert_array_equal(vec3((1, 2, 3)), [1.0, 2.0, 3.0])

    def test_norm_uses_z(self):
        assert norm((1.0, 2.0, 2.0)) == pytest.approx(3.0)

    def test_rotate_z_keeps_z(self):
        np.testing.assert_allclose(rotate_z((0.0, 1.0, 7.0), math.pi),
                                   [0.0, -1.0, 7.0], atol=1e-15)

    def test_zero_unit(self):
        np.testing.assert_array_equal(unit((0.0, 0.0, 0.0)), np.zeros(3))
