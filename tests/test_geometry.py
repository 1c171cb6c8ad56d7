"""Tests for the geometry primitives."""

import math

import pytest
import numpy as np

from coaster.geometry.vector import (
    UNIT_X,
    UNIT_Y,
    UNIT_Z,
    approx_equal,
    horizontal_distance_squared,
    length,
    length_squared,
    normalize,
    normalize_safe,
    vec3,
)
from coaster.geometry.rotation import (
    axis_angle,
    forward_of,
    interpolate,
    look_rotation,
    right_of,
    sweep,
    up_of,
)
from coaster.geometry.proximity import approx_within_line_range, distance_to_circle


class TestVector:
    """Test vector helpers."""

    def test_vec3_from_components_and_sequence(self):
        """Test both construction forms produce float vectors."""
        assert np.allclose(vec3(1, 2, 3), [1.0, 2.0, 3.0])
        assert np.allclose(vec3((4, 5, 6)), [4.0, 5.0, 6.0])
        assert vec3(1, 2, 3).dtype == np.float64

    def test_vec3_rejects_wrong_shape(self):
        """Test a two-component sequence is rejected."""
        with pytest.raises(ValueError):
            vec3((1.0, 2.0))

    def test_normalize_safe_zero(self):
        """Test zero-length input yields a zero vector instead of NaN."""
        result = normalize_safe(np.zeros(3))
        assert np.all(result == 0.0)
        assert not np.any(np.isnan(result))

    def test_normalize_safe_unit_length(self):
        """Test non-zero input is scaled to unit length."""
        result = normalize_safe(vec3(3.0, 0.0, 4.0))
        assert np.allclose(result, [0.6, 0.0, 0.8])

    def test_length_and_normalize(self):
        """Test magnitude helpers."""
        v = vec3(0.0, 3.0, 4.0)
        assert length(v) == pytest.approx(5.0)
        assert length_squared(v) == pytest.approx(25.0)
        assert np.allclose(normalize(v), [0.0, 0.6, 0.8])

    def test_horizontal_distance_ignores_height(self):
        """Test only X and Z contribute."""
        assert horizontal_distance_squared(vec3(0, 0, 0), vec3(3, 100, 4)) == pytest.approx(25.0)

    def test_approx_equal(self):
        """Test component-wise tolerance."""
        assert approx_equal(vec3(1, 2, 3), vec3(1.00005, 2, 3), 1e-4)
        assert not approx_equal(vec3(1, 2, 3), vec3(1.001, 2, 3), 1e-4)


class TestRotation:
    """Test rotation helpers."""

    def test_look_rotation_identity(self):
        """Test forward +Z with up +Y is the identity frame."""
        rot = look_rotation(UNIT_Z, UNIT_Y)
        assert np.allclose(rot.as_matrix(), np.eye(3), atol=1e-12)

    def test_axes_apply_to_world_constants(self):
        """Test axis extraction and direct use of the world axes in rotations."""
        rot = axis_angle(UNIT_Y, 90.0)
        assert np.allclose(right_of(rot), [0.0, 0.0, -1.0], atol=1e-12)
        assert np.allclose(up_of(rot), UNIT_Y, atol=1e-12)
        assert np.allclose(forward_of(rot), UNIT_X, atol=1e-12)

    def test_look_rotation_axes(self):
        """Test look rotation maps local axes onto the requested frame."""
        rot = look_rotation(UNIT_X, UNIT_Y)
        assert np.allclose(forward_of(rot), UNIT_X, atol=1e-12)
        assert np.allclose(up_of(rot), UNIT_Y, atol=1e-12)
        assert np.allclose(right_of(rot), [0.0, 0.0, -1.0], atol=1e-12)

    def test_look_rotation_orthogonalizes_up(self):
        """Test a tilted up vector is made orthogonal to forward."""
        rot = look_rotation(UNIT_Z, vec3(0.0, 1.0, 1.0))
        assert np.allclose(up_of(rot), UNIT_Y, atol=1e-12)

    def test_look_rotation_parallel_up(self):
        """Test up parallel to forward still yields a valid frame."""
        rot = look_rotation(UNIT_Y, UNIT_Y)
        assert np.allclose(forward_of(rot), UNIT_Y, atol=1e-12)
        assert not np.any(np.isnan(rot.as_quat()))

    def test_axis_angle_right_hand(self):
        """Test a positive turn about +Y swings +Z towards +X."""
        rot = axis_angle(UNIT_Y, 90.0)
        assert np.allclose(rot.apply(UNIT_Z), UNIT_X, atol=1e-12)

    def test_axis_angle_zero_axis(self):
        """Test a zero axis gives the identity."""
        rot = axis_angle(np.zeros(3), 45.0)
        assert np.allclose(rot.as_matrix(), np.eye(3))

    def test_sweep_follows_long_way(self):
        """Test sweeps beyond 180 degrees keep their direction."""
        interp = sweep(UNIT_Y, 270.0)

        halfway = interpolate(interp, 0.5).apply(UNIT_Z)
        expected = [math.sin(math.radians(135.0)), 0.0, math.cos(math.radians(135.0))]
        assert np.allclose(halfway, expected, atol=1e-9)

        full = interpolate(interp, 1.0).apply(UNIT_Z)
        assert np.allclose(full, [-1.0, 0.0, 0.0], atol=1e-9)


class TestProximity:
    """Test line versus circle proximity."""

    def test_distance_to_circle(self):
        """Test distances for points on, inside and above the circle."""
        points = np.array([
            [2.0, 0.0, 0.0],
            [0.0, 0.0, 0.0],
            [2.0, 3.0, 0.0],
        ])
        dists = distance_to_circle(points, np.zeros(3), UNIT_Y, 2.0)
        assert np.allclose(dists, [0.0, 2.0, 3.0])

    def test_line_through_circle(self):
        """Test a vertical line through the circle is found at its middle."""
        hit, u = approx_within_line_range(
            np.zeros(3), vec3(2, 0, 0), UNIT_Y, 2.0,
            vec3(2, 5, 0), vec3(2, -5, 0), 0.1,
        )
        assert hit
        assert u == pytest.approx(0.5, abs=1e-4)

    def test_line_outside_range(self):
        """Test a line far from the circle misses."""
        hit, u = approx_within_line_range(
            np.zeros(3), vec3(2, 0, 0), UNIT_Y, 2.0,
            vec3(5, 5, 0), vec3(5, -5, 0), 1.0,
        )
        assert not hit
        assert math.isnan(u)

    def test_line_through_center(self):
        """Test a line along the axis is radius away from the circle."""
        hit, u = approx_within_line_range(
            np.zeros(3), vec3(2, 0, 0), UNIT_Y, 2.0,
            vec3(0, 5, 0), vec3(0, -5, 0), 2.5,
        )
        assert hit
        assert u == pytest.approx(0.5, abs=1e-3)

    def test_zero_length_line(self):
        """Test a degenerate segment behaves like a point."""
        hit, u = approx_within_line_range(
            np.zeros(3), vec3(2, 0, 0), UNIT_Y, 2.0,
            vec3(2, 0.5, 0), vec3(2, 0.5, 0), 1.0,
        )
        assert hit
        assert u == 0.0
