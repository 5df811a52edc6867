"""Unit tests for the spline curve and transforms."""

import math

import numpy as np
import pytest

from common.spline import SplineCurve
from common.transform import Transform, rotate_about_axis


def straight_curve(bake_interval=2.0, tilt_start=0.0, tilt_end=0.0):
    curve = SplineCurve(bake_interval=bake_interval)
    curve.add_point([0.0, 0.0, -10.0], [0, 0, -5], [0, 0, 5], tilt_start)
    curve.add_point([0.0, 0.0, 10.0], [0, 0, -5], [0, 0, 5], tilt_end)
    return curve


class TestSplineCurve:
    """Test suite for SplineCurve."""

    def test_straight_length(self):
        """A straight curve's baked length equals the distance between its points."""
        curve = straight_curve()

        assert curve.get_baked_length() == pytest.approx(20.0)

    def test_baked_points_spacing(self):
        """Baked points are spaced by the bake interval, ending at the last point."""
        curve = straight_curve(bake_interval=3.0)

        points = curve.get_baked_points()

        assert len(points) == 8  # 0, 3, ..., 18, 20
        np.testing.assert_allclose(points[1], [0.0, 0.0, -7.0], atol=1e-6)
        np.testing.assert_allclose(points[-1], [0.0, 0.0, 10.0], atol=1e-9)

    def test_sample_by_distance(self):
        """Sampling is by arc length, not Bezier parameter."""
        curve = straight_curve()

        np.testing.assert_allclose(curve.sample_baked(5.0), [0.0, 0.0, -5.0], atol=1e-6)
        np.testing.assert_allclose(curve.sample_baked(-3.0), [0.0, 0.0, -10.0], atol=1e-9)
        np.testing.assert_allclose(curve.sample_baked(99.0), [0.0, 0.0, 10.0], atol=1e-9)

    def test_curved_length_exceeds_chord(self):
        """A curve bending away from the chord is longer than the chord."""
        curve = SplineCurve(bake_interval=1.0)
        curve.add_point([0.0, 0.0, 0.0], [0, 0, 0], [10, 0, 0])
        curve.add_point([10.0, 0.0, 10.0], [0, 0, -10], [0, 0, 0])

        length = curve.get_baked_length()

        assert length > math.hypot(10.0, 10.0)
        assert length < 30.0

    def test_up_vector_without_tilt(self):
        """Flat curves keep world up."""
        curve = straight_curve()

        np.testing.assert_allclose(curve.sample_baked_up_vector(7.0), [0.0, 1.0, 0.0], atol=1e-9)

    def test_up_vector_with_tilt(self):
        """Tilt rotates the up vector around the tangent like an endpoint roll."""
        curve = straight_curve(tilt_start=0.3, tilt_end=0.3)

        up = curve.sample_baked_up_vector(10.0)

        np.testing.assert_allclose(up, Transform.from_rotation([0, 0, 0], roll=0.3).y, atol=1e-9)
        np.testing.assert_allclose(curve.sample_baked_up_vector(10.0, apply_tilt=False),
                                   [0.0, 1.0, 0.0], atol=1e-9)

    def test_up_vector_stays_perpendicular(self):
        """Transported up vectors remain perpendicular to the tangent on bends."""
        curve = SplineCurve(bake_interval=0.5)
        curve.add_point([0.0, 0.0, 0.0], [0, 0, 0], [0, 2, 10])
        curve.add_point([10.0, 3.0, 10.0], [-10, 0, 0], [0, 0, 0])

        for offset in np.linspace(0.0, curve.get_baked_length(), 9):
            up = curve.sample_baked_up_vector(offset)
            tangent = curve.sample_baked_tangent(offset)
            assert abs(np.dot(up, tangent)) < 1e-6
            assert np.linalg.norm(up) == pytest.approx(1.0)
            assert up[1] > 0

    def test_changing_points_rebakes(self):
        """Adding or clearing points invalidates the baked cache."""
        curve = straight_curve()
        assert curve.get_baked_length() == pytest.approx(20.0)

        curve.clear_points()
        curve.add_point([0.0, 0.0, 0.0])
        curve.add_point([0.0, 0.0, 4.0])

        assert curve.point_count == 2
        assert curve.get_baked_length() == pytest.approx(4.0)

    def test_invalid_bake_interval(self):
        """Non-positive bake intervals are rejected."""
        with pytest.raises(ValueError):
            SplineCurve(bake_interval=0.0)
        curve = straight_curve()
        with pytest.raises(ValueError):
            curve.bake_interval = -1.0

    def test_bake_without_points(self):
        """A curve without points cannot be sampled."""
        with pytest.raises(ValueError):
            SplineCurve().get_baked_length()


class TestTransform:
    """Test suite for Transform."""

    def test_identity_axes(self):
        """The default transform has world axes."""
        tf = Transform()

        np.testing.assert_allclose(tf.x, [1.0, 0.0, 0.0])
        np.testing.assert_allclose(tf.y, [0.0, 1.0, 0.0])
        np.testing.assert_allclose(tf.z, [0.0, 0.0, 1.0])
        assert tf.tilt == 0.0

    def test_yaw_turns_forward_axis(self):
        """A quarter-turn yaw points the road along +x."""
        tf = Transform.from_rotation([1.0, 2.0, 3.0], yaw=math.pi / 2)

        np.testing.assert_allclose(tf.z, [1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(tf.origin, [1.0, 2.0, 3.0])

    def test_tilt_is_roll(self):
        """Tilt extraction recovers the roll angle regardless of yaw."""
        tf = Transform.from_rotation([0, 0, 0], yaw=1.1, pitch=0.1, roll=-0.25)

        assert tf.tilt == pytest.approx(-0.25)

    def test_rotate_about_axis(self):
        """Rodrigues rotation turns x into y around z."""
        rotated = rotate_about_axis(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), math.pi / 2)

        np.testing.assert_allclose(rotated, [0.0, 1.0, 0.0], atol=1e-12)

    def test_translated(self):
        """Translation leaves the basis untouched."""
        tf = Transform.from_rotation([0, 0, 0], yaw=0.5).translated([1.0, 0.0, 0.0])

        np.testing.assert_allclose(tf.origin, [1.0, 0.0, 0.0])
        np.testing.assert_allclose(tf.basis, Transform.from_rotation([0, 0, 0], yaw=0.5).basis)
