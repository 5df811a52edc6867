"""Unit tests for the road geometry builder."""

import numpy as np
import pytest

from common.spline import SplineCurve
from common.transform import Transform
from roadmodel.endpoint import GutterProfile, RoadEndpoint
from roadmodel.geometry import GeometryBuilder
from roadmodel.lanes import LaneDirection, LaneKind, MatchedLane, match_lanes

QUAD_VERTICES = 6


def make_endpoint(forward, z, lane_width=3.5, reverse=()):
    return RoadEndpoint.from_layout(
        reverse, forward,
        transform=Transform(origin=[0.0, 0.0, z]),
        lane_width=lane_width,
        shoulder_width_left=1.0,
        shoulder_width_right=1.5,
        gutter_profile=GutterProfile(0.5, 0.25),
    )


def straight_curve(length, bake_interval):
    """Curve along +z centred on the origin."""
    curve = SplineCurve(bake_interval=bake_interval)
    curve.add_point([0.0, 0.0, -length / 2], [0, 0, -5], [0, 0, 5])
    curve.add_point([0.0, 0.0, length / 2], [0, 0, -5], [0, 0, 5])
    return curve


class TestGeometryBuilder:
    """Test suite for GeometryBuilder."""

    def build(self, start_lanes=1, end_lanes=1, density=2.0, low_poly=False, length=20.0):
        start = make_endpoint([LaneKind.SLOW] * start_lanes, 0.0)
        end = make_endpoint([LaneKind.SLOW] * end_lanes, length)
        lanes = match_lanes(start, end).lanes
        origin = np.array([0.0, 0.0, length / 2])
        builder = GeometryBuilder(density=density, low_poly=low_poly, material="asphalt")
        mesh = builder.build(straight_curve(length, density), lanes, start, end, origin)
        return builder, mesh, lanes

    def quad_uvs(self, mesh, quad):
        """(v_near, v_far) of a quad, from its near-left and far-right corners."""
        base = quad * QUAD_VERTICES
        return mesh.uvs[base, 1], mesh.uvs[base + 2, 1]

    def test_single_lane_scenario(self):
        """20 m at 2 m density gives 10 loops of one lane plus shoulders and gutters."""
        builder, mesh, lanes = self.build()

        assert len(lanes) == 1
        assert builder.loop_count(20.0) == 10
        lane_quads = 10
        shoulder_quads = 10 * 4
        assert mesh.triangle_count == 2 * (lane_quads + shoulder_quads)
        assert mesh.vertex_count == QUAD_VERTICES * (lane_quads + shoulder_quads)
        assert mesh.material == "asphalt"

    @pytest.mark.parametrize("n_lanes", [1, 2, 4])
    def test_triangle_count_scales_with_lanes(self, n_lanes):
        """Each loop has one quad per lane plus four shoulder/gutter quads."""
        _, mesh, _ = self.build(start_lanes=n_lanes, end_lanes=n_lanes)

        assert mesh.triangle_count == 2 * 10 * (n_lanes + 4)

    def test_low_poly_reduces_loops(self):
        """Low-poly mode divides the loop count by three."""
        builder, mesh, _ = self.build(low_poly=True)

        assert builder.loop_count(20.0) == 3
        assert mesh.triangle_count == 2 * 3 * 5

    def test_low_poly_never_exceeds_normal(self):
        """Low-poly loops are floor(normal / 3), with a minimum of one."""
        normal = GeometryBuilder(density=1.0)
        reduced = GeometryBuilder(density=1.0, low_poly=True)

        for length in [0.0, 0.5, 2.0, 3.0, 7.9, 30.0, 100.0]:
            assert reduced.loop_count(length) == max(normal.loop_count(length) // 3, 1)
            assert reduced.loop_count(length) <= normal.loop_count(length)

    def test_degenerate_length_has_one_loop(self):
        """A zero-length curve still produces one loop."""
        builder = GeometryBuilder(density=2.0)

        assert builder.loop_count(0.0) == 1

    def test_empty_lanes_give_empty_mesh(self):
        """No lanes means an empty, valid mesh."""
        start = make_endpoint([LaneKind.SLOW], 0.0)
        end = make_endpoint([LaneKind.SLOW], 20.0)
        builder = GeometryBuilder(density=2.0)

        mesh = builder.build(straight_curve(20.0, 2.0), [], start, end, np.array([0, 0, 10.0]))

        assert mesh.is_empty
        assert mesh.triangle_count == 0

    def test_invalid_density_rejected(self):
        """Density must be strictly positive."""
        with pytest.raises(ValueError):
            GeometryBuilder(density=0.0)

    def test_mesh_spans_endpoints(self):
        """Geometry starts and ends exactly at the endpoint cross-sections."""
        _, mesh, _ = self.build()

        assert mesh.positions[:, 2].min() == pytest.approx(-10.0)
        assert mesh.positions[:, 2].max() == pytest.approx(10.0)
        # Lane (3.5) + left shoulder (1.0) + left gutter (0.5)
        assert mesh.positions[:, 0].max() == pytest.approx(1.75 + 1.0 + 0.5)
        # Lane + right shoulder (1.5) + right gutter (0.5)
        assert mesh.positions[:, 0].min() == pytest.approx(-1.75 - 1.5 - 0.5)
        assert mesh.positions[:, 1].min() == pytest.approx(-0.25)

    def test_faces_point_up(self):
        """Winding yields upward face normals on a flat road."""
        _, mesh, _ = self.build(start_lanes=2, end_lanes=2)

        assert np.all(mesh.face_normals()[:, 1] > 0)
        assert np.all(mesh.normals[:, 1] > 0)

    def test_lane_v_is_continuous(self):
        """Lane V advances monotonically and without gaps between loops."""
        _, mesh, _ = self.build()
        quads_per_loop = 1 + 4
        lane_quad = 2  # after the left gutter and left shoulder

        previous_far = 0.0
        for loop in range(10):
            v_near, v_far = self.quad_uvs(mesh, loop * quads_per_loop + lane_quad)
            assert v_near == pytest.approx(previous_far)
            assert v_far >= v_near
            previous_far = v_far
        # One 14 m tile fits in 20 m: V reaches 1 over the segment.
        assert previous_far == pytest.approx(1.0)

    def test_lane_v_is_continuous_across_transition_low_poly(self):
        """Every lane, including a widening ADD lane, tiles seamlessly in low-poly mode."""
        builder, mesh, lanes = self.build(start_lanes=2, end_lanes=3, low_poly=True)
        loops = builder.loop_count(20.0)
        quads_per_loop = len(lanes) + 4

        assert loops == 3
        assert lanes[-1] == MatchedLane(LaneKind.TRANSITION_ADD, LaneDirection.FORWARD)
        for j in range(len(lanes)):
            previous_far = 0.0
            for loop in range(loops):
                v_near, v_far = self.quad_uvs(mesh, loop * quads_per_loop + 2 + j)
                assert v_near == pytest.approx(previous_far)
                assert v_far >= v_near
                previous_far = v_far
            assert previous_far == pytest.approx(1.0)

    def test_lane_u_slot(self):
        """Slow forward lanes sample the second atlas strip."""
        _, mesh, _ = self.build()
        lane_quad = 2 * QUAD_VERTICES

        assert mesh.uvs[lane_quad, 0] == pytest.approx(0.125)
        assert mesh.uvs[lane_quad + 1, 0] == pytest.approx(0.25)

    def test_removed_lane_tapers_to_zero(self):
        """A REM lane shrinks linearly from the start lane width to zero."""
        _, mesh, lanes = self.build(start_lanes=2, end_lanes=1)
        quads_per_loop = 2 + 4
        rem_quad = 2 + 1

        assert len(lanes) == 2
        assert lanes[-1] == MatchedLane(LaneKind.TRANSITION_REM, LaneDirection.FORWARD)
        for loop in range(10):
            base = (loop * quads_per_loop + rem_quad) * QUAD_VERTICES
            near_left, near_right = mesh.positions[base], mesh.positions[base + 1]
            width = np.linalg.norm(near_left - near_right)
            assert width == pytest.approx(3.5 * (1 - loop / 10))
        last = ((9 * quads_per_loop) + rem_quad) * QUAD_VERTICES
        far_right, far_left = mesh.positions[last + 2], mesh.positions[last + 5]
        assert np.linalg.norm(far_left - far_right) == pytest.approx(0.0, abs=1e-9)

    def test_build_is_idempotent(self):
        """Building twice from the same inputs gives identical arrays."""
        _, first, _ = self.build(start_lanes=2, end_lanes=3)
        _, second, _ = self.build(start_lanes=2, end_lanes=3)

        assert np.array_equal(first.positions, second.positions)
        assert np.array_equal(first.uvs, second.uvs)

    def test_collision_mesh_matches_surface(self):
        """Collision faces are the surface triangles."""
        _, mesh, _ = self.build()

        collision = mesh.create_collision_mesh()

        assert collision.triangle_count == mesh.triangle_count
        assert np.array_equal(collision.faces, mesh.positions)

    def test_banked_endpoints(self):
        """A banked road keeps the endpoint cross-sections tilted."""
        roll = 0.2
        start = RoadEndpoint.from_layout([], [LaneKind.SLOW],
                                         transform=Transform.from_rotation([0, 0, 0], roll=roll))
        end = RoadEndpoint.from_layout([], [LaneKind.SLOW],
                                       transform=Transform.from_rotation([0, 0, 20], roll=roll))
        curve = SplineCurve(bake_interval=2.0)
        curve.add_point([0, 0, -10], [0, 0, -5], [0, 0, 5], roll)
        curve.add_point([0, 0, 10], [0, 0, -5], [0, 0, 5], roll)
        lanes = match_lanes(start, end).lanes

        mesh = GeometryBuilder(density=2.0).build(curve, lanes, start, end, np.array([0, 0, 10.0]))

        lane_normals = mesh.face_normals()[4:6]
        expected_up = start.transform.y
        np.testing.assert_allclose(lane_normals[0], expected_up, atol=1e-6)
        # Interior loops follow the curve's tilt as well.
        middle_lane = mesh.face_normals()[(5 * 5 + 2) * 2]
        np.testing.assert_allclose(middle_lane, expected_up, atol=1e-6)
