"""Loop-based road surface builder.

The builder walks a baked segment curve in equal steps ("loops").  Each
loop spans two cross-sections, near and far, and emits one quad per
matched lane plus a shoulder and a gutter quad on either side.  The
near cross-section of the first loop and the far cross-section of the
last loop are taken directly from the endpoint transforms, so segments
sharing an endpoint meet exactly.

Texture V coordinates advance by the same amount every loop and are
tracked per lane and per shoulder, so tiling continues seamlessly from
one loop to the next.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from common.spline import SplineCurve
from utils.logging import get_logger
from utils.tiling import loop_count, loop_fractions, whole_count
from .lanes import MatchedLane
from .markings import lane_u_range, shoulder_u_ranges
from .mesh import SurfaceBuilder, TriangleMesh
from .profiles import CrossSection, interpolate_cross_section

logger = get_logger(__name__)

LOW_POLY_FACTOR = 3
"""Divisor applied to the loop count in low-poly mode."""

TILE_HEIGHT_PER_LANE_WIDTH = 4.0
"""Texture tile height as a multiple of the narrower endpoint lane width."""


@dataclass
class _Frame:
    """Position and local axes of a cross-section."""
    position: np.ndarray
    side: np.ndarray
    up: np.ndarray

    def point(self, offset: float, drop: float = 0.0) -> np.ndarray:
        return self.position + self.side * offset - self.up * drop


def _endpoint_frame(endpoint, origin: np.ndarray) -> _Frame:
    basis = endpoint.transform
    return _Frame(basis.origin - origin, basis.x.copy(), basis.y.copy())


def _curve_frame(curve: SplineCurve, offset: float) -> _Frame:
    tangent = curve.sample_baked_tangent(offset)
    up = curve.sample_baked_up_vector(offset)
    side = np.cross(up, tangent)
    side /= np.linalg.norm(side)
    return _Frame(curve.sample_baked(offset), side, up)


class GeometryBuilder:
    """Build a road segment's triangle mesh from its curve and lanes."""

    def __init__(self, density: float, low_poly: bool = False, material: Optional[str] = None):
        if density <= 0:
            raise ValueError(f"density must be positive, got {density}")
        self.density = float(density)
        self.low_poly = low_poly
        self.material = material

    def loop_count(self, length: float) -> int:
        """Number of loops for a curve of `length` metres (at least 1)."""
        reduction = LOW_POLY_FACTOR if self.low_poly else 1
        return loop_count(length, self.density, reduction)

    @staticmethod
    def uv_advance(length: float, loops: int, start, end) -> float:
        """V increment per loop.

        Tiles are four lane widths tall (a 2:1 texture stretched over
        twice its width), based on the narrower endpoint.  The whole
        segment holds an integer number of tiles.
        """
        tile_height = TILE_HEIGHT_PER_LANE_WIDTH * min(start.lane_width, end.lane_width)
        return whole_count(length, tile_height) / loops

    def build(
        self,
        curve: SplineCurve,
        lanes: Sequence[MatchedLane],
        start,
        end,
        origin: Optional[np.ndarray] = None,
    ) -> TriangleMesh:
        """Build the road surface mesh.

        Parameters
        ----------
        curve : SplineCurve
            Segment curve in local space (relative to `origin`).
        lanes : sequence of MatchedLane
            Matched lanes ordered left to right.
        start, end : RoadEndpoint
            Endpoints of the segment.
        origin : numpy.ndarray, optional
            Segment origin in world space; defaults to the world origin.

        Returns
        -------
        TriangleMesh
            Road surface with UVs and smooth normals.  Empty when there
            are no lanes.
        """
        if not lanes:
            return TriangleMesh.empty(self.material)
        origin = np.zeros(3) if origin is None else np.asarray(origin, dtype=float)

        length = curve.get_baked_length()
        loops = self.loop_count(length)
        advance = self.uv_advance(length, loops, start, end)
        logger.debug("Building %d loops over %.2f m for %d lanes", loops, length, len(lanes))

        lane_u = [lane_u_range(lane) for lane in lanes]
        left_u = shoulder_u_ranges("left")
        right_u = shoulder_u_ranges("right")
        lane_v = np.zeros(len(lanes))
        shoulder_v = 0.0

        surface = SurfaceBuilder()
        near = _endpoint_frame(start, origin)
        near_section = interpolate_cross_section(lanes, start, end, 0.0)
        fractions = loop_fractions(loops)
        for i, (_, f1) in enumerate(fractions):
            if i == loops - 1:
                far = _endpoint_frame(end, origin)
            else:
                far = _curve_frame(curve, f1 * length)
            far_section = interpolate_cross_section(lanes, start, end, f1)

            self._add_shoulder(surface, near, far, near_section, far_section,
                               "left", left_u, shoulder_v, shoulder_v + advance)
            near_edges = near_section.lane_edges()
            far_edges = far_section.lane_edges()
            for j in range(len(lanes)):
                u_left, u_right = lane_u[j]
                v0, v1 = lane_v[j], lane_v[j] + advance
                surface.add_quad(
                    (near.point(near_edges[j]), near.point(near_edges[j + 1]),
                     far.point(far_edges[j]), far.point(far_edges[j + 1])),
                    ((u_left, v0), (u_right, v0), (u_left, v1), (u_right, v1)),
                )
                lane_v[j] = v1
            self._add_shoulder(surface, near, far, near_section, far_section,
                               "right", right_u, shoulder_v, shoulder_v + advance)
            shoulder_v += advance

            near, near_section = far, far_section

        return surface.commit(self.material)

    @staticmethod
    def _add_shoulder(
        surface: SurfaceBuilder,
        near: _Frame,
        far: _Frame,
        near_section: CrossSection,
        far_section: CrossSection,
        side: str,
        u_ranges,
        v0: float,
        v1: float,
    ) -> None:
        """Emit the flat shoulder and the gutter on one side, left to right."""
        (su_left, su_right), (gu_left, gu_right) = u_ranges
        if side == "left":
            near_edge, far_edge = near_section.half_width, far_section.half_width
            near_shoulder, near_gutter = near_section.left_edges()
            far_shoulder, far_gutter = far_section.left_edges()
            surface.add_quad(
                (near.point(near_gutter, near_section.gutter_drop), near.point(near_shoulder),
                 far.point(far_gutter, far_section.gutter_drop), far.point(far_shoulder)),
                ((gu_left, v0), (gu_right, v0), (gu_left, v1), (gu_right, v1)),
            )
            surface.add_quad(
                (near.point(near_shoulder), near.point(near_edge),
                 far.point(far_shoulder), far.point(far_edge)),
                ((su_left, v0), (su_right, v0), (su_left, v1), (su_right, v1)),
            )
        else:
            near_edge, far_edge = -near_section.half_width, -far_section.half_width
            near_shoulder, near_gutter = near_section.right_edges()
            far_shoulder, far_gutter = far_section.right_edges()
            surface.add_quad(
                (near.point(near_edge), near.point(near_shoulder),
                 far.point(far_edge), far.point(far_shoulder)),
                ((su_left, v0), (su_right, v0), (su_left, v1), (su_right, v1)),
            )
            surface.add_quad(
                (near.point(near_shoulder), near.point(near_gutter, near_section.gutter_drop),
                 far.point(far_shoulder), far.point(far_gutter, far_section.gutter_drop)),
                ((gu_left, v0), (gu_right, v0), (gu_left, v1), (gu_right, v1)),
            )
