"""Road segment orchestration.

A `RoadSegment` connects a start and an end endpoint.  It owns the
segment curve, the matched lane list and the generated meshes, and
rebuilds them on demand when it has been marked dirty.

Rebuild state is tracked as a tri-state:

* ``CLEAN``: the geometry reflects the current endpoints.
* ``DIRTY``: an endpoint changed and the next ``check_rebuild`` rebuilds.
* ``PENDING_RETRY``: a rebuild was skipped because an endpoint was not
  ready.  Each ``check_rebuild`` looks at readiness again and rebuilds
  once both endpoints are ready, without warning or requesting a rebuild
  in the meantime.

The network that owns the segment is passed in as a `NetworkContext`,
which provides the default density, the material and an optional
callback invoked whenever the segment needs a rebuild.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from common.spline import SplineCurve
from common.transform import Transform
from utils.logging import get_logger
from .geometry import GeometryBuilder
from .lanes import LaneCurve, MatchedLane, MatchResult, construct_lane_curves, match_lanes
from .mesh import CollisionMesh, TriangleMesh

logger = get_logger(__name__)

DEFAULT_DENSITY = 4.0


class RebuildState(Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    PENDING_RETRY = "pending_retry"


@dataclass
class NetworkContext:
    """Capabilities a segment needs from the road network that owns it."""

    density: float = -1.0
    """Density override; values >= 0 replace the segment's own density."""

    material: Optional[str] = None
    """Material assigned to generated meshes."""

    request_rebuild: Optional[Callable[["RoadSegment"], None]] = None
    """Called whenever a segment becomes dirty."""


class RoadSegment:
    """Road geometry between two endpoints."""

    def __init__(
        self,
        start,
        end,
        network: NetworkContext,
        density: float = DEFAULT_DENSITY,
        low_poly: bool = False,
    ):
        if network is None:
            raise ValueError("RoadSegment requires a NetworkContext")
        self.network = network
        self.start = start
        self.end = end
        self.density = density
        self.low_poly = low_poly

        self.transform = Transform()
        self.curve = SplineCurve(bake_interval=density if density > 0 else DEFAULT_DENSITY)
        self.match_result = MatchResult()
        self.lane_curves: List[LaneCurve] = []

        # Created on the first successful rebuild.
        self._mesh: Optional[TriangleMesh] = None
        self._collision_mesh: Optional[CollisionMesh] = None

        self.state = RebuildState.DIRTY

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_dirty(self) -> bool:
        return self.state == RebuildState.DIRTY

    @property
    def is_pending_retry(self) -> bool:
        return self.state == RebuildState.PENDING_RETRY

    @property
    def matched_lanes(self) -> List[MatchedLane]:
        return self.match_result.lanes

    @property
    def mesh(self) -> Optional[TriangleMesh]:
        return self._mesh

    @property
    def collision_mesh(self) -> Optional[CollisionMesh]:
        return self._collision_mesh

    @property
    def material(self) -> Optional[str]:
        return self.network.material

    def _requested_density(self) -> float:
        return self.network.density if self.network.density >= 0 else self.density

    @property
    def effective_density(self) -> float:
        """Density used for the next rebuild.

        A density of zero would produce infinitely many loops, so only
        strictly positive values are accepted.  A rejected network override
        falls back to the segment's own density, and a rejected segment
        density to `DEFAULT_DENSITY`.
        """
        for density in (self._requested_density(), self.density):
            if density > 0:
                return density
        return DEFAULT_DENSITY

    def mark_dirty(self) -> None:
        """Flag the segment for rebuild and notify the network."""
        self.state = RebuildState.DIRTY
        if self.network.request_rebuild is not None:
            self.network.request_rebuild(self)

    def notify_endpoint_changed(self) -> None:
        """Tell the segment that one of its endpoints moved or was edited."""
        self.mark_dirty()

    def set_start(self, endpoint) -> None:
        """Replace the start endpoint and mark the segment dirty."""
        self.start = endpoint
        self.mark_dirty()

    def set_end(self, endpoint) -> None:
        """Replace the end endpoint and mark the segment dirty."""
        self.end = endpoint
        self.mark_dirty()

    def set_low_poly(self, low_poly: bool) -> None:
        """Switch low-poly mode; only an actual change marks the segment dirty."""
        if low_poly != self.low_poly:
            self.low_poly = low_poly
            self.mark_dirty()

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------
    def check_rebuild(self) -> bool:
        """Rebuild if dirty or pending and both endpoints are ready.

        A pending segment checks readiness again on every call, but stays
        pending quietly (no warning, no rebuild request) until both
        endpoints are ready.

        Returns
        -------
        bool
            True if the geometry was rebuilt.
        """
        if self.state == RebuildState.CLEAN:
            return False
        if self.start is None or self.end is None:
            logger.warning("%s has no %s endpoint, skipping rebuild",
                           self, "start" if self.start is None else "end")
            return False
        if not (self.start.ready and self.end.ready):
            if self.state == RebuildState.DIRTY:
                logger.warning("Endpoints of %s are not ready, rebuild deferred", self)
                self.state = RebuildState.PENDING_RETRY
            return False
        self.rebuild()
        return True

    def rebuild(self) -> None:
        """Recompute origin, curve, matched lanes and meshes."""
        origin = (self.start.position + self.end.position) / 2.0
        self.transform = Transform(origin=origin)
        requested = self._requested_density()
        density = self.effective_density
        if density != requested:
            logger.warning("Invalid density %s for %s, using %s", requested, self, density)
        self._rebuild_curve(density)

        self.match_result = match_lanes(self.start, self.end)
        builder = GeometryBuilder(density, self.low_poly, self.material)
        self._mesh = builder.build(self.curve, self.match_result.lanes, self.start, self.end, origin)
        self._collision_mesh = self._mesh.create_collision_mesh()
        self.state = RebuildState.CLEAN
        logger.debug("Rebuilt %s: %d lanes, %d triangles",
                     self, len(self.match_result.lanes), self._mesh.triangle_count)

    def _rebuild_curve(self, density: float) -> None:
        origin = self.transform.origin
        start_tf = self.start.transform
        end_tf = self.end.transform
        start_handle = start_tf.z * self.start.next_tangent_magnitude
        end_handle = end_tf.z * self.end.prior_tangent_magnitude

        self.curve.clear_points()
        self.curve.bake_interval = density
        self.curve.add_point(start_tf.origin - origin, -start_handle, start_handle, self.start.tilt)
        self.curve.add_point(end_tf.origin - origin, -end_handle, end_handle, self.end.tilt)

    def generate_lane_curves(self) -> List[LaneCurve]:
        """Regenerate per-lane centre line curves from the last rebuild.

        Previously generated curves are discarded first.  No curves are
        produced when lane matching failed, or while the segment is not
        clean: the last matched lanes may no longer fit the current
        endpoints.
        """
        self.lane_curves = []
        if self.state != RebuildState.CLEAN:
            return self.lane_curves
        if not self.match_result.lanes or self.curve.point_count < 2:
            return self.lane_curves
        self.lane_curves = construct_lane_curves(
            self.curve, self.match_result.lanes, self.start, self.end, self.transform.origin
        )
        return self.lane_curves

    def __repr__(self) -> str:
        start = getattr(self.start, "label", None)
        end = getattr(self.end, "label", None)
        return f"RoadSegment({start} -> {end})"
