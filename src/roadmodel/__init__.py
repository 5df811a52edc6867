"""Road segment geometry construction.

This package builds drivable road surfaces between two endpoints.  It
matches the lane layouts of the endpoints (inserting transition lanes
where lanes appear or disappear), interpolates cross-sections along a
Bezier curve, and emits a textured triangle mesh with shoulders and
gutters.  `RoadSegment` ties these steps together and rebuilds on
demand.
"""

from .lanes import (
    LaneKind,
    LaneDirection,
    MatchedLane,
    MatchError,
    MatchResult,
    LaneCurve,
    classify_directions,
    match_lanes,
    construct_lane_curves,
)
from .endpoint import GutterProfile, RoadEndpoint
from .profiles import CrossSection, interpolate_cross_section
from .markings import lane_u_range, shoulder_u_ranges
from .mesh import CollisionMesh, TriangleMesh
from .geometry import GeometryBuilder
from .segment import NetworkContext, RebuildState, RoadSegment

__all__ = [
    "LaneKind",
    "LaneDirection",
    "MatchedLane",
    "MatchError",
    "MatchResult",
    "LaneCurve",
    "classify_directions",
    "match_lanes",
    "construct_lane_curves",
    "GutterProfile",
    "RoadEndpoint",
    "CrossSection",
    "interpolate_cross_section",
    "lane_u_range",
    "shoulder_u_ranges",
    "CollisionMesh",
    "TriangleMesh",
    "GeometryBuilder",
    "NetworkContext",
    "RebuildState",
    "RoadSegment",
]
