"""Lane matching between the two endpoints of a road segment.

The two endpoints of a segment may disagree on how many lanes the road
has and in which direction they run.  `match_lanes` reconciles them into
a single left-to-right list of (kind, direction) pairs.  Lanes present
at only one endpoint are replaced by synthetic transition lanes:
``TRANSITION_ADD`` for a lane that only exists at the end endpoint and
``TRANSITION_REM`` for a lane that only exists at the start endpoint.
The mesh builder tapers those from or to zero width.

Reverse lanes always sit left of forward lanes.  Matching pairs lanes
outward from the point where direction flips, so that lanes next to the
centre of the road line up and the outermost lanes are the ones that
appear or disappear.

Invalid combinations are reported through `MatchResult.error` together
with a warning in the log; no exception is raised so that a single bad
segment does not interrupt the rebuild of a whole network.

This module also derives per-lane centre line curves from the matched
lane list, for consumers that need driving paths.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from common.spline import SplineCurve
from utils.logging import get_logger

logger = get_logger(__name__)


class LaneKind(Enum):
    SHOULDER = "shoulder"
    SLOW = "slow"
    MIDDLE = "middle"
    FAST = "fast"
    NO_MARKING = "no_marking"
    TWO_WAY = "two_way"
    ONE_WAY = "one_way"
    SINGLE_LINE = "single_line"
    TRANSITION_ADD = "transition_add"
    TRANSITION_REM = "transition_rem"

    @property
    def is_transition(self) -> bool:
        return self in (LaneKind.TRANSITION_ADD, LaneKind.TRANSITION_REM)


class LaneDirection(Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


class DirectionClass(Enum):
    """Overall traffic direction of an endpoint."""
    FORWARD = "forward"
    REVERSE = "reverse"
    BOTH = "both"


class MatchError(Enum):
    EMPTY_LANES = "endpoint has no lanes"
    LENGTH_MISMATCH = "lanes and traffic directions differ in length"
    DIRECTION_ORDER = "reverse lane found right of a forward lane"
    OPPOSED_DIRECTIONS = "endpoints start with opposite traffic directions"
    INCOMPATIBLE_DIRECTIONS = "one-way endpoint connected to a two-way endpoint"


@dataclass(frozen=True)
class MatchedLane:
    kind: LaneKind
    direction: LaneDirection


@dataclass
class MatchResult:
    """Outcome of lane matching: a lane list, or an empty list and an error."""
    lanes: List[MatchedLane] = field(default_factory=list)
    error: Optional[MatchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_directions(
    directions: Sequence[LaneDirection],
) -> Tuple[Optional[DirectionClass], int]:
    """Classify an endpoint's traffic directions.

    Parameters
    ----------
    directions : sequence of LaneDirection
        Traffic directions ordered left to right.

    Returns
    -------
    tuple
        ``(direction_class, flip_offset)``.  The flip offset is the index
        of the first forward lane for two-way endpoints and the last index
        for one-way endpoints.  ``direction_class`` is None when a reverse
        lane follows a forward lane.
    """
    flip_offset = -1
    for idx, direction in enumerate(directions):
        if direction == LaneDirection.FORWARD:
            if flip_offset < 0:
                flip_offset = idx
        elif flip_offset >= 0:
            return None, idx
    last = len(directions) - 1
    if flip_offset < 0:
        return DirectionClass.REVERSE, last
    if flip_offset == 0:
        return DirectionClass.FORWARD, last
    return DirectionClass.BOTH, flip_offset


def _fail(error: MatchError, start, end) -> MatchResult:
    logger.warning(
        "Cannot match lanes between %s and %s: %s",
        getattr(start, "label", "start"), getattr(end, "label", "end"), error.value,
    )
    return MatchResult(lanes=[], error=error)


def _match_forward(start_lanes, end_lanes) -> List[MatchedLane]:
    matched: List[MatchedLane] = []
    for i in range(max(len(start_lanes), len(end_lanes))):
        if i < len(start_lanes) and i < len(end_lanes):
            matched.append(MatchedLane(start_lanes[i], LaneDirection.FORWARD))
        elif i >= len(start_lanes):
            matched.append(MatchedLane(LaneKind.TRANSITION_ADD, LaneDirection.FORWARD))
        else:
            matched.append(MatchedLane(LaneKind.TRANSITION_REM, LaneDirection.FORWARD))
    return matched


def _match_reverse(start_lanes, end_lanes) -> List[MatchedLane]:
    # Count from the right edge (the flip side) outward, prepending.
    matched: List[MatchedLane] = []
    n_start, n_end = len(start_lanes), len(end_lanes)
    for j in range(max(n_start, n_end)):
        if j < n_start and j < n_end:
            lane = MatchedLane(start_lanes[n_start - 1 - j], LaneDirection.REVERSE)
        elif j >= n_start:
            lane = MatchedLane(LaneKind.TRANSITION_ADD, LaneDirection.REVERSE)
        else:
            lane = MatchedLane(LaneKind.TRANSITION_REM, LaneDirection.REVERSE)
        matched.insert(0, lane)
    return matched


def _match_both(start_lanes, end_lanes, start_flip: int, end_flip: int) -> List[MatchedLane]:
    n_start, n_end = len(start_lanes), len(end_lanes)
    diff = start_flip - end_flip
    matched: List[MatchedLane] = []

    for i in range(start_flip - 1, start_flip - max(start_flip, end_flip) - 1, -1):
        if i < 0:
            lane = MatchedLane(LaneKind.TRANSITION_ADD, LaneDirection.REVERSE)
        elif i - diff < 0:
            lane = MatchedLane(LaneKind.TRANSITION_REM, LaneDirection.REVERSE)
        else:
            lane = MatchedLane(start_lanes[i], LaneDirection.REVERSE)
        matched.insert(0, lane)

    for i in range(start_flip, max(n_start, n_end + diff)):
        if i >= n_start:
            matched.append(MatchedLane(LaneKind.TRANSITION_ADD, LaneDirection.FORWARD))
        elif i - diff > n_end - 1:
            matched.append(MatchedLane(LaneKind.TRANSITION_REM, LaneDirection.FORWARD))
        else:
            matched.append(MatchedLane(start_lanes[i], LaneDirection.FORWARD))
    return matched


def match_lanes(start, end) -> MatchResult:
    """Match the lanes of two endpoints into one ordered lane list.

    Parameters
    ----------
    start, end : RoadEndpoint
        Endpoints at either end of the segment.  Only ``lanes`` and
        ``traffic_directions`` are read.

    Returns
    -------
    MatchResult
        The matched lanes ordered left to right, or an empty list and the
        reason matching failed.
    """
    for endpoint in (start, end):
        if not endpoint.lanes:
            return _fail(MatchError.EMPTY_LANES, start, end)
        if len(endpoint.lanes) != len(endpoint.traffic_directions):
            return _fail(MatchError.LENGTH_MISMATCH, start, end)

    start_class, start_flip = classify_directions(start.traffic_directions)
    end_class, end_flip = classify_directions(end.traffic_directions)
    if start_class is None or end_class is None:
        return _fail(MatchError.DIRECTION_ORDER, start, end)

    start_first = start.traffic_directions[0]
    end_first = end.traffic_directions[0]
    if start_first != end_first and DirectionClass.BOTH not in (start_class, end_class):
        return _fail(MatchError.OPPOSED_DIRECTIONS, start, end)
    if start_class != end_class:
        return _fail(MatchError.INCOMPATIBLE_DIRECTIONS, start, end)

    if start_class == DirectionClass.FORWARD:
        lanes = _match_forward(start.lanes, end.lanes)
    elif start_class == DirectionClass.REVERSE:
        lanes = _match_reverse(start.lanes, end.lanes)
    else:
        lanes = _match_both(start.lanes, end.lanes, start_flip, end_flip)
    return MatchResult(lanes=lanes)


# ----------------------------------------------------------------------
# Lane widths and centre lines
# ----------------------------------------------------------------------

def lane_widths(
    lanes: Sequence[MatchedLane],
    start_width: float,
    end_width: float,
    fraction: float,
) -> np.ndarray:
    """Width of every matched lane at `fraction` along the segment.

    Regular lanes interpolate between the endpoint lane widths.  Lanes
    added towards the end grow from zero to the end width; lanes removed
    shrink from the start width to zero.
    """
    widths = np.empty(len(lanes))
    regular = start_width + (end_width - start_width) * fraction
    for i, lane in enumerate(lanes):
        if lane.kind == LaneKind.TRANSITION_ADD:
            widths[i] = end_width * fraction
        elif lane.kind == LaneKind.TRANSITION_REM:
            widths[i] = start_width * (1.0 - fraction)
        else:
            widths[i] = regular
    return widths


def lane_edge_offsets(widths: np.ndarray) -> np.ndarray:
    """Lateral offsets of all lane edges, left to right, centred on zero.

    Offsets are measured along the endpoint's lateral (x) axis, so the
    leftmost edge has the largest offset.
    """
    half_width = widths.sum() / 2.0
    return half_width - np.concatenate(([0.0], np.cumsum(widths)))


@dataclass
class LaneCurve:
    """Centre line of one matched lane, oriented in its driving direction."""
    index: int
    lane: MatchedLane
    curve: SplineCurve


def construct_lane_curves(
    road_curve: SplineCurve,
    lanes: Sequence[MatchedLane],
    start,
    end,
    origin: np.ndarray,
) -> List[LaneCurve]:
    """Construct a centre line curve for every matched lane.

    Each lane curve runs from the lane's centre at one endpoint to its
    centre at the other, reusing the road curve's handles so that it
    stays parallel to the road where it leaves each endpoint.  Reverse
    lanes run from the end endpoint back to the start.

    Parameters
    ----------
    road_curve : SplineCurve
        The segment's baked two-point curve, in segment-local space.
    lanes : sequence of MatchedLane
        Matched lanes ordered left to right.
    start, end : RoadEndpoint
        Endpoints of the segment.
    origin : numpy.ndarray
        Segment origin; curve positions are relative to it.

    Returns
    -------
    list of LaneCurve
        One curve per lane, empty when `lanes` is empty.
    """
    if not lanes:
        return []
    start_widths = lane_widths(lanes, start.lane_width, end.lane_width, 0.0)
    end_widths = lane_widths(lanes, start.lane_width, end.lane_width, 1.0)
    start_edges = lane_edge_offsets(start_widths)
    end_edges = lane_edge_offsets(end_widths)
    start_centres = (start_edges[:-1] + start_edges[1:]) / 2.0
    end_centres = (end_edges[:-1] + end_edges[1:]) / 2.0

    handle_out = road_curve.get_point_out(0)
    handle_in = road_curve.get_point_in(road_curve.point_count - 1)
    start_local = start.transform.origin - origin
    end_local = end.transform.origin - origin

    curves: List[LaneCurve] = []
    for i, lane in enumerate(lanes):
        head = start_local + start.transform.x * start_centres[i]
        tail = end_local + end.transform.x * end_centres[i]
        curve = SplineCurve(bake_interval=road_curve.bake_interval)
        if lane.direction == LaneDirection.FORWARD:
            curve.add_point(head, -handle_out, handle_out, start.tilt)
            curve.add_point(tail, handle_in, -handle_in, end.tilt)
        else:
            curve.add_point(tail, -handle_in, handle_in, end.tilt)
            curve.add_point(head, handle_out, -handle_out, start.tilt)
        curves.append(LaneCurve(index=i, lane=lane, curve=curve))
    return curves
