"""Cross-section profiles between two road endpoints.

A cross-section describes the road at one distance along a segment:
the width of every matched lane, the shoulder widths on either side and
the gutter beyond each shoulder.  Every quantity is interpolated
linearly between the start and end endpoints by the fraction of the
segment's length.  Transition lanes taper to or from zero width using
the endpoint that actually has the lane.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .lanes import MatchedLane, lane_edge_offsets, lane_widths


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


@dataclass
class CrossSection:
    """Road cross-section at a fraction along a segment."""
    fraction: float
    lane_widths: np.ndarray
    shoulder_width_left: float
    shoulder_width_right: float
    gutter_offset: float
    gutter_drop: float

    @property
    def half_width(self) -> float:
        """Half of the total lane width (shoulders excluded)."""
        return float(self.lane_widths.sum()) / 2.0

    def lane_edges(self) -> np.ndarray:
        """Lateral offsets of the lane edges, left to right."""
        return lane_edge_offsets(self.lane_widths)

    def left_edges(self):
        """Offsets of the left shoulder's outer edge and the left gutter's outer edge."""
        shoulder = self.half_width + self.shoulder_width_left
        return shoulder, shoulder + self.gutter_offset

    def right_edges(self):
        """Offsets of the right shoulder's outer edge and the right gutter's outer edge."""
        shoulder = -self.half_width - self.shoulder_width_right
        return shoulder, shoulder - self.gutter_offset


def interpolate_cross_section(
    lanes: Sequence[MatchedLane],
    start,
    end,
    fraction: float,
) -> CrossSection:
    """Compute the cross-section at `fraction` along a segment.

    Parameters
    ----------
    lanes : sequence of MatchedLane
        Matched lanes ordered left to right.
    start, end : RoadEndpoint
        Endpoints of the segment.
    fraction : float
        Position along the segment, 0 at the start and 1 at the end.

    Returns
    -------
    CrossSection
        Interpolated widths and gutter profile.
    """
    return CrossSection(
        fraction=fraction,
        lane_widths=lane_widths(lanes, start.lane_width, end.lane_width, fraction),
        shoulder_width_left=_lerp(start.shoulder_width_left, end.shoulder_width_left, fraction),
        shoulder_width_right=_lerp(start.shoulder_width_right, end.shoulder_width_right, fraction),
        gutter_offset=_lerp(start.gutter_profile.horizontal_offset,
                            end.gutter_profile.horizontal_offset, fraction),
        gutter_drop=_lerp(start.gutter_profile.vertical_drop,
                          end.gutter_profile.vertical_drop, fraction),
    )
