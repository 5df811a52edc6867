"""Road endpoint data consumed by the segment builder.

An endpoint is a cross-section anchor: it fixes the lane layout, the
widths of lanes and shoulders, the gutter profile and the position and
orientation of one end of a road segment.  Segments only ever read
endpoints; they are owned and edited elsewhere.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from common.transform import Transform
from .lanes import LaneDirection, LaneKind


@dataclass(frozen=True)
class GutterProfile:
    """Drainage channel beyond a shoulder."""

    horizontal_offset: float = 0.5
    """Lateral extent of the gutter in metres."""

    vertical_drop: float = 0.5
    """Height the gutter drops below the shoulder in metres."""


@dataclass
class RoadEndpoint:
    """Cross-section and placement of one end of a road segment."""

    lanes: List[LaneKind]
    """Lane kinds, ordered left to right."""

    traffic_directions: List[LaneDirection]
    """Direction of each lane, index-aligned with `lanes`."""

    transform: Transform = field(default_factory=Transform)
    """Position and orientation; z points along the road."""

    lane_width: float = 4.0
    shoulder_width_left: float = 2.0
    shoulder_width_right: float = 2.0
    gutter_profile: GutterProfile = field(default_factory=GutterProfile)

    next_tangent_magnitude: float = 5.0
    """Length of the outgoing curve handle."""

    prior_tangent_magnitude: float = 5.0
    """Length of the incoming curve handle."""

    ready: bool = True
    """False while the endpoint is still being initialised."""

    name: Optional[str] = None

    def __post_init__(self):
        self.lanes = list(self.lanes)
        self.traffic_directions = list(self.traffic_directions)
        if self.lane_width <= 0:
            raise ValueError(f"lane_width must be positive, got {self.lane_width}")
        if self.shoulder_width_left < 0 or self.shoulder_width_right < 0:
            raise ValueError("shoulder widths must be non-negative")
        if self.gutter_profile.horizontal_offset < 0 or self.gutter_profile.vertical_drop < 0:
            raise ValueError("gutter profile values must be non-negative")

    @classmethod
    def from_layout(
        cls,
        reverse: Sequence[LaneKind],
        forward: Sequence[LaneKind],
        transform: Optional[Transform] = None,
        **kwargs,
    ) -> "RoadEndpoint":
        """Build an endpoint from its reverse lanes (left) and forward lanes (right)."""
        lanes = list(reverse) + list(forward)
        directions = [LaneDirection.REVERSE] * len(reverse) + [LaneDirection.FORWARD] * len(forward)
        return cls(lanes=lanes, traffic_directions=directions,
                   transform=transform if transform is not None else Transform(), **kwargs)

    @property
    def position(self) -> np.ndarray:
        return self.transform.origin

    @property
    def tilt(self) -> float:
        return self.transform.tilt

    @property
    def label(self) -> str:
        return self.name or f"endpoint@{np.round(self.position, 2).tolist()}"
