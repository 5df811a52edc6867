"""Demo script for building a single road segment.

This script builds a gently curving, banked segment that widens from a
two-lane road to a three-lane road, prints the matched lanes and mesh
statistics, and exports the mesh to Parquet.

Usage:
    python examples/demo_road_segment.py [output_dir]
"""

import math
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.transform import Transform
from roadmodel import LaneKind, NetworkContext, RoadEndpoint, RoadSegment


def create_endpoints():
    """Create a start and end endpoint 40 m apart with a 30 degree bend."""
    start = RoadEndpoint.from_layout(
        reverse=[LaneKind.TWO_WAY],
        forward=[LaneKind.TWO_WAY],
        transform=Transform.from_rotation([0.0, 0.0, 0.0]),
        lane_width=3.5,
        next_tangent_magnitude=15.0,
        name="start",
    )
    end = RoadEndpoint.from_layout(
        reverse=[LaneKind.TWO_WAY],
        forward=[LaneKind.TWO_WAY, LaneKind.FAST],
        transform=Transform.from_rotation([10.0, 1.0, 38.0], yaw=math.radians(30.0), roll=0.05),
        lane_width=3.5,
        prior_tangent_magnitude=15.0,
        name="end",
    )
    return start, end


def main():
    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("demo_output")
    start, end = create_endpoints()

    segment = RoadSegment(start, end, NetworkContext(material="road_atlas"), density=1.0)
    segment.check_rebuild()

    print("Matched lanes:")
    for lane in segment.matched_lanes:
        print(f"  - {lane.kind.value:<16} {lane.direction.value}")
    print(f"Curve length:  {segment.curve.get_baked_length():.2f} m")
    print(f"Triangles:     {segment.mesh.triangle_count:,}")

    lane_curves = segment.generate_lane_curves()
    print(f"Lane curves:   {len(lane_curves)}")

    path = output_dir / "segment.parquet"
    segment.mesh.export_to_parquet(path)
    print(f"\nMesh exported to {path}")


if __name__ == "__main__":
    main()
