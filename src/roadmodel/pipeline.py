"""Corridor building pipeline.

This module chains a sequence of endpoints into road segments, builds
their geometry and exports the meshes.  It is the command-line entry
point for generating road geometry outside of a host application.

Usage:
    python -m roadmodel.pipeline --output out/ \
        --endpoint "two_way:R,two_way:F" --endpoint "two_way:R,slow:F,fast:F"
"""

import argparse
import math
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from common.transform import Transform
from utils.config import RoadConfig
from .endpoint import GutterProfile, RoadEndpoint
from .lanes import LaneDirection, LaneKind
from .segment import NetworkContext, RoadSegment

Layout = List[Tuple[LaneKind, LaneDirection]]

_DIRECTIONS = {"F": LaneDirection.FORWARD, "R": LaneDirection.REVERSE}


def parse_layout(text: str) -> Layout:
    """Parse a lane layout such as ``"two_way:R,slow:F,fast:F"``.

    Raises
    ------
    argparse.ArgumentTypeError
        If a token is not ``kind:direction`` with a known kind and a
        direction of ``F`` or ``R``.
    """
    layout: Layout = []
    for token in filter(None, (t.strip() for t in text.split(","))):
        kind_name, _, direction_name = token.partition(":")
        try:
            kind = LaneKind(kind_name.strip().lower())
        except ValueError:
            raise argparse.ArgumentTypeError(f"unknown lane kind '{kind_name}'") from None
        if kind.is_transition:
            raise argparse.ArgumentTypeError("transition lanes cannot be placed on endpoints")
        direction = _DIRECTIONS.get(direction_name.strip().upper())
        if direction is None:
            raise argparse.ArgumentTypeError(f"direction of '{token}' must be F or R")
        layout.append((kind, direction))
    if not layout:
        raise argparse.ArgumentTypeError("a layout needs at least one lane")
    return layout


class CorridorPipeline:
    """Build a corridor of road segments through a chain of endpoints.

    Endpoints are placed `spacing` metres apart, each turned `turn`
    radians further than the previous one, so the corridor follows a
    circular arc (a straight line for ``turn == 0``).
    """

    def __init__(
        self,
        output_dir: Path,
        config: Optional[RoadConfig] = None,
        spacing: float = 20.0,
        turn: float = 0.0,
    ):
        self.output_dir = Path(output_dir)
        self.config = config or RoadConfig()
        self.spacing = spacing
        self.turn = turn
        self.network = NetworkContext(material=self.config.material)

        self.endpoints: List[RoadEndpoint] = []
        self.segments: List[RoadSegment] = []

    def step_1_create_endpoints(self, layouts: Sequence[Layout]) -> List[RoadEndpoint]:
        """Place one endpoint per layout along the corridor."""
        cfg = self.config
        position = np.zeros(3)
        self.endpoints = []
        for i, layout in enumerate(layouts):
            yaw = i * self.turn
            if i > 0:
                # Chord of the arc between consecutive endpoints.
                heading = yaw - self.turn / 2.0
                position = position + self.spacing * np.array([math.sin(heading), 0.0, math.cos(heading)])
            self.endpoints.append(RoadEndpoint(
                lanes=[kind for kind, _ in layout],
                traffic_directions=[direction for _, direction in layout],
                transform=Transform.from_rotation(position, yaw=yaw),
                lane_width=cfg.lane_width,
                shoulder_width_left=cfg.shoulder_width_left,
                shoulder_width_right=cfg.shoulder_width_right,
                gutter_profile=GutterProfile(*cfg.gutter_profile),
                next_tangent_magnitude=cfg.tangent_magnitude,
                prior_tangent_magnitude=cfg.tangent_magnitude,
                name=f"endpoint_{i:03d}",
            ))
        return self.endpoints

    def step_2_build_segments(self) -> List[RoadSegment]:
        """Connect consecutive endpoints and build every segment."""
        self.segments = [
            RoadSegment(a, b, self.network, density=self.config.density, low_poly=self.config.low_poly)
            for a, b in zip(self.endpoints[:-1], self.endpoints[1:])
        ]
        for segment in tqdm(self.segments, desc="Building segments"):
            segment.check_rebuild()
        return self.segments

    def step_3_export_meshes(self) -> List[Path]:
        """Export every non-empty segment mesh to Parquet."""
        paths: List[Path] = []
        for i, segment in enumerate(self.segments):
            if segment.mesh is None or segment.mesh.is_empty:
                continue
            path = self.output_dir / f"segment_{i:03d}.parquet"
            segment.mesh.export_to_parquet(path)
            paths.append(path)
        return paths

    def run(self, layouts: Sequence[Layout]) -> Dict:
        """Run all steps and return summary statistics."""
        self.step_1_create_endpoints(layouts)
        self.step_2_build_segments()
        exported = self.step_3_export_meshes()
        return {
            "endpoints": len(self.endpoints),
            "segments": len(self.segments),
            "failed_segments": len([s for s in self.segments if not s.match_result.ok]),
            "triangles": sum(s.mesh.triangle_count for s in self.segments if s.mesh is not None),
            "exported": len(exported),
        }


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        description="Build road segment meshes through a chain of endpoints"
    )
    parser.add_argument(
        "--endpoint",
        type=parse_layout,
        action="append",
        required=True,
        help="Lane layout of one endpoint, e.g. 'two_way:R,slow:F' (repeat, at least twice)"
    )
    parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Output directory"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/road_defaults.yaml",
        help="YAML file with road defaults"
    )
    parser.add_argument(
        "--spacing",
        type=float,
        default=20.0,
        help="Distance between endpoints in metres (default: 20)"
    )
    parser.add_argument(
        "--turn",
        type=float,
        default=0.0,
        help="Heading change per segment in degrees (default: 0)"
    )
    parser.add_argument(
        "--low-poly",
        action="store_true",
        help="Build with reduced longitudinal resolution"
    )

    args = parser.parse_args(argv)
    if len(args.endpoint) < 2:
        parser.error("at least two --endpoint layouts are required")

    config = RoadConfig.load(args.config)
    if args.low_poly:
        config.low_poly = True

    pipeline = CorridorPipeline(
        output_dir=Path(args.output),
        config=config,
        spacing=args.spacing,
        turn=math.radians(args.turn),
    )
    summary = pipeline.run(args.endpoint)

    print("=" * 60)
    print("Corridor build complete")
    print("=" * 60)
    print(f"Endpoints:         {summary['endpoints']}")
    print(f"Segments:          {summary['segments']}")
    print(f"Failed matches:    {summary['failed_segments']}")
    print(f"Triangles:         {summary['triangles']:,}")
    print(f"Exported meshes:   {summary['exported']}")
    print(f"\nOutput directory: {pipeline.output_dir}")
    return 0 if summary["failed_segments"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
