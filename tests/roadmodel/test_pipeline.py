"""Integration tests for the corridor pipeline."""

import argparse
import tempfile
from pathlib import Path

import numpy as np
import pytest

from roadmodel.lanes import LaneDirection, LaneKind
from roadmodel.pipeline import CorridorPipeline, main, parse_layout
from utils.config import RoadConfig


class TestParseLayout:
    """Test suite for parse_layout."""

    def test_parses_tokens(self):
        """Kinds and directions are read left to right."""
        layout = parse_layout("two_way:R, slow:F,FAST:f")

        assert layout == [
            (LaneKind.TWO_WAY, LaneDirection.REVERSE),
            (LaneKind.SLOW, LaneDirection.FORWARD),
            (LaneKind.FAST, LaneDirection.FORWARD),
        ]

    @pytest.mark.parametrize("text", ["", "bogus:F", "slow:X", "transition_add:F"])
    def test_rejects_bad_layouts(self, text):
        """Unknown kinds, directions and transition lanes are rejected."""
        with pytest.raises(argparse.ArgumentTypeError):
            parse_layout(text)


class TestCorridorPipeline:
    """Integration tests for CorridorPipeline."""

    def test_straight_corridor(self):
        """Three endpoints give two exported segments."""
        layouts = [
            parse_layout("two_way:R,two_way:F"),
            parse_layout("two_way:R,two_way:F,fast:F"),
            parse_layout("two_way:R,two_way:F"),
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            pipeline = CorridorPipeline(Path(tmpdir), RoadConfig(density=2.0), spacing=20.0)

            summary = pipeline.run(layouts)

            assert summary["endpoints"] == 3
            assert summary["segments"] == 2
            assert summary["failed_segments"] == 0
            assert summary["exported"] == 2
            assert len(list(Path(tmpdir).glob("segment_*.parquet"))) == 2
        # 10 loops x (3 lanes + 4 shoulder/gutter quads) x 2 triangles, twice.
        assert summary["triangles"] == 2 * 2 * 10 * 7

    def test_turning_corridor_places_endpoints_on_arc(self):
        """Endpoints are spaced evenly and headings advance by the turn."""
        pipeline = CorridorPipeline(Path("unused"), spacing=10.0, turn=np.radians(15.0))

        endpoints = pipeline.step_1_create_endpoints([parse_layout("slow:F")] * 4)

        for a, b in zip(endpoints[:-1], endpoints[1:]):
            assert np.linalg.norm(b.position - a.position) == pytest.approx(10.0)
        assert endpoints[-1].transform.z[0] == pytest.approx(np.sin(np.radians(45.0)))

    def test_failed_match_is_counted(self):
        """Segments whose lanes cannot be matched are reported, not raised."""
        layouts = [parse_layout("slow:F"), parse_layout("slow:R")]
        with tempfile.TemporaryDirectory() as tmpdir:
            summary = CorridorPipeline(Path(tmpdir)).run(layouts)

        assert summary["failed_segments"] == 1
        assert summary["exported"] == 0

    def test_main(self):
        """The command-line entry point builds and exports meshes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            code = main([
                "--endpoint", "slow:F",
                "--endpoint", "slow:F,fast:F",
                "--output", tmpdir,
                "--config", str(Path(tmpdir) / "absent.yaml"),
                "--low-poly",
            ])

            assert code == 0
            assert (Path(tmpdir) / "segment_000.parquet").exists()

    def test_main_requires_two_endpoints(self):
        """A single endpoint is a usage error."""
        with pytest.raises(SystemExit):
            main(["--endpoint", "slow:F", "--output", "out"])
