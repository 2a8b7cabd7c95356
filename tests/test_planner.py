"""
Tests for rendition planning.
"""

import pytest

from hls_publisher.config import RenditionTarget
from hls_publisher.models import SourceProbe
from hls_publisher.planner import DEFAULT_RENDITION_TABLE, RenditionPlanner, plan_renditions
from hls_publisher.utils import NoRenditionsError


def make_probe(width: int, height: int, bitrate: int = 4_000_000) -> SourceProbe:
    return SourceProbe(
        width=width,
        height=height,
        duration_seconds=60.0,
        bitrate_bps=bitrate,
        video_codec="h264",
    )


@pytest.fixture
def planner():
    return RenditionPlanner()


class TestRenditionPlanner:
    """Test RenditionPlanner."""

    def test_1080p_source(self, planner):
        specs = planner.plan(make_probe(1920, 1080, bitrate=4_000_000))

        assert [s.name for s in specs] == ["480p", "720p", "1080p"]
        assert [s.is_source_copy for s in specs] == [False, False, True]

        source = specs[-1]
        assert source.size == "1920x1080"
        assert source.target_bitrate == "4000000"
        assert source.bandwidth == 4_000_000

    def test_matching_height_becomes_copy(self, planner):
        specs = planner.plan(make_probe(1280, 720))

        assert [s.name for s in specs] == ["480p", "720p"]
        copy = specs[1]
        assert copy.is_source_copy
        assert copy.size == "1280x720"
        assert copy.target_bitrate == "1500k"

    def test_same_height_different_width(self, planner):
        """Height alone decides whether a target coincides with the source."""
        specs = planner.plan(make_probe(1920, 720))

        assert [s.name for s in specs] == ["480p", "720p"]
        assert specs[1].is_source_copy
        assert specs[1].size == "1920x720"

    def test_small_source_single_copy(self, planner):
        specs = planner.plan(make_probe(640, 360, bitrate=900_000))

        assert len(specs) == 1
        assert specs[0].name == "360p"
        assert specs[0].is_source_copy
        assert specs[0].size == "640x360"

    def test_narrow_source_drops_wide_target(self, planner):
        """A target wider than the source is dropped even if it is shorter."""
        specs = planner.plan(make_probe(800, 600))

        assert [s.name for s in specs] == ["600p"]

    def test_unusable_dimensions(self, planner):
        with pytest.raises(NoRenditionsError):
            planner.plan(make_probe(0, 0))

    def test_custom_table(self):
        table = [
            RenditionTarget(name="240p", width=426, height=240, bitrate="400k"),
            RenditionTarget(name="360p", width=640, height=360, bitrate="700k"),
        ]
        specs = RenditionPlanner(table).plan(make_probe(1280, 720))

        assert [s.name for s in specs] == ["240p", "360p", "720p"]

    def test_table_override_per_call(self, planner):
        table = [RenditionTarget(name="240p", width=426, height=240, bitrate="400k")]
        specs = planner.plan(make_probe(1280, 720), table=table)
        assert [s.name for s in specs] == ["240p", "720p"]

    def test_plan_renditions_wrapper(self):
        specs = plan_renditions(make_probe(1920, 1080))
        assert len(specs) == len(DEFAULT_RENDITION_TABLE) + 1

    @pytest.mark.parametrize(
        "width,height",
        [(426, 240), (640, 360), (854, 480), (1280, 720), (1920, 1080), (3840, 2160), (720, 1280)],
    )
    def test_ladder_properties(self, planner, width, height):
        specs = planner.plan(make_probe(width, height))

        assert all(s.height <= height and s.width <= width for s in specs)

        copies = [s for s in specs if s.is_source_copy]
        assert len(copies) == 1
        assert (copies[0].width, copies[0].height) == (width, height)

        heights = [s.height for s in specs]
        assert heights == sorted(heights)
