"""
Tests for master manifest generation.
"""

from pathlib import Path

import pytest

from hls_publisher.models import RenditionOutcome, RenditionSpec
from hls_publisher.playlist import ManifestBuilder, resolve_url_template


def outcome(name, width, height, bitrate, succeeded=True, copy=False) -> RenditionOutcome:
    spec = RenditionSpec(
        name=name, width=width, height=height, target_bitrate=bitrate, is_source_copy=copy
    )
    return RenditionOutcome(
        spec=spec,
        playlist_path=Path("/out") / name / "playlist.m3u8",
        bandwidth_bps=spec.bandwidth,
        succeeded=succeeded,
        error=None if succeeded else "boom",
    )


@pytest.fixture
def outcomes():
    """Outcomes in completion order, not bandwidth order."""
    return [
        outcome("1080p", 1920, 1080, "4000000", copy=True),
        outcome("480p", 854, 480, "800k"),
        outcome("720p", 1280, 720, "1500k"),
    ]


class TestResolveUrlTemplate:
    """Test URL template substitution."""

    def test_default_template(self):
        assert resolve_url_template("{rendition}/playlist.m3u8", "v1", "480p") == (
            "480p/playlist.m3u8"
        )

    def test_all_placeholders(self):
        url = resolve_url_template(
            "https://cdn.example.com/{basePath}/{videoId}/{rendition}/playlist.m3u8",
            "v1",
            "720p",
            base_path="/shows/",
        )
        assert url == "https://cdn.example.com/shows/v1/720p/playlist.m3u8"

    def test_empty_base_path_collapses_slashes(self):
        url = resolve_url_template(
            "https://cdn.example.com/{basePath}/{videoId}/{rendition}/playlist.m3u8",
            "v1",
            "720p",
        )
        assert url == "https://cdn.example.com/v1/720p/playlist.m3u8"


class TestManifestBuilder:
    """Test ManifestBuilder."""

    def test_build_sorted_by_bandwidth(self, outcomes):
        content = ManifestBuilder().build(outcomes, "v1")

        assert content == (
            "#EXTM3U\n"
            "#EXT-X-VERSION:3\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=854x480\n"
            "480p/playlist.m3u8\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=1500000,RESOLUTION=1280x720\n"
            "720p/playlist.m3u8\n"
            "#EXT-X-STREAM-INF:BANDWIDTH=4000000,RESOLUTION=1920x1080\n"
            "1080p/playlist.m3u8\n"
        )

    def test_bandwidth_non_decreasing(self, outcomes):
        content = ManifestBuilder().build(outcomes, "v1")
        bandwidths = [
            int(line.split("BANDWIDTH=")[1].split(",")[0])
            for line in content.splitlines()
            if line.startswith("#EXT-X-STREAM-INF")
        ]
        assert bandwidths == sorted(bandwidths)

    def test_unparsable_bitrate_uses_floor(self):
        content = ManifestBuilder().build([outcome("360p", 640, 360, "")], "v1")
        assert "BANDWIDTH=500000,RESOLUTION=640x360" in content

    def test_refuses_empty(self):
        with pytest.raises(ValueError):
            ManifestBuilder().build([], "v1")

    def test_refuses_failed(self, outcomes):
        outcomes.append(outcome("360p", 640, 360, "600k", succeeded=False))
        with pytest.raises(ValueError, match="360p"):
            ManifestBuilder().build(outcomes, "v1")

    def test_generate_writes_file(self, outcomes, tmp_path):
        path = ManifestBuilder().generate(outcomes, tmp_path, "v1")

        assert path == tmp_path / "master.m3u8"
        text = path.read_text(encoding="utf-8")
        assert text.startswith("#EXTM3U\n")
        assert text.endswith("\n")

    def test_custom_name_and_version(self, outcomes, tmp_path):
        builder = ManifestBuilder(manifest_name="index.m3u8", version=4)
        path = builder.generate(outcomes, tmp_path, "v1")

        assert path.name == "index.m3u8"
        assert "#EXT-X-VERSION:4" in path.read_text()
