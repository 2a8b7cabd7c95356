"""
Tests for rendition encoder.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from hls_publisher.config import EncodingConfig, HLSConfig
from hls_publisher.models import RenditionSpec
from hls_publisher.transcoder import RenditionEncoder
from hls_publisher.utils import EncodeError


@pytest.fixture
def encoder(tmp_path):
    return RenditionEncoder(tmp_path / "input.mp4")


@pytest.fixture
def spec_480p():
    return RenditionSpec(name="480p", width=854, height=480, target_bitrate="800k")


@pytest.fixture
def spec_copy():
    return RenditionSpec(
        name="1080p", width=1920, height=1080, target_bitrate="4000000", is_source_copy=True
    )


def option(command: list[str], flag: str) -> str:
    return command[command.index(flag) + 1]


class TestBuildCommand:
    """Test RenditionEncoder.build_command."""

    def test_reencode_options(self, encoder, spec_480p, tmp_path):
        rendition_dir = tmp_path / "out" / "480p"
        command = encoder.build_command(spec_480p, rendition_dir)

        assert command[:4] == ["ffmpeg", "-y", "-i", str(tmp_path / "input.mp4")]
        assert option(command, "-vf") == "scale=854:480"
        assert option(command, "-c:v") == "h264"
        assert option(command, "-profile:v") == "main"
        assert option(command, "-crf") == "20"
        assert option(command, "-sc_threshold") == "0"
        assert option(command, "-g") == "48"
        assert option(command, "-keyint_min") == "48"
        assert option(command, "-c:a") == "aac"
        assert option(command, "-ar") == "48000"
        assert option(command, "-b:a") == "128k"
        assert option(command, "-b:v") == "800k"
        assert option(command, "-maxrate") == "960k"
        assert option(command, "-bufsize") == "1200k"

    def test_hls_options(self, encoder, spec_480p, tmp_path):
        rendition_dir = tmp_path / "out" / "480p"
        command = encoder.build_command(spec_480p, rendition_dir)

        assert option(command, "-hls_time") == "10"
        assert option(command, "-hls_playlist_type") == "vod"
        assert option(command, "-hls_segment_filename") == str(rendition_dir / "segment%03d.ts")
        assert option(command, "-f") == "hls"
        assert command[-1] == str(rendition_dir / "playlist.m3u8")

    def test_copy_options(self, encoder, spec_copy, tmp_path):
        command = encoder.build_command(spec_copy, tmp_path / "1080p")

        assert option(command, "-c:v") == "copy"
        assert option(command, "-c:a") == "copy"
        assert "-vf" not in command
        assert "-b:v" not in command
        assert option(command, "-hls_time") == "10"

    def test_custom_config(self, tmp_path, spec_480p):
        encoder = RenditionEncoder(
            tmp_path / "input.mp4",
            hls=HLSConfig(segment_duration=6, playlist_type="event"),
            encoding=EncodingConfig(ffmpeg_path="/opt/ffmpeg", crf=23),
        )
        command = encoder.build_command(spec_480p, tmp_path / "480p")

        assert command[0] == "/opt/ffmpeg"
        assert option(command, "-crf") == "23"
        assert option(command, "-hls_time") == "6"
        assert option(command, "-hls_playlist_type") == "event"


class TestEncode:
    """Test RenditionEncoder.encode with a mocked FFmpeg process."""

    @pytest.mark.asyncio
    async def test_encode_success(self, encoder, spec_480p, tmp_path):
        output_dir = tmp_path / "v1"
        started = []

        async def fake_run(self):
            playlist = Path(self.command[-1])
            playlist.write_text("#EXTM3U\n")
            return "", ""

        with patch("hls_publisher.transcoder.encoder.AsyncFFmpegProcess.run", fake_run):
            playlist = await encoder.encode(spec_480p, output_dir, on_start=started.append)

        assert playlist == output_dir / "480p" / "playlist.m3u8"
        assert playlist.exists()
        assert len(started) == 1

    @pytest.mark.asyncio
    async def test_encode_failure_tags_rendition(self, encoder, spec_480p, tmp_path):
        async def fake_run(self):
            raise EncodeError("FFmpeg failed with code 1: boom", command=self.command)

        with patch("hls_publisher.transcoder.encoder.AsyncFFmpegProcess.run", fake_run):
            with pytest.raises(EncodeError) as exc_info:
                await encoder.encode(spec_480p, tmp_path / "v1")

        assert exc_info.value.rendition == "480p"

    @pytest.mark.asyncio
    async def test_missing_playlist(self, encoder, spec_480p, tmp_path):
        async def fake_run(self):
            return "", ""

        with patch("hls_publisher.transcoder.encoder.AsyncFFmpegProcess.run", fake_run):
            with pytest.raises(EncodeError, match="playlist not found"):
                await encoder.encode(spec_480p, tmp_path / "v1")
