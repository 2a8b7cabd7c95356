"""
Media probing using FFprobe.

This module inspects an input file and reduces ffprobe's stream and
container report to the SourceProbe the planner needs.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

from ..models import SourceProbe
from ..utils import ProbeError, get_logger, resolve_source_bitrate

logger = get_logger(__name__)

# Used when neither the stream nor the container reports a bitrate
DEFAULT_SOURCE_BITRATE = 5_000_000


class MediaProber:
    """
    Inspects media files using FFprobe.

    Only the first video stream and the first audio stream are considered.
    """

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        default_bitrate: int = DEFAULT_SOURCE_BITRATE,
    ):
        """
        Initialize media prober.

        Args:
            ffprobe_path: Path to ffprobe executable
            default_bitrate: Bitrate (bps) assumed when the source reports none
        """
        self._ffprobe_path = ffprobe_path
        self._default_bitrate = default_bitrate

    async def probe(self, input_file: Path) -> SourceProbe:
        """
        Probe a media file.

        Args:
            input_file: Path to media file

        Returns:
            SourceProbe for the file

        Raises:
            ProbeError: If the file is missing, ffprobe fails, or there is no
                usable video stream
        """
        input_file = Path(input_file)
        if not input_file.is_file():
            raise ProbeError(f"File not found: {input_file}")

        logger.info(f"Probing media file: {input_file.name}")

        probe_data = await self._run_ffprobe(input_file)
        probe = self.parse(probe_data)

        logger.info(
            f"Probed {input_file.name}: {probe.resolution}, "
            f"{probe.bitrate_bps // 1000} kbps, codec {probe.video_codec}"
        )
        return probe

    def parse(self, probe_data: dict[str, Any]) -> SourceProbe:
        """
        Build a SourceProbe from ffprobe JSON output.

        Args:
            probe_data: Parsed ``-show_format -show_streams`` output

        Returns:
            SourceProbe

        Raises:
            ProbeError: If there is no video stream or its size is unknown
        """
        streams = probe_data.get("streams") or []
        format_data = probe_data.get("format") or {}

        video = self._first_stream(streams, "video")
        if video is None:
            raise ProbeError("No video stream found")

        width = self._int_or_zero(video.get("width"))
        height = self._int_or_zero(video.get("height"))
        if width <= 0 or height <= 0:
            raise ProbeError("Could not determine video dimensions")

        audio = self._first_stream(streams, "audio")

        return SourceProbe(
            width=width,
            height=height,
            duration_seconds=self._float_or_zero(
                format_data.get("duration") or video.get("duration")
            ),
            bitrate_bps=resolve_source_bitrate(
                video.get("bit_rate"),
                format_data.get("bit_rate"),
                self._default_bitrate,
            ),
            video_codec=video.get("codec_name", "unknown"),
            has_audio=audio is not None,
            audio_codec=audio.get("codec_name") if audio else None,
            size_bytes=self._int_or_zero(format_data.get("size")),
            format_name=format_data.get("format_name", ""),
        )

    async def _run_ffprobe(self, input_file: Path) -> dict[str, Any]:
        """
        Run ffprobe and return parsed JSON output.

        Raises:
            ProbeError: If ffprobe fails or its output is not JSON
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffprobe_path,
                "-v",
                "quiet",
                "-print_format",
                "json",
                "-show_format",
                "-show_streams",
                str(input_file),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise ProbeError(f"FFprobe execution failed: {e}") from e

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
            raise ProbeError(f"FFprobe failed with code {process.returncode}: {error_msg}")

        try:
            return json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as e:
            raise ProbeError(f"Failed to parse FFprobe output: {e}") from e

    @staticmethod
    def _first_stream(streams: list[dict[str, Any]], codec_type: str) -> Optional[dict[str, Any]]:
        return next(
            (s for s in streams if str(s.get("codec_type", "")).lower() == codec_type),
            None,
        )

    @staticmethod
    def _int_or_zero(value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _float_or_zero(value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0
