"""
Per-rendition HLS encoding.

A rendition is either a stream copy (original audio and video re-segmented
without re-encoding) or a re-encode scaled to the target size. Both produce
``<rendition>/playlist.m3u8`` plus numbered ``.ts`` segments.
"""

from pathlib import Path
from typing import Callable, List, Optional

from ..config import EncodingConfig, HLSConfig
from ..executor.subprocess import AsyncFFmpegProcess
from ..models import RenditionSpec
from ..utils import EncodeError, ensure_directory, get_logger

logger = get_logger(__name__)


class RenditionEncoder:
    """Builds and runs the FFmpeg command for one rendition."""

    def __init__(
        self,
        input_file: Path,
        hls: Optional[HLSConfig] = None,
        encoding: Optional[EncodingConfig] = None,
    ):
        """
        Initialize rendition encoder.

        Args:
            input_file: Source video file
            hls: Segmenting options
            encoding: Re-encode options
        """
        self.input_file = Path(input_file)
        self.hls = hls or HLSConfig()
        self.encoding = encoding or EncodingConfig()

    def playlist_path(self, spec: RenditionSpec, output_dir: Path) -> Path:
        """Path of the rendition playlist under the run's output directory."""
        return Path(output_dir) / spec.name / self.hls.playlist_name

    async def encode(
        self,
        spec: RenditionSpec,
        output_dir: Path,
        progress_callback: Optional[Callable[[float, Optional[float]], None]] = None,
        on_start: Optional[Callable[[AsyncFFmpegProcess], None]] = None,
    ) -> Path:
        """
        Produce one rendition.

        Args:
            spec: Rendition to produce
            output_dir: Run output directory; a ``spec.name`` subdirectory is created
            progress_callback: Callback for progress updates (progress, speed)
            on_start: Receives the process before it starts, so callers can
                terminate it

        Returns:
            Path to the rendition playlist

        Raises:
            EncodeError: If FFmpeg fails or produces no playlist
        """
        rendition_dir = ensure_directory(Path(output_dir) / spec.name)
        playlist = rendition_dir / self.hls.playlist_name

        command = self.build_command(spec, rendition_dir)
        mode = "Segmenting original streams" if spec.is_source_copy else "Re-encoding"
        logger.info(f"{mode} for {spec.name} ({spec.size})")

        process = AsyncFFmpegProcess(
            command=command,
            timeout=self.encoding.timeout,
            progress_callback=progress_callback,
        )
        if on_start:
            on_start(process)

        try:
            await process.run()
        except EncodeError as e:
            e.rendition = spec.name
            raise

        if not playlist.exists():
            raise EncodeError(
                f"FFmpeg finished but playlist not found: {playlist}",
                command=command,
                rendition=spec.name,
            )

        logger.info(f"Finished {spec.name}")
        return playlist

    def build_command(self, spec: RenditionSpec, rendition_dir: Path) -> List[str]:
        """
        Build FFmpeg command for one rendition.

        Args:
            spec: Rendition to produce
            rendition_dir: Directory receiving playlist and segments

        Returns:
            FFmpeg command as list of arguments
        """
        command = [self.encoding.ffmpeg_path, "-y", "-i", str(self.input_file)]

        if spec.is_source_copy:
            command.extend(["-c:v", "copy", "-c:a", "copy"])
        else:
            command.extend(self._get_encode_options(spec))

        command.extend(self._get_hls_options(rendition_dir))
        command.append(str(rendition_dir / self.hls.playlist_name))
        return command

    def _get_encode_options(self, spec: RenditionSpec) -> List[str]:
        """Scale, H.264 and AAC options for a re-encoded rendition."""
        enc = self.encoding
        bandwidth = spec.bandwidth
        gop = str(enc.gop_size)

        return [
            "-vf",
            f"scale={spec.width}:{spec.height}",
            "-c:a",
            enc.audio_codec,
            "-ar",
            str(enc.audio_sample_rate),
            "-b:a",
            enc.audio_bitrate,
            "-c:v",
            enc.video_codec,
            "-profile:v",
            enc.profile,
            "-crf",
            str(enc.crf),
            "-sc_threshold",
            "0",
            "-g",
            gop,
            "-keyint_min",
            gop,
            "-b:v",
            spec.target_bitrate,
            "-maxrate",
            f"{int(bandwidth * enc.maxrate_factor / 1000)}k",
            "-bufsize",
            f"{int(bandwidth * enc.bufsize_factor / 1000)}k",
        ]

    def _get_hls_options(self, rendition_dir: Path) -> List[str]:
        return [
            "-hls_time",
            str(self.hls.segment_duration),
            "-hls_playlist_type",
            self.hls.playlist_type,
            "-hls_segment_filename",
            str(rendition_dir / self.hls.segment_pattern),
            "-f",
            "hls",
        ]
