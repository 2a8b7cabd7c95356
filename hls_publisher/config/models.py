"""
Configuration models using Pydantic.

This module defines the configuration structure for the HLS publisher.
Every model forbids unknown keys so a misspelled option fails loudly
instead of being silently ignored.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.helpers import parse_bitrate


class StrictModel(BaseModel):
    """Base model rejecting unknown configuration keys."""

    model_config = ConfigDict(extra="forbid")


class RenditionTarget(StrictModel):
    """One entry of the configured rendition table."""

    name: str = Field(description="Rendition label (e.g., 480p)")
    width: int = Field(gt=0, description="Target width in pixels")
    height: int = Field(gt=0, description="Target height in pixels")
    bitrate: str = Field(description="Target video bitrate (e.g., 800k)")

    @field_validator("bitrate")
    @classmethod
    def validate_bitrate(cls, v: str) -> str:
        """Validate bitrate string."""
        if parse_bitrate(v) <= 0:
            raise ValueError("bitrate must look like 800k, 5M or 1500000")
        return v

    @property
    def size(self) -> str:
        """Get target size as string (e.g., '854x480')."""
        return f"{self.width}x{self.height}"


class HLSConfig(StrictModel):
    """HLS segmenting configuration."""

    segment_duration: int = Field(default=10, ge=1, le=60, description="Segment length in seconds")
    playlist_type: Literal["vod", "event"] = Field(default="vod", description="Playlist type")
    playlist_name: str = Field(default="playlist.m3u8", description="Per-rendition playlist name")
    segment_pattern: str = Field(
        default="segment%03d.ts", description="Segment filename pattern (ffmpeg syntax)"
    )
    manifest_name: str = Field(default="master.m3u8", description="Master manifest file name")
    version: int = Field(default=3, ge=1, le=10, description="EXT-X-VERSION of the manifest")


class EncodingConfig(StrictModel):
    """Re-encode settings for renditions that are not stream copies."""

    ffmpeg_path: str = Field(default="ffmpeg", description="Path to ffmpeg executable")
    video_codec: str = Field(default="h264", description="Video encoder")
    profile: str = Field(default="main", description="H.264 profile")
    crf: int = Field(default=20, ge=0, le=51, description="Constant Rate Factor")
    gop_size: int = Field(default=48, ge=1, description="Fixed GOP / keyint_min in frames")
    audio_codec: str = Field(default="aac", description="Audio encoder")
    audio_bitrate: str = Field(default="128k", description="Audio bitrate")
    audio_sample_rate: int = Field(default=48000, description="Audio sample rate in Hz")
    maxrate_factor: float = Field(default=1.2, gt=0, description="maxrate as multiple of bandwidth")
    bufsize_factor: float = Field(default=1.5, gt=0, description="bufsize as multiple of bandwidth")
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-rendition timeout in seconds (None = no limit)"
    )

    @field_validator("audio_sample_rate")
    @classmethod
    def validate_sample_rate(cls, v: int) -> int:
        """Validate sample rate."""
        if v not in [8000, 11025, 16000, 22050, 44100, 48000, 88200, 96000]:
            raise ValueError("audio_sample_rate must be a standard audio sample rate")
        return v


class ProbeConfig(StrictModel):
    """Media prober configuration."""

    ffprobe_path: str = Field(default="ffprobe", description="Path to ffprobe executable")
    default_bitrate: int = Field(
        default=5_000_000, gt=0, description="Bitrate (bps) used when the source reports none"
    )


class StorageConfig(StrictModel):
    """Remote object store (B2 native API) configuration."""

    key_id: str = Field(default="", description="Application key id")
    application_key: str = Field(default="", description="Application key")
    bucket_id: str = Field(default="", description="Bucket id used for uploads and listings")
    bucket_name: str = Field(default="", description="Bucket name used for download URLs")
    default_bucket_name: str = Field(
        default="cloud-video-store", description="Bucket used for signed URLs when none is given"
    )
    auth_url: str = Field(
        default="https://api.backblazeb2.com/b2api/v2/b2_authorize_account",
        description="Account authorization endpoint",
    )
    timeout: float = Field(default=60.0, gt=0, description="HTTP timeout in seconds")
    max_concurrent_uploads: Optional[int] = Field(
        default=None, ge=1, description="Upload concurrency during sync (None = unbounded)"
    )

    @property
    def has_credentials(self) -> bool:
        """Check whether an account key pair is configured."""
        return bool(self.key_id and self.application_key)


class PathsConfig(StrictModel):
    """Local working directories."""

    output_root: Path = Field(
        default=Path("processed_videos"), description="Root of per-video output trees"
    )
    temp_dir: Path = Field(default=Path("temp_uploads"), description="Temporary upload directory")


class ManifestConfig(StrictModel):
    """Master manifest URL layout."""

    url_template: str = Field(
        default="{rendition}/playlist.m3u8",
        description="Per-rendition URL; supports {videoId}, {basePath} and {rendition}",
    )


class PublisherConfig(StrictModel):
    """Main publisher configuration."""

    renditions: list[RenditionTarget] = Field(default_factory=list)
    hls: HLSConfig = Field(default_factory=HLSConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)

    @model_validator(mode="after")
    def validate_unique_renditions(self) -> "PublisherConfig":
        """Rendition names identify output directories, so they must be unique."""
        names = [r.name for r in self.renditions]
        if len(names) != len(set(names)):
            raise ValueError("rendition names must be unique")
        return self

    @classmethod
    def create_default(cls) -> "PublisherConfig":
        """Create default configuration with the standard rendition table."""
        return cls(
            renditions=[
                RenditionTarget(name="480p", width=854, height=480, bitrate="800k"),
                RenditionTarget(name="720p", width=1280, height=720, bitrate="1500k"),
            ]
        )
