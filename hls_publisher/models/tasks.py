"""
Data models for transcoding and upload tasks.

This module contains dataclasses describing the work planned for one run:
renditions to encode, their outcomes, and files to upload.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..utils.helpers import resolve_bandwidth


@dataclass(frozen=True)
class RenditionSpec:
    """One resolution/bitrate variant to produce."""

    name: str  # e.g., "480p"
    width: int
    height: int
    target_bitrate: str  # e.g., "800k"
    is_source_copy: bool = False  # Copy streams instead of re-encoding

    @property
    def size(self) -> str:
        """Get target size as string (e.g., '854x480')."""
        return f"{self.width}x{self.height}"

    @property
    def bandwidth(self) -> int:
        """Advertised bandwidth in bits per second (never zero)."""
        return resolve_bandwidth(self.target_bitrate)


@dataclass
class RenditionOutcome:
    """Result of one encode job."""

    spec: RenditionSpec
    playlist_path: Path
    bandwidth_bps: int
    succeeded: bool
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def name(self) -> str:
        """Rendition name."""
        return self.spec.name


@dataclass
class TranscodeRun:
    """One transcode of one input file into an HLS tree."""

    video_id: str
    output_dir: Path
    outcomes: list[RenditionOutcome] = field(default_factory=list)
    manifest_path: Optional[Path] = None
    manifest_url: Optional[str] = None

    @property
    def failed_outcomes(self) -> list[RenditionOutcome]:
        """Outcomes of renditions that failed."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def succeeded(self) -> bool:
        """True when every planned rendition succeeded and the manifest exists."""
        return bool(self.outcomes) and not self.failed_outcomes and self.manifest_path is not None


@dataclass(frozen=True)
class UploadTask:
    """One local file and the remote key it is uploaded to."""

    local_path: Path
    remote_key: str
