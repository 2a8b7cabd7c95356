"""
Data models for source media information.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SourceProbe:
    """What ffprobe reported about an input file."""

    width: int
    height: int
    duration_seconds: float
    bitrate_bps: int
    video_codec: str
    has_audio: bool = False
    audio_codec: Optional[str] = None
    # Container metadata
    size_bytes: int = 0
    format_name: str = ""

    @property
    def resolution(self) -> str:
        """Get resolution as string (e.g., '1920x1080')."""
        return f"{self.width}x{self.height}"

    @property
    def aspect_ratio(self) -> float:
        """Calculate aspect ratio."""
        return self.width / self.height if self.height > 0 else 0.0
