"""Media inspection."""

from hls_publisher.inspector.prober import DEFAULT_SOURCE_BITRATE, MediaProber

__all__ = ["DEFAULT_SOURCE_BITRATE", "MediaProber"]
