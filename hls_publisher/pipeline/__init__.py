"""End-to-end transcode and publish flow."""

from hls_publisher.pipeline.publisher import VideoPublisher

__all__ = ["VideoPublisher"]
