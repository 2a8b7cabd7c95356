"""
HLS Publisher

Transcodes video files into an adaptive HLS rendition ladder and publishes
the result to Backblaze B2.
"""

__version__ = "0.1.0"

from hls_publisher.config import PublisherConfig, get_config
from hls_publisher.models import (
    PublishResult,
    RenditionSpec,
    SourceProbe,
    SyncResult,
    TranscodeRun,
)
from hls_publisher.pipeline import VideoPublisher
from hls_publisher.utils import (
    AuthError,
    ConfigurationError,
    EncodeError,
    ProbeError,
    PublishError,
    PublisherError,
    UploadError,
    get_logger,
    setup_logger,
)

__all__ = [
    "__version__",
    # Facade
    "VideoPublisher",
    "PublisherConfig",
    "get_config",
    # Models
    "PublishResult",
    "RenditionSpec",
    "SourceProbe",
    "SyncResult",
    "TranscodeRun",
    # Errors
    "AuthError",
    "ConfigurationError",
    "EncodeError",
    "ProbeError",
    "PublishError",
    "PublisherError",
    "UploadError",
    # Logging
    "get_logger",
    "setup_logger",
]
