"""Data models for HLS publisher."""

from hls_publisher.models.media import SourceProbe
from hls_publisher.models.results import (
    FileInfo,
    FileListing,
    FolderListing,
    PublishResult,
    StorageSession,
    SyncResult,
    UploadOutcome,
)
from hls_publisher.models.tasks import (
    RenditionOutcome,
    RenditionSpec,
    TranscodeRun,
    UploadTask,
)

__all__ = [
    # Media models
    "SourceProbe",
    # Task models
    "RenditionOutcome",
    "RenditionSpec",
    "TranscodeRun",
    "UploadTask",
    # Result models
    "FileInfo",
    "FileListing",
    "FolderListing",
    "PublishResult",
    "StorageSession",
    "SyncResult",
    "UploadOutcome",
]
