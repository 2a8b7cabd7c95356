"""Object storage: B2 client, upload history and directory sync."""

from hls_publisher.storage.client import VIDEO_SUFFIXES, B2StorageClient
from hls_publisher.storage.history import UploadHistory
from hls_publisher.storage.sync import DirectorySync, UploadProgressCallback

__all__ = [
    "B2StorageClient",
    "DirectorySync",
    "UploadHistory",
    "UploadProgressCallback",
    "VIDEO_SUFFIXES",
]
