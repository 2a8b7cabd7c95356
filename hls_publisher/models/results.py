"""
Data models for remote storage state and upload results.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from .tasks import UploadTask


@dataclass(frozen=True)
class StorageSession:
    """Authorized session against the object store."""

    api_url: str
    authorization_token: str
    download_url: str
    account_id: Optional[str] = None


@dataclass
class FileInfo:
    """A file (or pseudo-folder) entry returned by the object store."""

    file_name: str
    file_id: Optional[str] = None
    content_length: int = 0
    content_sha1: Optional[str] = None
    content_type: Optional[str] = None
    upload_timestamp: Optional[int] = None
    action: str = "upload"

    @property
    def is_folder(self) -> bool:
        """Check if this entry is a pseudo-folder."""
        return self.action == "folder" or self.file_name.endswith("/")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "FileInfo":
        """Build from a B2 file JSON object."""
        return cls(
            file_name=data.get("fileName", ""),
            file_id=data.get("fileId"),
            content_length=int(data.get("contentLength") or 0),
            content_sha1=data.get("contentSha1"),
            content_type=data.get("contentType"),
            upload_timestamp=data.get("uploadTimestamp"),
            action=data.get("action") or "upload",
        )


@dataclass
class FileListing:
    """One page of a file listing."""

    files: list[FileInfo] = field(default_factory=list)
    next_file_name: Optional[str] = None


@dataclass
class FolderListing:
    """Contents of an emulated folder."""

    path: str
    folders: list[str] = field(default_factory=list)
    files: list[FileInfo] = field(default_factory=list)


@dataclass
class UploadOutcome:
    """Result of uploading one file."""

    task: UploadTask
    succeeded: bool
    remote_file_id: Optional[str] = None
    content_hash: Optional[str] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def remote_key(self) -> str:
        """Remote key the file was uploaded to."""
        return self.task.remote_key


@dataclass
class SyncResult:
    """Aggregated result of a directory sync."""

    success: bool
    successful_uploads: list[UploadOutcome] = field(default_factory=list)
    failed_uploads: list[UploadOutcome] = field(default_factory=list)
    history: list[UploadOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of files attempted."""
        return len(self.successful_uploads) + len(self.failed_uploads)

    @property
    def is_partial(self) -> bool:
        """Some files succeeded and some did not."""
        return bool(self.successful_uploads) and bool(self.failed_uploads)


@dataclass
class PublishResult:
    """Result of transcoding and publishing one video."""

    video_id: str
    remote_prefix: str
    manifest_url: str
    sync: SyncResult

    @property
    def success(self) -> bool:
        """True when every file reached the store."""
        return self.sync.success
