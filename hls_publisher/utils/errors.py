"""
Custom exceptions for HLS publisher.

This module defines the exception hierarchy used throughout the application.
Every error raised by the library derives from PublisherError so callers can
catch the whole family at once.
"""

from typing import Any, Optional


class PublisherError(Exception):
    """Base exception for all publisher errors."""

    pass


class ConfigurationError(PublisherError):
    """Configuration is invalid or missing."""

    pass


class FilesystemError(PublisherError):
    """A local filesystem operation failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        """
        Initialize filesystem error.

        Args:
            message: Error message
            path: Path that could not be accessed or created
        """
        super().__init__(message)
        self.path = path


class ProbeError(PublisherError):
    """Source file has no usable video stream or ffprobe failed."""

    pass


class NoRenditionsError(PublisherError):
    """Planning produced an empty rendition set."""

    pass


class EncodeError(PublisherError):
    """FFmpeg failed while producing one rendition."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str | None = None,
        rendition: str | None = None,
    ):
        """
        Initialize encode error with command details.

        Args:
            message: Error message
            command: FFmpeg command that failed
            stderr: Standard error output from FFmpeg
            rendition: Name of the rendition being produced
        """
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.rendition = rendition


class ProcessTimeoutError(EncodeError):
    """Process exceeded timeout threshold."""

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class PublishError(PublisherError):
    """One or more renditions failed, so the manifest was withheld."""

    def __init__(
        self,
        message: str,
        failed_renditions: Optional[dict[str, str]] = None,
        run: Optional[Any] = None,
    ):
        """
        Initialize publish error.

        Args:
            message: Error message
            failed_renditions: Mapping of rendition name to its error text
            run: The TranscodeRun whose renditions failed
        """
        super().__init__(message)
        self.failed_renditions = failed_renditions or {}
        self.run = run

    @property
    def failed_count(self) -> int:
        """Number of renditions that failed."""
        return len(self.failed_renditions)


class StorageError(PublisherError):
    """Remote object store request failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        remote_key: Optional[str] = None,
    ):
        """
        Initialize storage error.

        Args:
            message: Error message
            status_code: HTTP status returned by the store, if any
            code: Store-specific error code (e.g. "expired_auth_token")
            remote_key: Remote file name involved, if any
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.remote_key = remote_key


class AuthError(StorageError):
    """Storage session is missing, expired or was rejected."""

    pass


class UploadError(StorageError):
    """Network or remote failure while transferring one file."""

    pass
