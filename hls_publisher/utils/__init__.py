"""Shared utilities: errors, logging and helpers."""

from hls_publisher.utils.errors import (
    AuthError,
    ConfigurationError,
    EncodeError,
    FilesystemError,
    NoRenditionsError,
    ProbeError,
    ProcessTimeoutError,
    PublishError,
    PublisherError,
    StorageError,
    UploadError,
)
from hls_publisher.utils.helpers import (
    DEFAULT_BANDWIDTH_FLOOR,
    build_remote_key,
    ensure_directory,
    format_duration,
    format_size,
    parse_bitrate,
    remove_path,
    resolve_bandwidth,
    resolve_source_bitrate,
    sanitize_filename,
)
from hls_publisher.utils.logger import get_logger, log_performance, setup_logger

__all__ = [
    # Errors
    "AuthError",
    "ConfigurationError",
    "EncodeError",
    "FilesystemError",
    "NoRenditionsError",
    "ProbeError",
    "ProcessTimeoutError",
    "PublishError",
    "PublisherError",
    "StorageError",
    "UploadError",
    # Helpers
    "DEFAULT_BANDWIDTH_FLOOR",
    "build_remote_key",
    "ensure_directory",
    "format_duration",
    "format_size",
    "parse_bitrate",
    "remove_path",
    "resolve_bandwidth",
    "resolve_source_bitrate",
    "sanitize_filename",
    # Logging
    "get_logger",
    "log_performance",
    "setup_logger",
]
