"""
Helper functions for HLS publisher.

This module contains utility functions used throughout the application.
"""

import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Union

from .errors import FilesystemError
from .logger import get_logger

logger = get_logger(__name__)

# Bandwidth advertised for a rendition whose bitrate string cannot be parsed
DEFAULT_BANDWIDTH_FLOOR = 500_000


def format_size(bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 GB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if bytes < 1024.0:
            return f"{bytes:.1f} {unit}"
        bytes /= 1024.0  # type: ignore
    return f"{bytes:.1f} PB"


def format_duration(seconds: float) -> str:
    """
    Format duration as HH:MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "01:30:45")
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def sanitize_filename(filename: str) -> str:
    """
    Replace every character outside [A-Za-z0-9.] with an underscore.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    return re.sub(r"[^A-Za-z0-9.]", "_", filename)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, create it (with parents) if it doesn't.

    Safe to call repeatedly and from concurrent tasks: a directory created by
    someone else between the stat check and mkdir is not an error.

    Args:
        path: Directory path

    Returns:
        The directory path

    Raises:
        FilesystemError: If the path cannot be inspected or created
    """
    path = Path(path)

    try:
        path.stat()
        return path
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"Cannot access directory {path}: {e}", path=str(path)) from e

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create directory {path}: {e}", path=str(path)) from e

    logger.debug(f"Directory created: {path}")
    return path


def remove_path(path: Union[str, Path]) -> bool:
    """
    Remove a file or a directory tree.

    Cleanup never fails the caller: a missing path is fine and any other
    error is logged as a warning.

    Args:
        path: File or directory to remove

    Returns:
        True if something was removed
    """
    path = Path(path)

    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Cleanup of {path} failed: {e}")
        return False

    logger.debug(f"Removed {path}")
    return True


def parse_bitrate(bitrate_str: str) -> int:
    """
    Parse bitrate string to bits per second.

    Supports formats like: "128k", "5M", "1000"

    Args:
        bitrate_str: Bitrate string

    Returns:
        Bitrate in bits per second, 0 if the string is not a bitrate
    """
    bitrate_str = str(bitrate_str).strip().upper()

    match = re.match(r"^(\d+\.?\d*)\s*([KMG])?", bitrate_str)
    if not match:
        return 0

    value = float(match.group(1))
    unit = match.group(2)

    if unit == "K":
        return int(value * 1000)
    elif unit == "M":
        return int(value * 1000000)
    elif unit == "G":
        return int(value * 1000000000)
    else:
        return int(value)


def resolve_bandwidth(bitrate_str: str, floor: int = DEFAULT_BANDWIDTH_FLOOR) -> int:
    """
    Bandwidth in bits per second advertised for a rendition.

    The target bitrate is parsed with parse_bitrate(); anything unparsable or
    non-positive falls back to ``floor``. The result is never zero.

    Args:
        bitrate_str: Target bitrate (e.g. "800k")
        floor: Fallback bandwidth in bits per second

    Returns:
        Bandwidth in bits per second
    """
    bandwidth = parse_bitrate(bitrate_str)
    return bandwidth if bandwidth > 0 else floor


def _to_positive_int(value: Any) -> Optional[int]:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def resolve_source_bitrate(
    stream_bitrate: Any,
    container_bitrate: Any,
    default: int,
) -> int:
    """
    Source bitrate in bits per second.

    Fallback chain: the video stream's own bit_rate, then the container's
    overall bit_rate, then ``default``. Values that are missing, unparsable
    or non-positive move on to the next step.

    Args:
        stream_bitrate: Raw stream-level bit_rate from ffprobe
        container_bitrate: Raw format-level bit_rate from ffprobe
        default: Final fallback in bits per second

    Returns:
        Bitrate in bits per second
    """
    for candidate in (stream_bitrate, container_bitrate):
        bitrate = _to_positive_int(candidate)
        if bitrate is not None:
            return bitrate
    return default


def build_remote_key(prefix: str, relative_path: Union[str, Path]) -> str:
    """
    Join a local relative path onto a remote key prefix.

    Remote keys always use forward slashes, whatever separator the local
    path was written with.

    Args:
        prefix: Remote namespace (e.g. "videos/v123")
        relative_path: Path relative to the synced root

    Returns:
        Remote key (e.g. "videos/v123/480p/segment001.ts")
    """
    relative = str(relative_path).replace("\\", "/")
    parts = [p for p in prefix.replace("\\", "/").split("/") if p]
    parts.extend(p for p in PurePosixPath(relative).parts if p not in ("", "/", "."))
    return "/".join(parts)
