"""Process execution.

TranscodeOrchestrator is imported from ``hls_publisher.executor.parallel``.
"""

from hls_publisher.executor.subprocess import AsyncFFmpegProcess, ProgressCallback

__all__ = [
    "AsyncFFmpegProcess",
    "ProgressCallback",
]
