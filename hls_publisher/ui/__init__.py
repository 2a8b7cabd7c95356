"""Console reporting."""

from hls_publisher.ui.reporter import SyncReporter

__all__ = ["SyncReporter"]
