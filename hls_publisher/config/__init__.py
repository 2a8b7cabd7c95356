"""Configuration management for HLS publisher."""

from hls_publisher.config.manager import (
    ConfigManager,
    get_config,
    get_config_manager,
)
from hls_publisher.config.models import (
    EncodingConfig,
    HLSConfig,
    ManifestConfig,
    PathsConfig,
    ProbeConfig,
    PublisherConfig,
    RenditionTarget,
    StorageConfig,
)

__all__ = [
    # Manager
    "ConfigManager",
    "get_config",
    "get_config_manager",
    # Models
    "EncodingConfig",
    "HLSConfig",
    "ManifestConfig",
    "PathsConfig",
    "ProbeConfig",
    "PublisherConfig",
    "RenditionTarget",
    "StorageConfig",
]
