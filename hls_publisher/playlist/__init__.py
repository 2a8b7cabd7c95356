"""HLS manifest generation."""

from .generator import DEFAULT_URL_TEMPLATE, ManifestBuilder, resolve_url_template

__all__ = [
    "DEFAULT_URL_TEMPLATE",
    "ManifestBuilder",
    "resolve_url_template",
]
