"""Rendition planning."""

from hls_publisher.planner.strategy import (
    DEFAULT_RENDITION_TABLE,
    RenditionPlanner,
    plan_renditions,
)

__all__ = [
    "DEFAULT_RENDITION_TABLE",
    "RenditionPlanner",
    "plan_renditions",
]
