"""
Rendition planning.

This module decides which renditions to produce for a source: configured
targets that fit inside the source, plus one stream-copied rendition at the
source's own size.
"""

from typing import Optional, Sequence

from ..config import RenditionTarget
from ..models import RenditionSpec, SourceProbe
from ..utils import NoRenditionsError, get_logger

logger = get_logger(__name__)

DEFAULT_RENDITION_TABLE: tuple[RenditionTarget, ...] = (
    RenditionTarget(name="480p", width=854, height=480, bitrate="800k"),
    RenditionTarget(name="720p", width=1280, height=720, bitrate="1500k"),
)


class RenditionPlanner:
    """
    Plans the rendition ladder for one source.

    Rules:
    - a configured target is dropped when it is wider or taller than the
      source (no upscaling);
    - a kept target with the source's height becomes the stream-copy
      rendition and takes the source's exact size;
    - otherwise a "<height>p" stream-copy rendition at source size and
      source bitrate is appended;
    - the result is ordered by ascending height.
    """

    def __init__(self, table: Optional[Sequence[RenditionTarget]] = None):
        """
        Initialize planner.

        Args:
            table: Configured rendition targets (defaults to 480p and 720p)
        """
        self.table = list(DEFAULT_RENDITION_TABLE if table is None else table)

    def plan(
        self,
        probe: SourceProbe,
        table: Optional[Sequence[RenditionTarget]] = None,
    ) -> list[RenditionSpec]:
        """
        Plan renditions for a probed source.

        Args:
            probe: Source probe
            table: Rendition targets overriding the planner's table

        Returns:
            Rendition specs sorted by ascending height, exactly one of which
            is a stream copy at source size

        Raises:
            NoRenditionsError: If nothing can be produced for this source
        """
        targets = list(self.table if table is None else table)

        if probe.width <= 0 or probe.height <= 0:
            raise NoRenditionsError(
                f"Source {probe.resolution} has no usable dimensions, nothing to produce"
            )

        kept = [t for t in targets if t.width <= probe.width and t.height <= probe.height]
        dropped = [t.name for t in targets if t not in kept]
        if dropped:
            logger.info(f"Skipping renditions larger than source {probe.resolution}: {dropped}")

        specs: list[RenditionSpec] = []
        source_matched = False

        for target in kept:
            if not source_matched and target.height == probe.height:
                # Same height as the source: segment the original streams instead
                specs.append(
                    RenditionSpec(
                        name=target.name,
                        width=probe.width,
                        height=probe.height,
                        target_bitrate=target.bitrate,
                        is_source_copy=True,
                    )
                )
                source_matched = True
            else:
                specs.append(
                    RenditionSpec(
                        name=target.name,
                        width=target.width,
                        height=target.height,
                        target_bitrate=target.bitrate,
                    )
                )

        if not source_matched:
            specs.append(
                RenditionSpec(
                    name=f"{probe.height}p",
                    width=probe.width,
                    height=probe.height,
                    target_bitrate=str(probe.bitrate_bps),
                    is_source_copy=True,
                )
            )

        if not specs:
            raise NoRenditionsError(f"No renditions planned for source {probe.resolution}")

        specs.sort(key=lambda s: (s.height, s.width))

        logger.info(
            "Planned renditions: "
            + ", ".join(f"{s.name}{' (copy)' if s.is_source_copy else ''}" for s in specs)
        )
        return specs


def plan_renditions(
    probe: SourceProbe,
    table: Optional[Sequence[RenditionTarget]] = None,
) -> list[RenditionSpec]:
    """Convenience wrapper around RenditionPlanner.plan()."""
    return RenditionPlanner(table).plan(probe)
