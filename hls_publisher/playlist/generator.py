"""
HLS master manifest generation.

This module turns successful rendition outcomes into the master playlist
that players use for adaptive selection.
"""

import re
from pathlib import Path
from typing import Optional, Sequence

from ..models import RenditionOutcome
from ..utils import get_logger

logger = get_logger(__name__)

DEFAULT_URL_TEMPLATE = "{rendition}/playlist.m3u8"


def resolve_url_template(
    template: str,
    video_id: str,
    rendition: str,
    base_path: Optional[str] = None,
) -> str:
    """
    Fill a rendition URL template.

    Supported placeholders are ``{videoId}``, ``{basePath}`` and
    ``{rendition}``. Slashes doubled by an empty base path are collapsed,
    except after a URL scheme.

    Args:
        template: URL template
        video_id: Video identifier
        rendition: Rendition name
        base_path: Optional base path (leading/trailing slashes ignored)

    Returns:
        Resolved URL
    """
    url = (
        template.replace("{videoId}", video_id)
        .replace("{basePath}", (base_path or "").strip("/"))
        .replace("{rendition}", rendition)
    )
    return re.sub(r"(?<!:)/{2,}", "/", url)


class ManifestBuilder:
    """
    Builds the master manifest for one run.

    Streams are listed by ascending bandwidth regardless of the order the
    renditions finished in.
    """

    def __init__(self, manifest_name: str = "master.m3u8", version: int = 3):
        """
        Initialize manifest builder.

        Args:
            manifest_name: File name of the manifest in the output directory
            version: EXT-X-VERSION written in the header
        """
        self.manifest_name = manifest_name
        self.version = version

    def build(
        self,
        outcomes: Sequence[RenditionOutcome],
        video_id: str,
        url_template: str = DEFAULT_URL_TEMPLATE,
        base_path: Optional[str] = None,
    ) -> str:
        """
        Build manifest text.

        Args:
            outcomes: Outcomes of every planned rendition
            video_id: Video identifier
            url_template: Per-rendition playlist URL template
            base_path: Optional base path substituted into the template

        Returns:
            Manifest text ending with a newline

        Raises:
            ValueError: If there are no outcomes or any of them failed
        """
        if not outcomes:
            raise ValueError("At least one rendition is required")

        failed = [o.name for o in outcomes if not o.succeeded]
        if failed:
            raise ValueError(f"Cannot build manifest with failed renditions: {failed}")

        lines = ["#EXTM3U", f"#EXT-X-VERSION:{self.version}"]

        for outcome in sorted(outcomes, key=lambda o: o.bandwidth_bps):
            lines.append(
                f"#EXT-X-STREAM-INF:BANDWIDTH={outcome.bandwidth_bps},"
                f"RESOLUTION={outcome.spec.size}"
            )
            lines.append(resolve_url_template(url_template, video_id, outcome.name, base_path))

        return "\n".join(lines) + "\n"

    def write(self, output_dir: Path, content: str) -> Path:
        """
        Write manifest text into the output directory.

        Args:
            output_dir: Run output directory
            content: Manifest text

        Returns:
            Path to the manifest file
        """
        manifest_path = Path(output_dir) / self.manifest_name
        manifest_path.write_text(content, encoding="utf-8")
        logger.info(f"Master manifest written: {manifest_path}")
        return manifest_path

    def generate(
        self,
        outcomes: Sequence[RenditionOutcome],
        output_dir: Path,
        video_id: str,
        url_template: str = DEFAULT_URL_TEMPLATE,
        base_path: Optional[str] = None,
    ) -> Path:
        """Build and write the manifest in one step."""
        content = self.build(outcomes, video_id, url_template, base_path)
        return self.write(output_dir, content)
