"""
Concurrent rendition jobs for one transcode run.

Every planned rendition gets its own FFmpeg job. All jobs are launched
together and awaited jointly; a failing job never cancels its siblings.
The master manifest is written only when every job succeeded.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..config import EncodingConfig, HLSConfig
from ..executor.subprocess import AsyncFFmpegProcess
from ..models import RenditionOutcome, RenditionSpec, TranscodeRun
from ..playlist import DEFAULT_URL_TEMPLATE, ManifestBuilder
from ..transcoder import RenditionEncoder
from ..utils import (
    EncodeError,
    NoRenditionsError,
    PublishError,
    ensure_directory,
    get_logger,
    remove_path,
)

logger = get_logger(__name__)

# Number of trailing stderr lines kept in a failed outcome's error text
STDERR_TAIL_LINES = 20

RenditionProgressCallback = Callable[[str, float], None]


class TranscodeOrchestrator:
    """
    Runs one encode job per rendition and makes the publish decision.

    Parallelism is not capped here; FFmpeg's own resource usage is the
    only bound.
    """

    def __init__(
        self,
        hls: Optional[HLSConfig] = None,
        encoding: Optional[EncodingConfig] = None,
        manifest_builder: Optional[ManifestBuilder] = None,
        encoder_factory: Callable[..., RenditionEncoder] = RenditionEncoder,
    ):
        """
        Initialize orchestrator.

        Args:
            hls: Segmenting options
            encoding: Re-encode options
            manifest_builder: Builder for the master manifest
            encoder_factory: Creates the per-run RenditionEncoder
        """
        self.hls = hls or HLSConfig()
        self.encoding = encoding or EncodingConfig()
        self.manifest_builder = manifest_builder or ManifestBuilder(
            manifest_name=self.hls.manifest_name,
            version=self.hls.version,
        )
        self.encoder_factory = encoder_factory

    async def run(
        self,
        input_file: Path,
        output_dir: Path,
        specs: Sequence[RenditionSpec],
        video_id: str,
        url_template: str = DEFAULT_URL_TEMPLATE,
        base_path: Optional[str] = None,
        progress_callback: Optional[RenditionProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscodeRun:
        """
        Encode every rendition, then write the manifest if all succeeded.

        Args:
            input_file: Source video file
            output_dir: Directory owned by this run (keyed by video id)
            specs: Planned renditions
            video_id: Video identifier
            url_template: Per-rendition URL template for the manifest
            base_path: Optional base path for the URL template
            progress_callback: Called with (rendition name, progress 0.0-1.0)
            cancel_event: When set, jobs not yet started are skipped and
                running FFmpeg processes are terminated

        Returns:
            TranscodeRun with outcomes and manifest path

        Raises:
            NoRenditionsError: If ``specs`` is empty
            PublishError: If any rendition failed; no manifest exists afterwards
        """
        if not specs:
            raise NoRenditionsError("No renditions to encode")

        output_dir = ensure_directory(output_dir)
        manifest_path = output_dir / self.manifest_builder.manifest_name
        remove_path(manifest_path)

        encoder = self.encoder_factory(Path(input_file), self.hls, self.encoding)
        run = TranscodeRun(video_id=video_id, output_dir=output_dir)

        logger.info(f"[{video_id}] Starting {len(specs)} rendition jobs")
        start_time = time.time()

        active: dict[str, AsyncFFmpegProcess] = {}
        watcher: Optional[asyncio.Task] = None
        if cancel_event is not None:
            watcher = asyncio.create_task(self._terminate_on_cancel(cancel_event, active))

        try:
            results = await asyncio.gather(
                *(
                    self._run_job(
                        encoder, spec, output_dir, video_id, active, progress_callback, cancel_event
                    )
                    for spec in specs
                ),
                return_exceptions=True,
            )
        finally:
            if watcher is not None:
                watcher.cancel()

        for spec, result in zip(specs, results):
            if isinstance(result, RenditionOutcome):
                run.outcomes.append(result)
            else:
                run.outcomes.append(
                    self._failed_outcome(encoder, spec, output_dir, f"Job aborted: {result!r}")
                )

        failed = run.failed_outcomes
        if failed:
            remove_path(manifest_path)
            names = ", ".join(o.name for o in failed)
            logger.error(
                f"[{video_id}] {len(failed)}/{len(specs)} renditions failed ({names}); "
                f"manifest withheld"
            )
            raise PublishError(
                f"HLS conversion failed for {len(failed)} of {len(specs)} renditions: {names}",
                failed_renditions={o.name: o.error or "unknown error" for o in failed},
                run=run,
            )

        run.manifest_path = self.manifest_builder.generate(
            run.outcomes,
            output_dir,
            video_id,
            url_template=url_template,
            base_path=base_path,
        )

        logger.info(
            f"[{video_id}] All {len(specs)} renditions finished in {time.time() - start_time:.2f}s"
        )
        return run

    async def _run_job(
        self,
        encoder: RenditionEncoder,
        spec: RenditionSpec,
        output_dir: Path,
        video_id: str,
        active: dict[str, AsyncFFmpegProcess],
        progress_callback: Optional[RenditionProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> RenditionOutcome:
        """Run one rendition job and convert any failure into a failed outcome."""
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"[{video_id}] Skipping {spec.name}: run cancelled")
            return self._failed_outcome(encoder, spec, output_dir, "Cancelled before start")

        def on_progress(progress: float, speed: Optional[float] = None) -> None:
            logger.debug(f"[{video_id}] {spec.name}: {progress * 100:.1f}%")
            if progress_callback:
                progress_callback(spec.name, progress)

        def on_start(process: AsyncFFmpegProcess) -> None:
            active[spec.name] = process

        start_time = time.time()
        try:
            playlist = await encoder.encode(
                spec,
                output_dir,
                progress_callback=on_progress,
                on_start=on_start,
            )
        except Exception as e:
            error_msg = self._describe_error(e)
            if cancel_event is not None and cancel_event.is_set():
                error_msg = f"Cancelled: {error_msg}"
            logger.error(f"[{video_id}] Error processing {spec.name}: {error_msg}")
            outcome = self._failed_outcome(encoder, spec, output_dir, error_msg)
            outcome.duration = time.time() - start_time
            return outcome
        finally:
            active.pop(spec.name, None)

        return RenditionOutcome(
            spec=spec,
            playlist_path=playlist,
            bandwidth_bps=spec.bandwidth,
            succeeded=True,
            duration=time.time() - start_time,
        )

    async def _terminate_on_cancel(
        self, cancel_event: asyncio.Event, active: dict[str, AsyncFFmpegProcess]
    ) -> None:
        await cancel_event.wait()
        logger.warning("Cancellation requested, terminating running jobs")
        await asyncio.gather(
            *(process.terminate() for process in list(active.values())),
            return_exceptions=True,
        )

    @staticmethod
    def _failed_outcome(
        encoder: RenditionEncoder,
        spec: RenditionSpec,
        output_dir: Path,
        error: str,
    ) -> RenditionOutcome:
        return RenditionOutcome(
            spec=spec,
            playlist_path=encoder.playlist_path(spec, output_dir),
            bandwidth_bps=spec.bandwidth,
            succeeded=False,
            error=error,
        )

    @staticmethod
    def _describe_error(error: Exception) -> str:
        """Error text plus the tail of FFmpeg's stderr, when captured."""
        message = str(error) or type(error).__name__
        if isinstance(error, EncodeError) and error.stderr:
            tail = error.stderr.strip().splitlines()[-STDERR_TAIL_LINES:]
            message = f"{message}\n" + "\n".join(tail)
        return message
