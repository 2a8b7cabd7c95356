"""
End-to-end publishing flow.

VideoPublisher ties the stages together: probe the source, plan the
renditions, transcode them into a local tree keyed by video id, mirror the
tree into the object store and clean up the local artifacts.
"""

import asyncio
import random
import time
from pathlib import Path
from typing import Optional

from ..config import PublisherConfig
from ..executor.parallel import RenditionProgressCallback, TranscodeOrchestrator
from ..inspector import MediaProber
from ..models import (
    PublishResult,
    RenditionSpec,
    SyncResult,
    TranscodeRun,
    UploadOutcome,
    UploadTask,
)
from ..planner import RenditionPlanner
from ..storage import B2StorageClient, DirectorySync, UploadHistory, UploadProgressCallback
from ..utils import (
    ConfigurationError,
    StorageError,
    build_remote_key,
    get_logger,
    log_performance,
    remove_path,
    sanitize_filename,
)

logger = get_logger(__name__)


class VideoPublisher:
    """
    Facade over the transcode and publish stages.

    Owns the storage client it creates; use as an async context manager
    (or call ``close``) to release it.
    """

    def __init__(
        self,
        config: Optional[PublisherConfig] = None,
        storage: Optional[B2StorageClient] = None,
        history: Optional[UploadHistory] = None,
        prober: Optional[MediaProber] = None,
        planner: Optional[RenditionPlanner] = None,
        orchestrator: Optional[TranscodeOrchestrator] = None,
    ):
        """
        Initialize publisher.

        Args:
            config: Publisher configuration (defaults if None)
            storage: Storage client (built from ``config.storage`` if None)
            history: Upload ledger shared by every upload of this publisher
            prober: Media prober
            planner: Rendition planner
            orchestrator: Transcode orchestrator
        """
        self.config = config or PublisherConfig.create_default()
        self._owns_storage = storage is None
        self.storage = storage or B2StorageClient.from_config(self.config.storage)
        self.history = history or UploadHistory()
        self.prober = prober or MediaProber(
            ffprobe_path=self.config.probe.ffprobe_path,
            default_bitrate=self.config.probe.default_bitrate,
        )
        self.planner = planner or RenditionPlanner(self.config.renditions or None)
        self.orchestrator = orchestrator or TranscodeOrchestrator(
            hls=self.config.hls,
            encoding=self.config.encoding,
        )
        self.sync = DirectorySync(
            self.storage,
            self.history,
            max_concurrent_uploads=self.config.storage.max_concurrent_uploads,
        )

    async def __aenter__(self) -> "VideoPublisher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_storage:
            await self.storage.close()

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    @staticmethod
    def make_video_id(filename: str) -> str:
        """
        Unique video id derived from an upload's file name.

        Format: ``{millis}-{random}-{sanitized name without extension}``.
        """
        stem = Path(filename).stem or "video"
        millis = int(time.time() * 1000)
        return f"{millis}-{random.randint(0, 999_999_999)}-{sanitize_filename(stem)}"

    @staticmethod
    def remote_prefix(video_id: str, base_path: Optional[str] = None) -> str:
        """Remote prefix for a video: ``{base_path}/{video_id}`` or the id alone."""
        return build_remote_key(base_path or "", video_id)

    def output_dir_for(self, video_id: str) -> Path:
        """Local output directory for a video."""
        return Path(self.config.paths.output_root) / video_id

    def manifest_url(self, remote_prefix: str, bucket_name: Optional[str] = None) -> str:
        """
        Download URL of a published master manifest.

        Falls back to the bare remote key while no storage session exists.
        """
        key = build_remote_key(remote_prefix, self.config.hls.manifest_name)
        if self.storage.session is None:
            return key
        return self.storage.public_url(key, bucket_name or self.bucket_name)

    @property
    def bucket_name(self) -> str:
        """Bucket name used in download URLs."""
        storage = self.config.storage
        return storage.bucket_name or storage.default_bucket_name

    def require_bucket_id(self) -> str:
        """
        Configured bucket id.

        Raises:
            ConfigurationError: If no bucket id is configured
        """
        if not self.config.storage.bucket_id:
            raise ConfigurationError("storage.bucket_id is not configured (set B2_BUCKET_ID)")
        return self.config.storage.bucket_id

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def probe_and_plan(self, input_path: Path) -> list[RenditionSpec]:
        """
        Probe a source and plan its renditions.

        Raises:
            ProbeError: If the source cannot be probed
            NoRenditionsError: If nothing can be produced
        """
        probe = await self.prober.probe(Path(input_path))
        return self.planner.plan(probe)

    @log_performance(logger)
    async def transcode(
        self,
        input_path: Path,
        video_id: str,
        base_path: Optional[str] = None,
        progress_callback: Optional[RenditionProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscodeRun:
        """
        Probe, plan and transcode one source into ``output_root/{video_id}``.

        Args:
            input_path: Source video file
            video_id: Video identifier
            base_path: Optional base path used in rendition URLs and the
                remote prefix
            progress_callback: Called with (rendition name, progress)
            cancel_event: Set to abort the run

        Returns:
            TranscodeRun with the manifest path and URL

        Raises:
            PublishError: If any rendition failed
        """
        specs = await self.probe_and_plan(input_path)

        run = await self.orchestrator.run(
            Path(input_path),
            self.output_dir_for(video_id),
            specs,
            video_id,
            url_template=self.config.manifest.url_template,
            base_path=base_path,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )
        run.manifest_url = self.manifest_url(self.remote_prefix(video_id, base_path))
        return run

    async def publish_to_storage(
        self,
        bucket_id: str,
        output_dir: Path,
        remote_prefix: str,
        progress_callback: Optional[UploadProgressCallback] = None,
    ) -> SyncResult:
        """Mirror a transcoded tree under ``remote_prefix``."""
        return await self.sync.sync_directory(
            bucket_id, Path(output_dir), remote_prefix, progress_callback=progress_callback
        )

    async def get_authorized_download_url(
        self, remote_key: str, bucket_name: Optional[str] = None
    ) -> str:
        """Signed download URL for a stored file."""
        return await self.storage.get_download_url_with_token(
            remote_key, bucket_name or self.bucket_name
        )

    # ------------------------------------------------------------------
    # Full flows
    # ------------------------------------------------------------------

    async def process_upload(
        self,
        input_path: Path,
        video_id: Optional[str] = None,
        base_path: Optional[str] = None,
        keep_input: bool = False,
        progress_callback: Optional[RenditionProgressCallback] = None,
        upload_callback: Optional[UploadProgressCallback] = None,
    ) -> PublishResult:
        """
        Transcode a source, publish it and clean up local artifacts.

        The source file (unless ``keep_input``) and the output tree are
        removed whatever the outcome; cleanup failures are only logged.

        Args:
            input_path: Source video file
            video_id: Video identifier (generated from the file name if None)
            base_path: Optional remote base path
            keep_input: Leave the source file in place
            progress_callback: Per-rendition transcode progress
            upload_callback: Per-file upload progress

        Returns:
            PublishResult; ``success`` is false when some files did not upload

        Raises:
            ConfigurationError: If no bucket id is configured
            PublishError: If any rendition failed
        """
        input_path = Path(input_path)
        bucket_id = self.require_bucket_id()
        video_id = video_id or self.make_video_id(input_path.name)
        prefix = self.remote_prefix(video_id, base_path)
        output_dir = self.output_dir_for(video_id)

        try:
            run = await self.transcode(
                input_path, video_id, base_path, progress_callback=progress_callback
            )
            sync = await self.publish_to_storage(
                bucket_id, run.output_dir, prefix, progress_callback=upload_callback
            )
        finally:
            self.cleanup(None if keep_input else input_path, output_dir)

        result = PublishResult(
            video_id=video_id,
            remote_prefix=prefix,
            manifest_url=self.manifest_url(prefix),
            sync=sync,
        )

        if result.success:
            logger.info(f"[{video_id}] Published {sync.total} files under {prefix}")
        else:
            logger.warning(
                f"[{video_id}] Published with {len(sync.failed_uploads)}/{sync.total} "
                f"failed uploads under {prefix}"
            )
        return result

    async def upload_single_file(
        self, input_path: Path, remote_key: Optional[str] = None
    ) -> UploadOutcome:
        """
        Upload one file as-is and record it in the history.

        Args:
            input_path: Local file
            remote_key: Remote name (defaults to the file name)

        Returns:
            Successful UploadOutcome

        Raises:
            StorageError: If the upload fails (the failure is recorded first)
        """
        input_path = Path(input_path)
        task = UploadTask(local_path=input_path, remote_key=remote_key or input_path.name)

        try:
            info = await self.storage.upload_file(
                self.require_bucket_id(), task.remote_key, input_path
            )
        except StorageError as e:
            await self.history.record(
                task.remote_key, UploadOutcome(task=task, succeeded=False, error=str(e))
            )
            raise

        outcome = UploadOutcome(
            task=task,
            succeeded=True,
            remote_file_id=info.file_id,
            content_hash=info.content_sha1,
        )
        await self.history.record(task.remote_key, outcome)
        return outcome

    @staticmethod
    def cleanup(input_path: Optional[Path], output_dir: Path) -> None:
        """Remove local artifacts; missing paths and failures are only logged."""
        if input_path is not None and remove_path(input_path):
            logger.info(f"Removed source file {input_path}")
        if remove_path(output_dir):
            logger.info(f"Removed output directory {output_dir}")
