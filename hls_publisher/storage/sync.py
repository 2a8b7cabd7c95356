"""
Directory mirroring into the object store.

Every file below a local root is uploaded under a remote prefix. Uploads
run concurrently and settle independently; the sync reports which files
made it and which did not.
"""

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from ..models import SyncResult, UploadOutcome, UploadTask
from ..utils import FilesystemError, StorageError, build_remote_key, get_logger
from .client import B2StorageClient
from .history import UploadHistory

logger = get_logger(__name__)

UploadProgressCallback = Callable[[UploadOutcome, int, int], None]


class DirectorySync:
    """Uploads a directory tree and records every outcome."""

    def __init__(
        self,
        client: B2StorageClient,
        history: Optional[UploadHistory] = None,
        max_concurrent_uploads: Optional[int] = None,
    ):
        """
        Initialize directory sync.

        Args:
            client: Storage client used for uploads
            history: Ledger receiving every outcome
            max_concurrent_uploads: Upper bound on simultaneous uploads
                (None = unbounded)
        """
        self.client = client
        self.history = history or UploadHistory()
        self.max_concurrent_uploads = max_concurrent_uploads

    @staticmethod
    def collect_tasks(local_root: Path, remote_prefix: str) -> list[UploadTask]:
        """
        Derive one upload task per regular file below ``local_root``.

        Raises:
            FilesystemError: If ``local_root`` is not a directory
        """
        local_root = Path(local_root)
        if not local_root.is_dir():
            raise FilesystemError(f"Not a directory: {local_root}", path=str(local_root))

        return [
            UploadTask(
                local_path=path,
                remote_key=build_remote_key(remote_prefix, path.relative_to(local_root).as_posix()),
            )
            for path in sorted(local_root.rglob("*"))
            if path.is_file()
        ]

    async def sync_directory(
        self,
        bucket_id: str,
        local_root: Path,
        remote_prefix: str,
        progress_callback: Optional[UploadProgressCallback] = None,
    ) -> SyncResult:
        """
        Upload every file below ``local_root`` under ``remote_prefix``.

        Args:
            bucket_id: Target bucket id
            local_root: Directory to mirror
            remote_prefix: Remote prefix; also the history group key
            progress_callback: Called with (outcome, finished, total)

        Returns:
            SyncResult; ``success`` is true only when nothing failed and
            ``history`` holds the outcomes of this call only

        Raises:
            FilesystemError: If ``local_root`` is not a directory
        """
        tasks = self.collect_tasks(local_root, remote_prefix)
        group_key = remote_prefix.strip("/")
        total = len(tasks)

        if not tasks:
            logger.warning(f"No files found in {local_root}")
            return SyncResult(success=True)

        logger.info(f"Uploading {total} files from {local_root} to {group_key or '/'}")
        start_time = time.time()

        semaphore = (
            asyncio.Semaphore(self.max_concurrent_uploads) if self.max_concurrent_uploads else None
        )
        finished = 0
        recorded: list[UploadOutcome] = []

        async def upload_one(task: UploadTask) -> UploadOutcome:
            nonlocal finished
            if semaphore is not None:
                async with semaphore:
                    outcome = await self._upload(bucket_id, task)
            else:
                outcome = await self._upload(bucket_id, task)

            await self.history.record(task.remote_key, outcome)
            await self.history.migrate(task.remote_key, group_key)
            recorded.append(outcome)

            finished += 1
            if progress_callback:
                progress_callback(outcome, finished, total)
            return outcome

        outcomes = await asyncio.gather(*(upload_one(task) for task in tasks))

        successful = [o for o in outcomes if o.succeeded]
        failed = [o for o in outcomes if not o.succeeded]

        if failed:
            logger.warning(
                f"{len(failed)}/{total} uploads failed for {group_key or '/'} "
                f"({time.time() - start_time:.2f}s)"
            )
        else:
            logger.info(f"All {total} files uploaded in {time.time() - start_time:.2f}s")

        return SyncResult(
            success=not failed,
            successful_uploads=successful,
            failed_uploads=failed,
            history=recorded,
        )

    async def _upload(self, bucket_id: str, task: UploadTask) -> UploadOutcome:
        """Upload one file; any failure becomes a failed outcome."""
        try:
            info = await self.client.upload_file(bucket_id, task.remote_key, task.local_path)
        except StorageError as e:
            logger.error(f"Upload failed for {task.remote_key}: {e}")
            return UploadOutcome(task=task, succeeded=False, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error uploading {task.remote_key}")
            return UploadOutcome(task=task, succeeded=False, error=f"{type(e).__name__}: {e}")

        return UploadOutcome(
            task=task,
            succeeded=True,
            remote_file_id=info.file_id,
            content_hash=info.content_sha1,
        )
