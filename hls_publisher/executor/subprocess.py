"""
Async subprocess wrapper for FFmpeg execution.

This module runs one FFmpeg command to completion, streaming stderr for
progress reporting, and turns a non-zero exit into an EncodeError that
carries the captured diagnostics.
"""

import asyncio
import re
from typing import AsyncIterator, Callable, Optional

from ..utils import EncodeError, ProcessTimeoutError, get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float, Optional[float]], None]


class AsyncFFmpegProcess:
    """
    Async wrapper for FFmpeg subprocess execution.

    A run ends in exactly one terminal state: it returns (stdout, stderr)
    on success or raises. Progress is reported through an optional callback
    while the process runs.
    """

    # Regex patterns for parsing FFmpeg output
    DURATION_PATTERN = re.compile(r"Duration: (\d{2}):(\d{2}):(\d{2}\.\d{2})")
    PROGRESS_PATTERN = re.compile(r"time=(\d{2}):(\d{2}):(\d{2}\.\d{2})")
    SPEED_PATTERN = re.compile(r"speed=\s*(\d+\.?\d*)x")

    def __init__(
        self,
        command: list[str],
        timeout: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize async FFmpeg process.

        Args:
            command: FFmpeg command as list of arguments
            timeout: Maximum execution time in seconds (None = no timeout)
            progress_callback: Called with (progress 0.0-1.0, speed multiplier)
        """
        self.command = command
        self.timeout = timeout
        self.progress_callback = progress_callback
        self._process: Optional[asyncio.subprocess.Process] = None
        self._duration: Optional[float] = None
        self._stderr_lines: list[str] = []
        self._terminate_requested = False

    async def run(self) -> tuple[str, str]:
        """
        Run FFmpeg command and wait for completion.

        Returns:
            Tuple of (stdout, stderr) as strings

        Raises:
            EncodeError: If the process cannot start or exits non-zero
            ProcessTimeoutError: If process exceeds timeout
        """
        logger.debug(f"Running: {' '.join(self.command)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncodeError(
                f"Failed to start {self.command[0]}: {e}", command=self.command
            ) from e

        if self._terminate_requested:
            await self.terminate()

        try:
            if self.timeout:
                stdout, stderr = await asyncio.wait_for(
                    self._communicate_with_progress(),
                    timeout=self.timeout,
                )
            else:
                stdout, stderr = await self._communicate_with_progress()

        except asyncio.TimeoutError:
            logger.error(f"FFmpeg process exceeded timeout of {self.timeout}s")
            await self.terminate()
            raise ProcessTimeoutError(
                f"Process exceeded timeout of {self.timeout}s",
                timeout=self.timeout or 0.0,
            )

        except asyncio.CancelledError:
            await self.terminate()
            raise

        if self._process.returncode != 0:
            error_msg = self._extract_error_message(stderr)
            raise EncodeError(
                f"FFmpeg failed with code {self._process.returncode}: {error_msg}",
                command=self.command,
                stderr=stderr,
            )

        return stdout, stderr

    async def _communicate_with_progress(self) -> tuple[str, str]:
        """Read stdout and stderr concurrently, then wait for exit."""
        if not self._process:
            raise RuntimeError("Process not started")

        stdout, stderr = await asyncio.gather(self._read_stdout(), self._read_stderr())
        await self._process.wait()

        return stdout, stderr

    async def _read_stdout(self) -> str:
        if not self._process or not self._process.stdout:
            return ""

        stdout = await self._process.stdout.read()
        return stdout.decode(errors="replace") if stdout else ""

    async def _read_stderr(self) -> str:
        """
        Read and parse stderr for progress information.

        Returns:
            Complete stderr output as string
        """
        stderr_lines: list[str] = []

        async for line in self._stream_stderr():
            stderr_lines.append(line)

            if self._duration is None:
                duration_match = self.DURATION_PATTERN.search(line)
                if duration_match:
                    h, m, s = map(float, duration_match.groups())
                    self._duration = h * 3600 + m * 60 + s

            if self._duration and self.progress_callback:
                progress_match = self.PROGRESS_PATTERN.search(line)
                if progress_match:
                    h, m, s = map(float, progress_match.groups())
                    progress = min((h * 3600 + m * 60 + s) / self._duration, 1.0)

                    speed_match = self.SPEED_PATTERN.search(line)
                    speed = float(speed_match.group(1)) if speed_match else None

                    try:
                        self.progress_callback(progress, speed)
                    except Exception as e:
                        logger.warning(f"Progress callback failed: {e}")

        self._stderr_lines = stderr_lines
        return "\n".join(stderr_lines)

    async def _stream_stderr(self) -> AsyncIterator[str]:
        """
        Stream stderr line by line.

        FFmpeg rewrites its progress line with carriage returns, so both
        \\r and \\n terminate a line here.
        """
        if not self._process or not self._process.stderr:
            return

        buffer = b""
        while True:
            chunk = await self._process.stderr.read(4096)
            if not chunk:
                break
            buffer += chunk
            parts = re.split(rb"[\r\n]", buffer)
            buffer = parts.pop()
            for part in parts:
                line = part.decode(errors="replace").strip()
                if line:
                    yield line

        tail = buffer.decode(errors="replace").strip()
        if tail:
            yield tail

    def _extract_error_message(self, stderr: str) -> str:
        """
        Extract meaningful error message from stderr.

        Args:
            stderr: Complete stderr output

        Returns:
            Extracted error message or the last lines of stderr
        """
        error_patterns = [
            r"Error while (opening|decoding|encoding)",
            r"Invalid data found",
            r"No such file or directory",
            r"Permission denied",
            r"Unknown encoder",
            r"Codec .* is not supported",
            r"Invalid argument",
        ]

        lines = stderr.split("\n")
        for pattern in error_patterns:
            match = re.search(pattern, stderr, re.IGNORECASE)
            if match:
                for i, line in enumerate(lines):
                    if match.group() in line:
                        return " | ".join(lines[i : i + 3])

        lines = [line for line in lines if line.strip()]
        return " | ".join(lines[-3:]) if lines else "Unknown error"

    async def terminate(self) -> None:
        """
        Terminate the process gracefully.

        Sends SIGTERM, waits briefly, then sends SIGKILL if needed.
        """
        self._terminate_requested = True
        if not self._process or self._process.returncode is not None:
            return

        try:
            logger.info("Terminating FFmpeg process...")
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Forcing process termination...")
                self._process.kill()
                await self._process.wait()
        except ProcessLookupError:
            pass

    @property
    def is_running(self) -> bool:
        """Check if process is currently running."""
        return self._process is not None and self._process.returncode is None

    @property
    def returncode(self) -> Optional[int]:
        """Get process return code."""
        return self._process.returncode if self._process else None

    @property
    def stderr_output(self) -> list[str]:
        """Get captured stderr lines."""
        return self._stderr_lines.copy()
