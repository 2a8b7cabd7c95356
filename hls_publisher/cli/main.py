"""
CLI interface for HLS Publisher.

This module provides the command-line interface using Typer and Rich
for terminal output.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Coroutine, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeElapsedColumn

from ..config import ConfigManager, PublisherConfig
from ..models import UploadOutcome
from ..pipeline import VideoPublisher
from ..ui import SyncReporter
from ..utils import PublishError, PublisherError, get_logger, setup_logger

# Initialize Typer app
app = typer.Typer(
    name="hls-publisher",
    help="Transcode videos to adaptive HLS and publish them to Backblaze B2",
    add_completion=False,
)

# Console for rich output
console = Console()

logger = get_logger(__name__)


class CLIState:
    """Global options shared by every command."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.verbose = False

    def load_config(self) -> PublisherConfig:
        return ConfigManager(self.config_file).config


state = CLIState()


@app.callback()
def main_callback(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log",
        help="Log file path",
    ),
) -> None:
    """
    Transcode videos to HLS renditions and publish them to object storage.
    """
    state.config_file = config_file
    state.verbose = verbose
    setup_logger(
        level="DEBUG" if verbose else "INFO",
        log_file=log_file,
        verbose=verbose,
        console=console,
    )


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a command coroutine and turn library errors into exit codes."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Cancelled by user[/yellow]")
        sys.exit(130)
    except PublishError as e:
        SyncReporter(console).display_publish_error(e)
        sys.exit(1)
    except PublisherError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        sys.exit(1)


def _rendition_progress(progress: Progress):
    """Progress callback creating one bar per rendition on first report."""
    bars: dict[str, TaskID] = {}

    def callback(name: str, fraction: float) -> None:
        if name not in bars:
            bars[name] = progress.add_task(f"Rendition {name}", total=100.0)
        progress.update(bars[name], completed=fraction * 100)

    return callback


def _progress() -> Progress:
    return Progress(
        TextColumn("[bold cyan]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>5.1f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


@app.command()
def transcode(
    input_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Input video file to transcode",
    ),
    video_id: Optional[str] = typer.Option(
        None,
        "--video-id",
        help="Video identifier (generated from the file name by default)",
    ),
    output_root: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output root directory (default: paths.output_root)",
    ),
    base_path: Optional[str] = typer.Option(
        None,
        "--base-path",
        help="Base path substituted into rendition URLs",
    ),
) -> None:
    """
    Transcode a video into local HLS renditions and a master manifest.
    """
    _run(_transcode_async(input_file, video_id, output_root, base_path))


async def _transcode_async(
    input_file: Path,
    video_id: Optional[str],
    output_root: Optional[Path],
    base_path: Optional[str],
) -> None:
    config = state.load_config()
    if output_root is not None:
        config.paths.output_root = output_root

    async with VideoPublisher(config) as publisher:
        video_id = video_id or publisher.make_video_id(input_file.name)
        console.print(f"[cyan]🎬 Transcoding {input_file.name} as {video_id}[/cyan]")

        with _progress() as progress:
            run = await publisher.transcode(
                input_file,
                video_id,
                base_path=base_path,
                progress_callback=_rendition_progress(progress),
            )

    SyncReporter(console).display_run(run)
    console.print(
        Panel.fit(
            "[bold green]✓ Transcoding completed successfully![/bold green]\n"
            f"[dim]Output: {run.output_dir}[/dim]",
            border_style="green",
        )
    )


@app.command()
def publish(
    input_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Input video file to publish",
    ),
    base_path: Optional[str] = typer.Option(
        None,
        "--base-path",
        help="Remote base path; files go under {base-path}/{video-id}",
    ),
    video_id: Optional[str] = typer.Option(
        None,
        "--video-id",
        help="Video identifier (generated from the file name by default)",
    ),
    keep_input: bool = typer.Option(
        False,
        "--keep-input",
        help="Do not delete the input file after publishing",
    ),
) -> None:
    """
    Transcode a video, upload every rendition and print the manifest URL.
    """
    _run(_publish_async(input_file, base_path, video_id, keep_input))


async def _publish_async(
    input_file: Path,
    base_path: Optional[str],
    video_id: Optional[str],
    keep_input: bool,
) -> None:
    config = state.load_config()
    reporter = SyncReporter(console)

    async with VideoPublisher(config) as publisher:
        with _progress() as progress:
            upload_bar: Optional[TaskID] = None

            def on_upload(outcome: UploadOutcome, finished: int, total: int) -> None:
                nonlocal upload_bar
                if upload_bar is None:
                    upload_bar = progress.add_task("Uploading", total=total)
                progress.update(upload_bar, completed=finished)

            result = await publisher.process_upload(
                input_file,
                video_id=video_id,
                base_path=base_path,
                keep_input=keep_input,
                progress_callback=_rendition_progress(progress),
                upload_callback=on_upload,
            )

    reporter.display_publish(result)
    if not result.success:
        sys.exit(2)


@app.command()
def upload(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File to upload as-is",
    ),
    key: Optional[str] = typer.Option(
        None,
        "--key",
        "-k",
        help="Remote file name (default: the local file name)",
    ),
) -> None:
    """
    Upload a single file without transcoding.
    """
    _run(_upload_async(file, key))


async def _upload_async(file: Path, key: Optional[str]) -> None:
    async with VideoPublisher(state.load_config()) as publisher:
        outcome = await publisher.upload_single_file(file, key)
        url = publisher.storage.public_url(outcome.remote_key, publisher.bucket_name)

    SyncReporter(console).display_success(f"Uploaded {outcome.remote_key}\n{url}")


@app.command("ls")
def list_folder(
    path: str = typer.Argument("", help="Folder path (bucket root by default)"),
) -> None:
    """
    List sub-folders and files of a remote folder.
    """
    _run(_ls_async(path))


async def _ls_async(path: str) -> None:
    async with VideoPublisher(state.load_config()) as publisher:
        listing = await publisher.storage.list_folder(publisher.require_bucket_id(), path)

    SyncReporter(console).display_folder(listing)


@app.command()
def search(
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Match names by prefix"),
    name: Optional[str] = typer.Option(
        None, "--name", help="Match names containing this text (scans the whole bucket)"
    ),
    limit: int = typer.Option(100, "--limit", help="Maximum results for prefix search"),
) -> None:
    """
    Search remote files by prefix or by name.
    """
    if bool(prefix) == bool(name):
        console.print("[red]✗ Error:[/red] Give exactly one of --prefix or --name")
        sys.exit(1)
    _run(_search_async(prefix, name, limit))


async def _search_async(prefix: Optional[str], name: Optional[str], limit: int) -> None:
    async with VideoPublisher(state.load_config()) as publisher:
        bucket_id = publisher.require_bucket_id()
        if prefix:
            files = await publisher.storage.search_by_prefix(bucket_id, prefix, limit)
            title = f"Files with prefix '{prefix}'"
        else:
            files = await publisher.storage.search_by_name(bucket_id, name or "")
            title = f"Files matching '{name}'"

    SyncReporter(console).display_files(files, title=title)


@app.command()
def videos(
    all_media: bool = typer.Option(
        False,
        "--all",
        help="List every video and playlist file instead of master manifests only",
    ),
    limit: int = typer.Option(500, "--limit", help="Files scanned per page"),
) -> None:
    """
    List published videos.
    """
    _run(_videos_async(all_media, limit))


async def _videos_async(all_media: bool, limit: int) -> None:
    async with VideoPublisher(state.load_config()) as publisher:
        suffix = None if all_media else publisher.config.hls.manifest_name
        listing = await publisher.storage.list_video_files(
            publisher.require_bucket_id(), max_file_count=limit, suffix_filter=suffix
        )

    SyncReporter(console).display_files(listing.files, title="Videos")
    if listing.next_file_name:
        console.print(f"[dim]More files after {listing.next_file_name}[/dim]")


@app.command()
def url(
    key: str = typer.Argument(..., help="Remote file name"),
    bucket: Optional[str] = typer.Option(None, "--bucket", help="Bucket name"),
) -> None:
    """
    Print a signed download URL for a remote file.
    """
    _run(_url_async(key, bucket))


async def _url_async(key: str, bucket: Optional[str]) -> None:
    async with VideoPublisher(state.load_config()) as publisher:
        signed = await publisher.get_authorized_download_url(key, bucket)
    console.print(signed, soft_wrap=True)


@app.command("init-config")
def init_config(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Configuration file to create (default: ~/.hls-publisher.yaml)",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """
    Create a default configuration file.
    """
    try:
        path = ConfigManager().init_default_config(output, force=force)
    except PublisherError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Created config file: {path}")


@app.command("version")
def version_command() -> None:
    """
    Display version information.
    """
    from .. import __version__

    console.print(
        Panel.fit(
            f"[bold cyan]HLS Publisher[/bold cyan]\n[dim]Version {__version__}[/dim]",
            border_style="cyan",
        )
    )


def main() -> None:
    """
    Main entry point for CLI.
    """
    app()


if __name__ == "__main__":
    main()
