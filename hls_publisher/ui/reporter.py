"""
Summary reporting for transcode runs and uploads.

This module renders rich console tables for transcode outcomes, sync
results and remote listings.
"""

from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models import FileInfo, FolderListing, PublishResult, SyncResult, TranscodeRun
from ..utils import PublishError, format_duration, format_size, get_logger

logger = get_logger(__name__)


class SyncReporter:
    """
    Reporter for transcode and publish results.

    Renders:
    - Rendition outcomes of a transcode run
    - Upload counts and failed files of a sync
    - File and folder listings from the store
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize reporter.

        Args:
            console: Rich console instance (creates new if not provided)
        """
        self.console = console or Console()

    def display_run(self, run: TranscodeRun) -> None:
        """
        Display rendition outcomes of a transcode run.

        Args:
            run: Finished (or failed) transcode run
        """
        table = Table(title=f"Renditions for {run.video_id}", show_header=True)
        table.add_column("Rendition", style="cyan", width=12)
        table.add_column("Resolution", style="yellow", width=12)
        table.add_column("Bandwidth", style="green", width=12)
        table.add_column("Mode", style="magenta", width=10)
        table.add_column("Time", style="blue", width=10)
        table.add_column("Status", style="white")

        for outcome in sorted(run.outcomes, key=lambda o: o.bandwidth_bps):
            status = (
                "[green]✓ done[/green]"
                if outcome.succeeded
                else f"[red]✗ {(outcome.error or 'failed').splitlines()[0]}[/red]"
            )
            table.add_row(
                outcome.name,
                outcome.spec.size,
                f"{outcome.bandwidth_bps // 1000} kbps",
                "copy" if outcome.spec.is_source_copy else "encode",
                format_duration(outcome.duration),
                status,
            )

        self.console.print(table)
        if run.manifest_path:
            self.console.print(f"[dim]Manifest: {run.manifest_path}[/dim]")
        if run.manifest_url:
            self.console.print(f"[dim]Manifest URL: {run.manifest_url}[/dim]")
        self.console.print()

    def display_publish_error(self, error: PublishError) -> None:
        """Display the failed renditions of a rejected run."""
        if error.run is not None:
            self.display_run(error.run)
        self.display_error(f"{error.failed_count} rendition(s) failed; manifest withheld", error)

    def display_sync(self, result: SyncResult) -> None:
        """
        Display upload counts and every failed file.

        Args:
            result: Sync result
        """
        table = Table(title="Upload Summary", show_header=False, box=None)
        table.add_column("Metric", style="cyan", width=20)
        table.add_column("Value", style="white")

        table.add_row("Files", str(result.total))
        table.add_row("Uploaded", f"[green]{len(result.successful_uploads)}[/green]")
        table.add_row(
            "Failed",
            f"[red]{len(result.failed_uploads)}[/red]" if result.failed_uploads else "0",
        )
        uploaded_bytes = sum(
            o.task.local_path.stat().st_size
            for o in result.successful_uploads
            if o.task.local_path.exists()
        )
        if uploaded_bytes:
            table.add_row("Size", format_size(uploaded_bytes))

        self.console.print(table)
        self.console.print()

        if result.failed_uploads:
            failed = Table(title="Failed Uploads", show_header=True)
            failed.add_column("Remote Key", style="yellow")
            failed.add_column("Error", style="red")
            for outcome in result.failed_uploads:
                failed.add_row(outcome.remote_key, outcome.error or "unknown error")
            self.console.print(failed)
            self.console.print()

    def display_publish(self, result: PublishResult) -> None:
        """Display a full publish result."""
        self.display_sync(result.sync)

        if result.success:
            self.display_success(
                f"Published {result.video_id}\nManifest: {result.manifest_url}"
            )
        else:
            self.console.print(
                Panel.fit(
                    f"[bold yellow]⚠ Published with failed uploads[/bold yellow]\n"
                    f"[dim]Prefix: {result.remote_prefix}\nManifest: {result.manifest_url}[/dim]",
                    border_style="yellow",
                )
            )

    def display_files(self, files: Sequence[FileInfo], title: str = "Files") -> None:
        """Display a list of remote files."""
        table = Table(title=title, show_header=True)
        table.add_column("Name", style="cyan")
        table.add_column("Size", style="blue", justify="right", width=12)
        table.add_column("Type", style="green", width=24)

        for info in files:
            table.add_row(info.file_name, format_size(info.content_length), info.content_type or "")

        self.console.print(table)
        self.console.print(f"[dim]{len(files)} file(s)[/dim]")

    def display_folder(self, listing: FolderListing) -> None:
        """Display sub-folders and files of an emulated folder."""
        for folder in listing.folders:
            self.console.print(f"[bold blue]📁 {folder}[/bold blue]")
        self.display_files(listing.files, title=f"/{listing.path}")

    def display_error(self, message: str, error: Optional[Exception] = None) -> None:
        """
        Display error message.

        Args:
            message: Error message
            error: Optional exception object
        """
        error_text = Text(f"✗ {message}", style="bold red")

        if error:
            error_text.append(Text(f"\n{error}", style="red"))

        self.console.print()
        self.console.print(Panel(error_text, title="Error", border_style="red"))
        self.console.print()

    def display_success(self, message: str) -> None:
        """
        Display success message.

        Args:
            message: Success message
        """
        success_text = Text(f"✓ {message}", style="bold green")
        self.console.print()
        self.console.print(Panel(success_text, title="Success", border_style="green"))
        self.console.print()
