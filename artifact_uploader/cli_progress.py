"""Console rendering and progress helpers for the artifact-up CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional
import time

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .utils import events
from .utils.events import EventEmitter

console = Console()


def _echo(message: str) -> None:
    console.print(message)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]artifact-up[/bold green]",
        subtitle="[dim]artifact uploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


class UploadProgressDisplay:
    """Event-based console display for a version upload."""

    def __init__(self):
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=32),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            TimeElapsedColumn(),
            expand=False,
            console=console,
        )
        self._task_id: Optional[TaskID] = None
        self._polls = 0
        self._started = False

    def attach(self, emitter: EventEmitter) -> None:
        emitter.on(events.INITIATED, self.on_initiated)
        emitter.on(events.LINK_CREATED, self.on_transfer)
        emitter.on(events.FILE_UPLOADED, self.on_transfer)
        emitter.on(events.FILES_UPLOADED, self.on_files_uploaded)
        emitter.on(events.POLL, self.on_poll)
        emitter.on(events.COMPLETED, self.on_completed)
        emitter.on(events.ABORTED, self.on_aborted)

    def _emit_timeline(self, status: str, message: str) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "FAIL": "red", "WAIT": "yellow", "INFO": "blue"}
        color = palette.get(status, "white")
        _echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {message}")

    def _stop(self) -> None:
        if self._started:
            self._progress.stop()
            self._started = False

    def on_initiated(self, session: Any) -> None:
        links = len(session.links)
        presigned = len(session.presigned_urls)
        self._emit_timeline("INFO", f"upload started: {presigned} files to send, {links} links")
        self._task_id = self._progress.add_task(
            "transfer", total=links + presigned, label="transfer", detail=""
        )
        self._progress.start()
        self._started = True

    def on_transfer(self, path: str, status_code: int) -> None:
        if self._task_id is None:
            return
        self._progress.update(self._task_id, advance=1, detail=f"{path} ({status_code})")

    def on_files_uploaded(self, count: int) -> None:
        self._stop()
        self._emit_timeline("DONE", f"{count} files uploaded")

    def on_poll(self, status: Any) -> None:
        self._polls += 1
        self._emit_timeline("WAIT", f"job {status.job_id}: {status.state.value} (poll {self._polls})")

    def on_completed(self, result: Any) -> None:
        self._stop()
        if result.indexed:
            self._emit_timeline("DONE", f"indexing job {result.job_id} finished")
        else:
            self._emit_timeline("WAIT", f"indexing job {result.job_id} still running")

    def on_aborted(self, session: Any) -> None:
        self._stop()
        self._emit_timeline("FAIL", "upload aborted")

    def on_error(self, error: Exception) -> None:
        self._stop()
        self._emit_timeline("FAIL", str(error))
