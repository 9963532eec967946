"""Console rendering and progress helpers for podseeder CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

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
        title="[bold green]podseeder[/bold green]",
        subtitle="[dim]populate pods[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_plan(identities: Sequence[Any], planned: int, servers: int, skipped: int) -> None:
    """Render discovered pods and the upload plan."""
    table = Table(title="Pods", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Account", style="bold")
    table.add_column("Pod")
    table.add_column("Source", style="dim")
    for identity in identities:
        table.add_row(str(identity.index), identity.username, identity.pod_uri, identity.dir)
    console.print(table)
    _echo(f"Will upload [bold]{planned}[/bold] files to [bold]{servers}[/bold] servers, {skipped} skipped.")


class PopulateProgressDisplay:
    """Event-based console display for a populate run."""

    def __init__(self, total: int = 0):
        self._total = total
        self._uploaded = 0
        self._failed = 0
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=36),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            TimeElapsedColumn(),
            expand=False,
            console=console,
        )
        self._task_id: Optional[TaskID] = None

    def start(self, total: Optional[int] = None) -> None:
        if total is not None:
            self._total = total
        if self._task_id is not None:
            return
        self._progress.start()
        self._task_id = self._progress.add_task(
            "populate",
            label="Uploading",
            total=max(self._total, 1),
            detail="uploaded=0 failed=0",
        )

    def stop(self) -> None:
        if self._task_id is None:
            return
        self._progress.stop()
        self._task_id = None

    def _refresh(self) -> None:
        if self._task_id is None:
            return
        self._progress.update(
            self._task_id,
            completed=self._uploaded + self._failed,
            detail=f"uploaded={self._uploaded} failed={self._failed}",
        )

    def _emit_timeline(self, status: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        color = {"DONE": "green", "FAIL": "red", "SAVE": "blue"}.get(status, "white")
        error_label = f" cause={error}" if error else ""
        self._progress.console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {name}{error_label}"
        )

    def on_plan_ready(self, plan: Any) -> None:
        _echo(
            f"Will upload [bold]{plan.planned}[/bold] files to [bold]{plan.servers}[/bold] servers, "
            f"{plan.skipped} skipped because already done."
        )
        self.start(plan.planned)

    def on_task_start(self, task: Any) -> None:
        self._refresh()

    def on_task_complete(self, result: Any) -> None:
        self._uploaded += 1
        task = result.task
        self._emit_timeline("DONE", f"{task.identity.username}/{task.path_in_pod}")
        self._refresh()

    def on_task_fail(self, result: Any) -> None:
        self._failed += 1
        task = result.task
        self._emit_timeline("FAIL", f"{task.identity.username}/{task.path_in_pod}", error=str(result.error))
        self._refresh()

    def on_checkpoint_saved(self, count: int) -> None:
        self._emit_timeline("SAVE", f"checkpoint ({count} entries)")

    def on_finish(self, result: Any) -> None:
        self.stop()
        _echo(
            f"[bold]Finished[/bold] uploaded={result.uploaded} failed={result.failed} "
            f"skipped={result.skipped} servers={result.servers}"
        )
