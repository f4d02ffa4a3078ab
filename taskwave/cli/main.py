"""Main CLI entry point using Typer."""

from pathlib import Path

import anyio
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from taskwave import __version__
from taskwave.core.config import get_settings
from taskwave.core.loader import load_tasks
from taskwave.core.logging import configure_logging
from taskwave.dag import (
    DependencyGraph,
    TaskStatus,
    TaskwaveError,
    critical_path,
    render_ascii,
    render_compact,
    render_detailed,
    wave_stats,
)
from taskwave.execution import RunSummary, ShellCommandRunner, create_executor

app = typer.Typer(
    name="taskwave",
    help="taskwave - run dependent tasks in parallel waves",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]taskwave[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    taskwave - dependency-aware task scheduling.

    Groups tasks into waves of mutually independent work and runs each
    wave in parallel.
    """
    configure_logging(get_settings())


def _load_graph(tasks_file: Path) -> DependencyGraph:
    """Load, build and schedule a task file, exiting with status 2 on error."""
    try:
        graph = DependencyGraph.build(load_tasks(tasks_file))
        graph.compute_waves()
    except TaskwaveError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=2) from e
    return graph


def _print_plain(text: str) -> None:
    """Print renderer output verbatim (task IDs in brackets are not markup)."""
    console.print(text, markup=False, highlight=False, soft_wrap=True, end="")


@app.command()
def dag(
    tasks_file: Path = typer.Argument(..., help="Path to tasks.yaml"),
    compact: bool = typer.Option(False, "--compact", help="One-line wave summary"),
    detailed: bool = typer.Option(False, "--detailed", help="Per-task dependencies"),
    stats: bool = typer.Option(False, "--stats", help="Wave statistics table"),
) -> None:
    """
    Show the execution waves of a task file.

    Example:
        taskwave dag tasks.yaml --compact
    """
    graph = _load_graph(tasks_file)

    if stats:
        summary = wave_stats(graph)
        table = Table(title="Wave Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="bold")
        table.add_row("Total waves", str(summary.total_waves))
        table.add_row("Total tasks", str(summary.total_tasks))
        table.add_row("Max wave size", str(summary.max_wave_size))
        table.add_row("Min wave size", str(summary.min_wave_size))
        table.add_row("Average wave size", f"{summary.average_wave_size:.2f}")
        table.add_row("Critical path", " -> ".join(critical_path(graph)) or "-")
        console.print(table)
    elif compact:
        _print_plain(render_compact(graph) + "\n")
    elif detailed:
        _print_plain(render_detailed(graph))
    else:
        _print_plain(render_ascii(graph))


def _print_summary(summary: RunSummary) -> None:
    counts = summary.counts

    table = Table(title="Run Summary")
    table.add_column("Status", style="cyan")
    table.add_column("Tasks", justify="right")
    table.add_row("[green]completed[/green]", str(counts["completed"]))
    table.add_row("[red]failed[/red]", str(counts["failed"]))
    table.add_row("[yellow]skipped[/yellow]", str(counts["skipped"]))
    if counts["pending"]:
        table.add_row("[dim]not run[/dim]", str(counts["pending"]))
    table.add_row("total", str(counts["total"]))
    console.print(table)

    for wave in summary.waves:
        for result in wave.results:
            if result.status == TaskStatus.FAILED:
                console.print(
                    f"[red]x {escape(result.task_id)}[/red]: {escape(result.error or '')}",
                    highlight=False,
                )

    if summary.aborted:
        console.print("[bold red]Run aborted after a failed wave[/bold red]")
    elif summary.success:
        console.print(
            f"[bold green]All tasks finished in {summary.duration_seconds:.1f}s[/bold green]"
        )


@app.command()
def run(
    tasks_file: Path = typer.Argument(..., help="Path to tasks.yaml"),
    command: str | None = typer.Option(
        None,
        "--command",
        "-c",
        help="Shell command template, e.g. 'make {id}'; write literal braces as {{ }}",
    ),
    max_parallel: int | None = typer.Option(
        None,
        "--max-parallel",
        "-p",
        min=1,
        help="Maximum concurrent tasks per wave",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Timeout per task attempt in seconds",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        "-r",
        min=0,
        help="Retries per failed task",
    ),
    abort_on_failure: bool = typer.Option(
        False,
        "--abort-on-failure",
        help="Stop after the first wave with a failed task",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Walk the waves without running commands",
    ),
) -> None:
    """
    Run every task of a task file, wave by wave.

    Exits with status 1 if any task failed.

    Example:
        taskwave run tasks.yaml --command "./build.sh {id}" -p 8
    """
    settings = get_settings()

    if command is None and not dry_run:
        console.print("[bold red]Error:[/bold red] --command is required unless --dry-run")
        raise typer.Exit(code=2)

    graph = _load_graph(tasks_file)

    console.print(
        Panel(
            f"{graph.size} tasks in {len(graph.waves)} waves",
            title="[bold blue]taskwave[/bold blue]",
            border_style="blue",
        )
    )

    def show_progress(wave_number: int, task_id: str, status: TaskStatus, line: str) -> None:
        if status.is_terminal:
            console.print(line, markup=False, highlight=False)

    executor = create_executor(
        mode="dry_run" if dry_run else settings.executor_mode,
        runner=None if dry_run else ShellCommandRunner(command),
        max_concurrent=max_parallel or settings.max_parallel,
        timeout=timeout if timeout is not None else settings.task_timeout,
        max_retries=retries if retries is not None else settings.max_retries,
        retry_delay=settings.retry_delay,
        abort_on_failure=abort_on_failure or settings.abort_on_failure,
        on_progress=show_progress,
    )

    async def execute() -> RunSummary:
        return await executor.execute_graph(graph)

    try:
        summary = anyio.run(execute)
    except TaskwaveError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=2) from e

    _print_summary(summary)
    raise typer.Exit(code=summary.exit_code)


if __name__ == "__main__":
    app()
