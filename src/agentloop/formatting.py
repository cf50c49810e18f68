"""Pretty-print support for agentloop output objects.

Uses rich library for formatted terminal output.
All functions accept their target object and print to a rich Console.

To avoid circular imports, this module does NOT import domain models
at module level. Functions access object attributes dynamically.
"""
from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

_STATUS_STYLES = {
    "completed": "green",
    "exhausted": "yellow",
    "failed": "red",
    "cancelled": "magenta",
}


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=True, width=100)
    return Console()


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def pprint_run_result(result: Any, *, file: Any = None) -> None:
    """Pretty-print a RunResult.

    Args:
        result: A RunResult instance.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    status = result.status.value
    style = _STATUS_STYLES.get(status, "white")

    header = (
        f"[bold]Task:[/bold] {escape(result.task)}\n"
        f"[bold]Status:[/bold] [{style}]{status}[/{style}]\n"
        f"[bold]Iterations:[/bold] {result.iterations}\n"
        f"[bold]Actions:[/bold] {len(result.actions)}"
    )
    parts: list[Any] = [Text.from_markup(header)]

    if result.actions:
        table = Table(show_header=True, header_style="bold", expand=False)
        table.add_column("#", justify="right")
        table.add_column("Iter", justify="right")
        table.add_column("Action")
        table.add_column("Outcome")
        table.add_column("Result")
        for index, record in enumerate(result.actions, 1):
            ok = record.success
            table.add_row(
                str(index),
                str(record.iteration),
                Text(record.action or "(none)"),
                Text(record.kind.value, style="green" if ok else "red"),
                Text(_truncate(record.result, 60)),
            )
        parts.append(Text(""))
        parts.append(table)

    if result.events:
        parts.append(Text(""))
        for event in result.events:
            parts.append(Text(f"[{event.iteration}] {event.kind}: {dict(event.detail)}", style="dim"))

    console.print(Panel(Group(*parts), title="[bold]Agent Run[/bold]", border_style=style))
    console.print(Panel(
        Text(result.final_response or "(empty)"),
        title="[bold]Final response[/bold]",
        border_style=style,
    ))


def pprint_budget_stats(stats: Any, *, file: Any = None) -> None:
    """Pretty-print BudgetStats.

    Args:
        stats: A BudgetStats instance.
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)

    pct = stats.percentage
    color = "green" if pct < 60 else "yellow" if pct < 80 else "red"
    body_parts: list[str] = [
        f"[bold]Turns:[/bold]      {stats.total_turns} "
        f"({stats.user_turns} user, {stats.assistant_turns} assistant)",
        f"[bold]Cost:[/bold]       ≈{stats.cost_estimate:,}/{stats.cost_ceiling:,} "
        f"([{color}]{pct}%[/{color}])",
        f"[bold]Remaining:[/bold]  {stats.remaining:,}",
    ]
    if stats.tool_overhead:
        body_parts.append(f"[bold]Overhead:[/bold]   {stats.tool_overhead:,}")
    body_parts.append(
        f"[bold]Compaction:[/bold] {'auto' if stats.auto_compact else 'manual'} "
        f"at {stats.compaction_threshold:,}, performed {stats.compaction_count} time(s)"
    )
    if stats.last_compaction_time is not None:
        body_parts.append(
            f"[bold]Last:[/bold]       {stats.last_compaction_time.isoformat(timespec='seconds')}"
        )

    bar = ProgressBar(
        total=stats.cost_ceiling,
        completed=min(stats.cost_estimate, stats.cost_ceiling),
        width=60,
        complete_style=color,
    )
    console.print(Panel(
        Group(Text.from_markup("\n".join(body_parts)), Text(""), bar),
        title="[bold]Budget[/bold]",
        border_style="cyan",
    ))
