"""
Console output for stackgraph commands, built on rich.

Colours follow the Nord palette; each resource state has its own style so
plan, apply and destroy output read the same way. Spinners are only shown
on an interactive terminal, and NO_COLOR / FORCE_COLOR are honoured.
"""

from __future__ import annotations

import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.theme import Theme

# Nord color palette (https://www.nordtheme.com/)
STACKGRAPH_THEME = Theme(
    {
        "info": "#88C0D0",
        "success": "#A3BE8C",
        "warning": "#EBCB8B",
        "error": "#BF616A bold",
        "muted": "#D8DEE9",
        "frost": "#81A1C1",
        # resource states
        "declared": "#4C566A",
        "planned": "#5E81AC",
        "provisioned": "#A3BE8C",
        "failed": "#BF616A",
        "torn_down": "#B48EAD",
    }
)

CI_VARIABLES = ("CI", "GITHUB_ACTIONS", "JENKINS_URL", "GITLAB_CI", "CIRCLECI", "TRAVIS")

console = Console(
    theme=STACKGRAPH_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def _is_interactive() -> bool:
    if any(os.environ.get(var) for var in CI_VARIABLES):
        return False
    return sys.stdout.isatty()


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """Spin while provider calls run; silent when piped or in CI."""
    if not _is_interactive():
        yield
        return

    with Progress(
        SpinnerColumn(style="frost"),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description=message, total=None)
        yield


def error(message: str) -> None:
    console.print(f"[error]✗ {escape(message)}[/error]")


def warning(message: str) -> None:
    console.print(f"[warning]⚠ {escape(message)}[/warning]")


def header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold]{escape(title)}[/bold]", border_style="frost"))


def resource_line(symbol: str, node_id: str, kind: str, style: str, note: str = "") -> None:
    """One aligned line per resource: ``✓ bucket   storage-bucket``."""
    suffix = f" [muted]{escape(note)}[/muted]" if note else ""
    console.print(
        f"  [{style}]{symbol} {escape(node_id):<20}[/{style}] [frost]{escape(kind)}[/frost]{suffix}"
    )


def print_outputs(outputs: Mapping[str, Any], title: str = "Outputs:") -> None:
    """Print stack outputs as ``name = value`` pairs."""
    if not outputs:
        return
    console.print(f"[bold]{title}[/bold]")
    for name, value in outputs.items():
        console.print(f"  [info]{escape(name)}[/info] = {escape(str(value))}")
    console.print()


def print_table(title: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    table = Table(title=title, header_style="bold frost")
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*row)
    console.print(table)
