"""Console styling utilities for consistent Rich output formatting.

Table builders and small formatters shared by the CLI commands.

Example:
    >>> from archscan.console_styles import create_summary_table, format_count
    >>> table = create_summary_table("Analysis Results")
    >>> table.add_row("Files analyzed", format_count(150))
    >>> console.print(table)
"""

from typing import Dict, List, Tuple

from rich.box import ROUNDED
from rich.panel import Panel
from rich.table import Table


def format_count(count: int) -> str:
    return f"{count:,}"


def create_summary_table(title: str, header_style: str = "bold cyan") -> Table:
    """Create a styled two-column summary table.

    Args:
        title: Table title
        header_style: Rich style for header (default: "bold cyan")

    Returns:
        Table: Configured Rich Table
    """
    table = Table(
        title=title,
        show_header=True,
        header_style=header_style,
        box=ROUNDED,
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    return table


def create_data_table(title: str, columns: List[Tuple[str, str, str]]) -> Table:
    """Create a configurable data display table.

    Args:
        title: Table title
        columns: List of (column_name, justify, style) tuples

    Returns:
        Table: Configured Rich Table
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold cyan",
        box=ROUNDED,
    )
    for col_name, justify, style in columns:
        table.add_column(col_name, justify=justify, style=style)
    return table


def create_report_summary(stats: Dict[str, int], call_counts: Dict[str, int]) -> Table:
    """Summary table for a ProjectReport.

    Args:
        stats: Output of ``ProjectReport.stats()``
        call_counts: Output of ``ProjectReport.call_counts()``
    """
    table = create_summary_table("Analysis Summary")
    labels = [
        ("files", "Files analyzed"),
        ("symbols", "Symbols"),
        ("calls", "Call sites"),
        ("endpoints", "Endpoints"),
        ("router_mounts", "Router mounts"),
        ("client_calls", "HTTP client calls"),
        ("protocols", "Protocols"),
        ("implementers", "Implementers"),
        ("tests", "Tests"),
        ("diagnostics", "Diagnostics"),
        ("skipped", "Skipped files"),
    ]
    for key, label in labels:
        table.add_row(label, format_count(stats.get(key, 0)))
    for kind, count in call_counts.items():
        table.add_row(f"  {kind}", format_count(count))
    return table


def create_header_panel(title: str, subtitle: str = "", border_style: str = "cyan") -> Panel:
    """Create a styled header panel.

    Args:
        title: Panel title
        subtitle: Optional subtitle
        border_style: Rich style for border

    Returns:
        Panel: Configured Rich Panel
    """
    if subtitle:
        content = f"[bold cyan]{title}[/bold cyan]\n{subtitle}"
    else:
        content = f"[bold cyan]{title}[/bold cyan]"
    return Panel.fit(content, border_style=border_style, padding=(0, 1))


class StyleGuide:
    """Color and styling guide for consistency."""

    header = "bold cyan"
    success = "green"
    error = "red"
    warning = "yellow"
    label = "cyan"
    metric = "green"
    dim = "dim"
