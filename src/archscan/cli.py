#!/usr/bin/env python3
"""
Command-line interface for archscan.

Provides commands for extracting architectural facts from Python codebases.
"""

import json
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .analyzer import CodeAnalyzer, export_to_parquet
from .config import DEFAULT_CONFIG, DEFAULT_EXCLUDE_PATTERNS
from .console_styles import (
    StyleGuide,
    create_data_table,
    create_header_panel,
    create_report_summary,
    format_count,
)

console = Console()
logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def build_exclusions(exclude: tuple, include: tuple) -> list:
    """Default exclusions minus ``--include`` plus ``--exclude``."""
    final_exclusions = [e for e in DEFAULT_EXCLUDE_PATTERNS if e not in include]
    final_exclusions.extend(e for e in exclude if e not in final_exclusions)
    return final_exclusions


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """archscan - architectural fact extraction for Python codebases.

    Recovers symbols, call graphs, HTTP endpoints, outbound HTTP client
    calls, protocols and tests from source without importing it.

    Examples:
        archscan analyze ./src
        archscan analyze ./src --output report.json
        archscan analyze ./src --parquet-dir ./facts
        archscan endpoints ./service
    """
    configure_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=True, dir_okay=True))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, allow_dash=True),
    default=None,
    help="Write the JSON report to this file ('-' for stdout)",
)
@click.option(
    "--parquet-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Also write one Parquet table per fact kind to this directory",
)
@click.option(
    "--exclude",
    multiple=True,
    help="Patterns to exclude (can be specified multiple times)",
)
@click.option(
    "--include",
    multiple=True,
    help="Override default exclusions (e.g., --include build)",
)
@click.option(
    "-w",
    "--workers",
    type=int,
    default=None,
    help="Number of worker threads (default: auto-detect CPU count)",
)
@click.option(
    "--client-lib",
    multiple=True,
    help="Additional HTTP client library to recognize (can be specified multiple times)",
)
def analyze(
    path: str,
    output: Optional[str],
    parquet_dir: Optional[str],
    exclude: tuple,
    include: tuple,
    workers: Optional[int],
    client_lib: tuple,
) -> None:
    """Analyze a Python file or directory and report architectural facts.

    PATH: File or directory containing Python code to analyze
    """
    to_stdout = output == "-"
    target_path = Path(path).resolve()
    final_exclusions = build_exclusions(exclude, include)

    libraries = tuple(DEFAULT_CONFIG.http_client_libraries) + tuple(
        lib for lib in client_lib if lib not in DEFAULT_CONFIG.http_client_libraries
    )
    config = DEFAULT_CONFIG.with_overrides(
        http_client_libraries=libraries,
        exclude_patterns=final_exclusions,
        max_workers=workers,
    )
    analyzer = CodeAnalyzer(config)

    if not to_stdout:
        console.print(create_header_panel("archscan", str(target_path)))
        if include:
            console.print(f"[cyan]Including (overriding defaults):[/cyan] {', '.join(include)}")
        console.print(f"[dim]Excluding:[/dim] {', '.join(final_exclusions)}")

    cancel_event = threading.Event()
    start_time = time.time()
    try:
        report = analyzer.analyze_directory(
            target_path,
            max_workers=workers,
            cancel_event=cancel_event,
            show_progress=not to_stdout,
        )
    except KeyboardInterrupt:
        cancel_event.set()
        console.print("[yellow]Analysis interrupted[/yellow]")
        sys.exit(130)
    elapsed = time.time() - start_time

    if report.cancelled:
        console.print(
            f"[{StyleGuide.warning}]Analysis interrupted, "
            f"{len(report.skipped)} files skipped[/{StyleGuide.warning}]"
        )
        sys.exit(130)

    if to_stdout:
        click.echo(json.dumps(report.to_dict(), indent=2))
    elif output:
        Path(output).write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        console.print(f"[{StyleGuide.success}]Report written to[/{StyleGuide.success}] {output}")

    if parquet_dir:
        try:
            counts = export_to_parquet(report, Path(parquet_dir))
        except OSError as e:
            console.print(f"[red]Error:[/red] Failed to write Parquet tables: {e}")
            sys.exit(1)
        if not to_stdout:
            console.print(
                f"[{StyleGuide.success}]Wrote {len(counts)} Parquet tables to[/{StyleGuide.success}] {parquet_dir}"
            )

    if to_stdout:
        return

    console.print(create_report_summary(report.stats(), report.call_counts()))
    console.print(f"[dim]⏱  Analysis: {elapsed:.2f}s[/dim]")
    if report.diagnostics:
        console.print(
            f"[{StyleGuide.warning}]{format_count(len(report.diagnostics))} diagnostics[/{StyleGuide.warning}]"
            " (use --output to see them all)"
        )
        for diagnostic in report.diagnostics[:10]:
            location = f"{diagnostic.file}:{diagnostic.line}" if diagnostic.line else diagnostic.file
            console.print(f"  [dim]{location}[/dim] [{diagnostic.stage}] {diagnostic.message}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=True, dir_okay=True))
@click.option(
    "-w",
    "--workers",
    type=int,
    default=None,
    help="Number of worker threads (default: auto-detect CPU count)",
)
def endpoints(path: str, workers: Optional[int]) -> None:
    """List HTTP endpoints, router mounts and outbound client calls.

    PATH: File or directory containing Python code to analyze
    """
    analyzer = CodeAnalyzer()
    report = analyzer.analyze_directory(Path(path).resolve(), max_workers=workers)

    endpoint_table = create_data_table(
        "HTTP Endpoints",
        [
            ("Method", "left", "bold green"),
            ("Path", "left", "cyan"),
            ("Handler", "left", "white"),
            ("Framework", "left", "magenta"),
            ("Location", "left", "dim"),
        ],
    )
    for file_path, endpoint in report.iter_facts("endpoints"):
        endpoint_table.add_row(
            endpoint.http_method,
            endpoint.path,
            endpoint.handler,
            endpoint.framework,
            f"{file_path}:{endpoint.line}",
        )
    console.print(endpoint_table)

    mounts = list(report.iter_facts("router_mounts"))
    if mounts:
        mount_table = create_data_table(
            "Router Mounts",
            [
                ("App", "left", "white"),
                ("Router", "left", "cyan"),
                ("Prefix", "left", "green"),
                ("Location", "left", "dim"),
            ],
        )
        for file_path, mount in mounts:
            mount_table.add_row(mount.app, mount.router or "?", mount.prefix or "", f"{file_path}:{mount.line}")
        console.print(mount_table)

    client_table = create_data_table(
        "HTTP Client Calls",
        [
            ("Method", "left", "bold green"),
            ("Path", "left", "cyan"),
            ("Library", "left", "magenta"),
            ("Async", "center", "yellow"),
            ("Caller", "left", "white"),
            ("Location", "left", "dim"),
        ],
    )
    for file_path, client_call in report.iter_facts("client_calls"):
        client_table.add_row(
            client_call.http_method,
            client_call.path if client_call.path is not None else "[dim]<unresolved>[/dim]",
            client_call.library,
            "yes" if client_call.is_async else "",
            client_call.caller,
            f"{file_path}:{client_call.line}",
        )
    console.print(client_table)


if __name__ == "__main__":
    cli()
