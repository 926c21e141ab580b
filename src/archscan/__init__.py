"""archscan - architectural fact extraction for Python codebases."""

from .cli import cli


def main() -> None:
    """Entry point for the CLI application."""
    cli()
