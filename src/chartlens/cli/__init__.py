"""
Command-line interface for chartlens.

This package contains CLI implementations using Click.
"""

from chartlens.cli.commands import cli


def main() -> None:
    """Entry point for the chartlens console script."""
    cli()


__all__ = ["cli", "main"]
