"""
Constants and small helpers shared by the CLI commands.
"""

from pathlib import Path

from chartlens.core.models import ChartImage

# Exit codes (130 = common for SIGINT)
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2
EXIT_CANCELLED = 130


def load_chart(path: Path | None) -> ChartImage | None:
    """Describe a chart file for analysis; None passes through."""
    if path is None:
        return None
    return ChartImage.from_path(path)


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "EXIT_CANCELLED",
    "load_chart",
]
