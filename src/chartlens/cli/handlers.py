"""
Error handling for the CLI.

Maps library exceptions to exit codes and user-facing messages so the command
bodies stay free of try/except for known errors.
"""

import sys
from collections.abc import Callable

import click

from chartlens.cli import progress
from chartlens.cli.utils import (
    EXIT_API_OR_NETWORK,
    EXIT_CANCELLED,
    EXIT_VALIDATION_OR_CONFIG,
)
from chartlens.utils.exceptions import (
    ChartlensError,
    ConfigurationError,
    EncodingError,
    QueueTimeoutError,
    RemoteError,
    TimeframeAnalysisError,
    ValidationError,
)


def map_exception_to_exit(exc: BaseException) -> tuple[int, str]:
    """Map library and known exceptions to (exit_code, user_message)."""
    if isinstance(exc, TimeframeAnalysisError):
        code, msg = map_exception_to_exit(exc.cause)
        return (code, f"{exc.step} step failed: {msg}")
    if isinstance(exc, ValidationError):
        msg = exc.args[0] if exc.args else "Validation failed."
        if getattr(exc, "field", None):
            msg = f"{msg} (field: {exc.field})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, ConfigurationError):
        return (EXIT_VALIDATION_OR_CONFIG, exc.args[0] if exc.args else "Invalid configuration.")
    if isinstance(exc, EncodingError):
        msg = exc.args[0] if exc.args else "Image could not be read."
        if exc.image_name:
            msg = f"{msg} ({exc.image_name})"
        return (EXIT_VALIDATION_OR_CONFIG, msg)
    if isinstance(exc, KeyboardInterrupt):
        return (EXIT_CANCELLED, "Cancelled.")
    if isinstance(exc, (RemoteError, QueueTimeoutError)):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "API or network error.")
    if isinstance(exc, ChartlensError):
        return (EXIT_API_OR_NETWORK, exc.args[0] if exc.args else "An error occurred.")
    # Unhandled
    return (EXIT_API_OR_NETWORK, str(exc) if exc.args else "An unexpected error occurred.")


def run_with_error_handling(
    fn: Callable[[], None],
    *,
    quiet: bool = False,
) -> None:
    """
    Run fn(); on exception map to exit code and message, print and sys.exit.
    """
    try:
        fn()
    except KeyboardInterrupt as e:
        code, msg = map_exception_to_exit(e)
        if not quiet:
            progress.print_warning(msg)
        sys.exit(code)
    except ChartlensError as e:
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(code)
    except Exception as e:
        code, msg = map_exception_to_exit(e)
        if quiet:
            click.echo(msg, err=True)
        else:
            progress.print_error(msg)
        sys.exit(EXIT_API_OR_NETWORK)


__all__ = [
    "map_exception_to_exit",
    "run_with_error_handling",
]
