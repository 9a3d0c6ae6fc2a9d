"""
Custom exceptions for chartlens.

This module defines all custom exceptions used throughout the application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chartlens.core.workflow import TimeframeReport


class ChartlensError(Exception):
    """Base exception for all chartlens errors."""

    pass


class ValidationError(ChartlensError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(ChartlensError):
    """Raised when there is a configuration problem."""

    pass


class EncodingError(ChartlensError):
    """Raised when an image cannot be read or encoded for the API."""

    def __init__(self, message: str, image_name: str = "") -> None:
        """
        Initialize encoding error.

        Args:
            message: Error message
            image_name: Name of the image that could not be read
        """
        self.image_name = image_name
        super().__init__(message)


class QueueTimeoutError(ChartlensError):
    """Raised when a task is not admitted by the dispatcher in time."""

    def __init__(self, message: str, timeout: float | None = None) -> None:
        self.timeout = timeout
        super().__init__(message)


class RemoteError(ChartlensError):
    """Raised when a call to the inference API fails."""

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize remote error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class TransientRemoteError(RemoteError):
    """Retryable API failure (HTTP 429 or 5xx)."""

    pass


class TerminalRemoteError(RemoteError):
    """API failure that is not retried."""

    pass


class NetworkError(TerminalRemoteError):
    """Raised when the API cannot be reached."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(message)


class RequestTimeoutError(TerminalRemoteError):
    """Raised when the HTTP request to the API times out."""

    pass


class TimeframeAnalysisError(ChartlensError):
    """Raised when one step of the timeframe workflow fails.

    ``report`` holds every result completed before the failing step.
    """

    def __init__(self, step: str, report: TimeframeReport, cause: BaseException) -> None:
        self.step = step
        self.report = report
        self.cause = cause
        super().__init__(f"Analysis failed at step {step!r}: {cause}")


def is_transient_status(status_code: int) -> bool:
    """Return True for HTTP statuses worth retrying (429 and 5xx)."""
    return status_code == 429 or 500 <= status_code < 600


def remote_error_for_status(message: str, status_code: int, response: str = "") -> RemoteError:
    """Build the RemoteError subclass matching an HTTP status code."""
    if is_transient_status(status_code):
        return TransientRemoteError(message, status_code=status_code, response=response)
    return TerminalRemoteError(message, status_code=status_code, response=response)
