"""
Logging configuration for chartlens.

Nothing is printed unless the application opts in: the CLI calls
configure_logging(), library users either do the same or attach their own
handlers to the "chartlens" logger.

Verbosity levels:
- 0 (default): INFO, request lifecycle only (cache hits, dispatch, retries)
- 1: INFO plus the prompt text sent with each chart
- 2: DEBUG plus prompt text, HTTP status/timing and queue state

CHARTLENS_VERBOSITY (0/1/2) is read by the CLI; command-line flags win.
"""

import logging
import os

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "chartlens"

# Prompts embed previous analyses, so cap what lands in a log line.
PROMPT_LOG_MAX = 2_000

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    """Attach a stderr handler to the chartlens logger once."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """Set logging verbosity (0=default, 1=with prompts, 2=debug)."""
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG if level >= 2 else logging.INFO)
    _log_prompts = level >= 1


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from the CLI or a host application.

    quiet wins over verbose_level and leaves only warnings and errors.
    """
    global _log_prompts
    _ensure_handler()
    if quiet:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def log_prompts() -> bool:
    """Return True if prompt text should be logged."""
    return _log_prompts


def truncate_for_log(text: str, limit: int = PROMPT_LOG_MAX) -> str:
    """Shorten long text for a single log line."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... <{len(text)} chars>"


def get_verbosity_from_env() -> int:
    """Read CHARTLENS_VERBOSITY (0, 1 or 2); anything else means 0."""
    raw = os.environ.get("CHARTLENS_VERBOSITY", "0").strip()
    return {"1": 1, "2": 2}.get(raw, 0)


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under chartlens (e.g. chartlens.core.analyzer)."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "set_verbosity",
    "truncate_for_log",
]
