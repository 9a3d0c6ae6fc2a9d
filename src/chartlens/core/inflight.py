"""
Table of analysis calls currently in progress.

Every caller asking for a key that is already being fetched awaits the same
task instead of starting a second remote call. Callers must do the
cache lookup, lookup() and register() without awaiting in between.
"""

import asyncio

from chartlens.logging_config import get_logger

logger = get_logger(__name__)


class InFlightTable:
    """Maps cache key to the task producing its analysis."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[str]] = {}

    def register(self, key: str, pending: "asyncio.Task[str]") -> None:
        """Record the task servicing key. Raises if the key is already taken."""
        if key in self._pending:
            raise RuntimeError(f"Request already in flight for key {key[:24]}")
        self._pending[key] = pending

    def lookup(self, key: str) -> "asyncio.Task[str] | None":
        """Return the in-flight task for key, or None."""
        return self._pending.get(key)

    def deregister(self, key: str, pending: "asyncio.Task[str] | None" = None) -> None:
        """
        Forget the task for key.

        When pending is given, only that exact task is removed, so a late
        cleanup never drops a newer registration for the same key.
        """
        current = self._pending.get(key)
        if current is None:
            return
        if pending is not None and current is not pending:
            return
        del self._pending[key]
        logger.debug("In-flight entry released key=%s", key[:24])

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending
