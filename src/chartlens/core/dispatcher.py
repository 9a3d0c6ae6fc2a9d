"""
Rate-limited dispatcher for remote calls.

All analysis calls share one dispatcher. It admits at most ``concurrency``
calls at a time and at most ``interval_cap`` call starts per fixed window of
``interval`` seconds. Calls that cannot start yet wait in FIFO order.

With ``carryover`` enabled, calls still running when a window rolls over are
counted against the next window, so a burst of slow calls cannot exceed the
provider quota by straddling the window boundary.
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

from chartlens.logging_config import get_logger
from chartlens.utils.exceptions import QueueTimeoutError

logger = get_logger(__name__)

T = TypeVar("T")


class RateLimitedDispatcher:
    """FIFO queue enforcing a concurrency ceiling and a per-interval start cap."""

    def __init__(
        self,
        concurrency: int = 1,
        interval: float = 1.0,
        interval_cap: int = 5,
        carryover: bool = True,
        admission_timeout: float | None = None,
    ) -> None:
        """
        Args:
            concurrency: Maximum number of tasks running at once
            interval: Window length in seconds
            interval_cap: Maximum number of task starts per window
            carryover: Count still-running tasks against the next window
            admission_timeout: Seconds a task may wait for admission (None = no limit)
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if interval_cap <= 0:
            raise ValueError(f"interval_cap must be positive, got {interval_cap}")
        if admission_timeout is not None and admission_timeout <= 0:
            raise ValueError(f"admission_timeout must be positive, got {admission_timeout}")
        self.concurrency = concurrency
        self.interval = interval
        self.interval_cap = interval_cap
        self.carryover = carryover
        self.admission_timeout = admission_timeout

        self._waiters: deque[asyncio.Future[None]] = deque()
        self._running = 0
        self._window_start: float | None = None
        self._window_count = 0
        self._wakeup: asyncio.TimerHandle | None = None
        self._wakeup_loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> int:
        """Number of admitted tasks that have not finished."""
        return self._running

    @property
    def pending(self) -> int:
        """Number of tasks waiting for admission."""
        return sum(1 for w in self._waiters if not w.done())

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        Run task once it is admitted and return its result.

        Raises:
            QueueTimeoutError: If the task is not admitted within admission_timeout
        """
        await self._acquire()
        try:
            return await task()
        finally:
            self._release()

    def _roll_window(self, now: float) -> None:
        if self._window_start is None or now - self._window_start >= self.interval:
            self._window_start = now
            self._window_count = self._running if self.carryover else 0

    def _has_capacity(self, now: float) -> bool:
        self._roll_window(now)
        return self._running < self.concurrency and self._window_count < self.interval_cap

    def _admit(self) -> None:
        self._running += 1
        self._window_count += 1

    async def _acquire(self) -> None:
        loop = asyncio.get_running_loop()
        if not self._waiters and self._has_capacity(loop.time()):
            self._admit()
            return

        waiter: asyncio.Future[None] = loop.create_future()
        self._waiters.append(waiter)
        self._drain()
        if waiter.done():
            return
        logger.debug(
            "Task queued pending=%d running=%d window_count=%d",
            self.pending,
            self._running,
            self._window_count,
        )
        try:
            if self.admission_timeout is None:
                await waiter
            else:
                await asyncio.wait_for(waiter, self.admission_timeout)
        except asyncio.TimeoutError:
            if waiter.done() and not waiter.cancelled():
                return
            self._discard(waiter)
            raise QueueTimeoutError(
                f"Request was not admitted within {self.admission_timeout} seconds.",
                timeout=self.admission_timeout,
            ) from None
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                self._release()
            else:
                self._discard(waiter)
            raise

    def _discard(self, waiter: "asyncio.Future[None]") -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass
        self._drain()

    def _release(self) -> None:
        self._running -= 1
        self._drain()

    def _drain(self) -> None:
        """Admit queued tasks in order while capacity allows."""
        loop = asyncio.get_running_loop()
        now = loop.time()
        while self._waiters:
            waiter = self._waiters[0]
            if waiter.done():
                self._waiters.popleft()
                continue
            if not self._has_capacity(now):
                break
            self._waiters.popleft()
            self._admit()
            waiter.set_result(None)

        blocked_by_window = self._waiters and self._running < self.concurrency
        if blocked_by_window and not self._wakeup_scheduled(loop):
            assert self._window_start is not None
            delay = max(self._window_start + self.interval - now, 0.0)
            self._wakeup = loop.call_later(delay, self._on_wakeup)
            self._wakeup_loop = loop
            logger.debug("Interval cap reached; next admission in %.3fs", delay)

    def _wakeup_scheduled(self, loop: asyncio.AbstractEventLoop) -> bool:
        return (
            self._wakeup is not None
            and not self._wakeup.cancelled()
            and self._wakeup_loop is loop
        )

    def _on_wakeup(self) -> None:
        self._wakeup = None
        self._wakeup_loop = None
        self._drain()
