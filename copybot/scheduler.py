"""
Periodic asyncio tasks with cooperative cancellation.

Every loop in the bot (poller, executor, position watcher, daily reset) is a
PeriodicTask sharing one CancellationToken. Setting the token wakes every
sleeping task and ends it after its current iteration.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Interval = Union[float, Callable[[], float]]


class CancellationToken:
    """Shared stop signal."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep up to `seconds`, waking early on cancel.

        Returns:
            True if cancelled during the sleep
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(seconds, 0))
        except asyncio.TimeoutError:
            return False
        return True


class PeriodicTask:
    """Runs an async function on a fixed (or computed) interval."""

    def __init__(
        self,
        name: str,
        fn: Callable[[], Awaitable[object]],
        interval: Interval,
        token: CancellationToken,
        max_iterations: Optional[int] = None,
        run_immediately: bool = True,
    ):
        """
        Args:
            name: Used in log lines
            fn: Coroutine function run each iteration
            interval: Seconds between iterations, or a callable returning them
            token: Stop signal
            max_iterations: Max iterations (None = infinite)
            run_immediately: Run before the first sleep
        """
        self.name = name
        self.fn = fn
        self.interval = interval
        self.token = token
        self.max_iterations = max_iterations
        self.run_immediately = run_immediately
        self.iterations = 0
        self.errors = 0

    def _next_delay(self) -> float:
        if callable(self.interval):
            return self.interval()
        return self.interval

    async def run(self) -> None:
        logger.info(f"[{self.name}] started")

        if not self.run_immediately and await self.token.sleep(self._next_delay()):
            logger.info(f"[{self.name}] stopped")
            return

        while not self.token.cancelled:
            try:
                await self.fn()
            except asyncio.CancelledError:
                logger.info(f"[{self.name}] cancelled")
                raise
            except Exception as e:
                self.errors += 1
                logger.error(f"[{self.name}] iteration error: {e}", exc_info=True)

            self.iterations += 1
            if self.max_iterations and self.iterations >= self.max_iterations:
                logger.info(f"[{self.name}] max iterations ({self.max_iterations}) reached")
                break

            if await self.token.sleep(self._next_delay()):
                break

        logger.info(f"[{self.name}] stopped after {self.iterations} iteration(s)")
