"""Backoff poller for periodic refresh actions.

Runs an async factory on a schedule using APScheduler. Each attempt is a
one-shot DateTrigger job re-armed when the attempt settles, so the delay can
grow after consecutive failures and shrink back after a success.

Architecture:
- One AsyncIOScheduler per Poll, created on the running event loop
- At most one attempt in flight; refresh() joins it instead of racing it
- Standby policy skips attempts while a condition holds, keeping backoff state
- Lifecycle: start/stop any number of times, dispose once (terminal)
"""

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from datetime import UTC
from datetime import datetime
from datetime import timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .errors import DisposedStateError

logger = logging.getLogger(__name__)

StandbyPolicy = str | Callable[[], bool]


class Poll:
    """Restartable, cancelable scheduler with exponential backoff.

    After N consecutive failed attempts the delay before the next attempt is
    ``min(interval * backoff**N, max_interval)``; a success resets it to
    ``interval``.
    """

    def __init__(
        self,
        factory: Callable[[], Awaitable[None]],
        *,
        name: str = "poll",
        interval: float = 10.0,
        backoff: float = 2.0,
        max_interval: float = 300.0,
        standby: StandbyPolicy = "when-hidden",
        is_hidden: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize poll.

        Args:
            factory: Coroutine function performing one attempt
            name: Name used for logging and as the scheduler job id
            interval: Base delay between attempts in seconds
            backoff: Growth factor per consecutive failure (1 disables backoff)
            max_interval: Upper bound for the backed-off delay
            standby: "never", "when-hidden", or a callable returning True while polling should pause
            is_hidden: Visibility probe consulted by the "when-hidden" policy
        """
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        if max_interval < interval:
            raise ValueError(f"Poll max_interval {max_interval} is below interval {interval}")
        if backoff < 1:
            raise ValueError(f"Poll backoff must be >= 1, got {backoff}")
        if isinstance(standby, str) and standby not in ("never", "when-hidden"):
            raise ValueError(f"Unknown standby policy: {standby}")

        self.name = name
        self._factory = factory
        self._base_interval = interval
        self._backoff = backoff
        self._max_interval = max_interval
        self._standby = standby
        self._is_hidden = is_hidden or (lambda: False)

        self._failures = 0
        self._interval = interval
        self._running = False
        self._disposed = False
        self._inflight: asyncio.Task | None = None
        self._tick: asyncio.Future | None = None
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def interval(self) -> float:
        """Delay in seconds before the next scheduled attempt."""
        return self._interval

    @property
    def failures(self) -> int:
        """Number of consecutive failed attempts."""
        return self._failures

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_pending(self) -> bool:
        """Whether an attempt is currently in flight."""
        return self._inflight is not None

    @property
    def tick(self) -> asyncio.Future:
        """Future resolved when the next attempt finishes (or the poll is disposed)."""
        if self._tick is None:
            self._tick = asyncio.get_running_loop().create_future()
            if self._disposed:
                self._tick.set_result(None)
        return self._tick

    @property
    def standby_active(self) -> bool:
        """Whether the standby policy currently suspends polling."""
        if callable(self._standby):
            return bool(self._standby())
        if self._standby == "when-hidden":
            return bool(self._is_hidden())
        return False

    def start(self) -> None:
        """Arm the schedule at the current interval.

        Idempotent - safe to call while already running. Must be called
        from the event loop.
        """
        if self._disposed:
            raise DisposedStateError(f"Poll {self.name} is disposed")
        if self._running:
            return

        self._running = True
        logger.debug(f"Starting poll {self.name} (interval={self._interval}s)")
        if self._inflight is None:
            self._schedule(self._interval)

    def stop(self) -> None:
        """Cancel the pending attempt; an attempt already in flight completes."""
        if not self._running:
            return
        self._running = False
        self._cancel_timer()
        logger.debug(f"Stopped poll {self.name}")

    async def refresh(self) -> None:
        """Run an attempt now, or join the one in flight.

        Returns when that attempt has settled.

        Raises:
            DisposedStateError: If the poll is disposed
            Exception: Whatever the factory raised for this attempt
        """
        if self._disposed:
            raise DisposedStateError(f"Poll {self.name} is disposed")
        await asyncio.shield(self._ensure_attempt())

    def dispose(self) -> None:
        """Stop permanently. Safe to call multiple times."""
        if self._disposed:
            return
        self._disposed = True
        self._running = False
        self._cancel_timer()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._resolve_tick()
        logger.debug(f"Disposed poll {self.name}")

    def _ensure_attempt(self) -> asyncio.Task:
        if self._inflight is None:
            self._cancel_timer()
            self._inflight = asyncio.get_running_loop().create_task(self._attempt())
        return self._inflight

    async def _attempt(self) -> None:
        try:
            await self._factory()
        except Exception as e:
            self._failures += 1
            self._interval = min(self._base_interval * self._backoff**self._failures, self._max_interval)
            logger.warning(
                f"Poll {self.name} attempt failed ({self._failures} consecutive): {e} - "
                f"next attempt in {self._interval}s"
            )
            raise
        else:
            if self._failures:
                logger.info(f"Poll {self.name} recovered after {self._failures} failed attempts")
            self._failures = 0
            self._interval = self._base_interval
        finally:
            self._inflight = None
            self._resolve_tick()
            if self._running and not self._disposed:
                self._schedule(self._interval)

    async def _on_timer(self) -> None:
        if self._disposed or not self._running:
            return

        if self.standby_active:
            logger.debug(f"Poll {self.name} in standby, skipping attempt")
            self._schedule(self._interval)
            return

        try:
            await asyncio.shield(self._ensure_attempt())
        except Exception as e:
            # Already logged by the attempt; the schedule is re-armed there.
            logger.debug(f"Scheduled attempt of poll {self.name} failed: {e}")

    def _schedule(self, delay: float) -> None:
        scheduler = self._ensure_scheduler()
        run_date = datetime.now(UTC) + timedelta(seconds=delay)
        scheduler.add_job(
            func=self._on_timer,
            trigger=DateTrigger(run_date=run_date, timezone="UTC"),
            id=self.name,
            name=f"Poll: {self.name}",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
            # The timer job that started an attempt may still be unwinding when the next one fires
            max_instances=2,
        )

    def _cancel_timer(self) -> None:
        if self._scheduler is None:
            return
        try:
            self._scheduler.remove_job(self.name)
        except JobLookupError:
            pass

    def _ensure_scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone="UTC")
            self._scheduler.start()
        return self._scheduler

    def _resolve_tick(self) -> None:
        tick, self._tick = self._tick, None
        if tick is not None and not tick.done():
            tick.set_result(None)
