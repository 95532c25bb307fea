"""Resubscription scheduler — renews hub leases before they lapse.

One background asyncio task owns a min-heap of ``(deadline, seq, id)``
timers and a bounded command queue. Each loop iteration waits for whichever
comes first, a new ``ScheduleCommand`` or the earliest deadline, then arms
the command and fires every timer that is due.

Per subscription id the lifecycle is ``Idle → Pending → Firing → Idle``.
Scheduling an id that is already pending adds a second timer; both fire.
Fired renewals run as their own tasks so a slow or failing hub call never
stalls the loop or other subscriptions.

Timers live only in memory. On start the engine re-primes them from the
stored lease expiries.
"""

from __future__ import annotations

import asyncio
import contextlib
import heapq
import itertools
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from tube_relay.engine.models.subscription import Subscription
    from tube_relay.metrics.collector import RelayMetrics

logger = logging.getLogger(__name__)

SAFETY_BUFFER = 3600  # renew an hour before the lease lapses
MIN_DELAY = 5
QUEUE_SIZE = 100


@dataclass(frozen=True)
class ScheduleCommand:
    """Fire the renewal action for *subscription_id* after *delay* seconds."""

    subscription_id: str
    delay: float


def renewal_delay(
    lease_seconds: float,
    *,
    safety_buffer: float = SAFETY_BUFFER,
    min_delay: float = MIN_DELAY,
) -> float:
    """Seconds to wait before renewing a lease granted just now."""
    return max(lease_seconds - safety_buffer, min_delay)


def delay_until_expiry(
    expires_at: float,
    now: float,
    *,
    safety_buffer: float = SAFETY_BUFFER,
    min_delay: float = MIN_DELAY,
) -> float:
    """Seconds to wait before renewing a lease that lapses at *expires_at*."""
    return max(expires_at - now - safety_buffer, min_delay)


class ResubscriptionScheduler:
    """Background timer engine driving lease renewals.

    Usage::

        scheduler = ResubscriptionScheduler(protocol.resubscribe)
        await scheduler.start()
        scheduler.schedule_renewal("sub-id", lease_seconds=432000)
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        action: Callable[[str], Awaitable[None]],
        *,
        safety_buffer: float = SAFETY_BUFFER,
        min_delay: float = MIN_DELAY,
        queue_size: int = QUEUE_SIZE,
        metrics: RelayMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._action = action
        self._safety_buffer = safety_buffer
        self._min_delay = min_delay
        self._metrics = metrics
        self._clock = clock
        self._queue: asyncio.Queue[ScheduleCommand] = asyncio.Queue(maxsize=queue_size)
        self._timers: list[tuple[float, int, str]] = []
        self._seq = itertools.count()
        self._task: asyncio.Task[None] | None = None
        self._firing: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the event loop task is running."""
        return self._running

    @property
    def pending(self) -> list[str]:
        """Subscription ids with an armed timer, soonest first."""
        return [sub_id for _, _, sub_id in sorted(self._timers)]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def schedule(self, subscription_id: str, delay: float) -> bool:
        """Queue a renewal for *subscription_id* after *delay* seconds.

        Never raises: a full or stopped queue drops the command with a log
        entry, since the next verification handshake re-arms the timer.
        """
        if not self._running:
            logger.warning("Scheduler not running — dropping renewal for %s", subscription_id)
            return False
        try:
            self._queue.put_nowait(ScheduleCommand(subscription_id, max(delay, 0.0)))
        except asyncio.QueueFull:
            logger.warning("Scheduler queue full — dropping renewal for %s", subscription_id)
            return False
        return True

    def schedule_renewal(self, subscription_id: str, lease_seconds: float) -> bool:
        """Queue a renewal for a lease of *lease_seconds* granted just now."""
        delay = renewal_delay(
            lease_seconds,
            safety_buffer=self._safety_buffer,
            min_delay=self._min_delay,
        )
        return self.schedule(subscription_id, delay)

    def prime(self, subscriptions: Iterable[Subscription]) -> int:
        """Arm one timer per subscription with a known expiry.

        Returns the number of commands queued.
        """
        now = self._clock()
        queued = 0
        for subscription in subscriptions:
            if subscription.expires is None:
                continue
            delay = delay_until_expiry(
                subscription.expires,
                now,
                safety_buffer=self._safety_buffer,
                min_delay=self._min_delay,
            )
            if self.schedule(subscription.id, delay):
                queued += 1
        logger.info("Scheduler primed with %d subscriptions", queued)
        return queued

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the event loop task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Resubscription scheduler started")

    async def stop(self) -> None:
        """Stop the loop. Pending timers and in-flight renewals are dropped."""
        if not self._running:
            return
        self._running = False
        tasks = [t for t in (self._task, *self._firing) if t is not None]
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for r in results:
            if isinstance(r, Exception) and not isinstance(r, asyncio.CancelledError):
                logger.error("Scheduler task error during shutdown: %s", r)
        self._task = None
        self._firing.clear()
        dropped = len(self._timers)
        self._timers.clear()
        self._update_gauge()
        logger.info("Resubscription scheduler stopped (%d timers dropped)", dropped)

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        receive: asyncio.Task[ScheduleCommand] | None = None
        try:
            while self._running:
                if receive is None:
                    receive = asyncio.ensure_future(self._queue.get())
                timeout = None
                if self._timers:
                    timeout = max(self._timers[0][0] - loop.time(), 0.0)

                done, _ = await asyncio.wait({receive}, timeout=timeout)
                if receive in done:
                    self._arm(receive.result(), loop.time())
                    receive = None
                self._fire_due(loop.time())
        finally:
            if receive is not None:
                receive.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await receive

    def _arm(self, command: ScheduleCommand, now: float) -> None:
        deadline = now + command.delay
        heapq.heappush(self._timers, (deadline, next(self._seq), command.subscription_id))
        self._update_gauge()
        logger.info(
            "Renewal for subscription %s armed in %.0f seconds",
            command.subscription_id,
            command.delay,
        )

    def _fire_due(self, now: float) -> None:
        while self._timers and self._timers[0][0] <= now:
            _, _, subscription_id = heapq.heappop(self._timers)
            task = asyncio.create_task(self._fire(subscription_id))
            self._firing.add(task)
            task.add_done_callback(self._firing.discard)
        self._update_gauge()

    async def _fire(self, subscription_id: str) -> None:
        logger.info("Executing resubscribe for %s", subscription_id)
        try:
            await self._action(subscription_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Resubscribe failed for %s", subscription_id)
            if self._metrics:
                self._metrics.record_resubscription(ok=False)
        else:
            if self._metrics:
                self._metrics.record_resubscription(ok=True)

    def _update_gauge(self) -> None:
        if self._metrics:
            self._metrics.set_scheduled_timers(len(self._timers))
