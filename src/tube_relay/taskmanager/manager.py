"""Cron job runner on asyncio tasks.

Each registered ``CronJob`` gets its own task that sleeps for the job's
period and then runs the handler; jobs flagged ``run_at_start`` run once
right away first. A failing run is logged and the job keeps its schedule.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tube_relay.metrics.collector import RelayMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_at_start: bool = False


class TaskManager:
    """Runs cron jobs until stopped.

    Usage::

        tm = TaskManager(metrics=relay_metrics)
        tm.register("resubscribe_lapsed", CronJob(handler=..., period=21600))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(self, *, metrics: RelayMetrics | None = None) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False
        self._metrics = metrics

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs by name."""
        return dict(self._jobs)

    def register(self, name: str, job: CronJob) -> None:
        """Register *job* under *name*, starting it at once if already running."""
        named = replace(job, name=name)
        self._jobs[name] = named
        if self._running:
            self._tasks[name] = asyncio.create_task(self._loop(named))

    async def run_once(self, name: str) -> None:
        """Run a registered job immediately, outside its schedule.

        Raises:
            KeyError: If no job is registered under *name*.
        """
        await self._execute(self._jobs[name])

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._loop(job))
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Cancel every job and wait for the tasks to finish."""
        if not self._running:
            return
        self._running = False
        for task in self._tasks.values():
            task.cancel()
        results = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        for r in results:
            if isinstance(r, Exception) and not isinstance(r, asyncio.CancelledError):
                logger.error("Task error during shutdown: %s", r)
        self._tasks.clear()
        logger.info("TaskManager stopped")

    async def _loop(self, job: CronJob) -> None:
        delay = 0.0 if job.run_at_start else job.period
        while self._running:
            try:
                await asyncio.sleep(delay)
                delay = job.period
                if not self._running:
                    break
                await self._execute(job)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Cron job %r failed", job.name or "unnamed")

    async def _execute(self, job: CronJob) -> None:
        if self._metrics:
            with self._metrics.track_cron(job.name or "unnamed"):
                await job.handler()
        else:
            await job.handler()
