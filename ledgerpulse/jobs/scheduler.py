"""Periodic job scheduler."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable

import schedule

from ledgerpulse.config import ScheduleConfig
from ledgerpulse.exceptions import JobError, NotFoundError

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]

JOB_ROLLUP = "rollup"
JOB_DAILY_RESET = "daily_reset"
JOB_MONTHLY_RESET = "monthly_reset"
JOB_LOW_STOCK = "low_stock"


class JobScheduler:
    """Run named async jobs on daily schedules using the schedule library.

    The schedule loop runs on a daemon thread and hands each job to the app's
    event loop. A job that is still running when its next slot comes up is
    skipped, and failures are logged without stopping the loop.
    """

    def __init__(
        self,
        config: ScheduleConfig,
        jobs: dict[str, JobFactory],
        loop: asyncio.AbstractEventLoop,
    ):
        self.config = config
        self.jobs = jobs
        self.loop = loop
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._active: set[str] = set()
        self._active_lock = threading.Lock()

    def job_times(self) -> dict[str, str]:
        return {
            JOB_ROLLUP: self.config.rollup_time,
            JOB_DAILY_RESET: self.config.daily_reset_time,
            JOB_MONTHLY_RESET: self.config.monthly_reset_time,
            JOB_LOW_STOCK: self.config.low_stock_time,
        }

    def start(self) -> None:
        """Start the scheduler thread."""
        if not self.config.enabled:
            logger.info("Job scheduler disabled in config")
            return

        schedule.clear()
        for name, at in self.job_times().items():
            if name in self.jobs:
                schedule.every().day.at(at, self.config.timezone).do(self._trigger, name)

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_scheduler, daemon=True)
        self._thread.start()
        logger.info(
            "Job scheduler started (%s): %s", self.config.timezone, self.job_times()
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        schedule.clear()

    def is_active(self, name: str) -> bool:
        with self._active_lock:
            return name in self._active

    async def run_now(self, name: str) -> Any:
        """Run a job immediately on the current loop; errors propagate."""
        if name not in self.jobs:
            raise NotFoundError(f"Unknown job: {name}")
        with self._active_lock:
            if name in self._active:
                raise JobError(f"Job {name} already running")
            self._active.add(name)
        try:
            return await self.jobs[name]()
        finally:
            with self._active_lock:
                self._active.discard(name)

    def _trigger(self, name: str) -> None:
        if self.is_active(name):
            logger.info("Scheduled job %s skipped - previous run still active", name)
            return
        logger.info("Scheduled job %s triggered", name)
        asyncio.run_coroutine_threadsafe(self._run_logged(name), self.loop)

    async def _run_logged(self, name: str) -> None:
        started = time.monotonic()
        try:
            await self.run_now(name)
        except Exception:
            logger.exception("Scheduled job %s failed", name)
            return
        logger.info("Scheduled job %s finished in %.2fs", name, time.monotonic() - started)

    def _run_scheduler(self) -> None:
        while not self._stop_event.is_set():
            schedule.run_pending()
            time.sleep(1)
