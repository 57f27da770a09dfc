"""Zero the live summary's period counters at day and month boundaries."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz

from ledgerpulse.aggregation.live_updater import LIVE_MONTH_FIELDS, LIVE_TODAY_FIELDS, utc_now
from ledgerpulse.config import EventConfig
from ledgerpulse.database import Database
from ledgerpulse.query.cache import STATS_PREFIX, QueryCache
from ledgerpulse.timeutil import iso_now, localize

logger = logging.getLogger(__name__)


class CounterResetJobs:
    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        tz: pytz.BaseTzInfo = pytz.utc,
        events: Optional[EventConfig] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.cache = cache
        self.tz = tz
        self.events = events or EventConfig()
        self.now = now

    async def reset_daily_counters(self) -> int:
        """Zero today counters and prune old processed-event markers.

        Returns the number of pruned markers.
        """
        now = self.now()
        stamp = iso_now(now)
        cutoff = iso_now(now - timedelta(days=self.events.dedup_retention_days))
        assignments = ", ".join(f"{column} = 0" for column in LIVE_TODAY_FIELDS)

        async with self.db.transaction():
            await self.db.execute_write_no_commit(
                f"UPDATE live_summary SET {assignments}, last_daily_reset = ?, updated_at = ? WHERE id = 1",
                [stamp, stamp],
            )
            pruned = await self.db.execute_write_no_commit(
                "DELETE FROM processed_events WHERE processed_at < ?", [cutoff]
            )

        self._invalidate()
        logger.info("Daily counters reset (%d processed-event markers pruned)", pruned)
        return pruned

    async def reset_monthly_counters(self, only_on_first_day: bool = False) -> bool:
        """Zero month counters. With only_on_first_day, does nothing unless it is day 1."""
        now = self.now()
        if only_on_first_day and localize(now, self.tz).day != 1:
            logger.debug("Not the first day of the month, monthly reset skipped")
            return False

        stamp = iso_now(now)
        assignments = ", ".join(f"{column} = 0" for column in LIVE_MONTH_FIELDS)
        await self.db.execute_write(
            f"UPDATE live_summary SET {assignments}, last_monthly_reset = ?, updated_at = ? WHERE id = 1",
            [stamp, stamp],
        )
        self._invalidate()
        logger.info("Monthly counters reset")
        return True

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate(STATS_PREFIX)
