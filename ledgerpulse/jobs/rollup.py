"""Finalize yesterday's daily aggregate from the raw ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz

from ledgerpulse.aggregation.deltas import DailyAccumulator, Delta, build_aggregate
from ledgerpulse.aggregation.live_updater import utc_now
from ledgerpulse.aggregation.store import write_daily_record_no_commit
from ledgerpulse.database import Database
from ledgerpulse.ledger.reader import LedgerReader
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.query.cache import REPORTS_PREFIX, QueryCache
from ledgerpulse.timeutil import day_bounds, iso_now, localize

logger = logging.getLogger(__name__)

GENERATED_BY = "rollup"


@dataclass
class RollupResult:
    date_key: str
    created: bool
    transactions: int = 0


class RollupFinalizer:
    """Write a complete record for yesterday unless one already exists."""

    def __init__(
        self,
        db: Database,
        ledger: LedgerReader,
        aggregates: AggregateReader,
        cache: Optional[QueryCache] = None,
        tz: pytz.BaseTzInfo = pytz.utc,
        page_size: int = 500,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.ledger = ledger
        self.aggregates = aggregates
        self.cache = cache
        self.tz = tz
        self.page_size = page_size
        self.now = now

    async def run(self) -> RollupResult:
        now = self.now()
        yesterday = localize(now, self.tz).date() - timedelta(days=1)
        day = yesterday.isoformat()

        if await self.aggregates.get_daily(day) is not None:
            logger.info("Daily report for %s already exists, skipping rollup", day)
            return RollupResult(date_key=day, created=False)

        start, end = day_bounds(yesterday, self.tz)
        accumulator = DailyAccumulator(self.tz)
        async for page in self.ledger.iter_pages(start, end, self.page_size):
            for entry in page:
                accumulator.add_entry(entry)

        aggregate = build_aggregate(day, accumulator.days.get(day, Delta(date_key=day)))
        async with self.db.transaction():
            created = await write_daily_record_no_commit(self.db, aggregate, GENERATED_BY, iso_now(now))

        if created:
            if self.cache is not None:
                self.cache.invalidate(REPORTS_PREFIX)
            logger.info(
                "Daily report for %s generated: %d transactions", day, aggregate.total_transactions
            )
        else:
            logger.info("Daily report for %s was written concurrently, kept existing", day)
        return RollupResult(date_key=day, created=created, transactions=accumulator.processed)
