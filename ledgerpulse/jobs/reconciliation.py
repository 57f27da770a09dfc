"""Rebuild daily aggregates in bulk from the raw ledger."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time
from typing import Callable, Optional

import pytz

from ledgerpulse.aggregation.deltas import DailyAccumulator
from ledgerpulse.aggregation.live_updater import utc_now
from ledgerpulse.aggregation.store import (
    delete_daily_record_no_commit,
    write_daily_record_no_commit,
)
from ledgerpulse.config import BackfillConfig
from ledgerpulse.database import Database
from ledgerpulse.exceptions import QueryValidationError, ReconciliationError
from ledgerpulse.jobs.progress import BackfillProgress
from ledgerpulse.ledger.reader import LedgerReader
from ledgerpulse.models.aggregates import DailyAggregate
from ledgerpulse.models.reports import BackfillStatusResponse, ReconciliationResult
from ledgerpulse.query.cache import REPORTS_PREFIX, STATS_PREFIX, QueryCache
from ledgerpulse.timeutil import day_bounds, iso_now, localize, month_bounds, subtract_months

logger = logging.getLogger(__name__)

RUN_BACKFILL = "backfill"
RUN_MONTH_ROLLUP = "month_rollup"

# live_summary month column -> daily_reports column
MONTH_COUNTER_SOURCES = {
    "sales_month": "total_sales",
    "purchases_month": "total_purchases",
    "expenses_month": "total_expenses",
    "sales_count_month": "sales_count",
    "purchases_count_month": "purchases_count",
    "expenses_count_month": "expenses_count",
    "transactions_month": "total_transactions",
}


class ReconciliationEngine:
    """Backfill and month rollup over the ledger.

    Phase 1 scans the range page by page and groups entries by day. Phase 2
    writes the days in ascending order in batched transactions, keeping
    existing records unless forced. Phase 3 (backfill only) re-derives the
    current month's live counters from the daily records.

    Only one run at a time per process.
    """

    def __init__(
        self,
        db: Database,
        ledger: LedgerReader,
        progress: BackfillProgress,
        cache: Optional[QueryCache] = None,
        tz: pytz.BaseTzInfo = pytz.utc,
        config: Optional[BackfillConfig] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.ledger = ledger
        self.progress = progress
        self.cache = cache
        self.tz = tz
        self.config = config or BackfillConfig()
        self.now = now
        self._lock = asyncio.Lock()
        self._running = False

    def is_running(self) -> bool:
        return self._running or self._lock.locked()

    async def run_backfill(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        force_overwrite: bool = False,
    ) -> ReconciliationResult:
        """Rebuild [start_date, end_date]; defaults to the last 12 months up to today."""
        today = localize(self.now(), self.tz).date()
        end_day = end_date or today
        start_day = start_date or subtract_months(
            datetime.combine(end_day, time.min), self.config.default_months
        ).date()
        if start_day > end_day:
            raise QueryValidationError("start_date must not be after end_date")

        start, _ = day_bounds(start_day, self.tz)
        _, end = day_bounds(end_day, self.tz)
        return await self._run(
            RUN_BACKFILL, start, end, force_overwrite, refresh_month_counters=True
        )

    async def run_month_rollup(
        self, year: int, month: int, force_overwrite: bool = False
    ) -> ReconciliationResult:
        """Rebuild one calendar month (`month` is 1-12)."""
        if not isinstance(year, int) or not 2000 <= year <= 2100:
            raise QueryValidationError(f"Invalid year: {year}")
        if not isinstance(month, int) or not 1 <= month <= 12:
            raise QueryValidationError(f"Invalid month (expected 1-12): {month}")

        start, end = month_bounds(year, month, self.tz)
        return await self._run(
            RUN_MONTH_ROLLUP, start, end, force_overwrite, refresh_month_counters=False
        )

    async def get_status(self) -> BackfillStatusResponse:
        data = self.progress.load()
        return BackfillStatusResponse(
            is_running=self.is_running(),
            status=data.status,
            phase=data.phase,
            message=data.message,
            started_at=data.started_at,
            finished_at=data.finished_at,
            progress=data.progress,
            error=data.error,
        )

    async def _run(
        self,
        run_type: str,
        start: datetime,
        end: datetime,
        force: bool,
        refresh_month_counters: bool,
    ) -> ReconciliationResult:
        if self.is_running():
            raise ReconciliationError("Reconciliation already running")

        async with self._lock:
            self._running = True
            period_start = start.date().isoformat()
            period_end = end.date().isoformat()
            started_at = iso_now(self.now())
            result = ReconciliationResult(period_start=period_start, period_end=period_end)
            logger.info(
                "Starting %s %s..%s (force_overwrite=%s)", run_type, period_start, period_end, force
            )

            try:
                self.progress.start(run_type, period_start, period_end)

                accumulator = await self._scan(start, end)
                result.transactions_processed = accumulator.processed

                await self._write_days(
                    accumulator.to_aggregates(), period_start, period_end, run_type, force, result
                )

                if refresh_month_counters:
                    await self._refresh_month_counters()

                if self.cache is not None:
                    self.cache.invalidate_many(STATS_PREFIX, REPORTS_PREFIX)

                result.message = (
                    f"{run_type} finished: {result.days_created} days written, "
                    f"{result.days_skipped} skipped"
                )
                self.progress.finish_success(result.message)
                await self._record_history(run_type, started_at, "success", result)
                logger.info(
                    "%s done: %d transactions, %d days created, %d skipped, %d cleared",
                    run_type,
                    result.transactions_processed,
                    result.days_created,
                    result.days_skipped,
                    result.days_cleared,
                )
                return result

            except Exception as exc:
                logger.exception("%s failed", run_type)
                self.progress.finish_error(str(exc))
                result.success = False
                await self._record_history(run_type, started_at, "error", result, str(exc))
                raise
            finally:
                self._running = False

    async def _scan(self, start: datetime, end: datetime) -> DailyAccumulator:
        accumulator = DailyAccumulator(self.tz)
        async for page in self.ledger.iter_pages(start, end, self.config.page_size):
            for entry in page:
                accumulator.add_entry(entry)
            self.progress.update(
                "scan",
                f"Collected {accumulator.processed} transactions",
                transactions_processed=accumulator.processed,
                days_found=len(accumulator.days),
            )
        if accumulator.skipped:
            logger.warning("Skipped %d ledger entries without a usable date", accumulator.skipped)
        return accumulator

    async def _write_days(
        self,
        aggregates: dict[str, DailyAggregate],
        period_start: str,
        period_end: str,
        run_type: str,
        force: bool,
        result: ReconciliationResult,
    ) -> None:
        rows = await self.db.execute_read(
            "SELECT date_key FROM daily_reports WHERE date_key >= ? AND date_key <= ?",
            [period_start, period_end],
        )
        existing = {row["date_key"] for row in rows}
        stamp = iso_now(self.now())

        pending: list[DailyAggregate] = []
        for day in sorted(aggregates):
            if day in existing and not force:
                result.days_skipped += 1
                continue
            pending.append(aggregates[day])

        batch_size = self.config.write_batch_size
        for offset in range(0, len(pending), batch_size):
            batch = pending[offset : offset + batch_size]
            created = 0
            async with self.db.transaction():
                for aggregate in batch:
                    if await write_daily_record_no_commit(
                        self.db, aggregate, run_type, stamp, overwrite=force
                    ):
                        created += 1
            result.days_created += created
            result.days_skipped += len(batch) - created
            self.progress.update(
                "write",
                f"Saved {result.days_created} daily reports",
                days_created=result.days_created,
                days_skipped=result.days_skipped,
            )

        if force:
            stale = sorted(existing - set(aggregates))
            if stale:
                async with self.db.transaction():
                    for day in stale:
                        await delete_daily_record_no_commit(self.db, day)
                result.days_cleared = len(stale)
                logger.info("Removed %d daily reports with no remaining entries", len(stale))

    async def _refresh_month_counters(self) -> None:
        now = self.now()
        local_now = localize(now, self.tz)
        month_start, month_end = month_bounds(local_now.year, local_now.month, self.tz)
        first, last = month_start.date().isoformat(), month_end.date().isoformat()
        sums = ", ".join(
            f"COALESCE(SUM({source}), 0) AS {column}"
            for column, source in MONTH_COUNTER_SOURCES.items()
        )
        assignments = ", ".join(f"{column} = ?" for column in MONTH_COUNTER_SOURCES)
        stamp = iso_now(now)
        # No live delta may commit between the sum and the overwrite
        async with self.db.transaction():
            rows = await self.db.execute_read_no_lock(
                f"SELECT {sums} FROM daily_reports WHERE date_key >= ? AND date_key <= ?",
                [first, last],
            )
            totals = dict(rows[0])
            await self.db.execute_write_no_commit(
                f"UPDATE live_summary SET {assignments}, updated_at = ?, last_backfill = ? WHERE id = 1",
                [*(totals[column] for column in MONTH_COUNTER_SOURCES), stamp, stamp],
            )
        self.progress.update("live_summary", "Month counters refreshed", month_counters=totals)

    async def _record_history(
        self,
        run_type: str,
        started_at: str,
        status: str,
        result: ReconciliationResult,
        error_message: Optional[str] = None,
    ) -> None:
        await self.db.execute_write(
            """
            INSERT INTO backfill_history (
                started_at, finished_at, status, run_type, period_start, period_end,
                transactions_processed, days_created, days_skipped, error_message
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                started_at,
                iso_now(self.now()),
                status,
                run_type,
                result.period_start,
                result.period_end,
                result.transactions_processed,
                result.days_created,
                result.days_skipped,
                error_message,
            ],
        )
