"""Strongly consistent tier: inventory snapshot and live summary counters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

import pytz

from ledgerpulse.aggregation.deltas import Delta, change_deltas, merge_deltas
from ledgerpulse.aggregation.store import mark_event_no_commit
from ledgerpulse.config import RetryConfig
from ledgerpulse.database import Database
from ledgerpulse.database.retry import run_with_retry
from ledgerpulse.models.ledger import LedgerChangeEvent
from ledgerpulse.timeutil import date_key, iso_now, localize

logger = logging.getLogger(__name__)

EVENT_SCOPE = "live"

# live_summary column -> delta total
LIVE_TODAY_FIELDS = {
    "transactions_today": "total_transactions",
    "sales_today": "total_sales",
    "purchases_today": "total_purchases",
    "expenses_today": "total_expenses",
}
LIVE_MONTH_FIELDS = {
    "sales_month": "total_sales",
    "purchases_month": "total_purchases",
    "expenses_month": "total_expenses",
    "sales_count_month": "sales_count",
    "purchases_count_month": "purchases_count",
    "expenses_count_month": "expenses_count",
    "transactions_month": "total_transactions",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LiveUpdateResult:
    """What one change event did to the live tier."""

    duplicate: bool = False
    inventory: dict[str, float] = field(default_factory=dict)
    counters: dict[str, float] = field(default_factory=dict)
    deltas: list[Delta] = field(default_factory=list)


def live_counter_increments(deltas: list[Delta], now: datetime, tz: pytz.BaseTzInfo) -> dict[str, float]:
    """Counter increments for the deltas that fall in the current day / month."""
    today = date_key(now, tz)
    month = today[:7]
    increments: dict[str, float] = {}
    for delta in deltas:
        if delta.date_key is None:
            continue
        targets = []
        if delta.date_key == today:
            targets.append(LIVE_TODAY_FIELDS)
        if delta.date_key[:7] == month:
            targets.append(LIVE_MONTH_FIELDS)
        for mapping in targets:
            for column, total in mapping.items():
                value = delta.totals.get(total, 0)
                if value:
                    increments[column] = increments.get(column, 0) + value
    return increments


class LiveAggregateUpdater:
    """Apply change-event deltas to `inventory` and `live_summary` atomically."""

    def __init__(
        self,
        db: Database,
        tz: pytz.BaseTzInfo = pytz.utc,
        retry: Optional[RetryConfig] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.tz = tz
        self.retry = retry or RetryConfig()
        self.now = now

    async def apply(self, event: LedgerChangeEvent) -> LiveUpdateResult:
        """Commit the event's inventory and counter deltas in one transaction.

        Raises AggregateUnavailableError when the commit keeps losing lock races.
        """
        deltas = change_deltas(event.before, event.after, self.tz)
        return await run_with_retry(
            lambda: self._commit(event, deltas),
            attempts=self.retry.attempts,
            backoff_seconds=self.retry.backoff_seconds,
            description="live aggregate update",
        )

    async def _commit(self, event: LedgerChangeEvent, deltas: list[Delta]) -> LiveUpdateResult:
        now = self.now()
        stamp = iso_now(now)
        inventory = {m: q for m, q in merge_deltas(deltas).inventory.items() if q}
        counters = live_counter_increments(deltas, now, self.tz)

        async with self.db.transaction():
            if event.event_id and not await mark_event_no_commit(
                self.db, event.event_id, EVENT_SCOPE, stamp
            ):
                logger.info("Skipping duplicate change event %s", event.event_id)
                return LiveUpdateResult(duplicate=True)

            if inventory:
                await self.db.executemany_no_commit(
                    """
                    INSERT INTO inventory (material, quantity, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(material) DO UPDATE SET
                        quantity = inventory.quantity + excluded.quantity,
                        updated_at = excluded.updated_at
                    """,
                    [(material, quantity, stamp) for material, quantity in inventory.items()],
                )

            assignments = [f"{column} = {column} + ?" for column in counters]
            params: list = list(counters.values())
            assignments.append("updated_at = ?")
            params.append(stamp)
            if event.after is not None and event.after.timestamp is not None:
                assignments.append("last_transaction_date = ?")
                params.append(localize(event.after.timestamp, self.tz).isoformat())
            await self.db.execute_write_no_commit(
                f"UPDATE live_summary SET {', '.join(assignments)} WHERE id = 1", params
            )

        logger.debug(
            "Live update committed: event=%s inventory=%s counters=%s",
            event.event_id, inventory, counters,
        )
        return LiveUpdateResult(inventory=inventory, counters=counters, deltas=deltas)
