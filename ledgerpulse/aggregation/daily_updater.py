"""Best-effort tier: mirror change events into their days' aggregates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

import pytz

from ledgerpulse.aggregation.deltas import Delta, change_deltas, group_by_date
from ledgerpulse.aggregation.live_updater import utc_now
from ledgerpulse.aggregation.store import (
    increment_existing_daily_no_commit,
    mark_event_no_commit,
    upsert_daily_increment_no_commit,
)
from ledgerpulse.database import Database
from ledgerpulse.models.ledger import LedgerChangeEvent
from ledgerpulse.timeutil import date_key, iso_now

logger = logging.getLogger(__name__)

EVENT_SCOPE = "daily"
GENERATED_BY = "live"


class DailyAggregateUpdater:
    """Additively update the daily record of each day an event touches.

    Today's record is created on first use. Records of other days are only
    adjusted when they already exist; a missing past day is left for the
    rollup finalizer or a backfill, which rebuild it from the ledger.
    Failures propagate to the caller.
    """

    def __init__(
        self,
        db: Database,
        tz: pytz.BaseTzInfo = pytz.utc,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.tz = tz
        self.now = now

    async def apply(
        self, event: LedgerChangeEvent, deltas: Optional[list[Delta]] = None
    ) -> list[str]:
        """Apply the event; returns the date keys that were written."""
        if deltas is None:
            deltas = change_deltas(event.before, event.after, self.tz)
        days = group_by_date(deltas)
        if not days:
            return []

        now = self.now()
        today = date_key(now, self.tz)
        stamp = iso_now(now)
        written: list[str] = []

        async with self.db.transaction():
            if event.event_id and not await mark_event_no_commit(
                self.db, event.event_id, EVENT_SCOPE, stamp
            ):
                logger.info("Daily aggregates already hold event %s", event.event_id)
                return []

            for day in sorted(days):
                delta = days[day]
                if day == today:
                    await upsert_daily_increment_no_commit(self.db, day, delta, GENERATED_BY, stamp)
                    written.append(day)
                elif await increment_existing_daily_no_commit(self.db, day, delta, stamp):
                    written.append(day)
                else:
                    logger.info("No daily record for %s yet; left for reconciliation", day)

        return written
