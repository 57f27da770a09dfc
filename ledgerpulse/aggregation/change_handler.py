"""Entry point for ledger change events."""

from __future__ import annotations

import logging

from ledgerpulse.aggregation.daily_updater import DailyAggregateUpdater
from ledgerpulse.aggregation.live_updater import LiveAggregateUpdater
from ledgerpulse.exceptions import PartialAggregateFailure
from ledgerpulse.models.ledger import LedgerChangeEvent
from ledgerpulse.models.reports import ChangeEventAck
from ledgerpulse.query.cache import (
    INVENTORY_PREFIX,
    LAST_PRICE_PREFIX,
    REPORTS_PREFIX,
    STATS_PREFIX,
    QueryCache,
)

logger = logging.getLogger(__name__)


class LedgerChangeHandler:
    """Run both consistency tiers for one change event.

    1. Live tier (inventory + live summary): must commit, errors propagate so
       the sender redelivers.
    2. Cache invalidation for everything the event can change.
    3. Daily tier: best effort; a failure is logged and reported in the ack.
    """

    def __init__(self, live: LiveAggregateUpdater, daily: DailyAggregateUpdater, cache: QueryCache):
        self.live = live
        self.daily = daily
        self.cache = cache

    async def handle(self, event: LedgerChangeEvent) -> ChangeEventAck:
        result = await self.live.apply(event)
        if result.duplicate:
            return ChangeEventAck(duplicate=True)

        self.cache.invalidate_many(REPORTS_PREFIX, STATS_PREFIX, INVENTORY_PREFIX, LAST_PRICE_PREFIX)

        try:
            await self.daily.apply(event, result.deltas)
        except Exception as exc:
            failure = PartialAggregateFailure(
                f"Daily aggregate update failed for event {event.event_id}: {exc}"
            )
            logger.error("%s", failure, exc_info=exc)
            return ChangeEventAck(daily_updated=False)

        self.cache.invalidate(REPORTS_PREFIX)
        return ChangeEventAck()
