"""Integration tests for the best-effort daily tier and the change handler."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from ledgerpulse.aggregation import DailyAggregateUpdater, LedgerChangeHandler, LiveAggregateUpdater
from ledgerpulse.aggregation.deltas import DailyAccumulator
from ledgerpulse.aggregation.store import write_daily_record_no_commit
from ledgerpulse.config import RetryConfig
from ledgerpulse.models.aggregates import DailyAggregate
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.query.cache import QueryCache
from tests.fixtures.ledger import created, deleted, entry, local, updated


@pytest_asyncio.fixture
async def daily(test_database, tz, clock):
    return DailyAggregateUpdater(test_database, tz=tz, now=clock)


@pytest_asyncio.fixture
async def live(test_database, tz, clock):
    return LiveAggregateUpdater(
        test_database, tz=tz, retry=RetryConfig(attempts=2, backoff_seconds=0), now=clock
    )


@pytest_asyncio.fixture
async def aggregates(test_database):
    return AggregateReader(test_database)


async def seed_day(db, day: str, **totals) -> None:
    async with db.transaction():
        await write_daily_record_no_commit(db, DailyAggregate(date_key=day, **totals), "rollup", "2025-03-11T03:05:00+00:00")


class TestDailyAggregateUpdater:
    @pytest.mark.asyncio
    async def test_today_record_created_on_first_event(self, daily, aggregates):
        written = await daily.apply(created(entry("s1", "sale", quantity=4, total_value=60)))

        record = await aggregates.get_daily("2025-03-15")
        assert written == ["2025-03-15"]
        assert record.total_sales == 60
        assert record.sales_count == 1
        assert record.total_profit == 60
        assert record.total_transactions == 1
        assert record.generated_by == "live"
        assert record.material_stats["ferro"].quantity == -4
        assert record.payment_stats["pix"].total == 60

    @pytest.mark.asyncio
    async def test_events_accumulate_into_today(self, daily, aggregates):
        await daily.apply(created(entry("p1", "purchase", quantity=50, total_value=100)))
        await daily.apply(created(entry("s1", "sale", quantity=20, total_value=80, payment_method="Cartao")))

        record = await aggregates.get_daily("2025-03-15")
        assert record.total_transactions == 2
        assert record.total_profit == -20
        assert record.material_stats["ferro"].quantity == 30
        assert record.material_stats["ferro"].profit == -20
        assert record.payment_stats["cartao"].count == 1

    @pytest.mark.asyncio
    async def test_missing_past_day_left_for_reconciliation(self, daily, aggregates):
        written = await daily.apply(created(entry("s1", "sale", total_value=10, when=local(2025, 3, 10))))

        assert written == []
        assert await aggregates.get_daily("2025-03-10") is None

    @pytest.mark.asyncio
    async def test_existing_past_day_incremented(self, test_database, daily, aggregates):
        await seed_day(test_database, "2025-03-10", total_sales=100, sales_count=2, total_transactions=2, total_profit=100)

        written = await daily.apply(created(entry("s1", "sale", total_value=10, when=local(2025, 3, 10))))

        record = await aggregates.get_daily("2025-03-10")
        assert written == ["2025-03-10"]
        assert record.total_sales == 110
        assert record.sales_count == 3
        assert record.generated_by == "rollup"

    @pytest.mark.asyncio
    async def test_moving_entry_between_days(self, test_database, daily, aggregates):
        before = entry("s1", "sale", total_value=30)
        after = entry("s1", "sale", total_value=30, when=local(2025, 3, 10))
        await seed_day(test_database, "2025-03-10")
        await daily.apply(created(before))

        written = await daily.apply(updated(before, after))

        assert written == ["2025-03-10", "2025-03-15"]
        assert (await aggregates.get_daily("2025-03-15")).total_sales == 0
        assert (await aggregates.get_daily("2025-03-10")).total_sales == 30

    @pytest.mark.asyncio
    async def test_duplicate_event_ignored(self, daily, aggregates):
        event = created(entry("s1", "sale", total_value=10), event_id="evt-9")

        assert await daily.apply(event) == ["2025-03-15"]
        assert await daily.apply(event) == []
        assert (await aggregates.get_daily("2025-03-15")).total_sales == 10

    @pytest.mark.asyncio
    async def test_undated_entry_writes_nothing(self, daily):
        item = entry("s1", "sale", total_value=10)
        item.timestamp = None

        assert await daily.apply(created(item)) == []

    @pytest.mark.asyncio
    async def test_mirror_matches_rebuild_from_ledger(self, daily, aggregates, tz):
        p1 = entry("p1", "purchase", material="ferro", quantity=50, total_value=100)
        p2 = entry("p2", "purchase", material="cobre", quantity=5, total_value=150, payment_method=None)
        s1 = entry("s1", "sale", material="ferro", quantity=20, total_value=80)
        s1_edit = entry("s1", "sale", material="ferro", quantity=25, total_value=95)
        e1 = entry("e1", "expense", material=None, total_value=12)

        for event in (created(p1), created(p2), created(s1), updated(s1, s1_edit), created(e1)):
            await daily.apply(event)

        accumulator = DailyAccumulator(tz)
        for item in (p1, p2, s1_edit, e1):
            accumulator.add_entry(item)
        rebuilt = accumulator.to_aggregates()["2025-03-15"]
        mirrored = await aggregates.get_daily("2025-03-15")

        fields = ("total_sales", "total_purchases", "total_expenses", "total_profit", "total_transactions",
                  "sales_count", "purchases_count", "expenses_count")
        for name in fields:
            assert getattr(mirrored, name) == pytest.approx(getattr(rebuilt, name)), name
        assert mirrored.material_stats == rebuilt.material_stats
        assert mirrored.payment_stats == rebuilt.payment_stats


class TestLedgerChangeHandler:
    """Strong tier first, best-effort tier second."""

    @pytest.mark.asyncio
    async def test_both_tiers_applied(self, live, daily, aggregates):
        handler = LedgerChangeHandler(live, daily, QueryCache())

        ack = await handler.handle(created(entry("p1", "purchase", quantity=8, total_value=16)))

        assert ack.success is True
        assert ack.daily_updated is True
        assert (await aggregates.get_inventory()).materials["ferro"] == 8
        assert (await aggregates.get_daily("2025-03-15")).total_purchases == 16

    @pytest.mark.asyncio
    async def test_daily_failure_does_not_fail_event(self, live, daily, aggregates):
        daily.apply = AsyncMock(side_effect=RuntimeError("disk full"))
        handler = LedgerChangeHandler(live, daily, QueryCache())

        ack = await handler.handle(created(entry("p1", "purchase", quantity=8, total_value=16)))

        assert ack.success is True
        assert ack.daily_updated is False
        assert (await aggregates.get_inventory()).materials["ferro"] == 8
        assert await aggregates.get_daily("2025-03-15") is None

    @pytest.mark.asyncio
    async def test_live_failure_propagates(self, live, daily):
        live.apply = AsyncMock(side_effect=RuntimeError("locked"))
        daily.apply = AsyncMock()
        handler = LedgerChangeHandler(live, daily, QueryCache())

        with pytest.raises(RuntimeError):
            await handler.handle(created(entry("p1", "purchase", quantity=8)))
        daily.apply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_acknowledged_without_daily_write(self, live, daily):
        handler = LedgerChangeHandler(live, daily, QueryCache())
        event = deleted(entry("s1", "sale", quantity=5, total_value=50), event_id="evt-del")

        first = await handler.handle(event)
        daily.apply = AsyncMock()
        second = await handler.handle(event)

        assert first.duplicate is False
        assert second.duplicate is True
        daily.apply.assert_not_awaited()
