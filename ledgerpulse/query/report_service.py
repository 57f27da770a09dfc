"""Cached query entry points consumed by the API and report renderers."""

from __future__ import annotations

import logging
from typing import Optional

from ledgerpulse.exceptions import NotFoundError, QueryValidationError
from ledgerpulse.ledger.reader import LedgerReader
from ledgerpulse.models.aggregates import (
    DailyAggregate,
    InventorySnapshot,
    LiveSummary,
    MaterialStats,
    PaymentStats,
)
from ledgerpulse.models.ledger import EntryKind
from ledgerpulse.models.reports import AggregatedSummary, DailyBreakdownItem, LastPrice
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.query.cache import (
    INVENTORY_PREFIX,
    LAST_PRICE_PREFIX,
    REPORTS_PREFIX,
    STATS_PREFIX,
    QueryCache,
)
from ledgerpulse.timeutil import parse_date_key

logger = logging.getLogger(__name__)

_SUMMARY_TOTALS = (
    "total_sales",
    "total_purchases",
    "total_expenses",
    "total_profit",
    "total_transactions",
    "sales_count",
    "purchases_count",
    "expenses_count",
)


def validate_date_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[str, str]:
    """Normalize a YYYY-MM-DD range. Raises QueryValidationError."""
    if not start_date or not end_date:
        raise QueryValidationError("start_date and end_date are required")
    try:
        start = parse_date_key(start_date)
        end = parse_date_key(end_date)
    except ValueError as exc:
        raise QueryValidationError(f"Invalid date (expected YYYY-MM-DD): {exc}") from exc
    if start > end:
        raise QueryValidationError("start_date must not be after end_date")
    return start.isoformat(), end.isoformat()


def summarize(
    records: list[DailyAggregate], start_key: str, end_key: str, material: Optional[str] = None
) -> AggregatedSummary:
    """Sum daily records into one summary, optionally narrowed to one material."""
    summary = AggregatedSummary(start_date=start_key, end_date=end_key)
    for record in records:
        for name in _SUMMARY_TOTALS:
            setattr(summary, name, getattr(summary, name) + getattr(record, name))

        for name, stats in record.material_stats.items():
            total = summary.material_stats.setdefault(name, MaterialStats())
            total.sales += stats.sales
            total.purchases += stats.purchases
            total.quantity += stats.quantity
            total.profit += stats.profit
            total.transactions += stats.transactions

        for method, stats in record.payment_stats.items():
            total = summary.payment_stats.setdefault(method, PaymentStats())
            total.count += stats.count
            total.total += stats.total

        summary.daily_breakdown.append(
            DailyBreakdownItem(
                date=record.date_key,
                total_sales=record.total_sales,
                total_purchases=record.total_purchases,
                total_profit=record.total_profit,
                transactions=record.total_transactions,
            )
        )

    if material:
        if material not in summary.material_stats:
            raise NotFoundError(f"No data for material {material!r} between {start_key} and {end_key}")
        summary.material_stats = {material: summary.material_stats[material]}
    return summary


class ReportService:
    """Read-only queries over the aggregates, all served through the query cache."""

    def __init__(self, aggregates: AggregateReader, ledger: LedgerReader, cache: QueryCache):
        self.aggregates = aggregates
        self.ledger = ledger
        self.cache = cache

    async def get_aggregated_summary(
        self, start_date: Optional[str], end_date: Optional[str], material: Optional[str] = None
    ) -> AggregatedSummary:
        """Totals over the range.

        An empty range is a valid all-zero summary; a material filter that
        matches nothing raises NotFoundError.
        """
        start_key, end_key = validate_date_range(start_date, end_date)

        async def compute() -> AggregatedSummary:
            records = await self.list_daily_reports(start_key, end_key)
            return summarize(records, start_key, end_key, material)

        return await self.cache.get(
            f"{REPORTS_PREFIX}summary_{start_key}_{end_key}_{material or 'all'}", compute
        )

    async def list_daily_reports(
        self, start_date: Optional[str], end_date: Optional[str]
    ) -> list[DailyAggregate]:
        """Raw daily records in the range, ascending by date."""
        start_key, end_key = validate_date_range(start_date, end_date)
        return await self.cache.get(
            f"{REPORTS_PREFIX}{start_key}_{end_key}",
            lambda: self.aggregates.get_daily_range(start_key, end_key),
        )

    async def get_live_summary(self) -> LiveSummary:
        return await self.cache.get(f"{STATS_PREFIX}_live_summary", self.aggregates.get_live_summary)

    async def get_inventory(self) -> InventorySnapshot:
        return await self.cache.get(f"{INVENTORY_PREFIX}_current", self.aggregates.get_inventory)

    async def get_last_price(self, material: Optional[str], kind: Optional[str]) -> LastPrice:
        """Unit price of the most recent entry of `kind` for `material`."""
        if not material or not kind:
            raise QueryValidationError("material and kind are required")
        entry_kind = EntryKind.parse(kind)
        if entry_kind is None:
            raise QueryValidationError(f"Unknown kind: {kind}")

        async def compute() -> LastPrice:
            entry = await self.ledger.last_entry(material, entry_kind)
            if entry is None:
                raise NotFoundError(f"No previous {entry_kind.value} found for {material}")
            return LastPrice(
                material=material,
                kind=entry_kind.value,
                unit_price=entry.unit_price,
                timestamp=entry.timestamp,
            )

        return await self.cache.get(f"{LAST_PRICE_PREFIX}{material}_{entry_kind.value}", compute)
