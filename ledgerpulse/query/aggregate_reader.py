"""Read derived aggregates from SQLite."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ledgerpulse.database import Database
from ledgerpulse.models.aggregates import (
    DailyAggregate,
    InventorySnapshot,
    LiveSummary,
    LowStockItem,
    MaterialStats,
    Notification,
    PaymentStats,
)

logger = logging.getLogger(__name__)


class AggregateReader:
    """Row-to-model access for daily records, live summary, inventory and notifications."""

    def __init__(self, db: Database):
        self.db = db

    async def get_daily_range(self, start_key: str, end_key: str) -> list[DailyAggregate]:
        """Daily records with start_key <= date_key <= end_key, ascending."""
        headers = await self.db.execute_read(
            """
            SELECT date_key, total_sales, total_purchases, total_expenses, total_profit,
                   total_transactions, sales_count, purchases_count, expenses_count,
                   generated_at, generated_by, updated_at
            FROM daily_reports
            WHERE date_key >= ? AND date_key <= ?
            ORDER BY date_key
            """,
            [start_key, end_key],
        )
        if not headers:
            return []

        records = {row["date_key"]: DailyAggregate(**dict(row)) for row in headers}

        materials = await self.db.execute_read(
            """
            SELECT date_key, material, sales, purchases, quantity, profit, transactions
            FROM daily_material_stats
            WHERE date_key >= ? AND date_key <= ?
            """,
            [start_key, end_key],
        )
        for row in materials:
            record = records.get(row["date_key"])
            if record is not None:
                record.material_stats[row["material"]] = MaterialStats(
                    sales=row["sales"],
                    purchases=row["purchases"],
                    quantity=row["quantity"],
                    profit=row["profit"],
                    transactions=row["transactions"],
                )

        payments = await self.db.execute_read(
            """
            SELECT date_key, method, count, total
            FROM daily_payment_stats
            WHERE date_key >= ? AND date_key <= ?
            """,
            [start_key, end_key],
        )
        for row in payments:
            record = records.get(row["date_key"])
            if record is not None:
                record.payment_stats[row["method"]] = PaymentStats(count=row["count"], total=row["total"])

        return list(records.values())

    async def get_daily(self, date_key: str) -> Optional[DailyAggregate]:
        records = await self.get_daily_range(date_key, date_key)
        return records[0] if records else None

    async def get_live_summary(self) -> LiveSummary:
        rows = await self.db.execute_read("SELECT * FROM live_summary WHERE id = 1")
        if not rows:
            return LiveSummary()
        data = dict(rows[0])
        data.pop("id", None)
        return LiveSummary(**data)

    async def get_inventory(self) -> InventorySnapshot:
        rows = await self.db.execute_read(
            "SELECT material, quantity, updated_at FROM inventory ORDER BY material"
        )
        updated = [row["updated_at"] for row in rows if row["updated_at"]]
        return InventorySnapshot(
            materials={row["material"]: row["quantity"] for row in rows},
            updated_at=max(updated) if updated else None,
        )

    async def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        query = "SELECT * FROM notifications"
        if unread_only:
            query += " WHERE read = 0"
        rows = await self.db.execute_read(query + " ORDER BY id DESC")
        return [row_to_notification(row) for row in rows]


def row_to_notification(row) -> Notification:
    try:
        items = [LowStockItem(**item) for item in json.loads(row["items"] or "[]")]
    except (TypeError, ValueError) as exc:
        logger.warning("Notification %s has unreadable items: %s", row["id"], exc)
        items = []
    return Notification(
        id=row["id"],
        type=row["type"],
        title=row["title"],
        message=row["message"],
        items=items,
        read=bool(row["read"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
