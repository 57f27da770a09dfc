"""Low-stock alerting over the inventory snapshot."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ledgerpulse.aggregation.live_updater import utc_now
from ledgerpulse.config import StockConfig
from ledgerpulse.database import Database
from ledgerpulse.models.aggregates import LowStockItem
from ledgerpulse.timeutil import iso_now

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = "low_stock"
NOTIFICATION_TITLE = "Low stock alert"


def classify(quantity: float, minimum: float) -> Optional[str]:
    """'critical' below half the minimum, 'low' at or below it, else None."""
    if quantity < minimum / 2:
        return "critical"
    if quantity <= minimum:
        return "low"
    return None


def low_stock_message(count: int) -> str:
    if count == 1:
        return "1 material is low on stock"
    return f"{count} materials are low on stock"


@dataclass
class StockCheckResult:
    items: list[LowStockItem]
    notification_id: Optional[int] = None
    created: bool = False


class StockThresholdMonitor:
    """Maintain a single unread low-stock notification."""

    def __init__(
        self,
        db: Database,
        config: Optional[StockConfig] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.config = config or StockConfig()
        self.now = now

    def minimum_for(self, material: str) -> float:
        return self.config.minimums.get(material, self.config.default_minimum)

    async def find_low_stock(self) -> list[LowStockItem]:
        rows = await self.db.execute_read("SELECT material, quantity FROM inventory ORDER BY material")
        items = []
        for row in rows:
            minimum = self.minimum_for(row["material"])
            quantity = row["quantity"] or 0
            level = classify(quantity, minimum)
            if level:
                items.append(
                    LowStockItem(material=row["material"], quantity=quantity, min_level=minimum, level=level)
                )
        return items

    async def run(self) -> StockCheckResult:
        items = await self.find_low_stock()
        if not items:
            logger.info("All materials are above their minimum stock level")
            return StockCheckResult(items=[])

        stamp = iso_now(self.now())
        message = low_stock_message(len(items))
        payload = json.dumps([item.model_dump() for item in items], ensure_ascii=False)

        async with self.db.transaction():
            updated = await self.db.execute_write_no_commit(
                """
                UPDATE notifications SET items = ?, message = ?, updated_at = ?
                WHERE type = ? AND read = 0
                """,
                [payload, message, stamp, NOTIFICATION_TYPE],
            )
            created = not updated
            if created:
                await self.db.execute_write_no_commit(
                    """
                    INSERT INTO notifications (type, title, message, items, read, created_at, updated_at)
                    VALUES (?, ?, ?, ?, 0, ?, ?)
                    """,
                    [NOTIFICATION_TYPE, NOTIFICATION_TITLE, message, payload, stamp, stamp],
                )
            rows = await self.db.execute_read_no_lock(
                "SELECT id FROM notifications WHERE type = ? AND read = 0", [NOTIFICATION_TYPE]
            )

        notification_id = rows[0]["id"] if rows else None
        if created:
            logger.info("Created low-stock notification for %d materials", len(items))
        else:
            logger.info("Updated existing low-stock notification (%d materials)", len(items))
        return StockCheckResult(items=items, notification_id=notification_id, created=created)


async def mark_notification_read(db: Database, notification_id: int, now: datetime) -> bool:
    """Mark one notification read; False when it does not exist."""
    updated = await db.execute_write(
        "UPDATE notifications SET read = 1, updated_at = ? WHERE id = ?",
        [iso_now(now), notification_id],
    )
    return bool(updated)
