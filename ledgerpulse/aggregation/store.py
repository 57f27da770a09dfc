"""SQL writers for daily aggregate records.

All functions here issue statements through the `*_no_commit` methods and must
run inside `Database.transaction()`.
"""

from __future__ import annotations

from ledgerpulse.aggregation.deltas import Delta
from ledgerpulse.database import Database
from ledgerpulse.models.aggregates import DailyAggregate

HEADER_COLUMNS = (
    "total_sales",
    "total_purchases",
    "total_expenses",
    "total_profit",
    "total_transactions",
    "sales_count",
    "purchases_count",
    "expenses_count",
)

_INSERT_HEADER = f"""
    INSERT INTO daily_reports (
        date_key, {", ".join(HEADER_COLUMNS)}, generated_at, generated_by, updated_at
    ) VALUES ({", ".join("?" * (len(HEADER_COLUMNS) + 4))})
"""

_INSERT_MATERIAL = """
    INSERT INTO daily_material_stats (
        date_key, material, sales, purchases, quantity, profit, transactions
    ) VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_INSERT_PAYMENT = """
    INSERT INTO daily_payment_stats (date_key, method, count, total)
    VALUES (?, ?, ?, ?)
"""


def _header_values(delta: Delta) -> list:
    return [delta.totals.get(column, 0) for column in HEADER_COLUMNS]


async def upsert_daily_increment_no_commit(
    db: Database, day: str, delta: Delta, generated_by: str, now: str
) -> None:
    """Add `delta` to the record of `day`, creating it when missing."""
    assignments = ", ".join(
        f"{column} = daily_reports.{column} + excluded.{column}" for column in HEADER_COLUMNS
    )
    await db.execute_write_no_commit(
        _INSERT_HEADER
        + f" ON CONFLICT(date_key) DO UPDATE SET {assignments}, updated_at = excluded.updated_at",
        [day, *_header_values(delta), now, generated_by, now],
    )
    await _increment_children_no_commit(db, day, delta)


async def increment_existing_daily_no_commit(
    db: Database, day: str, delta: Delta, now: str
) -> bool:
    """Add `delta` to an existing record of `day`. Returns False if there is none."""
    assignments = ", ".join(f"{column} = {column} + ?" for column in HEADER_COLUMNS)
    updated = await db.execute_write_no_commit(
        f"UPDATE daily_reports SET {assignments}, updated_at = ? WHERE date_key = ?",
        [*_header_values(delta), now, day],
    )
    if not updated:
        return False
    await _increment_children_no_commit(db, day, delta)
    return True


async def _increment_children_no_commit(db: Database, day: str, delta: Delta) -> None:
    material_rows = [
        (
            day,
            material,
            stats.get("sales", 0),
            stats.get("purchases", 0),
            stats.get("quantity", 0),
            stats.get("profit", 0),
            stats.get("transactions", 0),
        )
        for material, stats in delta.materials.items()
    ]
    if material_rows:
        await db.executemany_no_commit(
            _INSERT_MATERIAL
            + """
            ON CONFLICT(date_key, material) DO UPDATE SET
                sales = daily_material_stats.sales + excluded.sales,
                purchases = daily_material_stats.purchases + excluded.purchases,
                quantity = daily_material_stats.quantity + excluded.quantity,
                profit = daily_material_stats.profit + excluded.profit,
                transactions = daily_material_stats.transactions + excluded.transactions
            """,
            material_rows,
        )

    payment_rows = [
        (day, method, stats.get("count", 0), stats.get("total", 0))
        for method, stats in delta.payments.items()
    ]
    if payment_rows:
        await db.executemany_no_commit(
            _INSERT_PAYMENT
            + """
            ON CONFLICT(date_key, method) DO UPDATE SET
                count = daily_payment_stats.count + excluded.count,
                total = daily_payment_stats.total + excluded.total
            """,
            payment_rows,
        )


async def write_daily_record_no_commit(
    db: Database,
    aggregate: DailyAggregate,
    generated_by: str,
    now: str,
    overwrite: bool = False,
) -> bool:
    """Write a finalized daily record.

    Without `overwrite` an existing record wins and False is returned. With
    `overwrite` the header is replaced and the child rows rebuilt.
    """
    header = [
        aggregate.date_key,
        aggregate.total_sales,
        aggregate.total_purchases,
        aggregate.total_expenses,
        aggregate.total_profit,
        aggregate.total_transactions,
        aggregate.sales_count,
        aggregate.purchases_count,
        aggregate.expenses_count,
        now,
        generated_by,
        now,
    ]
    if overwrite:
        await db.execute_write_no_commit(
            _INSERT_HEADER.replace("INSERT INTO", "INSERT OR REPLACE INTO"), header
        )
        await delete_children_no_commit(db, aggregate.date_key)
    else:
        inserted = await db.execute_write_no_commit(
            _INSERT_HEADER + " ON CONFLICT(date_key) DO NOTHING", header
        )
        if not inserted:
            return False

    if aggregate.material_stats:
        await db.executemany_no_commit(
            _INSERT_MATERIAL,
            [
                (
                    aggregate.date_key,
                    material,
                    stats.sales,
                    stats.purchases,
                    stats.quantity,
                    stats.profit,
                    stats.transactions,
                )
                for material, stats in aggregate.material_stats.items()
            ],
        )
    if aggregate.payment_stats:
        await db.executemany_no_commit(
            _INSERT_PAYMENT,
            [
                (aggregate.date_key, method, stats.count, stats.total)
                for method, stats in aggregate.payment_stats.items()
            ],
        )
    return True


async def delete_children_no_commit(db: Database, day: str) -> None:
    await db.execute_write_no_commit("DELETE FROM daily_material_stats WHERE date_key = ?", [day])
    await db.execute_write_no_commit("DELETE FROM daily_payment_stats WHERE date_key = ?", [day])


async def delete_daily_record_no_commit(db: Database, day: str) -> None:
    await delete_children_no_commit(db, day)
    await db.execute_write_no_commit("DELETE FROM daily_reports WHERE date_key = ?", [day])


async def mark_event_no_commit(db: Database, event_id: str, scope: str, now: str) -> bool:
    """Record a processed change event; False when it was already recorded."""
    inserted = await db.execute_write_no_commit(
        "INSERT OR IGNORE INTO processed_events (event_id, scope, processed_at) VALUES (?, ?, ?)",
        [event_id, scope, now],
    )
    return bool(inserted)
