"""Delta calculator: signed contributions of one ledger entry to the aggregates.

Every aggregate path (live counters, daily mirror, full rescans) builds its
numbers from `compute_delta`, so a day maintained incrementally and the same
day recomputed from raw entries agree.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pytz

from ledgerpulse.models.aggregates import DailyAggregate, MaterialStats, PaymentStats
from ledgerpulse.models.ledger import EntryKind, LedgerEntry
from ledgerpulse.timeutil import date_key

DEFAULT_MATERIAL = "outros"
DEFAULT_PAYMENT_METHOD = "dinheiro"

# kind -> (value total, count)
KIND_BUCKETS = {
    EntryKind.SALE: ("total_sales", "sales_count"),
    EntryKind.PURCHASE: ("total_purchases", "purchases_count"),
    EntryKind.EXPENSE: ("total_expenses", "expenses_count"),
}


def _add_into(target: dict, source: dict) -> None:
    for key, value in source.items():
        target[key] = target.get(key, 0) + value


@dataclass
class Delta:
    """Named numeric contributions, keyed the way the aggregates are stored."""

    date_key: Optional[str] = None
    inventory: dict[str, float] = field(default_factory=dict)
    totals: dict[str, float] = field(default_factory=dict)
    materials: dict[str, dict[str, float]] = field(default_factory=dict)
    payments: dict[str, dict[str, float]] = field(default_factory=dict)

    def add(self, other: "Delta") -> "Delta":
        """Sum `other` into this delta in place (date_key is left unchanged)."""
        _add_into(self.inventory, other.inventory)
        _add_into(self.totals, other.totals)
        for material, stats in other.materials.items():
            _add_into(self.materials.setdefault(material, {}), stats)
        for method, stats in other.payments.items():
            _add_into(self.payments.setdefault(method, {}), stats)
        return self

    def is_empty(self) -> bool:
        return not (self.inventory or self.totals or self.materials or self.payments)


def compute_delta(
    entry: Optional[LedgerEntry], sign: int, tz: pytz.BaseTzInfo = pytz.utc
) -> Delta:
    """Contributions of `entry` with sign +1 (apply) or -1 (reverse).

    Never raises: a missing entry yields an empty delta, unknown kinds still
    count as transactions, and missing material / payment method fall back to
    "outros" / "dinheiro".
    """
    if entry is None:
        return Delta()

    kind = entry.kind
    material = entry.material or DEFAULT_MATERIAL
    method = (entry.payment_method or DEFAULT_PAYMENT_METHOD).lower()
    quantity = entry.quantity or 0.0
    value = entry.total_value or 0.0

    delta = Delta(date_key=date_key(entry.timestamp, tz) if entry.timestamp else None)
    delta.totals["total_transactions"] = sign

    bucket = KIND_BUCKETS.get(kind)
    if bucket:
        value_field, count_field = bucket
        delta.totals[value_field] = sign * value
        delta.totals[count_field] = sign
        delta.totals["total_profit"] = sign * (value if kind is EntryKind.SALE else -value)

    stats = {"transactions": sign}
    if kind is EntryKind.SALE:
        stats.update(sales=sign * value, quantity=-sign * quantity, profit=sign * value)
        delta.inventory[material] = -sign * quantity
    elif kind is EntryKind.PURCHASE:
        stats.update(purchases=sign * value, quantity=sign * quantity, profit=-sign * value)
        delta.inventory[material] = sign * quantity
    delta.materials[material] = stats

    delta.payments[method] = {"count": sign, "total": sign * value}
    return delta


def change_deltas(
    before: Optional[LedgerEntry], after: Optional[LedgerEntry], tz: pytz.BaseTzInfo
) -> list[Delta]:
    """Reversal of `before` followed by application of `after`."""
    deltas = [compute_delta(before, -1, tz), compute_delta(after, 1, tz)]
    return [d for d in deltas if not d.is_empty()]


def merge_deltas(deltas: Iterable[Delta]) -> Delta:
    """Sum deltas regardless of date."""
    merged = Delta()
    for delta in deltas:
        merged.add(delta)
    return merged


def group_by_date(deltas: Iterable[Delta]) -> dict[str, Delta]:
    """Sum deltas per date key; undated deltas are dropped."""
    grouped: dict[str, Delta] = {}
    for delta in deltas:
        if delta.date_key is None:
            continue
        grouped.setdefault(delta.date_key, Delta(date_key=delta.date_key)).add(delta)
    return grouped


class DailyAccumulator:
    """Accumulates raw ledger entries into per-day deltas during a scan."""

    def __init__(self, tz: pytz.BaseTzInfo):
        self.tz = tz
        self.days: dict[str, Delta] = {}
        self.processed = 0
        self.skipped = 0

    def add_entry(self, entry: LedgerEntry) -> Optional[str]:
        """Add one entry; returns its date key, or None when it has no usable date."""
        delta = compute_delta(entry, 1, self.tz)
        if delta.date_key is None:
            self.skipped += 1
            return None
        self.days.setdefault(delta.date_key, Delta(date_key=delta.date_key)).add(delta)
        self.processed += 1
        return delta.date_key

    def to_aggregates(self) -> dict[str, DailyAggregate]:
        return {key: build_aggregate(key, delta) for key, delta in self.days.items()}


def build_aggregate(day: str, delta: Delta) -> DailyAggregate:
    """Finalized record for one day, profit recomputed from the totals."""
    totals = defaultdict(float, delta.totals)
    materials = {}
    for material in sorted(delta.materials):
        stats = defaultdict(float, delta.materials[material])
        materials[material] = MaterialStats(
            sales=stats["sales"],
            purchases=stats["purchases"],
            quantity=stats["quantity"],
            profit=stats["sales"] - stats["purchases"],
            transactions=int(stats["transactions"]),
        )
    payments = {
        method: PaymentStats(
            count=int(delta.payments[method].get("count", 0)),
            total=delta.payments[method].get("total", 0.0),
        )
        for method in sorted(delta.payments)
    }
    return DailyAggregate(
        date_key=day,
        total_sales=totals["total_sales"],
        total_purchases=totals["total_purchases"],
        total_expenses=totals["total_expenses"],
        total_profit=totals["total_sales"] - totals["total_purchases"] - totals["total_expenses"],
        total_transactions=int(totals["total_transactions"]),
        sales_count=int(totals["sales_count"]),
        purchases_count=int(totals["purchases_count"]),
        expenses_count=int(totals["expenses_count"]),
        material_stats=materials,
        payment_stats=payments,
    )
