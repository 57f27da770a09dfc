"""Pydantic models for the derived aggregates."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class MaterialStats(BaseModel):
    """Per-material breakdown of a day.

    `quantity` is net movement for display (purchases in, sales out); it is
    not a source for the inventory snapshot.
    """

    sales: float = 0.0
    purchases: float = 0.0
    quantity: float = 0.0
    profit: float = 0.0
    transactions: int = 0


class PaymentStats(BaseModel):
    """Per-payment-method breakdown of a day."""

    count: int = 0
    total: float = 0.0


class DailyAggregate(BaseModel):
    """Historical rollup of one calendar date (YYYY-MM-DD)."""

    date_key: str
    total_sales: float = 0.0
    total_purchases: float = 0.0
    total_expenses: float = 0.0
    total_profit: float = 0.0
    total_transactions: int = 0
    sales_count: int = 0
    purchases_count: int = 0
    expenses_count: int = 0
    material_stats: dict[str, MaterialStats] = Field(default_factory=dict)
    payment_stats: dict[str, PaymentStats] = Field(default_factory=dict)
    generated_at: Optional[str] = None
    generated_by: Optional[str] = None
    updated_at: Optional[str] = None


class LiveSummary(BaseModel):
    """Running counters for the current day and month."""

    transactions_today: int = 0
    sales_today: float = 0.0
    purchases_today: float = 0.0
    expenses_today: float = 0.0
    sales_month: float = 0.0
    purchases_month: float = 0.0
    expenses_month: float = 0.0
    sales_count_month: int = 0
    purchases_count_month: int = 0
    expenses_count_month: int = 0
    transactions_month: int = 0
    last_transaction_date: Optional[str] = None
    updated_at: Optional[str] = None
    last_daily_reset: Optional[str] = None
    last_monthly_reset: Optional[str] = None
    last_backfill: Optional[str] = None


class InventorySnapshot(BaseModel):
    """Quantity on hand per material."""

    materials: dict[str, float] = Field(default_factory=dict)
    updated_at: Optional[str] = None


class LowStockItem(BaseModel):
    material: str
    quantity: float
    min_level: float
    level: Literal["critical", "low"]


class Notification(BaseModel):
    id: int
    type: str
    title: str = ""
    message: str = ""
    items: list[LowStockItem] = Field(default_factory=list)
    read: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
