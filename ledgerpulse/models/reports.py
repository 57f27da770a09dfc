"""Pydantic models for report queries and backfill commands."""

from datetime import date, datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ledgerpulse.models.aggregates import MaterialStats, PaymentStats


class BackfillRequest(BaseModel):
    """Request to rebuild daily aggregates over a date range."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("start_date", "startDate"), description="Defaults to 12 months before end"
    )
    end_date: Optional[date] = Field(
        None, validation_alias=AliasChoices("end_date", "endDate"), description="Defaults to today"
    )
    force_overwrite: bool = Field(
        False,
        validation_alias=AliasChoices("force_overwrite", "forceOverwrite", "force"),
        description="Rewrite days that already have a record",
    )


class MonthRollupRequest(BaseModel):
    """Request to rebuild the daily aggregates of one calendar month."""

    model_config = ConfigDict(populate_by_name=True)

    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12, description="Calendar month, 1-12")
    force_overwrite: bool = Field(
        False, validation_alias=AliasChoices("force_overwrite", "forceOverwrite", "force")
    )


class ReconciliationResult(BaseModel):
    """Outcome of a backfill or month rollup."""

    success: bool = True
    message: str = ""
    transactions_processed: int = 0
    days_created: int = 0
    days_skipped: int = 0
    days_cleared: int = 0
    period_start: str
    period_end: str


class BackfillStatusResponse(BaseModel):
    """Backfill progress response."""

    is_running: bool
    status: str
    phase: str
    message: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    progress: dict = Field(default_factory=dict)
    error: Optional[str] = None


class DailyBreakdownItem(BaseModel):
    date: str
    total_sales: float
    total_purchases: float
    total_profit: float
    transactions: int


class AggregatedSummary(BaseModel):
    """Totals over a range of daily aggregates."""

    start_date: str
    end_date: str
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
    daily_breakdown: list[DailyBreakdownItem] = Field(default_factory=list)


class LastPrice(BaseModel):
    """Unit price of the most recent entry for a material and kind."""

    material: str
    kind: str
    unit_price: float
    timestamp: Optional[datetime] = None


class ChangeEventAck(BaseModel):
    """Acknowledgement returned to the change-event sender."""

    success: bool = True
    duplicate: bool = False
    daily_updated: bool = True


class ArtifactFilters(BaseModel):
    """Filters for a rendered report artifact."""

    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[str] = Field(None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[str] = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    material: Optional[str] = None
    kind: Optional[str] = Field(None, validation_alias=AliasChoices("kind", "tipo"))


class ArtifactRequest(BaseModel):
    """Request for a rendered document or spreadsheet."""

    format: str = ""
    filters: ArtifactFilters = Field(default_factory=ArtifactFilters)


class ArtifactResponse(BaseModel):
    success: bool
    download_url: str
