"""Pydantic models for LedgerPulse."""

from ledgerpulse.models.aggregates import (
    DailyAggregate,
    InventorySnapshot,
    LiveSummary,
    LowStockItem,
    MaterialStats,
    Notification,
    PaymentStats,
)
from ledgerpulse.models.ledger import EntryKind, LedgerChangeEvent, LedgerEntry
from ledgerpulse.models.reports import (
    AggregatedSummary,
    ArtifactFilters,
    ArtifactRequest,
    ArtifactResponse,
    BackfillRequest,
    BackfillStatusResponse,
    ChangeEventAck,
    DailyBreakdownItem,
    LastPrice,
    MonthRollupRequest,
    ReconciliationResult,
)

__all__ = [
    "DailyAggregate",
    "InventorySnapshot",
    "LiveSummary",
    "LowStockItem",
    "MaterialStats",
    "Notification",
    "PaymentStats",
    "EntryKind",
    "LedgerChangeEvent",
    "LedgerEntry",
    "AggregatedSummary",
    "ArtifactFilters",
    "ArtifactRequest",
    "ArtifactResponse",
    "BackfillRequest",
    "BackfillStatusResponse",
    "ChangeEventAck",
    "DailyBreakdownItem",
    "LastPrice",
    "MonthRollupRequest",
    "ReconciliationResult",
]
