"""Applying ledger change events to the derived aggregates."""

from ledgerpulse.aggregation.change_handler import LedgerChangeHandler
from ledgerpulse.aggregation.daily_updater import DailyAggregateUpdater
from ledgerpulse.aggregation.deltas import Delta, compute_delta
from ledgerpulse.aggregation.live_updater import LiveAggregateUpdater

__all__ = [
    "Delta",
    "compute_delta",
    "DailyAggregateUpdater",
    "LedgerChangeHandler",
    "LiveAggregateUpdater",
]
