"""LedgerPulse - derived aggregates over a purchase/sale/expense ledger."""

__version__ = "1.0.0"
