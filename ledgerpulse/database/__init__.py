"""SQLite persistence for ledger entries and derived aggregates."""
from ledgerpulse.database.connection import Database

__all__ = ["Database"]
