"""Access to the raw ledger."""

from ledgerpulse.ledger.reader import LedgerReader

__all__ = ["LedgerReader"]
