"""Paginated reads over the raw ledger (`transactions` table)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, Optional

from ledgerpulse.database import Database
from ledgerpulse.models.ledger import EntryKind, LedgerEntry
from ledgerpulse.timeutil import to_storage

logger = logging.getLogger(__name__)

_COLUMNS = "id, kind, material, quantity, unit_price, total_value, payment_method, timestamp"


class LedgerReader:
    """Read ledger entries for scans and lookups.

    Range scans page through `(timestamp, id)` with a keyset cursor, so a
    page boundary never repeats or drops entries that share a timestamp.
    """

    def __init__(self, db: Database, page_size: int = 500):
        self.db = db
        self.page_size = page_size

    async def iter_pages(
        self, start: datetime, end: datetime, page_size: Optional[int] = None
    ) -> AsyncIterator[list[LedgerEntry]]:
        """Yield pages of entries with start <= timestamp <= end, oldest first."""
        size = page_size or self.page_size
        lower, upper = to_storage(start), to_storage(end)
        cursor: Optional[tuple[str, str]] = None

        while True:
            if cursor is None:
                rows = await self.db.execute_read(
                    f"""
                    SELECT {_COLUMNS} FROM transactions
                    WHERE timestamp >= ? AND timestamp <= ?
                    ORDER BY timestamp, id
                    LIMIT ?
                    """,
                    [lower, upper, size],
                )
            else:
                rows = await self.db.execute_read(
                    f"""
                    SELECT {_COLUMNS} FROM transactions
                    WHERE (timestamp > ? OR (timestamp = ? AND id > ?)) AND timestamp <= ?
                    ORDER BY timestamp, id
                    LIMIT ?
                    """,
                    [cursor[0], cursor[0], cursor[1], upper, size],
                )
            if not rows:
                return
            yield [LedgerEntry.from_row(row) for row in rows]
            if len(rows) < size:
                return
            cursor = (rows[-1]["timestamp"], rows[-1]["id"])

    async def last_entry(self, material: str, kind: EntryKind) -> Optional[LedgerEntry]:
        """Most recent entry for material and kind, or None."""
        names = kind.stored_names()
        rows = await self.db.execute_read(
            f"""
            SELECT {_COLUMNS} FROM transactions
            WHERE material = ? AND kind IN ({",".join("?" * len(names))})
            ORDER BY timestamp DESC, id DESC
            LIMIT 1
            """,
            [material, *names],
        )
        return LedgerEntry.from_row(rows[0]) if rows else None

    async def recent_entries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        material: Optional[str] = None,
        kind: Optional[EntryKind] = None,
        limit: int = 1000,
    ) -> list[LedgerEntry]:
        """Newest-first entries matching the optional filters."""
        clauses: list[str] = []
        params: list = []
        if start is not None:
            clauses.append("timestamp >= ?")
            params.append(to_storage(start))
        if end is not None:
            clauses.append("timestamp <= ?")
            params.append(to_storage(end))
        if material:
            clauses.append("material = ?")
            params.append(material)
        if kind is not None:
            names = kind.stored_names()
            clauses.append(f"kind IN ({','.join('?' * len(names))})")
            params.extend(names)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self.db.execute_read(
            f"SELECT {_COLUMNS} FROM transactions {where} ORDER BY timestamp DESC, id DESC LIMIT ?",
            [*params, limit],
        )
        return [LedgerEntry.from_row(row) for row in rows]
