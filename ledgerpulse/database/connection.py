"""Database connection utilities."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite


class Database:
    """Async SQLite database wrapper.

    A single connection is shared by every coroutine in the process, so all
    statements go through one lock; a transaction holds it from BEGIN to
    COMMIT/ROLLBACK.
    """

    def __init__(self, db_path: Path, timeout: float = 5.0):
        self.db_path = db_path
        self.timeout = timeout
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        if self._connection is not None:
            await self._connection.close()
        self._connection = await aiosqlite.connect(self.db_path, timeout=self.timeout)
        self._connection.row_factory = aiosqlite.Row
        await self._init_schema()

    async def _init_schema(self) -> None:
        schema_path = Path(__file__).parent / "schema.sql"
        schema = schema_path.read_text(encoding="utf-8")
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.executescript(schema)
        await self._connection.commit()

    async def execute_read(self, query: str, params=None):
        """Execute a read query and return all results."""
        async with self._lock:
            async with self._connection.execute(query, params or []) as cursor:
                return await cursor.fetchall()

    async def execute_write(self, query: str, params=None) -> int:
        """Execute a single write and commit. Returns affected row count."""
        async with self._lock:
            try:
                cursor = await self._connection.execute(query, params or [])
                await self._connection.commit()
            except Exception:
                await self._connection.rollback()
                raise
            return cursor.rowcount

    async def executemany(self, query: str, params: Iterable[Sequence]) -> None:
        async with self._lock:
            try:
                await self._connection.executemany(query, params)
                await self._connection.commit()
            except Exception:
                await self._connection.rollback()
                raise

    # =========================================================================
    # Transaction support for atomic multi-table updates
    # =========================================================================

    @asynccontextmanager
    async def transaction(self):
        """Context manager for explicit transaction control.

        All writes issued through the *_no_commit methods inside the block
        succeed together or roll back together.

        Usage:
            async with db.transaction():
                await db.execute_write_no_commit(...)
                await db.executemany_no_commit(...)
            # Commits on exit, rolls back on exception
        """
        async with self._lock:
            await self._connection.execute("BEGIN IMMEDIATE")
            try:
                yield
                await self._connection.commit()
            except BaseException:
                await self._connection.rollback()
                raise

    async def execute_write_no_commit(self, query: str, params=None) -> int:
        """Execute write without immediate commit (use within transaction)."""
        cursor = await self._connection.execute(query, params or [])
        return cursor.rowcount

    async def executemany_no_commit(self, query: str, params: Iterable[Sequence]) -> None:
        """Execute many without immediate commit (use within transaction)."""
        await self._connection.executemany(query, params)

    async def execute_read_no_lock(self, query: str, params=None):
        """Read inside an open transaction (use within transaction)."""
        async with self._connection.execute(query, params or []) as cursor:
            return await cursor.fetchall()

    async def close(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None
