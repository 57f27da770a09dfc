"""Tests for ledgerpulse/database/retry.py"""

import sqlite3
from unittest.mock import AsyncMock

import pytest

from ledgerpulse.database.retry import is_lock_conflict, run_with_retry
from ledgerpulse.exceptions import AggregateUnavailableError, ConflictRetryableError


class TestIsLockConflict:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (sqlite3.OperationalError("database is locked"), True),
            (sqlite3.OperationalError("Database is busy"), True),
            (ConflictRetryableError("lost race"), True),
            (sqlite3.OperationalError("no such table: inventory"), False),
            (ValueError("database is locked"), False),
        ],
    )
    def test_classification(self, exc, expected):
        assert is_lock_conflict(exc) is expected


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        operation = AsyncMock(side_effect=[sqlite3.OperationalError("database is locked"), "ok"])

        result = await run_with_retry(operation, attempts=3, backoff_seconds=0)

        assert result == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_attempts_surface_unavailable(self):
        operation = AsyncMock(side_effect=sqlite3.OperationalError("database is locked"))

        with pytest.raises(AggregateUnavailableError, match="after 3 attempts"):
            await run_with_retry(operation, attempts=3, backoff_seconds=0, description="live update")

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_propagate_immediately(self):
        operation = AsyncMock(side_effect=KeyError("material"))

        with pytest.raises(KeyError):
            await run_with_retry(operation, attempts=5, backoff_seconds=0)

        operation.assert_awaited_once()
