"""Retry helpers for transactional writes that lose a lock race."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Awaitable, Callable, TypeVar

from ledgerpulse.exceptions import AggregateUnavailableError, ConflictRetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFLICT_MARKERS = ("database is locked", "database table is locked", "database is busy")


def is_lock_conflict(exc: BaseException) -> bool:
    """True when a SQLite error means another writer holds the lock."""
    if isinstance(exc, ConflictRetryableError):
        return True
    if isinstance(exc, sqlite3.OperationalError):
        message = str(exc).lower()
        return any(marker in message for marker in _CONFLICT_MARKERS)
    return False


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 5,
    backoff_seconds: float = 0.05,
    description: str = "transaction",
) -> T:
    """Run an async transactional operation, retrying on lock conflicts.

    The operation must be safe to re-run from scratch (its transaction is
    rolled back on failure). After the last attempt the conflict is surfaced as
    AggregateUnavailableError.
    """
    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as exc:
            if not is_lock_conflict(exc):
                raise
            logger.warning(
                "%s conflict (attempt %d/%d): %s", description, attempt + 1, attempts, exc
            )
            if attempt >= attempts - 1:
                raise AggregateUnavailableError(
                    f"{description} failed after {attempts} attempts: {exc}"
                ) from exc
            await asyncio.sleep(backoff_seconds * (2 ** attempt))
    raise AggregateUnavailableError(f"{description} was not attempted")
