"""Shared fixtures for LedgerPulse tests."""

import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from tests.fixtures.ledger import BUSINESS_TZ, FrozenClock


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def temp_db_path() -> AsyncGenerator[Path, None]:
    """Create temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest_asyncio.fixture
async def test_database(temp_db_path: Path):
    """Initialized test database."""
    from ledgerpulse.database import Database

    db = Database(temp_db_path)
    await db.connect()
    yield db
    await db.close()


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def tz():
    """Business timezone used throughout the tests."""
    return BUSINESS_TZ


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at 2025-03-15 12:00 local."""
    return FrozenClock()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def aggregation_config():
    """Default AggregationConfig with fast retries and no scheduler."""
    from ledgerpulse.config import AggregationConfig, RetryConfig, ScheduleConfig

    return AggregationConfig(
        schedule=ScheduleConfig(enabled=False),
        retry=RetryConfig(attempts=3, backoff_seconds=0),
    )


@pytest.fixture
def app_config(aggregation_config, temp_db_path):
    """Config pointing at the temporary database."""
    from ledgerpulse.config import Config

    return Config(
        aggregation=aggregation_config,
        db_path=temp_db_path,
        reports_dir=temp_db_path.parent / "reports",
    )
