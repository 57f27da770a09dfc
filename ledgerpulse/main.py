"""FastAPI application entrypoint for LedgerPulse."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from ledgerpulse.logging_config import setup_logging

# Configure logging before anything else
setup_logging(log_level="INFO")
logger = logging.getLogger(__name__)

from fastapi import FastAPI
from starlette.requests import Request

from ledgerpulse import __version__
from ledgerpulse.aggregation import DailyAggregateUpdater, LedgerChangeHandler, LiveAggregateUpdater
from ledgerpulse.api.errors import register_exception_handlers
from ledgerpulse.api.middleware.rate_limit import setup_rate_limiting
from ledgerpulse.api.routers import backfill, cache, events, jobs, notifications, reports
from ledgerpulse.config import Config
from ledgerpulse.database import Database
from ledgerpulse.jobs.progress import BackfillProgress
from ledgerpulse.jobs.reconciliation import ReconciliationEngine
from ledgerpulse.jobs.resets import CounterResetJobs
from ledgerpulse.jobs.rollup import RollupFinalizer
from ledgerpulse.jobs.scheduler import (
    JOB_DAILY_RESET,
    JOB_LOW_STOCK,
    JOB_MONTHLY_RESET,
    JOB_ROLLUP,
    JobScheduler,
)
from ledgerpulse.jobs.stock_monitor import StockThresholdMonitor
from ledgerpulse.ledger.reader import LedgerReader
from ledgerpulse.query.aggregate_reader import AggregateReader
from ledgerpulse.query.cache import NullQueryCache, QueryCache
from ledgerpulse.query.report_service import ReportService
from ledgerpulse.reports.artifacts import ArtifactService, ReportRenderer


def attach_services(
    app: FastAPI,
    config: Config,
    db: Database,
    loop: asyncio.AbstractEventLoop,
    renderer: Optional[ReportRenderer] = None,
) -> JobScheduler:
    """Build every service over one database and expose them on app.state.

    Returns the (not yet started) job scheduler.
    """
    settings = config.aggregation
    tz = settings.tz

    if settings.cache.enabled:
        query_cache = QueryCache(ttl_seconds=settings.cache.ttl_seconds, max_size=settings.cache.max_size)
    else:
        query_cache = NullQueryCache()

    ledger = LedgerReader(db, page_size=settings.backfill.page_size)
    aggregates = AggregateReader(db)

    change_handler = LedgerChangeHandler(
        live=LiveAggregateUpdater(db, tz=tz, retry=settings.retry),
        daily=DailyAggregateUpdater(db, tz=tz),
        cache=query_cache,
    )
    reconciliation = ReconciliationEngine(
        db,
        ledger,
        progress=BackfillProgress(config.reports_dir / "backfill_status.json"),
        cache=query_cache,
        tz=tz,
        config=settings.backfill,
    )
    rollup = RollupFinalizer(
        db, ledger, aggregates, cache=query_cache, tz=tz, page_size=settings.backfill.page_size
    )
    resets = CounterResetJobs(db, cache=query_cache, tz=tz, events=settings.events)
    stock_monitor = StockThresholdMonitor(db, config=settings.stock)

    scheduler = JobScheduler(
        settings.schedule,
        jobs={
            JOB_ROLLUP: rollup.run,
            JOB_DAILY_RESET: resets.reset_daily_counters,
            JOB_MONTHLY_RESET: lambda: resets.reset_monthly_counters(only_on_first_day=True),
            JOB_LOW_STOCK: stock_monitor.run,
        },
        loop=loop,
    )

    app.state.config = config
    app.state.db = db
    app.state.cache = query_cache
    app.state.aggregates = aggregates
    app.state.change_handler = change_handler
    app.state.report_service = ReportService(aggregates, ledger, query_cache)
    app.state.artifact_service = ArtifactService(aggregates, ledger, renderer=renderer, tz=tz)
    app.state.reconciliation = reconciliation
    app.state.scheduler = scheduler
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = Config.load()
    setup_logging(log_level=config.log_level, log_file=config.log_file)
    config.db_path.parent.mkdir(parents=True, exist_ok=True)
    config.reports_dir.mkdir(parents=True, exist_ok=True)

    db = Database(config.db_path)
    await db.connect()

    scheduler = attach_services(app, config, db, loop=asyncio.get_running_loop())
    scheduler.start()
    logger.info("LedgerPulse %s started (db=%s)", __version__, config.db_path)

    yield

    scheduler.stop()
    app.state.cache.close()
    await db.close()


app = FastAPI(title="LedgerPulse", version=__version__, lifespan=lifespan)
setup_rate_limiting(app)
register_exception_handlers(app)


@app.middleware("http")
async def add_api_version_header(request: Request, call_next):
    response = await call_next(request)
    if request.url.path.startswith("/api/"):
        response.headers["X-API-Version"] = "1"
    return response


app.include_router(events.router)
app.include_router(reports.router)
app.include_router(backfill.router)
app.include_router(jobs.router)
app.include_router(notifications.router)
app.include_router(cache.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": __version__}
