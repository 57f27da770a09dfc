"""Reconciliation (backfill / month rollup) commands."""

import logging

from fastapi import APIRouter, Query, Request

from ledgerpulse.api.middleware.rate_limit import limiter
from ledgerpulse.models.reports import (
    BackfillRequest,
    BackfillStatusResponse,
    MonthRollupRequest,
    ReconciliationResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backfill", tags=["backfill"])


@router.post("", response_model=ReconciliationResult)
@limiter.limit("2/minute")
async def run_backfill(request: Request, body: BackfillRequest):
    """Rebuild daily aggregates from the ledger; 409 while another run is active."""
    engine = request.app.state.reconciliation
    return await engine.run_backfill(
        start_date=body.start_date,
        end_date=body.end_date,
        force_overwrite=body.force_overwrite,
    )


@router.post("/month", response_model=ReconciliationResult)
@limiter.limit("5/minute")
async def run_month_rollup(request: Request, body: MonthRollupRequest):
    engine = request.app.state.reconciliation
    return await engine.run_month_rollup(body.year, body.month, force_overwrite=body.force_overwrite)


@router.get("/status", response_model=BackfillStatusResponse)
@limiter.limit("30/minute")
async def get_backfill_status(request: Request):
    return await request.app.state.reconciliation.get_status()


@router.get("/history")
async def get_backfill_history(
    request: Request,
    limit: int = Query(10, ge=1, le=100),
):
    db = request.app.state.db
    rows = await db.execute_read(
        """
        SELECT started_at, finished_at, status, run_type, period_start, period_end,
               transactions_processed, days_created, days_skipped, error_message
        FROM backfill_history
        ORDER BY id DESC
        LIMIT ?
        """,
        [limit],
    )
    return [dict(row) for row in rows]
