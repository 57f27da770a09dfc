"""Read-only report queries."""

from typing import Optional

from fastapi import APIRouter, Query, Request

from ledgerpulse.api.middleware.rate_limit import limiter
from ledgerpulse.models.aggregates import DailyAggregate, InventorySnapshot, LiveSummary
from ledgerpulse.models.reports import (
    AggregatedSummary,
    ArtifactRequest,
    ArtifactResponse,
    LastPrice,
)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/summary", response_model=AggregatedSummary)
async def get_aggregated_summary(
    request: Request,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    material: Optional[str] = Query(None),
):
    return await request.app.state.report_service.get_aggregated_summary(start_date, end_date, material)


@router.get("/daily", response_model=list[DailyAggregate])
async def list_daily_reports(
    request: Request,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
):
    return await request.app.state.report_service.list_daily_reports(start_date, end_date)


@router.get("/live-summary", response_model=LiveSummary)
async def get_live_summary(request: Request):
    return await request.app.state.report_service.get_live_summary()


@router.get("/inventory", response_model=InventorySnapshot)
async def get_inventory(request: Request):
    return await request.app.state.report_service.get_inventory()


@router.get("/last-price", response_model=LastPrice)
async def get_last_price(
    request: Request,
    material: Optional[str] = Query(None),
    kind: Optional[str] = Query(None, description="purchase | sale | expense"),
):
    return await request.app.state.report_service.get_last_price(material, kind)


@router.post("/artifact", response_model=ArtifactResponse)
@limiter.limit("10/minute")
async def generate_artifact(request: Request, body: ArtifactRequest):
    """Collect report data and hand it to the configured renderer."""
    return await request.app.state.artifact_service.generate(body)
