"""On-demand runs of scheduled jobs."""

import logging
from dataclasses import asdict, is_dataclass

from fastapi import APIRouter, Request

from ledgerpulse.api.middleware.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("")
async def list_jobs(request: Request):
    scheduler = request.app.state.scheduler
    times = scheduler.job_times()
    return [
        {"name": name, "at": times.get(name), "active": scheduler.is_active(name)}
        for name in scheduler.jobs
    ]


@router.post("/{name}/run")
@limiter.limit("10/minute")
async def run_job(name: str, request: Request):
    """Run a job now; 404 for unknown names, 409 if it is already running."""
    result = await request.app.state.scheduler.run_now(name)
    logger.info("Job %s run on demand", name)
    if is_dataclass(result):
        result = asdict(result)
    return {"status": "completed", "job": name, "result": result}
