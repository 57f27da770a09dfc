"""Query cache management endpoints."""

from fastapi import APIRouter, Request

from ledgerpulse.api.middleware.rate_limit import limiter

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("/stats")
async def get_cache_stats(request: Request):
    """Hit rate, size and configuration of the query cache."""
    return request.app.state.cache.stats()


@router.post("/clear")
@limiter.limit("10/minute")
async def clear_cache(request: Request):
    cleared = request.app.state.cache.clear()
    return {"status": "cleared", "entries_cleared": cleared}
