"""Rate limiting for expensive commands."""

from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)


async def rate_limit_exceeded_handler(request, exc):
    """Same error payload shape as every other API error."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded ({exc.detail}). Please try again later.",
            "error_code": "rate_limited",
        },
    )


def setup_rate_limiting(app):
    """Attach the limiter and its 429 handler to the app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    return limiter
