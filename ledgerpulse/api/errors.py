"""Exception handlers mapping domain errors to HTTP responses."""

import logging

from fastapi import FastAPI
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from ledgerpulse.exceptions import (
    AggregateUnavailableError,
    JobError,
    LedgerPulseError,
    NotFoundError,
    QueryValidationError,
    RendererNotConfiguredError,
)
from ledgerpulse.models.errors import ErrorResponse

logger = logging.getLogger(__name__)

# Map HTTP status codes to machine-readable error codes for consistent API responses.
STATUS_ERROR_CODES = {
    400: "invalid_argument",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
    503: "service_unavailable",
}

_DOMAIN_STATUS = (
    (QueryValidationError, 400),
    (NotFoundError, 404),
    (JobError, 409),
    (AggregateUnavailableError, 503),
    (RendererNotConfiguredError, 503),
)


def _error(status_code: int, detail: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            detail=str(detail), error_code=STATUS_ERROR_CODES.get(status_code, "internal_error")
        ).model_dump(),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers used by the main app (and by router tests)."""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Enrich all HTTPException responses (routing errors included) with an error_code."""
        return _error(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(LedgerPulseError)
    async def ledgerpulse_error_handler(request: Request, exc: LedgerPulseError):
        for exc_type, status_code in _DOMAIN_STATUS:
            if isinstance(exc, exc_type):
                if status_code >= 500:
                    logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
                return _error(status_code, str(exc))
        logger.error("Application error: %s", exc)
        return _error(500, "Internal server error")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        return _error(500, "Internal server error")
