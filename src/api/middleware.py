"""API middleware: CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``OverwatchError`` subclasses into JSON ``ErrorResponse``
bodies.

# ─── MIDDLEWARE EXECUTION ORDER (Junior Developer Guide) ───────────────
#
# Starlette middleware is a stack (last added runs first):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # added 1st → inner
#     app.add_middleware(RequestLoggingMiddleware)   # added 2nd → outer
#
#   Request flow:
#     Client → RequestLogging → ErrorHandling → route handler
#
# So RequestLoggingMiddleware logs the *final* status code, after
# ErrorHandling has turned an ingestion error into a 422 or 503.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.models.pipeline import IngestStage
from src.utils.errors import IngestionError, LLMError, OverwatchError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Classification and normalization failures mean the text could not be
# understood (422); persistence failures mean the store is unavailable (503).
_STAGE_STATUS: dict[IngestStage, int] = {
    IngestStage.CLASSIFY: 422,
    IngestStage.NORMALIZE: 422,
    IngestStage.PERSIST: 503,
}


def status_for_error(exc: OverwatchError) -> int:
    """HTTP status code for an application error."""
    if isinstance(exc, IngestionError) and exc.stage is not None:
        return _STAGE_STATUS[exc.stage]
    if isinstance(exc, LLMError):
        return 502
    return 500


def error_response(exc: OverwatchError) -> JSONResponse:
    """Build the sanitized JSON body for *exc*."""
    stage = exc.stage.value if isinstance(exc, IngestionError) and exc.stage else None
    body = ErrorResponse(error=type(exc).__name__, detail=exc.message, stage=stage)
    return JSONResponse(status_code=status_for_error(exc), content=body.model_dump())


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; set ``CORS_ORIGINS`` in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed requests against a wildcard origin.
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``OverwatchError`` subclasses and return structured JSON errors.

    Ingestion errors keep their stage in the body so the caller knows where
    the pipeline stopped.  Stack traces are logged server-side only.
    Generic Python exceptions fall through to FastAPI's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except OverwatchError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            return error_response(exc)
