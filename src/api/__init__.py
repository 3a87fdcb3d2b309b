"""Overwatch ingestion API layer: routes, schemas, WebSocket, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    AttributionResponse,
    BatchIngestRequest,
    BatchIngestResponse,
    ErrorResponse,
    HealthResponse,
    IngestLogResponse,
    IngestRequest,
)
from src.api.websocket import websocket_ingest_progress

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "websocket_ingest_progress",
    "AttributionResponse",
    "BatchIngestRequest",
    "BatchIngestResponse",
    "ErrorResponse",
    "HealthResponse",
    "IngestLogResponse",
    "IngestRequest",
]
