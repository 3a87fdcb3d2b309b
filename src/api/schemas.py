"""Pydantic request/response schemas for the ingestion API.

Defines the public contract for the REST endpoints: single and batch
ingestion, the audit log, the hierarchy read surface, source attribution
and health.

# ─── HOW SCHEMAS WORK (Junior Developer Guide) ────────────────────────
#
# These Pydantic models define the *shape* of every HTTP request body
# and response body in the API.  FastAPI uses them for:
#
#   1. **Validation**: incoming JSON is checked against the schema.
#   2. **Serialization**: outgoing objects are converted to JSON
#      matching the schema (via response_model=...).
#   3. **Documentation**: the OpenAPI docs at /docs are generated
#      from these models.
#
# Domain models (IngestResult, HierarchyView, TaskingOrderRecord...)
# are returned directly where they already are the wire shape; the
# classes here only cover request bodies and API-specific envelopes.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.hierarchy import HierarchyLevel
from src.models.ingest import IngestLogEntry
from src.models.records import AttributionSpan


class IngestRequest(BaseModel):
    """One raw document to ingest.

    ``raw_text`` emptiness and size are checked in the route so the
    caller gets 400 / 413 rather than a generic validation error.
    """

    scenario_id: str = Field(min_length=1)
    raw_text: str
    source_hint: str | None = Field(
        default=None,
        description="Advisory source-format guess, e.g. USMTF or OTH_GOLD.",
    )


class BatchDocument(BaseModel):
    text: str = ""
    source_hint: str | None = None


class BatchIngestRequest(BaseModel):
    documents: list[BatchDocument]


class BatchItemResult(BaseModel):
    """Outcome of one document in a batch; failures don't stop the batch."""

    index: int
    success: bool
    created_id: str | None = None
    hierarchy_level: HierarchyLevel | None = None
    error: str | None = None
    stage: str | None = None


class BatchIngestResponse(BaseModel):
    scenario_id: str
    total: int
    succeeded: int
    failed: int
    results: list[BatchItemResult] = Field(default_factory=list)


class IngestLogResponse(BaseModel):
    scenario_id: str | None = None
    entries: list[IngestLogEntry] = Field(default_factory=list)


class AttributionResponse(BaseModel):
    """Highlighted source spans for one strategy or planning document."""

    scenario_id: str
    document_id: str
    hierarchy_level: HierarchyLevel
    priority_count: int
    spans: list[AttributionSpan] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``stage`` is set when an ingestion stage failed (classify, normalize
    or persist).
    """

    error: str
    detail: str | None = None
    stage: str | None = None
