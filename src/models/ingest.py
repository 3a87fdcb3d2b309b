"""Ingestion result and audit models.

:class:`IngestResult` is what ``DocumentIngestionPipeline.ingest`` returns
and what ``POST /api/v1/ingest`` serializes; :class:`IngestLogEntry` is the
immutable audit row appended after every successful persist.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_serializer

from src.models.hierarchy import WIRE_CONFIG, HierarchyLevel, ReviewFlag


class ParentLink(BaseModel):
    """Where the new document was attached in the existing hierarchy.

    ``matched_priorities`` is the rank list of the parent's priority
    entries (for orders) or of the document's own priorities (for
    planning docs).  It is a coarse "visible priorities" signal.
    """

    model_config = WIRE_CONFIG

    linked_to_id: str | None = None
    linked_to_type: str | None = None
    matched_priorities: list[int] = Field(default_factory=list)


class ExtractedCounts(BaseModel):
    """Per-entity counts.  Unset counts are omitted from the JSON."""

    model_config = WIRE_CONFIG

    priority_count: int | None = None
    mission_count: int | None = None
    waypoint_count: int | None = None
    target_count: int | None = None
    space_need_count: int | None = None

    @model_serializer(mode="wrap")
    def _drop_unset(self, handler: Any) -> dict[str, Any]:
        return {k: v for k, v in handler(self).items() if v is not None}


class PersistResult(BaseModel):
    """Stage 3 result from the Linker/Persister."""

    model_config = WIRE_CONFIG

    created_id: str
    parent_link: ParentLink = Field(default_factory=ParentLink)
    extracted: ExtractedCounts = Field(default_factory=ExtractedCounts)


class IngestResult(BaseModel):
    model_config = WIRE_CONFIG

    success: bool = True
    hierarchy_level: HierarchyLevel
    document_type: str
    source_format: str
    confidence: float
    created_id: str
    parent_link: ParentLink
    extracted: ExtractedCounts
    review_flags: list[ReviewFlag] = Field(default_factory=list)
    parse_time_ms: int


class IngestLogEntry(BaseModel):
    """One immutable audit row per successful ingestion."""

    model_config = WIRE_CONFIG

    id: str
    scenario_id: str
    input_hash: str
    hierarchy_level: HierarchyLevel
    document_type: str
    source_format: str
    confidence: float
    created_record_id: str
    parent_link_id: str | None = None
    extracted_counts: dict[str, int] = Field(default_factory=dict)
    review_flag_count: int = 0
    parse_time_ms: int = 0
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
