"""Ingestion pipeline lifecycle models.

Defines the stages an ingestion attempt moves through and the progress
events broadcast to scenario subscribers while it runs.

Architecture note:
    The orchestrator (src/pipeline/orchestrator.py) runs the three stages
    strictly in order: CLASSIFY -> NORMALIZE -> PERSIST.  After each stage
    it publishes an :class:`IngestEvent` through the ProgressTracker
    (src/pipeline/progress_tracker.py), which fans it out to every
    listener registered for the scenario (typically WebSocket clients).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IngestStage(str, Enum):  # noqa: UP042  (StrEnum requires Python 3.11+)
    """The three sequential stages of one ingestion attempt.

    Terminal errors (src/utils/errors.py) carry the stage they were
    raised from so callers know where the pipeline stopped.
    """

    CLASSIFY = "classify"      # hierarchy level / type / format detection
    NORMALIZE = "normalize"    # level-specific structured extraction
    PERSIST = "persist"        # parent linking + transactional write + audit


class IngestEventType(str, Enum):  # noqa: UP042
    """Names of the progress events published for one ingestion.

    STARTED, CLASSIFIED, NORMALIZED and COMPLETE always fire in that order
    for a successful run.  FAILED is emitted once, instead of the remaining
    events, when a stage raises.
    """

    STARTED = "ingest:started"
    CLASSIFIED = "ingest:classified"
    NORMALIZED = "ingest:normalized"
    COMPLETE = "ingest:complete"
    FAILED = "ingest:failed"


class IngestEvent(BaseModel):
    """A single progress event as delivered to listeners.

    ``payload`` always contains ``ingestId`` and ``elapsedMs`` (milliseconds
    since pipeline entry, so 0 for STARTED).
    """

    model_config = ConfigDict(frozen=True)

    event: IngestEventType
    scenario_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    emitted_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @property
    def ingest_id(self) -> str | None:
        return self.payload.get("ingestId")

    def to_message(self) -> dict[str, Any]:
        """Return the JSON-ready ``{"type", "data"}`` wire shape."""
        return {"type": self.event.value, "data": self.payload}
