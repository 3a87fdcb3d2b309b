"""Central orchestrator for the three-stage document ingestion pipeline.

Coordinates classification, normalization and linking/persistence for one
raw text blob, and broadcasts progress through the injected
:class:`ProgressTracker`.

ARCHITECTURE NOTE (for junior developers):
    This orchestrator follows the "Pipeline" pattern: it runs services in a
    fixed sequence and hands each one the previous stage's output.

        raw text ──classify──→ ClassifyResult
                 ──normalize─→ NormalizationOutcome (payload + review flags)
                 ──persist───→ PersistResult + one audit row

    The stages are strictly sequential inside one ingestion.  Separate
    ingestions are independent and share nothing but the hierarchy store
    and the tracker's listener registry.

    Progress events (all carry ``ingestId`` and ``elapsedMs``):
        ingest:started     → immediately, with a preview of the text
        ingest:classified  → after stage 1
        ingest:normalized  → after stage 2, with entity preview counts
        ingest:complete    → after the audit row is written
        ingest:failed      → instead of the remaining events, when a stage
                             raises; the exception still propagates

    Nothing is retried here.  A failed ingestion raises the stage error to
    the caller, who decides whether to try again.
"""

from __future__ import annotations

import hashlib
import time
import uuid
from datetime import datetime, timezone
from typing import Any

import structlog

from src.models.hierarchy import ClassifyResult
from src.models.ingest import IngestResult
from src.models.pipeline import IngestEvent, IngestEventType, IngestStage
from src.pipeline.progress_tracker import ProgressTracker
from src.services.document_classifier import DocumentClassifier
from src.services.document_normalizer import DocumentNormalizer
from src.services.hierarchy_persister import HierarchyPersister
from src.utils.logging import bind_ingest_context, get_logger


def content_hash(raw_text: str) -> str:
    """SHA-256 hex digest of the UTF-8 raw text; the audit dedup key."""
    return hashlib.sha256(raw_text.encode("utf-8")).hexdigest()


class DocumentIngestionPipeline:
    """Runs one document through classify → normalize → persist.

    All collaborators are injected at construction time, so tests can swap
    any of them for a mock.
    """

    def __init__(
        self,
        classifier: DocumentClassifier,
        normalizer: DocumentNormalizer,
        persister: HierarchyPersister,
        progress_tracker: ProgressTracker,
        preview_chars: int = 300,
    ) -> None:
        self._classifier = classifier
        self._normalizer = normalizer
        self._persister = persister
        self._progress_tracker = progress_tracker
        self._preview_chars = preview_chars
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def ingest(
        self,
        scenario_id: str,
        raw_text: str,
        source_hint: str | None = None,
    ) -> IngestResult:
        """Ingest one document into *scenario_id*.

        Parameters
        ----------
        scenario_id:
            Tenant boundary for linking and persistence.
        raw_text:
            The document exactly as submitted.
        source_hint:
            Optional, advisory source-format guess passed to the classifier.

        Returns
        -------
        IngestResult
            Classification, created record id, parent link, extracted
            counts, review flags and total parse time.

        Raises
        ------
        ClassificationError, NormalizationError, PersistenceError
            Whichever stage failed.  An ``ingest:failed`` event is published
            first; no later stage runs.
        """
        ingest_id = str(uuid.uuid4())
        input_hash = content_hash(raw_text)
        started = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        with bind_ingest_context(scenario_id, ingest_id):
            self._logger.info("ingest_started", text_chars=len(raw_text), source_hint=source_hint)
            await self._emit(IngestEventType.STARTED, scenario_id, {
                "ingestId": ingest_id,
                "rawTextPreview": raw_text[: self._preview_chars],
                "rawTextLength": len(raw_text),
                "elapsedMs": 0,
                "timestamp": _utc_now(),
            })

            stage = IngestStage.CLASSIFY
            try:
                classification = await self._classifier.classify(raw_text, source_hint)
                await self._emit(IngestEventType.CLASSIFIED, scenario_id, {
                    "ingestId": ingest_id,
                    **_classification_payload(classification),
                    "elapsedMs": elapsed_ms(),
                })

                stage = IngestStage.NORMALIZE
                outcome = await self._normalizer.normalize(raw_text, classification)
                await self._emit(IngestEventType.NORMALIZED, scenario_id, {
                    "ingestId": ingest_id,
                    "previewCounts": outcome.preview_counts(),
                    "reviewFlagCount": len(outcome.review_flags),
                    "elapsedMs": elapsed_ms(),
                })

                stage = IngestStage.PERSIST
                seen = await self._persister.count_previous_ingests(scenario_id, input_hash)
                if seen:
                    self._logger.info("duplicate_input_reprocessed", input_hash=input_hash, previous=seen)
                persisted = await self._persister.link_and_persist(scenario_id, classification, outcome)
                parse_time_ms = elapsed_ms()
                await self._persister.write_audit(
                    scenario_id=scenario_id,
                    input_hash=input_hash,
                    classification=classification,
                    persisted=persisted,
                    review_flag_count=len(outcome.review_flags),
                    parse_time_ms=parse_time_ms,
                )
            except Exception as exc:
                failed_stage = getattr(exc, "stage", None) or stage
                self._logger.error(
                    "ingest_failed",
                    stage=failed_stage.value,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    elapsed_ms=elapsed_ms(),
                )
                await self._emit(IngestEventType.FAILED, scenario_id, {
                    "ingestId": ingest_id,
                    "stage": failed_stage.value,
                    "error": str(exc),
                    "elapsedMs": elapsed_ms(),
                })
                raise

            result = IngestResult(
                hierarchy_level=classification.hierarchy_level,
                document_type=classification.document_type,
                source_format=classification.source_format,
                confidence=classification.confidence,
                created_id=persisted.created_id,
                parent_link=persisted.parent_link,
                extracted=persisted.extracted,
                review_flags=outcome.review_flags,
                parse_time_ms=parse_time_ms,
            )
            self._logger.info(
                "ingest_complete",
                created_id=result.created_id,
                hierarchy_level=result.hierarchy_level.value,
                review_flags=len(result.review_flags),
                parse_time_ms=parse_time_ms,
            )
            await self._emit(IngestEventType.COMPLETE, scenario_id, {
                "ingestId": ingest_id,
                **result.model_dump(mode="json", by_alias=True),
                "elapsedMs": elapsed_ms(),
                "timestamp": _utc_now(),
            })
            return result

    async def _emit(
        self, event: IngestEventType, scenario_id: str, payload: dict[str, Any]
    ) -> None:
        await self._progress_tracker.publish(
            IngestEvent(event=event, scenario_id=scenario_id, payload=payload)
        )


def _classification_payload(classification: ClassifyResult) -> dict[str, Any]:
    return classification.model_dump(
        mode="json",
        by_alias=True,
        include={
            "hierarchy_level",
            "document_type",
            "source_format",
            "confidence",
            "title",
            "issuing_authority",
        },
    )


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017
