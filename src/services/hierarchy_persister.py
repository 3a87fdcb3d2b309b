"""Stage 3: attach a normalized document to the hierarchy and persist it.

Linking is deterministic and never calls the Generative Text Service:

    PLANNING -> the scenario's most recently *effective* strategy document
    ORDER    -> the most recent JIPTL planning document, else the most
                recent planning document of any type
    STRATEGY -> top of the hierarchy, no parent

Recency is judged by ``effective_date``, not by ingestion order, so the
link chosen is a pure function of what is already stored.  Concurrent
ingestions are not serialized; two racing planning documents may both link
to the same strategy document, which is a valid outcome.

Writes go through :class:`~src.interfaces.hierarchy_store.IHierarchyStore`,
one transaction per document tree.  The audit row is appended separately,
only after that transaction has committed.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from src.interfaces.hierarchy_store import IHierarchyStore
from src.models.hierarchy import ClassifyResult, HierarchyLevel
from src.models.ingest import ExtractedCounts, IngestLogEntry, ParentLink, PersistResult
from src.models.normalized import (
    NormalizationOutcome,
    NormalizedOrder,
    NormalizedPlanning,
    NormalizedStrategy,
)
from src.models.records import PlanningDocumentRecord
from src.utils.errors import PersistenceError
from src.utils.logging import get_logger

# Planning document type preferred as the parent of a tasking order.
PRIORITIZED_TARGET_LIST = "JIPTL"

_Writer = Callable[[str, ClassifyResult, Any], Awaitable[PersistResult]]

# Record type named in a parent link, keyed by the parent's level.
_RECORD_TYPES = {
    HierarchyLevel.STRATEGY: "StrategyDocument",
    HierarchyLevel.PLANNING: "PlanningDocument",
}


def _link_type(level: HierarchyLevel, parent_id: str | None) -> str | None:
    if parent_id is None or level.parent is None:
        return None
    return _RECORD_TYPES[level.parent]


def select_order_parent(
    planning_docs: list[PlanningDocumentRecord],
) -> PlanningDocumentRecord | None:
    """Pick the planning document a tasking order traces to.

    *planning_docs* must already be sorted by effective date, newest first.
    """
    for doc in planning_docs:
        if doc.doc_type.upper() == PRIORITIZED_TARGET_LIST:
            return doc
    return planning_docs[0] if planning_docs else None


class HierarchyPersister:
    """Resolves parent links, writes document trees and the audit log."""

    def __init__(self, store: IHierarchyStore) -> None:
        self._store = store
        self._logger = get_logger(__name__)
        self._writers: dict[HierarchyLevel, _Writer] = {
            HierarchyLevel.STRATEGY: self._persist_strategy,
            HierarchyLevel.PLANNING: self._persist_planning,
            HierarchyLevel.ORDER: self._persist_order,
        }

    async def link_and_persist(
        self,
        scenario_id: str,
        classification: ClassifyResult,
        outcome: NormalizationOutcome,
    ) -> PersistResult:
        """Link and write one document tree.

        Args:
            scenario_id: Tenant boundary; links never cross it.
            classification: Stage 1 output (source format, confidence).
            outcome: Stage 2 output; its payload variant picks the writer.

        Returns:
            The created record id, the resolved parent link and the
            per-entity counts.

        Raises:
            PersistenceError: If a lookup or the transactional write fails.
                Nothing from the document is visible in the store afterwards.
        """
        payload = outcome.payload
        writer = self._writers[payload.level]
        try:
            result = await writer(scenario_id, classification, payload)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(
                message=f"Hierarchy store unavailable: {exc}",
                provider_name=self._store.get_provider_name(),
            ) from exc

        self._logger.info(
            "document_linked",
            scenario_id=scenario_id,
            hierarchy_level=payload.level.value,
            created_id=result.created_id,
            linked_to_id=result.parent_link.linked_to_id,
            matched_priorities=len(result.parent_link.matched_priorities),
        )
        return result

    async def count_previous_ingests(self, scenario_id: str, input_hash: str) -> int:
        """Audit rows in the scenario already carrying *input_hash*.

        Informational only: identical text is always reprocessed.
        """
        try:
            return await self._store.count_ingests_with_hash(scenario_id, input_hash)
        except Exception as exc:
            raise PersistenceError(
                message=f"Hierarchy store unavailable: {exc}",
                provider_name=self._store.get_provider_name(),
            ) from exc

    async def write_audit(
        self,
        *,
        scenario_id: str,
        input_hash: str,
        classification: ClassifyResult,
        persisted: PersistResult,
        review_flag_count: int,
        parse_time_ms: int,
    ) -> IngestLogEntry:
        """Append the immutable audit row for a committed ingestion."""
        entry = IngestLogEntry(
            id=str(uuid.uuid4()),
            scenario_id=scenario_id,
            input_hash=input_hash,
            hierarchy_level=classification.hierarchy_level,
            document_type=classification.document_type,
            source_format=classification.source_format,
            confidence=classification.confidence,
            created_record_id=persisted.created_id,
            parent_link_id=persisted.parent_link.linked_to_id,
            extracted_counts=persisted.extracted.model_dump(by_alias=True),
            review_flag_count=review_flag_count,
            parse_time_ms=parse_time_ms,
        )
        await self._store.append_ingest_log(entry)
        return entry

    # ------------------------------------------------------------------
    # Per-level writers
    # ------------------------------------------------------------------

    async def _persist_strategy(
        self, scenario_id: str, classification: ClassifyResult, payload: NormalizedStrategy
    ) -> PersistResult:
        created_id = await self._store.insert_strategy_tree(
            scenario_id,
            payload,
            source_format=classification.source_format,
            confidence=classification.confidence,
        )
        return PersistResult(
            created_id=created_id,
            extracted=ExtractedCounts(priority_count=len(payload.priorities)),
        )

    async def _persist_planning(
        self, scenario_id: str, classification: ClassifyResult, payload: NormalizedPlanning
    ) -> PersistResult:
        parent = await self._store.latest_strategy_document(scenario_id)
        parent_id = parent.id if parent else None
        created_id = await self._store.insert_planning_tree(
            scenario_id,
            payload,
            strategy_doc_id=parent_id,
            source_format=classification.source_format,
            confidence=classification.confidence,
        )
        return PersistResult(
            created_id=created_id,
            parent_link=ParentLink(
                linked_to_id=parent_id,
                linked_to_type=_link_type(HierarchyLevel.PLANNING, parent_id),
                matched_priorities=[p.rank for p in payload.priorities],
            ),
            extracted=ExtractedCounts(priority_count=len(payload.priorities)),
        )

    async def _persist_order(
        self, scenario_id: str, classification: ClassifyResult, payload: NormalizedOrder
    ) -> PersistResult:
        parent = select_order_parent(await self._store.list_planning_documents(scenario_id))
        parent_id = parent.id if parent else None
        created_id = await self._store.insert_order_tree(
            scenario_id,
            payload,
            planning_doc_id=parent_id,
            confidence=classification.confidence,
        )
        matched = sorted(p.rank for p in parent.priorities) if parent else []
        return PersistResult(
            created_id=created_id,
            parent_link=ParentLink(
                linked_to_id=parent_id,
                linked_to_type=_link_type(HierarchyLevel.ORDER, parent_id),
                matched_priorities=matched,
            ),
            extracted=ExtractedCounts(
                mission_count=len(payload.missions),
                waypoint_count=payload.waypoint_count,
                target_count=payload.target_count,
                space_need_count=payload.space_need_count,
            ),
        )
