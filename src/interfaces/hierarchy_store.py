"""Abstract base class for the document hierarchy store.

The store is the only shared state between ingestions: strategy and
planning documents with their priority entries, tasking orders with their
full mission tree, and the append-only ingest audit log.  Every query is
scoped by scenario; nothing ever links across scenarios.

Write contract:
    Each ``insert_*_tree`` call writes a document and everything it owns
    in ONE transaction.  On any failure the whole tree is rolled back and
    :class:`~src.utils.errors.PersistenceError` is raised, so a reader
    never observes half an order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.ingest import IngestLogEntry
from src.models.normalized import NormalizedOrder, NormalizedPlanning, NormalizedStrategy
from src.models.records import (
    HierarchyView,
    PlanningDocumentRecord,
    PriorityEntryRecord,
    StrategyDocumentRecord,
    TaskingOrderRecord,
)


# Concrete implementation: SQLiteHierarchyStore
# Located in: src/providers/hierarchy/
class IHierarchyStore(ABC):
    """Contract for hierarchy persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_strategy_tree(
        self,
        scenario_id: str,
        payload: NormalizedStrategy,
        *,
        source_format: str,
        confidence: float,
    ) -> str:
        """Persist a strategy document and its priorities; return its id."""

    @abstractmethod
    async def insert_planning_tree(
        self,
        scenario_id: str,
        payload: NormalizedPlanning,
        *,
        strategy_doc_id: str | None,
        source_format: str,
        confidence: float,
    ) -> str:
        """Persist a planning document and its priorities; return its id."""

    @abstractmethod
    async def insert_order_tree(
        self,
        scenario_id: str,
        payload: NormalizedOrder,
        *,
        planning_doc_id: str | None,
        confidence: float,
    ) -> str:
        """Persist a tasking order and its full mission tree; return its id."""

    @abstractmethod
    async def append_ingest_log(self, entry: IngestLogEntry) -> None:
        """Append one immutable audit row."""

    # ------------------------------------------------------------------
    # Reads (all scenario-scoped)
    # ------------------------------------------------------------------

    @abstractmethod
    async def latest_strategy_document(self, scenario_id: str) -> StrategyDocumentRecord | None:
        """Return the strategy document with the latest effective date."""

    @abstractmethod
    async def list_strategy_documents(self, scenario_id: str) -> list[StrategyDocumentRecord]:
        """Strategy documents, effective date descending, with priorities."""

    @abstractmethod
    async def list_planning_documents(self, scenario_id: str) -> list[PlanningDocumentRecord]:
        """Planning documents, effective date descending, with priorities."""

    @abstractmethod
    async def get_strategy_document(
        self, scenario_id: str, doc_id: str
    ) -> StrategyDocumentRecord | None:
        """Return one strategy document (with priorities) or ``None``."""

    @abstractmethod
    async def get_planning_document(
        self, scenario_id: str, doc_id: str
    ) -> PlanningDocumentRecord | None:
        """Return one planning document (with priorities) or ``None``."""

    @abstractmethod
    async def list_priorities(self, doc_id: str) -> list[PriorityEntryRecord]:
        """Priority entries owned by a strategy or planning document, by rank."""

    @abstractmethod
    async def list_tasking_orders(self, scenario_id: str) -> list[TaskingOrderRecord]:
        """Tasking order headers, effective start descending."""

    @abstractmethod
    async def get_order_tree(
        self, scenario_id: str, order_id: str
    ) -> TaskingOrderRecord | None:
        """Return a tasking order with its packages, missions and leaves."""

    @abstractmethod
    async def list_ingest_logs(
        self, scenario_id: str | None = None, limit: int = 50
    ) -> list[IngestLogEntry]:
        """Newest audit rows first; all scenarios when *scenario_id* is None."""

    @abstractmethod
    async def count_ingests_with_hash(self, scenario_id: str, input_hash: str) -> int:
        """How many audit rows in the scenario carry this content hash."""

    @abstractmethod
    async def get_hierarchy(self, scenario_id: str) -> HierarchyView:
        """Nested strategy -> planning -> order view of the scenario."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
