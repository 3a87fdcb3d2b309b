"""Overwatch domain models: re-exports all public model classes.

Other parts of the codebase can import directly from ``src.models``
(e.g. ``from src.models import IngestResult``) instead of reaching into
the individual module files.

The models are organized by pipeline concern:
    - hierarchy.py   Hierarchy levels, classification output, review flags
    - enums.py       Closed vocabularies for tasking-order sub-fields
    - normalized.py  Level-specific payloads (the tagged union) from stage 2
    - ingest.py      Ingest result, parent link, counts, audit row
    - records.py     Persisted read models and the nested hierarchy view
    - pipeline.py    Pipeline stages and progress events

If you add a new model class, remember to add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.enums import (
    MissionDomain,
    MissionStatus,
    OrderType,
    SecurityClassification,
    SpaceCapability,
    SupportType,
    TimeWindowType,
    WaypointType,
)
from src.models.hierarchy import ClassifyResult, HierarchyLevel, ReviewFlag
from src.models.ingest import (
    ExtractedCounts,
    IngestLogEntry,
    IngestResult,
    ParentLink,
    PersistResult,
)
from src.models.normalized import (
    MissionPackageSpec,
    MissionSpec,
    NormalizationOutcome,
    NormalizedOrder,
    NormalizedPayload,
    NormalizedPlanning,
    NormalizedStrategy,
    PriorityItem,
    SpaceNeedSpec,
    SupportRequirementSpec,
    TargetSpec,
    TimeWindowSpec,
    WaypointSpec,
)
from src.models.pipeline import IngestEvent, IngestEventType, IngestStage
from src.models.records import (
    AttributionSpan,
    HierarchyView,
    MissionPackageRecord,
    MissionRecord,
    MissionTargetRecord,
    PlanningDocumentRecord,
    PlanningNode,
    PriorityEntryRecord,
    SpaceNeedRecord,
    StrategyDocumentRecord,
    StrategyNode,
    SupportRequirementRecord,
    TaskingOrderRecord,
    TimeWindowRecord,
    WaypointRecord,
)

__all__ = [
    # enums
    "MissionDomain",
    "MissionStatus",
    "OrderType",
    "SecurityClassification",
    "SpaceCapability",
    "SupportType",
    "TimeWindowType",
    "WaypointType",
    # hierarchy
    "ClassifyResult",
    "HierarchyLevel",
    "ReviewFlag",
    # ingest
    "ExtractedCounts",
    "IngestLogEntry",
    "IngestResult",
    "ParentLink",
    "PersistResult",
    # normalized
    "MissionPackageSpec",
    "MissionSpec",
    "NormalizationOutcome",
    "NormalizedOrder",
    "NormalizedPayload",
    "NormalizedPlanning",
    "NormalizedStrategy",
    "PriorityItem",
    "SpaceNeedSpec",
    "SupportRequirementSpec",
    "TargetSpec",
    "TimeWindowSpec",
    "WaypointSpec",
    # pipeline
    "IngestEvent",
    "IngestEventType",
    "IngestStage",
    # records
    "AttributionSpan",
    "HierarchyView",
    "MissionPackageRecord",
    "MissionRecord",
    "MissionTargetRecord",
    "PlanningDocumentRecord",
    "PlanningNode",
    "PriorityEntryRecord",
    "SpaceNeedRecord",
    "StrategyDocumentRecord",
    "StrategyNode",
    "SupportRequirementRecord",
    "TaskingOrderRecord",
    "TimeWindowRecord",
    "WaypointRecord",
]
