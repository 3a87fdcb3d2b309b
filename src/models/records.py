"""Persisted read models returned by the hierarchy store.

These mirror the SQLite rows written by
src/providers/hierarchy/sqlite_hierarchy_store.py.  They are what the
read surface (API, CLI, source attribution) hands to downstream consumers.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

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
from src.models.hierarchy import WIRE_CONFIG


class PriorityEntryRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    strategy_doc_id: str | None = None
    planning_doc_id: str | None = None
    rank: int
    target_id: str | None = None
    effect: str
    description: str
    justification: str


class StrategyDocumentRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    scenario_id: str
    title: str
    doc_type: str
    content: str
    authority_level: str
    effective_date: datetime
    source_format: str | None = None
    confidence: float | None = None
    ingested_at: datetime | None = None
    priorities: list[PriorityEntryRecord] = Field(default_factory=list)


class PlanningDocumentRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    scenario_id: str
    strategy_doc_id: str | None = None
    title: str
    doc_type: str
    content: str
    authority_level: str = ""
    effective_date: datetime
    source_format: str | None = None
    confidence: float | None = None
    ingested_at: datetime | None = None
    priorities: list[PriorityEntryRecord] = Field(default_factory=list)


class WaypointRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_id: str
    waypoint_type: WaypointType
    sequence: int
    latitude: float
    longitude: float
    altitude_ft: float | None = None
    speed_kts: float | None = None
    name: str | None = None


class TimeWindowRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_id: str
    window_type: TimeWindowType
    start_time: datetime
    end_time: datetime | None = None


class MissionTargetRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_id: str
    target_id: str
    be_number: str | None = None
    target_name: str
    latitude: float
    longitude: float
    target_category: str | None = None
    priority_rank: int | None = None
    desired_effect: str
    collateral_concern: str | None = None


class SupportRequirementRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_id: str
    support_type: SupportType
    details: str | None = None


class SpaceNeedRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_id: str
    capability_type: SpaceCapability
    priority: int
    start_time: datetime
    end_time: datetime
    fulfilled: bool = False


class MissionRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    mission_package_id: str
    mission_id: str
    callsign: str | None = None
    domain: MissionDomain
    platform_type: str
    platform_count: int
    mission_type: str
    status: MissionStatus = MissionStatus.PLANNED
    waypoints: list[WaypointRecord] = Field(default_factory=list)
    time_windows: list[TimeWindowRecord] = Field(default_factory=list)
    targets: list[MissionTargetRecord] = Field(default_factory=list)
    support_requirements: list[SupportRequirementRecord] = Field(default_factory=list)
    space_needs: list[SpaceNeedRecord] = Field(default_factory=list)


class MissionPackageRecord(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    tasking_order_id: str
    package_id: str
    priority_rank: int
    mission_type: str
    effect_desired: str
    missions: list[MissionRecord] = Field(default_factory=list)


class TaskingOrderRecord(BaseModel):
    """A tasking order row.  ``mission_packages`` is only populated by
    ``get_order_tree``; list queries return the header alone."""

    model_config = WIRE_CONFIG

    id: str
    scenario_id: str
    planning_doc_id: str | None = None
    order_type: OrderType
    order_id: str
    issuing_authority: str
    effective_start: datetime
    effective_end: datetime
    classification: SecurityClassification
    ato_day_number: int | None = None
    raw_text: str | None = None
    raw_format: str | None = None
    confidence: float | None = None
    ingested_at: datetime | None = None
    mission_packages: list[MissionPackageRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Nested hierarchy read view: strategy -> planning -> orders
# ---------------------------------------------------------------------------

class PlanningNode(BaseModel):
    model_config = WIRE_CONFIG

    document: PlanningDocumentRecord
    orders: list[TaskingOrderRecord] = Field(default_factory=list)


class StrategyNode(BaseModel):
    model_config = WIRE_CONFIG

    document: StrategyDocumentRecord
    planning: list[PlanningNode] = Field(default_factory=list)


class HierarchyView(BaseModel):
    """Everything persisted for one scenario, nested by linkage.

    Documents whose parent link is null are kept in the ``unlinked_*``
    buckets so nothing persisted is hidden from the view.
    """

    model_config = WIRE_CONFIG

    scenario_id: str
    strategies: list[StrategyNode] = Field(default_factory=list)
    unlinked_planning: list[PlanningNode] = Field(default_factory=list)
    unlinked_orders: list[TaskingOrderRecord] = Field(default_factory=list)


class AttributionSpan(BaseModel):
    """A highlighted region of raw text that produced one priority entry."""

    model_config = WIRE_CONFIG

    id: str
    label: str
    kind: str
    value: str
    char_start: int
    char_end: int
    color: str
    rank: int
    effect: str
