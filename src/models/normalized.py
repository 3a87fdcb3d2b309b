"""Typed payloads produced by stage 2 (normalization).

The hierarchy level selects one of three payload variants.  They form a
closed tagged union, :data:`NormalizedPayload`, discriminated by the
``level`` literal, so the Linker/Persister dispatches on one field instead
of string-matching document types.

All values here are already coerced: enums are members of the closed
vocabularies in src/models/enums.py, dates are timezone-aware datetimes,
coordinates are floats.  Anything that had to be guessed along the way is
recorded as a :class:`~src.models.hierarchy.ReviewFlag` next to the
payload in :class:`NormalizationOutcome`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import (
    MissionDomain,
    OrderType,
    SecurityClassification,
    SpaceCapability,
    SupportType,
    TimeWindowType,
    WaypointType,
)
from src.models.hierarchy import HierarchyLevel, ReviewFlag


class PriorityItem(BaseModel):
    """One ranked objective.  ``target_id`` is only set by planning docs."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    effect: str = ""
    description: str = ""
    justification: str = ""
    target_id: str | None = None


class NormalizedStrategy(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal[HierarchyLevel.STRATEGY] = HierarchyLevel.STRATEGY
    title: str
    doc_type: str
    authority_level: str
    content: str
    effective_date: datetime
    priorities: list[PriorityItem] = Field(default_factory=list)


class NormalizedPlanning(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal[HierarchyLevel.PLANNING] = HierarchyLevel.PLANNING
    title: str
    doc_type: str
    authority_level: str
    content: str
    effective_date: datetime
    priorities: list[PriorityItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Order tree: order -> packages -> missions -> leaf collections
# ---------------------------------------------------------------------------

class WaypointSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    waypoint_type: WaypointType
    sequence: int
    latitude: float
    longitude: float
    altitude_ft: float | None = None
    speed_kts: float | None = None
    name: str | None = None


class TimeWindowSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_type: TimeWindowType
    start: datetime
    end: datetime | None = None


class TargetSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_id: str
    target_name: str
    latitude: float
    longitude: float
    desired_effect: str
    be_number: str | None = None
    target_category: str | None = None
    priority_rank: int | None = None
    collateral_concern: str | None = None


class SupportRequirementSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    support_type: SupportType
    details: str | None = None


class SpaceNeedSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    capability_type: SpaceCapability
    priority: int
    start_time: datetime
    end_time: datetime


class MissionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    mission_id: str
    domain: MissionDomain
    platform_type: str
    platform_count: int
    mission_type: str
    callsign: str | None = None
    waypoints: list[WaypointSpec] = Field(default_factory=list)
    time_windows: list[TimeWindowSpec] = Field(default_factory=list)
    targets: list[TargetSpec] = Field(default_factory=list)
    support_requirements: list[SupportRequirementSpec] = Field(default_factory=list)
    space_needs: list[SpaceNeedSpec] = Field(default_factory=list)


class MissionPackageSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    package_id: str
    priority_rank: int
    mission_type: str
    effect_desired: str
    missions: list[MissionSpec] = Field(default_factory=list)


class NormalizedOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Literal[HierarchyLevel.ORDER] = HierarchyLevel.ORDER
    order_id: str
    order_type: OrderType
    issuing_authority: str
    effective_start: datetime
    effective_end: datetime
    classification: SecurityClassification
    raw_text: str
    raw_format: str
    ato_day_number: int | None = None
    mission_packages: list[MissionPackageSpec] = Field(default_factory=list)

    # Convenience counters used by progress previews and the audit row.
    @property
    def missions(self) -> list[MissionSpec]:
        return [m for pkg in self.mission_packages for m in pkg.missions]

    @property
    def waypoint_count(self) -> int:
        return sum(len(m.waypoints) for m in self.missions)

    @property
    def target_count(self) -> int:
        return sum(len(m.targets) for m in self.missions)

    @property
    def space_need_count(self) -> int:
        return sum(len(m.space_needs) for m in self.missions)


NormalizedPayload = Annotated[
    Union[NormalizedStrategy, NormalizedPlanning, NormalizedOrder],  # noqa: UP007
    Field(discriminator="level"),
]


class NormalizationOutcome(BaseModel):
    """Stage 2 result: the payload plus every review flag raised for it."""

    model_config = ConfigDict(frozen=True)

    payload: NormalizedPayload
    review_flags: list[ReviewFlag] = Field(default_factory=list)

    def preview_counts(self) -> dict[str, int]:
        """Entity counts shown in the ``ingest:normalized`` event."""
        payload = self.payload
        if isinstance(payload, NormalizedOrder):
            return {
                "missionPackages": len(payload.mission_packages),
                "missions": len(payload.missions),
                "waypoints": payload.waypoint_count,
            }
        return {"priorities": len(payload.priorities)}
