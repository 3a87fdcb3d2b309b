"""Closed vocabularies for tasking-order sub-fields.

Each enum exposes a ``default()`` classmethod naming the value an
out-of-vocabulary input is coerced to.  Coercion itself (with the matching
review flag) lives in :func:`src.utils.coercion.coerce_enum`, so the
normalizer never hand-rolls "is this one of the allowed strings" checks.
"""

from __future__ import annotations

from enum import Enum


class Vocabulary(str, Enum):  # noqa: UP042  (StrEnum requires Python 3.11+)
    """Base for vocabularies with a documented fallback member."""

    @classmethod
    def default(cls) -> Vocabulary:
        raise NotImplementedError

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class OrderType(Vocabulary):
    ATO = "ATO"
    MTO = "MTO"
    STO = "STO"
    OPORD = "OPORD"
    EXORD = "EXORD"
    FRAGORD = "FRAGORD"
    ACO = "ACO"
    SPINS = "SPINS"

    @classmethod
    def default(cls) -> OrderType:
        return cls.ATO


class SecurityClassification(Vocabulary):
    UNCLASSIFIED = "UNCLASSIFIED"
    CUI = "CUI"
    CONFIDENTIAL = "CONFIDENTIAL"
    SECRET = "SECRET"
    TOP_SECRET = "TOP_SECRET"

    @classmethod
    def default(cls) -> SecurityClassification:
        return cls.UNCLASSIFIED


class MissionDomain(Vocabulary):
    AIR = "AIR"
    MARITIME = "MARITIME"
    SPACE = "SPACE"
    LAND = "LAND"

    @classmethod
    def default(cls) -> MissionDomain:
        return cls.AIR


class WaypointType(Vocabulary):
    DEP = "DEP"
    IP = "IP"
    CP = "CP"
    TGT = "TGT"
    EGR = "EGR"
    REC = "REC"
    ORBIT = "ORBIT"
    REFUEL = "REFUEL"
    CAP = "CAP"
    PATROL = "PATROL"

    @classmethod
    def default(cls) -> WaypointType:
        return cls.CP


class TimeWindowType(Vocabulary):
    TOT = "TOT"
    ONSTA = "ONSTA"
    OFFSTA = "OFFSTA"
    REFUEL = "REFUEL"
    COVERAGE = "COVERAGE"
    SUPPRESS = "SUPPRESS"
    TRANSIT = "TRANSIT"

    @classmethod
    def default(cls) -> TimeWindowType:
        return cls.TOT


class SupportType(Vocabulary):
    TANKER = "TANKER"
    SEAD = "SEAD"
    ISR = "ISR"
    EW = "EW"
    ESCORT = "ESCORT"
    CAP = "CAP"

    @classmethod
    def default(cls) -> SupportType:
        return cls.ISR


class SpaceCapability(Vocabulary):
    GPS = "GPS"
    SATCOM = "SATCOM"
    SATCOM_PROTECTED = "SATCOM_PROTECTED"
    SATCOM_WIDEBAND = "SATCOM_WIDEBAND"
    SATCOM_TACTICAL = "SATCOM_TACTICAL"
    OPIR = "OPIR"
    ISR_SPACE = "ISR_SPACE"
    EW_SPACE = "EW_SPACE"
    WEATHER = "WEATHER"
    PNT = "PNT"
    LINK16 = "LINK16"

    @classmethod
    def default(cls) -> SpaceCapability:
        return cls.GPS


class MissionStatus(str, Enum):  # noqa: UP042
    """Mission lifecycle.  Ingestion only ever writes PLANNED; the
    simulation clock owns every later transition."""

    PLANNED = "PLANNED"
    BRIEFED = "BRIEFED"
    LAUNCHED = "LAUNCHED"
    AIRBORNE = "AIRBORNE"
    ON_STATION = "ON_STATION"
    ENGAGED = "ENGAGED"
    EGRESSING = "EGRESSING"
    RTB = "RTB"
    RECOVERED = "RECOVERED"
    CANCELLED = "CANCELLED"
    DIVERTED = "DIVERTED"
    DELAYED = "DELAYED"
