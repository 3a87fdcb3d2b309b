"""Shared pytest fixtures for the Overwatch ingestion test suite.

Sample documents and the JSON replies a Generative Text Service would give
for them are exposed through the ``samples`` fixture, so test modules
never import from this file directly.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from src.interfaces.llm_provider import ILLMProvider
from src.models.hierarchy import ClassifyResult, HierarchyLevel
from src.providers.hierarchy.sqlite_hierarchy_store import SQLiteHierarchyStore

# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------


class Samples:
    """Raw texts plus fresh (mutable) extraction replies for each level."""

    STRATEGY_TEXT = (
        "JFC GUIDANCE 2026-02\n"
        "1. Gain and maintain air superiority over the JOA.\n"
        "2. Neutralize enemy integrated air defense network.\n"
        "3. Protect friendly space-based PNT and SATCOM.\n"
    )

    PLANNING_TEXT = (
        "JOINT INTEGRATED PRIORITIZED TARGET LIST\n"
        "1. BE 0427-00041 SA-21 battery, DESTROY\n"
        "2. BE 0427-00102 regional C2 node, DEGRADE\n"
    )

    ORDER_TEXT = (
        "MSGID/ATO/JFACC/025A//\n"
        "AMSNDAT/MSN4001/VIPER 11/4XF-35A/OCA//\n"
        "GTGTLOC/TGT001/33.075N/44.039E//\n"
    )

    @staticmethod
    def strategy_reply(effective_date: str = "2026-02-01T00:00:00Z") -> dict[str, Any]:
        return {
            "title": "JFC Guidance 2026-02",
            "docType": "JFC_GUIDANCE",
            "authorityLevel": "JFC",
            "effectiveDate": effective_date,
            "priorities": [
                {
                    "rank": 1,
                    "effect": "air superiority",
                    "description": "Gain and maintain air superiority over the JOA.",
                    "justification": "Enables all follow-on operations",
                },
                {
                    "rank": 2,
                    "effect": "Neutralize",
                    "description": "Neutralize enemy integrated air defense network.",
                    "justification": "Protects strike packages",
                },
            ],
        }

    @staticmethod
    def planning_reply(
        doc_type: str = "JIPTL", effective_date: str = "2026-02-03T00:00:00Z"
    ) -> dict[str, Any]:
        return {
            "title": f"{doc_type} Day 3",
            "docType": doc_type,
            "authorityLevel": "JTCB",
            "effectiveDate": effective_date,
            "priorities": [
                {
                    "rank": 1,
                    "effect": "DESTROY",
                    "description": "SA-21 battery",
                    "justification": "Primary IADS threat",
                    "targetId": "BE 0427-00041",
                },
                {
                    "rank": 2,
                    "effect": "DEGRADE",
                    "description": "regional C2 node",
                    "justification": "Disrupts command of air defense",
                    "targetId": "BE 0427-00102",
                },
            ],
        }

    @staticmethod
    def order_reply() -> dict[str, Any]:
        """One package, one mission: 2 waypoints, 1 target, 1 space need."""
        return {
            "orderId": "ATO-2026-025A",
            "orderType": "ATO",
            "issuingAuthority": "JFACC",
            "effectiveStart": "2026-02-25T06:00:00Z",
            "effectiveEnd": "2026-02-26T06:00:00Z",
            "classification": "SECRET",
            "atoDayNumber": 3,
            "missionPackages": [
                {
                    "packageId": "PKGA01",
                    "priorityRank": 1,
                    "missionType": "OCA",
                    "effectDesired": "Destroy SA-21 battery",
                    "missions": [
                        {
                            "missionId": "MSN4001",
                            "callsign": "VIPER 11",
                            "domain": "AIR",
                            "platformType": "F-35A",
                            "platformCount": 4,
                            "missionType": "OCA",
                            "waypoints": [
                                {
                                    "waypointType": "DEP",
                                    "sequence": 1,
                                    "latitude": 32.1,
                                    "longitude": 45.2,
                                },
                                {
                                    "waypointType": "TGT",
                                    "sequence": 2,
                                    "latitude": 33.075,
                                    "longitude": 44.039,
                                    "altitude_ft": 25000,
                                    "speed_kts": 450,
                                },
                            ],
                            "timeWindows": [
                                {
                                    "windowType": "TOT",
                                    "start": "2026-02-25T09:00:00Z",
                                    "end": "2026-02-25T09:10:00Z",
                                },
                            ],
                            "targets": [
                                {
                                    "targetId": "TGT001",
                                    "beNumber": "0427-00041",
                                    "targetName": "SA-21 battery",
                                    "latitude": 33.075,
                                    "longitude": 44.039,
                                    "desiredEffect": "DESTROY",
                                },
                            ],
                            "supportRequirements": [{"supportType": "TANKER"}],
                            "spaceNeeds": [{"capabilityType": "GPS", "priority": 1}],
                        },
                    ],
                },
            ],
        }

    @staticmethod
    def classification(level: HierarchyLevel, **overrides: Any) -> ClassifyResult:
        per_level: dict[HierarchyLevel, dict[str, Any]] = {
            HierarchyLevel.STRATEGY: {"document_type": "JFC_GUIDANCE", "source_format": "MEMORANDUM"},
            HierarchyLevel.PLANNING: {"document_type": "JIPTL", "source_format": "STAFF_DOC"},
            HierarchyLevel.ORDER: {"document_type": "ATO", "source_format": "USMTF"},
        }
        fields: dict[str, Any] = {
            "hierarchy_level": level,
            "confidence": 0.9,
            "title": "Test document",
            "issuing_authority": "JFC",
            **per_level[level],
            **overrides,
        }
        return ClassifyResult(**fields)

    @classmethod
    def classify_reply(cls, level: HierarchyLevel, **overrides: Any) -> dict[str, Any]:
        """The camelCase JSON a classifier call would return."""
        return cls.classification(level, **overrides).model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def samples() -> type[Samples]:
    return Samples


@pytest.fixture()
def make_mock_llm() -> Callable[..., MagicMock]:
    """Factory for a mock ILLMProvider returning the given replies in order.

    Dict replies are JSON-encoded; strings are returned as-is.
    """

    def _factory(*replies: Any) -> MagicMock:
        mock = MagicMock(spec=ILLMProvider)
        mock.complete = AsyncMock(
            side_effect=[r if isinstance(r, str) else json.dumps(r) for r in replies]
        )
        mock.get_provider_name.return_value = "mock-llm"
        mock.is_available.return_value = True
        return mock

    return _factory


@pytest_asyncio.fixture
async def hierarchy_store(tmp_path: Path) -> SQLiteHierarchyStore:
    """An initialized store on a per-test temp database."""
    store = SQLiteHierarchyStore(db_path=tmp_path / "hierarchy.db")
    await store.initialize()
    return store
