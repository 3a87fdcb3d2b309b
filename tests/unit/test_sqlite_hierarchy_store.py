"""Unit tests for SQLiteHierarchyStore.

Each test uses a temporary SQLite database (``hierarchy_store`` fixture)
to ensure isolation.  Payloads are built directly from the normalized
models, so no Generative Text Service is involved.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from src.models.enums import (
    MissionDomain,
    OrderType,
    SecurityClassification,
    SpaceCapability,
    WaypointType,
)
from src.models.hierarchy import HierarchyLevel
from src.models.ingest import IngestLogEntry
from src.models.normalized import (
    MissionPackageSpec,
    MissionSpec,
    NormalizedOrder,
    NormalizedPlanning,
    NormalizedStrategy,
    PriorityItem,
    SpaceNeedSpec,
    WaypointSpec,
)
from src.providers.hierarchy.sqlite_hierarchy_store import SQLiteHierarchyStore
from src.utils.errors import PersistenceError

START = datetime(2026, 2, 25, 6, 0, tzinfo=timezone.utc)


# ─── Payload builders ────────────────────────────────────────────────


def _strategy(day: int, title: str = "JFC Guidance") -> NormalizedStrategy:
    return NormalizedStrategy(
        title=title,
        doc_type="JFC_GUIDANCE",
        authority_level="JFC",
        content=f"{title} text",
        effective_date=datetime(2026, 2, day, tzinfo=timezone.utc),
        priorities=[
            PriorityItem(rank=2, effect="DEGRADE", description="IADS"),
            PriorityItem(rank=1, effect="GAIN", description="Air superiority"),
        ],
    )


def _planning(day: int, doc_type: str = "JIPTL") -> NormalizedPlanning:
    return NormalizedPlanning(
        title=f"{doc_type} day {day}",
        doc_type=doc_type,
        authority_level="JTCB",
        content="1. BE 0427-00041 SA-21",
        effective_date=datetime(2026, 2, day, tzinfo=timezone.utc),
        priorities=[
            PriorityItem(rank=1, effect="DESTROY", description="SA-21", target_id="BE 0427-00041"),
        ],
    )


def _mission(mission_id: str) -> MissionSpec:
    return MissionSpec(
        mission_id=mission_id,
        domain=MissionDomain.AIR,
        platform_type="F-35A",
        platform_count=4,
        mission_type="OCA",
        waypoints=[
            WaypointSpec(waypoint_type=WaypointType.TGT, sequence=2, latitude=33.0, longitude=44.0),
            WaypointSpec(waypoint_type=WaypointType.DEP, sequence=1, latitude=32.0, longitude=45.0),
        ],
        space_needs=[
            SpaceNeedSpec(
                capability_type=SpaceCapability.GPS,
                priority=1,
                start_time=START,
                end_time=START + timedelta(hours=24),
            ),
        ],
    )


def _order(missions: int = 2) -> NormalizedOrder:
    return NormalizedOrder(
        order_id="ATO-2026-025A",
        order_type=OrderType.ATO,
        issuing_authority="JFACC",
        effective_start=START,
        effective_end=START + timedelta(hours=24),
        classification=SecurityClassification.SECRET,
        raw_text="MSGID/ATO//",
        raw_format="USMTF",
        mission_packages=[
            MissionPackageSpec(
                package_id="PKGA01",
                priority_rank=1,
                mission_type="OCA",
                effect_desired="Destroy IADS",
                missions=[_mission(f"MSN{4000 + i}") for i in range(missions)],
            ),
        ],
    )


def _log(scenario_id: str, created: str, input_hash: str = "abc") -> IngestLogEntry:
    return IngestLogEntry(
        id=str(uuid.uuid4()),
        scenario_id=scenario_id,
        input_hash=input_hash,
        hierarchy_level=HierarchyLevel.STRATEGY,
        document_type="NMS",
        source_format="MEMORANDUM",
        confidence=0.8,
        created_record_id=created,
        extracted_counts={"priorityCount": 2},
        parse_time_ms=12,
    )


# ═══════════════════════════════════════════════════════════════════════
# Strategy / planning
# ═══════════════════════════════════════════════════════════════════════


class TestDocuments:
    @pytest.mark.asyncio()
    async def test_strategy_round_trip_orders_priorities(self, hierarchy_store) -> None:
        doc_id = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1), source_format="MEMORANDUM", confidence=0.9
        )

        doc = await hierarchy_store.get_strategy_document("alpha", doc_id)

        assert doc is not None
        assert doc.title == "JFC Guidance"
        assert doc.source_format == "MEMORANDUM"
        assert [p.rank for p in doc.priorities] == [1, 2]
        assert all(p.strategy_doc_id == doc_id for p in doc.priorities)

    @pytest.mark.asyncio()
    async def test_latest_strategy_uses_effective_date(self, hierarchy_store) -> None:
        newer = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(10, "Newer"), source_format="MEMORANDUM", confidence=0.9
        )
        await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1, "Older but ingested later"), source_format="MEMORANDUM", confidence=0.9
        )

        latest = await hierarchy_store.latest_strategy_document("alpha")

        assert latest is not None
        assert latest.id == newer

    @pytest.mark.asyncio()
    async def test_scenarios_are_isolated(self, hierarchy_store) -> None:
        doc_id = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1), source_format="MEMORANDUM", confidence=0.9
        )

        assert await hierarchy_store.latest_strategy_document("bravo") is None
        assert await hierarchy_store.get_strategy_document("bravo", doc_id) is None
        assert await hierarchy_store.list_planning_documents("bravo") == []

    @pytest.mark.asyncio()
    async def test_planning_cannot_link_across_scenarios(self, hierarchy_store) -> None:
        strategy_id = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1), source_format="MEMORANDUM", confidence=0.9
        )

        with pytest.raises(PersistenceError, match="not in scenario"):
            await hierarchy_store.insert_planning_tree(
                "bravo", _planning(2), strategy_doc_id=strategy_id,
                source_format="STAFF_DOC", confidence=0.9,
            )

        assert await hierarchy_store.list_planning_documents("bravo") == []

    @pytest.mark.asyncio()
    async def test_planning_list_newest_first(self, hierarchy_store) -> None:
        for day in (3, 7, 5):
            await hierarchy_store.insert_planning_tree(
                "alpha", _planning(day), strategy_doc_id=None,
                source_format="STAFF_DOC", confidence=0.9,
            )

        docs = await hierarchy_store.list_planning_documents("alpha")

        assert [d.effective_date.day for d in docs] == [7, 5, 3]
        assert docs[0].priorities[0].target_id == "BE 0427-00041"

    @pytest.mark.asyncio()
    async def test_list_priorities_by_rank(self, hierarchy_store) -> None:
        strategy_id = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1), source_format="MEMORANDUM", confidence=0.9
        )
        planning_id = await hierarchy_store.insert_planning_tree(
            "alpha", _planning(2), strategy_doc_id=strategy_id,
            source_format="STAFF_DOC", confidence=0.9,
        )

        strategy_priorities = await hierarchy_store.list_priorities(strategy_id)
        planning_priorities = await hierarchy_store.list_priorities(planning_id)

        assert [(p.rank, p.description) for p in strategy_priorities] == [
            (1, "Air superiority"),
            (2, "IADS"),
        ]
        assert all(p.planning_doc_id is None for p in strategy_priorities)
        assert [p.planning_doc_id for p in planning_priorities] == [planning_id]
        assert await hierarchy_store.list_priorities("no-such-doc") == []


# ═══════════════════════════════════════════════════════════════════════
# Tasking orders
# ═══════════════════════════════════════════════════════════════════════


class TestOrders:
    @pytest.mark.asyncio()
    async def test_order_tree_round_trip(self, hierarchy_store) -> None:
        order_pk = await hierarchy_store.insert_order_tree(
            "alpha", _order(), planning_doc_id=None, confidence=0.85
        )

        by_pk = await hierarchy_store.get_order_tree("alpha", order_pk)
        by_order_id = await hierarchy_store.get_order_tree("alpha", "ATO-2026-025A")

        assert by_pk is not None and by_order_id is not None
        assert by_pk.id == by_order_id.id == order_pk
        assert by_pk.classification is SecurityClassification.SECRET
        package = by_pk.mission_packages[0]
        assert [m.mission_id for m in package.missions] == ["MSN4000", "MSN4001"]
        mission = package.missions[0]
        assert [w.sequence for w in mission.waypoints] == [1, 2]
        assert mission.space_needs[0].fulfilled is False
        assert mission.status.value == "PLANNED"

    @pytest.mark.asyncio()
    async def test_failed_write_leaves_nothing_behind(self, hierarchy_store, monkeypatch) -> None:
        original = SQLiteHierarchyStore._write_mission
        calls = {"n": 0}

        async def failing_write(self, db, package_pk, mission, now):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("disk full")
            await original(self, db, package_pk, mission, now)

        monkeypatch.setattr(SQLiteHierarchyStore, "_write_mission", failing_write)

        with pytest.raises(PersistenceError, match="rolled back"):
            await hierarchy_store.insert_order_tree(
                "alpha", _order(missions=2), planning_doc_id=None, confidence=0.85
            )

        assert await hierarchy_store.list_tasking_orders("alpha") == []
        assert await hierarchy_store.get_order_tree("alpha", "ATO-2026-025A") is None

    @pytest.mark.asyncio()
    async def test_missing_order_returns_none(self, hierarchy_store) -> None:
        assert await hierarchy_store.get_order_tree("alpha", "nope") is None


# ═══════════════════════════════════════════════════════════════════════
# Hierarchy view and audit log
# ═══════════════════════════════════════════════════════════════════════


class TestHierarchyView:
    @pytest.mark.asyncio()
    async def test_nested_view(self, hierarchy_store) -> None:
        strategy_id = await hierarchy_store.insert_strategy_tree(
            "alpha", _strategy(1), source_format="MEMORANDUM", confidence=0.9
        )
        planning_id = await hierarchy_store.insert_planning_tree(
            "alpha", _planning(3), strategy_doc_id=strategy_id,
            source_format="STAFF_DOC", confidence=0.9,
        )
        order_id = await hierarchy_store.insert_order_tree(
            "alpha", _order(1), planning_doc_id=planning_id, confidence=0.9
        )
        orphan_id = await hierarchy_store.insert_order_tree(
            "alpha", _order(1), planning_doc_id=None, confidence=0.9
        )

        view = await hierarchy_store.get_hierarchy("alpha")

        assert [n.document.id for n in view.strategies] == [strategy_id]
        planning = view.strategies[0].planning
        assert [n.document.id for n in planning] == [planning_id]
        assert [o.id for o in planning[0].orders] == [order_id]
        assert view.unlinked_planning == []
        assert [o.id for o in view.unlinked_orders] == [orphan_id]


class TestIngestLog:
    @pytest.mark.asyncio()
    async def test_append_list_and_count(self, hierarchy_store) -> None:
        await hierarchy_store.append_ingest_log(_log("alpha", "doc-1"))
        await hierarchy_store.append_ingest_log(_log("alpha", "doc-2"))
        await hierarchy_store.append_ingest_log(_log("bravo", "doc-3", input_hash="zzz"))

        alpha = await hierarchy_store.list_ingest_logs("alpha")
        everything = await hierarchy_store.list_ingest_logs(None, limit=10)

        assert [e.created_record_id for e in alpha] == ["doc-2", "doc-1"]
        assert alpha[0].extracted_counts == {"priorityCount": 2}
        assert len(everything) == 3
        assert await hierarchy_store.count_ingests_with_hash("alpha", "abc") == 2
        assert await hierarchy_store.count_ingests_with_hash("bravo", "abc") == 0

    @pytest.mark.asyncio()
    async def test_limit(self, hierarchy_store) -> None:
        for i in range(5):
            await hierarchy_store.append_ingest_log(_log("alpha", f"doc-{i}"))
        assert len(await hierarchy_store.list_ingest_logs("alpha", limit=2)) == 2

    def test_provider_name(self, tmp_path) -> None:
        assert SQLiteHierarchyStore(tmp_path / "x.db").get_provider_name() == "sqlite_hierarchy"
