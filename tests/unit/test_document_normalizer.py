"""Unit tests for DocumentNormalizer: stage 2 structured extraction.

The extraction model is mocked; these tests exercise the schema dispatch
and the permissive coercion of every order sub-field.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.interfaces.llm_provider import ModelTier
from src.models.enums import (
    MissionDomain,
    OrderType,
    SecurityClassification,
    SpaceCapability,
    SupportType,
    TimeWindowType,
    WaypointType,
)
from src.models.hierarchy import HierarchyLevel
from src.models.normalized import NormalizedOrder, NormalizedPlanning, NormalizedStrategy
from src.services import document_normalizer
from src.services.document_normalizer import DocumentNormalizer
from src.utils.errors import NormalizationError


# ======================================================================
# Helpers
# ======================================================================


async def _normalize(make_mock_llm, samples, level: HierarchyLevel, reply, text: str = "doc", **cls):
    llm = make_mock_llm(reply)
    normalizer = DocumentNormalizer(llm_provider=llm)
    outcome = await normalizer.normalize(text, samples.classification(level, **cls))
    return outcome, llm


def _flag_fields(outcome) -> list[str]:
    return [f.field for f in outcome.review_flags]


def _first_mission(order_reply: dict) -> dict:
    return order_reply["missionPackages"][0]["missions"][0]


# ======================================================================
# Strategy / planning
# ======================================================================


class TestStrategyAndPlanning:
    @pytest.mark.asyncio()
    async def test_strategy_payload(self, make_mock_llm, samples) -> None:
        outcome, llm = await _normalize(
            make_mock_llm, samples, HierarchyLevel.STRATEGY,
            samples.strategy_reply(), text=samples.STRATEGY_TEXT,
        )

        payload = outcome.payload
        assert isinstance(payload, NormalizedStrategy)
        assert payload.title == "JFC Guidance 2026-02"
        assert payload.doc_type == "JFC_GUIDANCE"
        assert payload.authority_level == "JFC"
        assert payload.effective_date == datetime(2026, 2, 1, tzinfo=timezone.utc)
        assert [p.rank for p in payload.priorities] == [1, 2]
        assert all(p.target_id is None for p in payload.priorities)
        assert outcome.review_flags == []
        assert llm.complete.call_args.kwargs["model_tier"] is ModelTier.MID

    @pytest.mark.asyncio()
    async def test_content_is_the_submitted_text(self, make_mock_llm, samples) -> None:
        reply = samples.strategy_reply()
        reply["content"] = "a paraphrase"
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.STRATEGY, reply, text=samples.STRATEGY_TEXT
        )
        assert outcome.payload.content == samples.STRATEGY_TEXT

    @pytest.mark.asyncio()
    async def test_planning_keeps_target_ids(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.PLANNING, samples.planning_reply()
        )

        payload = outcome.payload
        assert isinstance(payload, NormalizedPlanning)
        assert [p.target_id for p in payload.priorities] == ["BE 0427-00041", "BE 0427-00102"]
        assert outcome.preview_counts() == {"priorities": 2}

    @pytest.mark.asyncio()
    async def test_missing_fields_fall_back_to_classification(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.STRATEGY, {"priorities": []},
            title="Campaign Plan Alpha", document_type="CAMPAIGN_PLAN",
            issuing_authority="CCDR", effective_date_str="2026-01-15",
        )

        payload = outcome.payload
        assert payload.title == "Campaign Plan Alpha"
        assert payload.doc_type == "CAMPAIGN_PLAN"
        assert payload.authority_level == "CCDR"
        assert payload.effective_date == datetime(2026, 1, 15, tzinfo=timezone.utc)
        assert outcome.review_flags == []

    @pytest.mark.asyncio()
    async def test_missing_date_defaults_to_now_and_flags(self, make_mock_llm, samples) -> None:
        before = datetime.now(timezone.utc)
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.STRATEGY, {"title": "NMS"},
        )

        assert outcome.payload.effective_date >= before
        assert "effectiveDate" in _flag_fields(outcome)

    @pytest.mark.asyncio()
    async def test_unparseable_date_is_flagged(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.STRATEGY,
            {"title": "NMS", "effectiveDate": "sometime next spring"},
            effective_date_str="2026-03-01",
        )

        assert outcome.payload.effective_date == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert _flag_fields(outcome) == ["effectiveDate"]


class TestPriorityRanks:
    @pytest.mark.asyncio()
    async def test_invalid_and_duplicate_ranks_are_repaired(self, make_mock_llm, samples) -> None:
        reply = {
            "title": "JIPTL",
            "effectiveDate": "2026-02-03",
            "priorities": [
                {"rank": 1, "effect": "DESTROY"},
                {"rank": 1, "effect": "DEGRADE"},
                {"rank": 0, "effect": "DENY"},
                {"effect": "DISRUPT"},
            ],
        }
        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.PLANNING, reply)

        ranks = [p.rank for p in outcome.payload.priorities]
        assert ranks == [1, 2, 3, 4]
        assert len(set(ranks)) == len(ranks)
        assert _flag_fields(outcome) == [
            "priorities[1].rank",
            "priorities[2].rank",
            "priorities[3].rank",
        ]

    @pytest.mark.asyncio()
    async def test_non_object_priority_is_skipped(self, make_mock_llm, samples) -> None:
        reply = {"title": "JIPTL", "priorities": ["just a string", {"rank": 1, "effect": "DESTROY"}]}
        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.PLANNING, reply)

        assert len(outcome.payload.priorities) == 1
        assert "priorities[0]" in _flag_fields(outcome)


# ======================================================================
# Tasking orders
# ======================================================================


class TestOrder:
    @pytest.mark.asyncio()
    async def test_full_order_tree(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.ORDER, samples.order_reply(),
            text=samples.ORDER_TEXT,
        )

        order = outcome.payload
        assert isinstance(order, NormalizedOrder)
        assert order.order_id == "ATO-2026-025A"
        assert order.order_type is OrderType.ATO
        assert order.classification is SecurityClassification.SECRET
        assert order.ato_day_number == 3
        assert order.raw_text == samples.ORDER_TEXT
        assert order.raw_format == "USMTF"

        mission = order.missions[0]
        assert mission.domain is MissionDomain.AIR
        assert mission.platform_count == 4
        assert [w.waypoint_type for w in mission.waypoints] == [WaypointType.DEP, WaypointType.TGT]
        assert mission.waypoints[1].altitude_ft == 25000
        assert mission.waypoints[1].speed_kts == 450
        assert mission.time_windows[0].window_type is TimeWindowType.TOT
        assert mission.targets[0].be_number == "0427-00041"
        assert mission.support_requirements[0].support_type is SupportType.TANKER
        assert mission.space_needs[0].capability_type is SpaceCapability.GPS

        assert outcome.preview_counts() == {"missionPackages": 1, "missions": 1, "waypoints": 2}
        assert outcome.review_flags == []

    @pytest.mark.asyncio()
    async def test_unknown_waypoint_type_defaults_to_cp(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        _first_mission(reply)["waypoints"][0]["waypointType"] = "HOLDING"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        assert outcome.payload.missions[0].waypoints[0].waypoint_type is WaypointType.CP
        flag = outcome.review_flags[0]
        assert flag.field == "missionPackages[0].missions[0].waypoints[0].waypointType"
        assert flag.raw_value == "HOLDING"

    @pytest.mark.asyncio()
    async def test_unknown_enums_in_every_vocabulary(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["orderType"] = "TASKORD"
        reply["classification"] = "NOFORN"
        mission = _first_mission(reply)
        mission["domain"] = "CYBER"
        mission["timeWindows"][0]["windowType"] = "LOITER"
        mission["supportRequirements"][0]["supportType"] = "MEDEVAC"
        mission["spaceNeeds"][0]["capabilityType"] = "laser comms"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        order = outcome.payload
        m = order.missions[0]
        assert order.order_type is OrderType.ATO
        assert order.classification is SecurityClassification.UNCLASSIFIED
        assert m.domain is MissionDomain.AIR
        assert m.time_windows[0].window_type is TimeWindowType.TOT
        assert m.support_requirements[0].support_type is SupportType.ISR
        assert m.space_needs[0].capability_type is SpaceCapability.GPS
        assert len(outcome.review_flags) == 6

    @pytest.mark.asyncio()
    async def test_enum_matching_normalizes_spacing(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        _first_mission(reply)["spaceNeeds"][0]["capabilityType"] = "isr space"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        assert outcome.payload.missions[0].space_needs[0].capability_type is SpaceCapability.ISR_SPACE
        assert outcome.review_flags == []

    @pytest.mark.asyncio()
    async def test_bad_coordinates_become_zero_and_flag(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        waypoint = _first_mission(reply)["waypoints"][0]
        waypoint["latitude"] = "38SMB4484"
        waypoint["longitude"] = 200

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        wp = outcome.payload.missions[0].waypoints[0]
        assert (wp.latitude, wp.longitude) == (0.0, 0.0)
        assert _flag_fields(outcome) == [
            "missionPackages[0].missions[0].waypoints[0].latitude",
            "missionPackages[0].missions[0].waypoints[0].longitude",
        ]

    @pytest.mark.asyncio()
    async def test_missing_end_defaults_to_start_plus_24h(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        del reply["effectiveEnd"]

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        order = outcome.payload
        assert order.effective_end - order.effective_start == timedelta(hours=24)
        assert outcome.review_flags == []

    @pytest.mark.asyncio()
    async def test_end_before_start_is_reset(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["effectiveEnd"] = "2026-02-20T00:00:00Z"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        order = outcome.payload
        assert order.effective_end == order.effective_start + timedelta(hours=24)
        assert "effectiveEnd" in _flag_fields(outcome)

    @pytest.mark.asyncio()
    async def test_dtg_dates_are_parsed(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["effectiveStart"] = "250600ZFEB26"
        reply["effectiveEnd"] = "260600Z FEB 2026"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        assert outcome.payload.effective_start == datetime(2026, 2, 25, 6, 0, tzinfo=timezone.utc)
        assert outcome.payload.effective_end == datetime(2026, 2, 26, 6, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio()
    async def test_space_needs_inherit_order_window(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.ORDER, samples.order_reply()
        )

        order = outcome.payload
        need = order.missions[0].space_needs[0]
        assert need.start_time == order.effective_start
        assert need.end_time == order.effective_end

    @pytest.mark.asyncio()
    async def test_generated_ids_and_defaults(self, make_mock_llm, samples) -> None:
        reply = {
            "effectiveStart": "2026-02-25T06:00:00Z",
            "missionPackages": [
                {
                    "missions": [
                        {
                            "platformCount": 0,
                            "targets": [{"latitude": 1.0, "longitude": 2.0}],
                            "spaceNeeds": [{"capabilityType": "SATCOM"}],
                        },
                        {},
                    ],
                },
            ],
        }
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.ORDER, reply, document_type="FRAGORD"
        )

        order = outcome.payload
        package = order.mission_packages[0]
        first, second = package.missions
        assert order.order_type is OrderType.FRAGORD
        assert order.order_id.startswith("FRAGORD-INGEST-")
        assert package.package_id.startswith("PKG-")
        assert package.priority_rank == 99
        assert first.mission_id != second.mission_id
        assert first.platform_count == 1
        assert first.platform_type == "UNKNOWN"
        assert first.targets[0].target_name == "UNKNOWN"
        assert first.targets[0].desired_effect == "NEUTRALIZE"
        assert first.targets[0].target_id.startswith("TGT-")
        assert first.space_needs[0].priority == 5

    @pytest.mark.asyncio()
    async def test_missing_start_is_flagged(self, make_mock_llm, samples) -> None:
        outcome, _ = await _normalize(
            make_mock_llm, samples, HierarchyLevel.ORDER, {"orderId": "ATO-X"}
        )
        assert "effectiveStart" in _flag_fields(outcome)
        assert outcome.payload.mission_packages == []

    @pytest.mark.asyncio()
    async def test_bad_items_are_skipped_not_fatal(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        mission = _first_mission(reply)
        mission["waypoints"].append("WP3 somewhere north")
        mission["targets"] = "TGT001"
        reply["missionPackages"].append(42)

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        order = outcome.payload
        assert len(order.mission_packages) == 1
        assert len(order.missions[0].waypoints) == 2
        assert order.missions[0].targets == []
        fields = _flag_fields(outcome)
        assert "missionPackages[0].missions[0].waypoints[2]" in fields
        assert "missionPackages[0].missions[0].targets" in fields
        assert "missionPackages[1]" in fields

    @pytest.mark.asyncio()
    async def test_unparseable_window_end_left_open(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        _first_mission(reply)["timeWindows"][0]["end"] = "until relieved"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        assert outcome.payload.missions[0].time_windows[0].end is None
        assert _flag_fields(outcome) == ["missionPackages[0].missions[0].timeWindows[0].end"]

    @pytest.mark.asyncio()
    async def test_oversized_integers_default_and_flag(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["atoDayNumber"] = 10**30
        reply["missionPackages"][0]["priorityRank"] = "1e25"
        mission = _first_mission(reply)
        mission["waypoints"][0]["sequence"] = 1e20
        mission["platformCount"] = "lots"
        mission["spaceNeeds"][0]["priority"] = 10**30

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        order = outcome.payload
        m = order.missions[0]
        assert order.ato_day_number is None
        assert order.mission_packages[0].priority_rank == 99
        assert m.waypoints[0].sequence == 1
        assert m.platform_count == 1
        assert m.space_needs[0].priority == 5
        assert sorted(_flag_fields(outcome)) == sorted([
            "atoDayNumber",
            "missionPackages[0].priorityRank",
            "missionPackages[0].missions[0].waypoints[0].sequence",
            "missionPackages[0].missions[0].platformCount",
            "missionPackages[0].missions[0].spaceNeeds[0].priority",
        ])

    @pytest.mark.asyncio()
    async def test_start_at_calendar_limit_falls_back_to_now(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["effectiveStart"] = "9999-12-31T12:00:00Z"
        del reply["effectiveEnd"]

        before = datetime.now(timezone.utc)
        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)
        after = datetime.now(timezone.utc)

        order = outcome.payload
        assert before <= order.effective_start <= after
        assert order.effective_end == order.effective_start + timedelta(hours=24)
        assert _flag_fields(outcome) == ["effectiveStart"]
        assert outcome.review_flags[0].raw_value.startswith("9999-12-31T12:00:00")


class TestInlineFlags:
    @pytest.mark.asyncio()
    async def test_model_flags_come_first(self, make_mock_llm, samples) -> None:
        reply = samples.order_reply()
        reply["reviewFlags"] = [
            {"field": "atoDayNumber", "rawValue": "D+3?", "confidence": 0.4, "reason": "Ambiguous"},
            "not a flag",
        ]
        _first_mission(reply)["waypoints"][0]["waypointType"] = "HOLDING"

        outcome, _ = await _normalize(make_mock_llm, samples, HierarchyLevel.ORDER, reply)

        assert len(outcome.review_flags) == 2
        model_flag, local_flag = outcome.review_flags
        assert model_flag.field == "atoDayNumber"
        assert model_flag.raw_value == "D+3?"
        assert model_flag.confidence == pytest.approx(0.4)
        assert local_flag.field.endswith("waypointType")


class TestFailures:
    @pytest.mark.asyncio()
    async def test_empty_response_raises(self, make_mock_llm, samples) -> None:
        llm = make_mock_llm("")
        normalizer = DocumentNormalizer(llm_provider=llm)

        with pytest.raises(NormalizationError, match="empty response"):
            await normalizer.normalize("doc", samples.classification(HierarchyLevel.ORDER))

    @pytest.mark.asyncio()
    async def test_non_json_raises(self, make_mock_llm, samples) -> None:
        llm = make_mock_llm("Sorry, I cannot help with that.")
        normalizer = DocumentNormalizer(llm_provider=llm)

        with pytest.raises(NormalizationError, match="unparseable"):
            await normalizer.normalize("doc", samples.classification(HierarchyLevel.PLANNING))

    @pytest.mark.asyncio()
    async def test_unexpected_builder_error_is_wrapped(self, make_mock_llm, samples, monkeypatch) -> None:
        def _explode(start):
            raise RuntimeError("clock broke")

        monkeypatch.setattr(document_normalizer, "_plus_default_duration", _explode)
        normalizer = DocumentNormalizer(llm_provider=make_mock_llm(samples.order_reply()))

        with pytest.raises(NormalizationError, match="could not be built: clock broke") as excinfo:
            await normalizer.normalize("doc", samples.classification(HierarchyLevel.ORDER))

        assert isinstance(excinfo.value.__cause__, RuntimeError)
