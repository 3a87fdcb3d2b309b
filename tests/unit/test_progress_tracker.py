"""Unit tests for ProgressTracker: scenario-scoped event fan-out."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.pipeline import IngestEvent, IngestEventType
from src.pipeline.progress_tracker import ProgressTracker


def _event(scenario_id: str = "demo", event: IngestEventType = IngestEventType.STARTED) -> IngestEvent:
    return IngestEvent(
        event=event,
        scenario_id=scenario_id,
        payload={"ingestId": "ing-1", "elapsedMs": 0},
    )


class TestPublish:
    @pytest.mark.asyncio()
    async def test_no_listeners_is_noop(self) -> None:
        tracker = ProgressTracker()
        await tracker.publish(_event())
        assert tracker.listener_count("demo") == 0

    @pytest.mark.asyncio()
    async def test_sync_and_async_listeners(self) -> None:
        tracker = ProgressTracker()
        sync_cb = MagicMock(return_value=None)
        async_cb = AsyncMock()
        tracker.register_listener("demo", sync_cb)
        tracker.register_listener("demo", async_cb)

        event = _event()
        await tracker.publish(event)

        sync_cb.assert_called_once_with(event)
        async_cb.assert_awaited_once_with(event)

    @pytest.mark.asyncio()
    async def test_events_are_scoped_to_scenario(self) -> None:
        tracker = ProgressTracker()
        alpha, bravo = MagicMock(return_value=None), MagicMock(return_value=None)
        tracker.register_listener("alpha", alpha)
        tracker.register_listener("bravo", bravo)

        await tracker.publish(_event("alpha"))

        alpha.assert_called_once()
        bravo.assert_not_called()

    @pytest.mark.asyncio()
    async def test_failing_listener_does_not_block_others(self) -> None:
        tracker = ProgressTracker()
        broken = AsyncMock(side_effect=RuntimeError("socket closed"))
        healthy = MagicMock(return_value=None)
        tracker.register_listener("demo", broken)
        tracker.register_listener("demo", healthy)

        await tracker.publish(_event())

        healthy.assert_called_once()

    @pytest.mark.asyncio()
    async def test_listener_may_unsubscribe_while_notified(self) -> None:
        tracker = ProgressTracker()
        received: list[str] = []

        def once(event: IngestEvent) -> None:
            received.append(event.event.value)
            tracker.unregister_listener("demo", once)

        tracker.register_listener("demo", once)
        await tracker.publish(_event())
        await tracker.publish(_event(event=IngestEventType.COMPLETE))

        assert received == ["ingest:started"]


class TestRegistration:
    def test_duplicate_registration_is_ignored(self) -> None:
        tracker = ProgressTracker()
        cb = MagicMock()
        tracker.register_listener("demo", cb)
        tracker.register_listener("demo", cb)
        assert tracker.listener_count("demo") == 1

    def test_last_unregister_removes_scenario(self) -> None:
        tracker = ProgressTracker()
        cb = MagicMock()
        tracker.register_listener("demo", cb)
        tracker.unregister_listener("demo", cb)
        assert tracker.listener_count("demo") == 0
        assert "demo" not in tracker._listeners

    def test_unregister_unknown_is_ignored(self) -> None:
        tracker = ProgressTracker()
        tracker.unregister_listener("nobody", MagicMock())
        assert tracker.listener_count("nobody") == 0


class TestEventWireShape:
    def test_to_message(self) -> None:
        event = _event(event=IngestEventType.CLASSIFIED)
        assert event.to_message() == {
            "type": "ingest:classified",
            "data": {"ingestId": "ing-1", "elapsedMs": 0},
        }
        assert event.ingest_id == "ing-1"
