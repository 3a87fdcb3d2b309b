"""Ingestion progress broadcasting with callback-based listener notification.

Every ingestion publishes its lifecycle events (started, classified,
normalized, complete, or failed) to the listeners registered for its
scenario.  Listeners are keyed by scenario ID, so concurrent ingestions in
different scenarios never see each other's events.

# ─── HOW PROGRESS BROADCASTING WORKS (Junior Developer Guide) ─────────
#
# This is the Observer pattern:
#
#   Pipeline ──publish(event)──→ ProgressTracker ──callback(event)──→ WebSocket
#                                                                ──→ CLI printer
#
# Data flow:
#   1. DocumentIngestionPipeline builds an IngestEvent after each stage
#   2. ProgressTracker looks up the listeners for event.scenario_id
#   3. Each listener gets the event (the WebSocket handler sends
#      event.to_message() as JSON to the browser)
#
# Rules:
#   - No listeners for a scenario → publish is a no-op, never an error
#   - A listener that raises is logged and skipped; the ingestion goes on
#   - Sync and async callbacks both work (asyncio.iscoroutine check)
#   - The last listener to leave removes the scenario key, so the
#     registry only holds scenarios with live subscribers
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from src.models.pipeline import IngestEvent
from src.utils.logging import get_logger

ProgressListener = Callable[[IngestEvent], Awaitable[None] | None]


class ProgressTracker:
    """Scenario-scoped publish/subscribe channel for :class:`IngestEvent`."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[ProgressListener]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def publish(self, event: IngestEvent) -> None:
        """Deliver *event* to every listener of its scenario.

        Parameters
        ----------
        event:
            The lifecycle event.  ``event.scenario_id`` selects the
            listeners; ``event.payload`` is delivered untouched.
        """
        self._logger.debug(
            "progress_event",
            scenario_id=event.scenario_id,
            ingest_id=event.ingest_id,
            progress_event=event.event.value,
            elapsed_ms=event.payload.get("elapsedMs"),
        )

        # Copy so listeners may unsubscribe while being notified.
        listeners = list(self._listeners.get(event.scenario_id, ()))
        for callback in listeners:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    scenario_id=event.scenario_id,
                    progress_event=event.event.value,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )

    def register_listener(self, scenario_id: str, callback: ProgressListener) -> None:
        """Subscribe *callback* to every event published for *scenario_id*.

        Registering the same callback twice is a no-op.
        """
        listeners = self._listeners.setdefault(scenario_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                scenario_id=scenario_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, scenario_id: str, callback: ProgressListener) -> None:
        """Remove a previously registered callback.  Unknown callbacks are ignored."""
        listeners = self._listeners.get(scenario_id)
        if not listeners or callback not in listeners:
            return
        listeners.remove(callback)
        if not listeners:
            del self._listeners[scenario_id]
        self._logger.debug(
            "listener_unregistered",
            scenario_id=scenario_id,
            remaining_listeners=len(listeners),
        )

    def listener_count(self, scenario_id: str) -> int:
        return len(self._listeners.get(scenario_id, ()))
