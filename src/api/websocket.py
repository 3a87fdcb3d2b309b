"""WebSocket endpoint for real-time ingestion progress.

Subscribes a client to every ingestion event published for one scenario
via the ``ProgressTracker`` listener mechanism.

# ─── HOW WEBSOCKET PROGRESS WORKS (Junior Developer Guide) ────────────
#
#   Client                               Backend (this file)
#   ──────                               ──────────────────
#   ws = new WebSocket(url)   ──────→   websocket.accept()
#                                        register_listener(scenario, cb)
#                                        ...POST /api/v1/ingest runs...
#                             ←──────   {"type": "ingest:started", "data": {...}}
#                             ←──────   {"type": "ingest:classified", ...}
#                             ←──────   {"type": "ingest:normalized", ...}
#                             ←──────   {"type": "ingest:complete", ...}
#   ws.close()                ──────→   WebSocketDisconnect
#                                        unregister_listener(scenario, cb)
#
# The `while True: await websocket.receive_text()` loop keeps the
# connection open; pushes happen from the _on_event callback.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from src.models.pipeline import IngestEvent
from src.pipeline.progress_tracker import ProgressTracker
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_ingest_progress(websocket: WebSocket, scenario_id: str) -> None:
    """Stream a scenario's ingestion events to the client.

    Parameters
    ----------
    websocket:
        The WebSocket connection managed by FastAPI / Starlette.
    scenario_id:
        The scenario whose events the client wants.
    """
    progress_tracker: ProgressTracker = websocket.app.state.progress_tracker

    await websocket.accept()
    _logger.info("websocket_connected", scenario_id=scenario_id)

    async def _on_event(event: IngestEvent) -> None:
        # The client may have gone away between publish and send; the
        # tracker logs the send error and the finally block unsubscribes.
        if websocket.client_state is WebSocketState.CONNECTED:
            await websocket.send_json(event.to_message())

    progress_tracker.register_listener(scenario_id, _on_event)

    try:
        await websocket.send_json({"type": "subscribed", "data": {"scenarioId": scenario_id}})
        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", scenario_id=scenario_id)

    finally:
        progress_tracker.unregister_listener(scenario_id, _on_event)
        _logger.debug("websocket_listener_cleaned_up", scenario_id=scenario_id)
