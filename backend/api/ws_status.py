"""WebSocket endpoint for live match status events."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()

IDLE_TIMEOUT = 30.0


@router.websocket("/api/ws/status")
async def ws_status(websocket: WebSocket, match_id: str | None = None) -> None:
    """Forward status events, optionally only those of ``?match_id=...``."""
    await websocket.accept()

    station = websocket.app.state.station
    queue = station.subscribe()
    try:
        while True:
            try:
                msg = await asyncio.wait_for(queue.get(), timeout=IDLE_TIMEOUT)
            except asyncio.TimeoutError:
                # nothing happened for a while; close cleanly
                break

            if match_id is not None and msg.get("match_id") != match_id:
                continue

            await websocket.send_json(msg)

            if match_id is not None and msg.get("status") in ("finished", "error", "destroyed"):
                break
    except WebSocketDisconnect:
        pass
    finally:
        station.unsubscribe(queue)
        try:
            await websocket.close()
        except RuntimeError:
            pass
