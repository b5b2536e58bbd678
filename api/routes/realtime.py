"""Realtime routes: voice signaling WebSocket and notification SSE stream.

Voice:
- ``GET /api/realtime/voice`` without an upgrade is answered with 400.
- ``WS /api/realtime/voice?room=<id>``; a missing room is denied with an
  HTTP 400 before the upgrade completes.

Notifications:
- ``GET /api/realtime/notifications`` (authenticated) streams
  ``data: <json>`` frames plus ``: heartbeat`` comments.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.websockets import WebSocketState

from api.dependencies import get_current_user, get_notification_registry, get_voice_hub
from application.dto import CurrentUserDTO
from core.config import settings
from core.logging_config import get_logger
from infrastructure.realtime.notification_registry import NotificationRegistry
from infrastructure.realtime.notification_stream import NotificationStream
from infrastructure.realtime.voice_hub import VoiceSignalingHub


logger = get_logger(__name__)


router = APIRouter(prefix="/realtime", tags=["Realtime"])


SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _deny(ws: WebSocket, status_code: int, detail: str) -> None:
    """Refuse the upgrade with a plain HTTP response."""
    try:
        await ws.send_denial_response(PlainTextResponse(detail, status_code=status_code))
    except RuntimeError as exc:
        # server lacks the websocket.http.response extension; a pre-accept close is all we have
        logger.error("ws_denial_unsupported", status_code=status_code, detail=detail, error=str(exc))
        await ws.close(code=1008)


@router.get("/voice", include_in_schema=False)
async def voice_requires_upgrade() -> PlainTextResponse:
    return PlainTextResponse("Expected websocket", status_code=400)


@router.websocket("/voice")
async def voice_signaling(ws: WebSocket) -> None:
    try:
        hub: VoiceSignalingHub = get_voice_hub(ws)
    except RuntimeError as exc:
        logger.error("voice_hub_unavailable", error=str(exc))
        await _deny(ws, 500, "WebSocket not supported")
        return

    room_id = (ws.query_params.get(settings.REALTIME_VOICE_ROOM_PARAM) or "").strip()
    if not room_id:
        await _deny(ws, 400, "Missing room identifier")
        return

    await ws.accept()
    peer_id = await hub.connect(room_id, ws)
    try:
        # hangup removes the peer; stop reading once that happens
        while hub.has_peer(room_id, peer_id):
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                # the hub measures and decodes binary frames itself
                raw = message.get("bytes") or b""
            await hub.receive(room_id, peer_id, raw)
    except WebSocketDisconnect:
        logger.info("voice_ws_disconnected", room=room_id, peer_id=peer_id)
    except Exception as exc:
        logger.error("voice_ws_error", room=room_id, peer_id=peer_id, error=str(exc), exc_info=True)
    finally:
        await hub.disconnect(room_id, peer_id)
        if ws.application_state == WebSocketState.CONNECTED and ws.client_state == WebSocketState.CONNECTED:
            try:
                await ws.close()
            except Exception as exc:
                logger.debug("voice_ws_close_failed", room=room_id, peer_id=peer_id, error=str(exc))


@router.get("/notifications", summary="Notification event stream")
async def notification_stream(
    user: CurrentUserDTO = Depends(get_current_user),
    registry: NotificationRegistry = Depends(get_notification_registry),
) -> StreamingResponse:
    """
    Server-Sent-Events stream of the caller's realtime notifications

    The first frame is always a `connected` event. Keep-alives are SSE
    comments (`: heartbeat <ms>`) and carry no data.
    """
    stream = NotificationStream(
        registry,
        user.id,
        heartbeat_interval=settings.REALTIME_SSE_HEARTBEAT_INTERVAL_S,
        queue_max=settings.REALTIME_SSE_QUEUE_MAX,
        overflow_policy=settings.REALTIME_SSE_OVERFLOW_POLICY,
    )
    return StreamingResponse(stream.frames(), media_type="text/event-stream", headers=SSE_HEADERS)
