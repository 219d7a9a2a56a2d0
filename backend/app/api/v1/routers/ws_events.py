import json
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from app.api.v1.deps import bearer_token
from app.core.constants import EVENT_JOIN_ISSUE, EVENT_LEAVE_ISSUE, issue_room
from app.core.errors import Unauthenticated
from app.core.pubsub import broadcaster
from app.core.security import resolve_identity

logger = logging.getLogger("uvicorn.error")

router = APIRouter()

# RFC 6455 "policy violation", used when the handshake token is rejected
WS_POLICY_VIOLATION = 1008


async def _handle_message(ws: WebSocket, conn, raw: str):
    try:
        msg = json.loads(raw)
    except ValueError:
        await ws.send_json({"event": "error", "data": {"message": "Malformed message"}})
        return
    event = msg.get("event") if isinstance(msg, dict) else None
    issue_id = msg.get("data") if isinstance(msg, dict) else None

    if event in (EVENT_JOIN_ISSUE, EVENT_LEAVE_ISSUE):
        if not isinstance(issue_id, str) or not issue_id:
            await ws.send_json({"event": "error", "data": {"message": "Issue id required"}})
            return
        if event == EVENT_JOIN_ISSUE:
            broadcaster.join(conn, issue_room(issue_id))
            logger.info("[ws] user %s joined issue room %s", conn.user_id, issue_id)
            await ws.send_json({"event": "joined:issue", "data": {"issueId": issue_id}})
        else:
            broadcaster.leave(conn, issue_room(issue_id))
            logger.info("[ws] user %s left issue room %s", conn.user_id, issue_id)
            await ws.send_json({"event": "left:issue", "data": {"issueId": issue_id}})
        return

    await ws.send_json({"event": "error", "data": {"message": f"Unknown event: {event}"}})


@router.websocket("/ws/events")
async def ws_events(ws: WebSocket):
    """
    WebSocket endpoint for real-time issue and comment events.

    Message flow:
    1. Client connects with ``?token=<jwt>`` (or an Authorization: Bearer header)
    2. Invalid or missing token -> socket closed with 1008 before it is accepted
    3. Server accepts, joins ``user:<id>`` and ``general``, and sends
       ``{"event": "connected", "data": {"userId": ..., "rooms": [...]}}``
    4. Client may send ``{"event": "join:issue", "data": "<issueId>"}`` or
       ``leave:issue``; server acks with ``joined:issue`` / ``left:issue``
    5. Server pushes ``{"event": ..., "data": ...}`` for every domain event

    Clients are removed from every room when the connection closes.
    """
    token = ws.query_params.get("token") or bearer_token(ws.headers.get("authorization"))
    try:
        user = await resolve_identity(token)
    except Unauthenticated as e:
        logger.info("[ws] handshake rejected: %s", e.message)
        await ws.close(code=WS_POLICY_VIOLATION)
        return

    await ws.accept()
    conn = broadcaster.register(ws, str(user.id))
    try:
        await ws.send_json({"event": "connected", "data": {"userId": conn.user_id, "rooms": sorted(conn.rooms)}})
        while True:
            raw = await ws.receive_text()
            await _handle_message(ws, conn, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning("[ws] error for user %s: %r", conn.user_id, e)
    finally:
        broadcaster.unregister(ws)
