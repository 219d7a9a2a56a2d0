# backend/app/core/pubsub.py
"""
PubSub (Publish-Subscribe) module for WebSocket event broadcasting.
Provides room-based fan-out of domain events to authenticated WebSocket
connections. State is held in memory by a single process.
"""
import asyncio
import enum
import json
import logging
from typing import Dict, Set

from starlette.websockets import WebSocket

from app.core.constants import ROOM_GENERAL, user_room

logger = logging.getLogger("uvicorn.error")

# Upper bound on one socket send; a stalled peer is skipped after this
SEND_TIMEOUT_SEC = 5.0


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


class Connection:
    """
    One WebSocket connection and the identity it authenticated as.

    Lifecycle: CONNECTING -> AUTHENTICATED -> JOINED -> DISCONNECTED.
    A connection only enters the broadcaster once authenticated; JOINED is
    reached when it is placed in its default rooms.
    """
    def __init__(self, ws: WebSocket, user_id: str):
        self.ws = ws
        self.user_id = user_id
        self.state = ConnectionState.AUTHENTICATED
        self.rooms: Set[str] = set()

    async def send(self, msg: str):
        await self.ws.send_text(msg)


class Broadcaster:
    """
    Room-based event broadcaster for WebSocket connections.

    Architecture:
    - Router is responsible for authenticating and ws.accept(); this module only handles routing
    - Each connection is auto-joined to its personal room ``user:<id>`` and to ``general``
    - Clients may join/leave ``issue:<id>`` rooms
    - Events are fire-and-forget: sends run concurrently, failed or timed-out
      sends are skipped, never retried

    Data structure:
    - _rooms: Dict[room_name, Set[Connection]]
    - _connections: Dict[WebSocket, Connection]
    """
    def __init__(self, send_timeout: float = SEND_TIMEOUT_SEC):
        self._rooms: Dict[str, Set[Connection]] = {}
        self._connections: Dict[WebSocket, Connection] = {}
        self.send_timeout = send_timeout

    # -------- connection lifecycle --------
    def register(self, ws: WebSocket, user_id: str) -> Connection:
        """
        Register an authenticated connection and join its default rooms.
        """
        conn = Connection(ws, str(user_id))
        self._connections[ws] = conn
        self.join(conn, user_room(conn.user_id))
        self.join(conn, ROOM_GENERAL)
        conn.state = ConnectionState.JOINED
        logger.info("[ws] user %s connected", conn.user_id)
        return conn

    def unregister(self, ws: WebSocket):
        """
        Remove a connection from every room it belongs to.
        Safe to call for unknown or already removed connections.
        """
        conn = self._connections.pop(ws, None)
        if conn is None:
            return
        for room in list(conn.rooms):
            self.leave(conn, room)
        conn.state = ConnectionState.DISCONNECTED
        logger.info("[ws] user %s disconnected", conn.user_id)

    # -------- rooms --------
    def join(self, conn: Connection, room: str):
        self._rooms.setdefault(room, set()).add(conn)
        conn.rooms.add(room)

    def leave(self, conn: Connection, room: str):
        members = self._rooms.get(room)
        if members is not None:
            members.discard(conn)
            if not members:
                del self._rooms[room]
        conn.rooms.discard(room)

    def members(self, room: str) -> Set[Connection]:
        return set(self._rooms.get(room, set()))

    # -------- publish --------
    async def emit(self, room: str, event: str, data) -> int:
        """
        Publish ``{"event": event, "data": data}`` to every member of a room.

        Returns:
            Number of connections the message was handed to

        Note: Errors from disconnected or stalled WebSocket connections are
        logged and skipped; one slow peer never delays the others.
        """
        conns = list(self._rooms.get(room, set()))
        if not conns:
            return 0
        msg = json.dumps({"event": event, "data": data}, default=str)
        results = await asyncio.gather(*(self._deliver(conn, event, msg) for conn in conns))
        return sum(results)

    async def _deliver(self, conn: Connection, event: str, msg: str) -> bool:
        try:
            await asyncio.wait_for(conn.send(msg), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.debug("[ws] drop %s for user %s: %r", event, conn.user_id, e)
            return False


# Global broadcaster instance (singleton pattern)
# Import this instance in other modules to publish/subscribe events
broadcaster = Broadcaster()


async def publish(event: str, data, room: str = ROOM_GENERAL) -> None:
    """
    Emit a domain event without ever failing the caller.
    The store mutation that triggered the event has already happened, so
    delivery problems are logged and swallowed.
    """
    try:
        await broadcaster.emit(room, event, data)
    except Exception:
        logger.exception("[ws] failed to publish %s to %s", event, room)
