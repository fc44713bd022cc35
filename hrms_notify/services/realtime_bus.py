# hrms_notify/services/realtime_bus.py
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

OUTBOX_SIZE = 256


class Connection:
    """One socket plus its outbox; a single pump task drains it in order."""

    def __init__(self, room: str, websocket: WebSocket):
        self.room = room
        self.websocket = websocket
        self.outbox: "asyncio.Queue[dict]" = asyncio.Queue(maxsize=OUTBOX_SIZE)
        self.task: Optional[asyncio.Task] = None

    def offer(self, message: dict) -> bool:
        try:
            self.outbox.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def discard_pending(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()
            self.outbox.task_done()


class RealtimeBus:
    """
    Keeps the live sockets grouped by room (one room per account id).
    room -> set(Connection)

    Publishing never waits on a socket: messages are queued per connection
    and written by that connection's pump, which keeps publish order per
    room. Delivery is at most once; a client that is not connected misses
    the event.
    """

    def __init__(self):
        self.rooms: Dict[str, Set[Connection]] = {}

    async def connect(self, room: str, websocket: WebSocket) -> Connection:
        await websocket.accept()
        conn = Connection(room, websocket)
        self.rooms.setdefault(room, set()).add(conn)
        conn.task = asyncio.create_task(self._pump(conn))
        return conn

    def disconnect(self, conn: Connection) -> None:
        self._forget(conn)
        if conn.task is not None and not conn.task.done():
            conn.task.cancel()

    async def close_room(self, room: str) -> int:
        """Closes every socket in a room, e.g. when its account is deleted."""
        members = list(self.rooms.get(room, ()))
        for conn in members:
            self.disconnect(conn)
            try:
                await conn.websocket.close()
            except Exception:
                logger.debug("socket in room %s was already closed", room)
        return len(members)

    def broadcast_to_room(self, room: str, event: str, payload: Any) -> int:
        message = {"event": event, "payload": payload}
        queued = 0
        for conn in list(self.rooms.get(room, ())):
            if conn.offer(message):
                queued += 1
            else:
                logger.warning("outbox full in room %s, dropped %s", room, event)
        return queued

    def broadcast_global(self, event: str, payload: Any) -> int:
        queued = 0
        for room in list(self.rooms.keys()):
            queued += self.broadcast_to_room(room, event, payload)
        return queued

    def connection_count(self, room: Optional[str] = None) -> int:
        if room is not None:
            return len(self.rooms.get(room, ()))
        return sum(len(members) for members in self.rooms.values())

    async def flush(self) -> None:
        """Waits until every queued message has been written or dropped."""
        pending = [conn.outbox.join() for members in list(self.rooms.values()) for conn in members]
        if pending:
            await asyncio.gather(*pending)

    def _forget(self, conn: Connection) -> None:
        members = self.rooms.get(conn.room)
        if members is not None:
            members.discard(conn)
            if not members:
                del self.rooms[conn.room]
        conn.discard_pending()

    async def _pump(self, conn: Connection) -> None:
        while True:
            message = await conn.outbox.get()
            try:
                await conn.websocket.send_json(message)
            except Exception as e:
                logger.info("dropping dead socket in room %s: %s", conn.room, e)
                conn.outbox.task_done()
                self._forget(conn)
                return
            conn.outbox.task_done()
