import asyncio
import json
from enum import Enum
from typing import Any, Callable, Dict, Optional

from fastapi import WebSocket

from backend import RelayBackend
from constants import OUTBOX_SIZE
from events import EVENT_CONNECTED, EVENT_JOIN_ROOM, EVENT_ROOM_JOINED, EVENT_SIGNAL
from logging_config import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    CONNECTED = "connected"
    IN_ROOM = "in_room"
    DISCONNECTED = "disconnected"


class Session:
    """One client's WebSocket, from accept to disconnect.

    The session is also the connection's outbound channel: other
    connections push frames into its outbox and a single writer task
    sends them in order. The ``signal`` handler only exists while the
    session is in a room.
    """

    def __init__(self, websocket: WebSocket, backend: RelayBackend, outbox_size: int = OUTBOX_SIZE):
        self.websocket = websocket
        self.backend = backend
        self.state = SessionState.CONNECTED
        self.connection_id: Optional[str] = None
        self.room_id: Optional[str] = None
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._closed = False
        self._writer: Optional[asyncio.Task] = None
        self._handlers: Dict[str, Callable[[Any], None]] = {EVENT_JOIN_ROOM: self.on_join}

    def push(self, event: str, data: Any) -> bool:
        if self._closed:
            return False
        try:
            self._outbox.put_nowait({"event": event, "data": data})
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for connection {self.connection_id}, dropping {event}")
            return False
        return True

    def close(self) -> None:
        self._closed = True

    async def run(self) -> None:
        await self.websocket.accept()
        connection = self.backend.registry.connect(self)
        self.connection_id = connection.connection_id
        logger.info(f"User connected: {self.connection_id}")

        self._writer = asyncio.create_task(self._write_loop())
        self.push(EVENT_CONNECTED, {"id": self.connection_id})

        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    logger.info(f"WebSocket disconnected for connection {self.connection_id}")
                    break
                text = message.get("text")
                if text is None:
                    logger.debug(f"Ignoring binary frame from connection {self.connection_id}")
                    continue
                self.handle_frame(text)
        except Exception as e:
            logger.error(f"Error receiving from connection {self.connection_id}: {e}", exc_info=True)
        finally:
            self.on_disconnect()
            await self._stop_writer()

    def handle_frame(self, text: str) -> None:
        try:
            frame = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Dropping non-JSON frame from connection {self.connection_id}")
            return
        if not isinstance(frame, dict):
            logger.debug(f"Dropping non-object frame from connection {self.connection_id}")
            return

        event = frame.get("event")
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.debug(f"No handler for {event!r} on connection {self.connection_id} ({self.state.value})")
            return
        handler(frame.get("data"))

    def on_join(self, data: Any) -> None:
        room_id = data.get("roomId") if isinstance(data, dict) else None
        if not isinstance(room_id, str):
            logger.warning(f"Join without a roomId from connection {self.connection_id}")
            return

        rooms = self.backend.rooms
        if self.room_id is not None and self.room_id != room_id:
            rooms.leave(self.room_id, self.connection_id)

        peers = rooms.join(room_id, self.connection_id)
        self.backend.registry.set_room(self.connection_id, room_id)
        self.room_id = room_id
        self.state = SessionState.IN_ROOM
        self._handlers[EVENT_SIGNAL] = self.on_signal
        self.push(EVENT_ROOM_JOINED, {"roomId": room_id, "peers": peers})

    def on_signal(self, data: Any) -> None:
        target = data.get("target") if isinstance(data, dict) else None
        if not isinstance(target, str):
            logger.debug(f"Dropping signal without target from connection {self.connection_id}")
            return
        self.backend.relay.forward(self.connection_id, target, data.get("signal"))

    def on_disconnect(self) -> None:
        if self.state is SessionState.DISCONNECTED:
            return
        self.state = SessionState.DISCONNECTED
        self._handlers.clear()
        self.close()
        if self.connection_id is not None:
            self.backend.registry.disconnect(self.connection_id)
        logger.info(f"{self.connection_id} disconnected from room {self.room_id}")

    async def _write_loop(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_text(json.dumps(frame))
            except Exception as e:
                logger.debug(f"Stopped writing to connection {self.connection_id}: {e}")
                self.close()
                return

    async def _stop_writer(self) -> None:
        if self._writer is None:
            return
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None
