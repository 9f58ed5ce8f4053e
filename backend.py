import threading
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from events import EVENT_SIGNAL, EVENT_USER_CONNECTED, EVENT_USER_DISCONNECTED
from logging_config import get_logger

logger = get_logger(__name__)

# (connection_id, event, data) -> delivered?
Deliver = Callable[[str, str, Any], bool]


class Channel(Protocol):
    """Outbound side of a live connection."""

    def push(self, event: str, data: Any) -> bool:
        """Queue an event without waiting for it to be written. False if dropped."""

    def close(self) -> None:
        """Stop accepting pushes."""


@dataclass
class Connection:
    connection_id: str
    channel: Channel
    room_id: Optional[str] = None


class RoomTable:
    """Room id -> ordered member connection ids.

    Rooms are created by the first join and deleted as soon as the last
    member leaves. Each join/leave reads, mutates and computes its
    notification set under the lock; peers are notified after release.
    """

    def __init__(self, deliver: Deliver):
        self._deliver = deliver
        self._rooms: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def join(self, room_id: str, connection_id: str) -> List[str]:
        """Add a connection to a room and return the other members in join order.

        Every earlier member receives ``user-connected``. Joining a room the
        connection is already in changes nothing and notifies nobody: there
        is never a duplicate member entry.
        """
        with self._lock:
            members = self._rooms.setdefault(room_id, [])
            if connection_id in members:
                logger.debug(f"Connection {connection_id} already in room {room_id}")
                return [m for m in members if m != connection_id]
            peers = list(members)
            members.append(connection_id)

        logger.info(f"{connection_id} joined room {room_id} ({len(peers) + 1} members)")
        for peer in peers:
            self._deliver(peer, EVENT_USER_CONNECTED, connection_id)
        return peers

    def leave(self, room_id: str, connection_id: str) -> List[str]:
        """Remove a connection from a room and return the remaining members.

        Remaining members receive ``user-disconnected``. Unknown rooms and
        non-members are a no-op.
        """
        with self._lock:
            members = self._rooms.get(room_id)
            if members is None or connection_id not in members:
                logger.debug(f"Leave ignored: {connection_id} not in room {room_id}")
                return []
            remaining = [m for m in members if m != connection_id]
            if remaining:
                self._rooms[room_id] = remaining
            else:
                del self._rooms[room_id]

        if remaining:
            logger.info(f"{connection_id} left room {room_id} ({len(remaining)} members)")
        else:
            logger.info(f"{connection_id} left room {room_id}, room removed")
        for peer in remaining:
            self._deliver(peer, EVENT_USER_DISCONNECTED, connection_id)
        return remaining

    def members(self, room_id: str) -> List[str]:
        with self._lock:
            return list(self._rooms.get(room_id, ()))

    def exists(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def rooms(self) -> Dict[str, List[str]]:
        """Snapshot of every room and its members."""
        with self._lock:
            return {room_id: list(members) for room_id, members in self._rooms.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)


class ConnectionRegistry:
    """Live connections and the room each one is in."""

    def __init__(self, rooms: RoomTable):
        self.rooms = rooms
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()

    def connect(self, channel: Channel) -> Connection:
        with self._lock:
            connection_id = uuid.uuid4().hex
            while connection_id in self._connections:
                connection_id = uuid.uuid4().hex
            connection = Connection(connection_id=connection_id, channel=channel)
            self._connections[connection_id] = connection
        logger.debug(f"Registered connection {connection_id} ({len(self._connections)} live)")
        return connection

    def disconnect(self, connection_id: str) -> Optional[Connection]:
        """Forget a connection and take it out of its room.

        The channel is closed while the registry lock is held, so nothing is
        delivered to it afterwards. Returns None if the id was not live.
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return None
            connection.channel.close()

        if connection.room_id is not None:
            self.rooms.leave(connection.room_id, connection_id)
        logger.debug(f"Unregistered connection {connection_id}")
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(connection_id)

    def set_room(self, connection_id: str, room_id: Optional[str]) -> bool:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                return False
            connection.room_id = room_id
            return True

    def deliver(self, connection_id: str, event: str, data: Any) -> bool:
        """Push an event to a live connection. Unknown ids are not an error."""
        connection = self.get(connection_id)
        if connection is None:
            logger.debug(f"No live connection {connection_id} for {event}")
            return False
        return connection.channel.push(event, data)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)


class SignalRelay:
    """Point-to-point forwarding of opaque signals, addressed by connection id.

    Sender and target do not have to share a room.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def forward(self, sender_id: str, target_id: str, payload: Any) -> bool:
        if not isinstance(target_id, str):
            logger.debug(f"Dropping signal from {sender_id}: bad target {target_id!r}")
            return False
        delivered = self.registry.deliver(target_id, EVENT_SIGNAL, {"sender": sender_id, "signal": payload})
        if not delivered:
            logger.debug(f"Dropped signal from {sender_id} to {target_id}")
        return delivered


class RelayBackend:
    """In-process relay state, one instance per app."""

    def __init__(self):
        self.rooms = RoomTable(self._deliver)
        self.registry = ConnectionRegistry(self.rooms)
        self.relay = SignalRelay(self.registry)

    def _deliver(self, connection_id: str, event: str, data: Any) -> bool:
        return self.registry.deliver(connection_id, event, data)
