import asyncio
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Set
from uuid import uuid4

from fastapi import WebSocket

from app.models.user import User

logger = logging.getLogger(__name__)


class Connection:
    """One authenticated WebSocket.

    Writes are serialised per connection: events for one socket can come
    from its own handler and from other users' handlers at the same time.
    """

    def __init__(self, websocket: WebSocket, user: User):
        self.id = uuid4().hex
        self.websocket = websocket
        self.user_id = user.id
        self.user_name = user.name
        self.user_role = user.role.value if user.role else None
        self._send_lock = asyncio.Lock()
        self.closed = False

    async def send(self, event: str, data: Any = None) -> bool:
        if self.closed:
            return False
        async with self._send_lock:
            try:
                await self.websocket.send_json({"event": event, "data": data})
                return True
            except Exception:
                logger.warning("Dropping event %s for connection %s of user %s", event, self.id, self.user_id)
                self.closed = True
                return False

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id}>"


class RoomRegistry:
    """Subscription table: topic -> connection ids, connection id -> topics.

    Pure bookkeeping with no transport, so fan-out rules are testable
    without sockets.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._members: Dict[str, Set[str]] = {}
        self._subscriptions: Dict[str, Set[str]] = {}

    def join(self, topic: str, connection_id: str) -> None:
        with self._lock:
            self._members.setdefault(topic, set()).add(connection_id)
            self._subscriptions.setdefault(connection_id, set()).add(topic)

    def leave(self, topic: str, connection_id: str) -> None:
        with self._lock:
            self._discard(topic, connection_id)

    def leave_all(self, connection_id: str) -> Set[str]:
        with self._lock:
            topics = self._subscriptions.pop(connection_id, set())
            for topic in topics:
                members = self._members.get(topic)
                if members is not None:
                    members.discard(connection_id)
                    if not members:
                        del self._members[topic]
            return topics

    def members(self, topic: str) -> Set[str]:
        with self._lock:
            return set(self._members.get(topic, ()))

    def topics_for(self, connection_id: str) -> Set[str]:
        with self._lock:
            return set(self._subscriptions.get(connection_id, ()))

    def is_member(self, topic: str, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._members.get(topic, ())

    def _discard(self, topic: str, connection_id: str) -> None:
        members = self._members.get(topic)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._members[topic]
        subscriptions = self._subscriptions.get(connection_id)
        if subscriptions is not None:
            subscriptions.discard(topic)
            if not subscriptions:
                del self._subscriptions[connection_id]


class ConnectionManager:
    def __init__(self):
        self._lock = threading.Lock()
        self.active_connections: Dict[str, Connection] = {}
        self.rooms = RoomRegistry()

    def add(self, connection: Connection) -> None:
        with self._lock:
            self.active_connections[connection.id] = connection

    def remove(self, connection: Connection) -> Set[str]:
        with self._lock:
            self.active_connections.pop(connection.id, None)
        return self.rooms.leave_all(connection.id)

    def get(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self.active_connections.get(connection_id)

    def all_connections(self) -> List[Connection]:
        with self._lock:
            return list(self.active_connections.values())

    def join(self, topic: str, connection: Connection) -> None:
        self.rooms.join(topic, connection.id)

    def leave(self, topic: str, connection: Connection) -> None:
        self.rooms.leave(topic, connection.id)

    def connections_in(
        self,
        topics: Iterable[str],
        exclude: Optional[Connection] = None,
        exclude_user: Optional[str] = None,
    ) -> List[Connection]:
        """Distinct live connections subscribed to any of ``topics``.

        ``exclude`` drops one connection, ``exclude_user`` every connection
        of that user.
        """
        ids: Set[str] = set()
        for topic in topics:
            ids |= self.rooms.members(topic)
        if exclude is not None:
            ids.discard(exclude.id)
        connections = []
        for connection_id in sorted(ids):
            connection = self.get(connection_id)
            if connection is None or connection.user_id == exclude_user:
                continue
            connections.append(connection)
        return connections

    async def emit(
        self,
        topics,
        event: str,
        data: Any = None,
        exclude: Optional[Connection] = None,
        exclude_user: Optional[str] = None,
    ) -> int:
        """Send one event to every connection in the union of ``topics``.

        A connection subscribed to several of the topics receives the event
        once. Returns the number of successful deliveries.
        """
        if isinstance(topics, str):
            topics = [topics]
        delivered = 0
        for connection in self.connections_in(topics, exclude=exclude, exclude_user=exclude_user):
            if await connection.send(event, data):
                delivered += 1
        return delivered

    async def broadcast(self, event: str, data: Any = None, exclude: Optional[Connection] = None) -> int:
        delivered = 0
        for connection in self.all_connections():
            if exclude is not None and connection.id == exclude.id:
                continue
            if await connection.send(event, data):
                delivered += 1
        return delivered

    def get_connected_users(self) -> List[str]:
        return sorted({connection.user_id for connection in self.all_connections()})


manager = ConnectionManager()
