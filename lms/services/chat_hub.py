"""In-process fan-out registry for chat rooms.

Rooms map a course id to the set of connection ids that joined it;
connections map an id to something with an async send_json().  Joins
add explicitly and disconnects remove explicitly.  Delivery is
best-effort: a connection whose send fails is dropped from the registry
and the broadcast carries on to the rest of the room.

The registry lives in one process; running several API replicas needs
a shared backplane, which this service does not provide.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from uuid import UUID

from lms.core.metrics import CHAT_CONNECTIONS

logger = logging.getLogger(__name__)


class Connection(Protocol):
    async def send_json(self, data: Any) -> None: ...


class ChatHub:
    def __init__(self) -> None:
        self._rooms: dict[UUID, set[str]] = {}
        self._connections: dict[str, Connection] = {}

    def connect(self, connection_id: str, connection: Connection) -> None:
        self._connections[connection_id] = connection
        CHAT_CONNECTIONS.inc()

    def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is None:
            return
        CHAT_CONNECTIONS.dec()
        for course_id, members in list(self._rooms.items()):
            members.discard(connection_id)
            if not members:
                del self._rooms[course_id]

    def join(self, course_id: UUID, connection_id: str) -> None:
        if connection_id not in self._connections:
            raise KeyError("unknown connection")
        self._rooms.setdefault(course_id, set()).add(connection_id)

    def members(self, course_id: UUID) -> frozenset[str]:
        return frozenset(self._rooms.get(course_id, ()))

    async def broadcast(self, course_id: UUID, frame: dict[str, Any]) -> int:
        """Send to every connection in the room.  Returns the delivered count."""
        delivered = 0
        # Snapshot: a failed send mutates the room while we iterate.
        for connection_id in sorted(self._rooms.get(course_id, ())):
            connection = self._connections.get(connection_id)
            if connection is None:
                continue
            try:
                await connection.send_json(frame)
            except Exception:
                logger.warning(
                    "Dropping chat connection %s after failed send",
                    connection_id,
                    exc_info=True,
                    extra={"course_id": str(course_id)},
                )
                self.disconnect(connection_id)
                continue
            delivered += 1
        return delivered

    def reset(self) -> None:
        for connection_id in list(self._connections):
            self.disconnect(connection_id)


chat_hub = ChatHub()
