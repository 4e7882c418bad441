"""Realtime event delivery to connected users.

Connections live in a :class:`ConnectionRegistry` owned by the running
application (``app.state.connections``).  Route handlers schedule delivery
after their transaction commits; delivery is best effort and at most once,
so a failed socket is dropped rather than retried.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from fastapi import Request

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    REQUEST_CREATED = "request-created"
    REQUEST_ACCEPTED = "request-accepted"
    REQUEST_COMPLETED = "request-completed"
    SLOT_ASSIGNED = "slot-assigned"
    SLOT_RELEASED = "slot-released"


class JSONSocket(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...


@dataclass
class Notification:
    recipient_id: int
    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        return {"type": self.kind.value, "data": self.data}


class ConnectionRegistry:
    """Live sockets per user id."""

    def __init__(self) -> None:
        self._connections: dict[int, set[JSONSocket]] = defaultdict(set)

    def register(self, user_id: int, socket: JSONSocket) -> None:
        self._connections[user_id].add(socket)
        logger.debug("User %s connected (%s sockets)", user_id, len(self._connections[user_id]))

    def unregister(self, user_id: int, socket: JSONSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(socket)
        if not sockets:
            del self._connections[user_id]
        logger.debug("User %s disconnected", user_id)

    def is_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    def connection_count(self) -> int:
        return sum(len(sockets) for sockets in self._connections.values())

    async def send(self, notification: Notification) -> int:
        """Deliver ``notification`` to every socket of its recipient.

        Returns the number of sockets that accepted the message.
        """

        sockets = list(self._connections.get(notification.recipient_id, ()))
        if not sockets:
            logger.debug(
                "No live connection for user %s, dropping %s",
                notification.recipient_id,
                notification.kind.value,
            )
            return 0

        message = notification.to_message()
        delivered = 0
        for socket in sockets:
            try:
                await socket.send_json(message)
            except Exception:  # pylint: disable=broad-except
                logger.warning(
                    "Dropping connection of user %s after failed send",
                    notification.recipient_id,
                    exc_info=True,
                )
                self.unregister(notification.recipient_id, socket)
                continue
            delivered += 1
        return delivered


def get_connections(request: Request) -> ConnectionRegistry:
    """FastAPI dependency returning the application's registry."""

    registry = getattr(request.app.state, "connections", None)
    if registry is None:
        registry = ConnectionRegistry()
        request.app.state.connections = registry
    return registry
