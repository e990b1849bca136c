"""
Realtime delivery gateway

Thin seam between the relay services and the Socket.IO server: a
broadcast-to-everyone primitive and a send-to-one-connection primitive.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import socketio

logger = logging.getLogger(__name__)


class RealtimeGateway(ABC):
    """Outbound delivery primitives used by the relay services"""

    @abstractmethod
    async def broadcast(self, event: str, data: Any) -> None:
        """Deliver an event to every connected client"""

    @abstractmethod
    async def send(self, sid: str, event: str, data: Any) -> None:
        """Deliver an event to exactly one connection"""


class SocketIOGateway(RealtimeGateway):
    """Gateway backed by a python-socketio AsyncServer"""

    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio

    async def broadcast(self, event: str, data: Any) -> None:
        await self.sio.emit(event, data)
        logger.debug(f"Socket.IO {event} broadcast to all connections")

    async def send(self, sid: str, event: str, data: Any) -> None:
        await self.sio.emit(event, data, to=sid)
        logger.debug(f"Socket.IO {event} sent to {sid}")

