"""
Socket.IO server for the counseling frontend

The frontend uses `socket.io-client` and, once connected, announces itself
with `user_connected`. Every handler below delegates to the process-wide
`RelayHub` and returns its acknowledgement to the client callback.

Inbound events:
- user_connected  {identity|userId, role|userType, displayName|name}
- send_message    {studentId, counselorId|facultyId, text, senderId,
                   timestamp, senderRole|senderType, receiverRole|receiverType}
- report_student  {studentId, counselorId|facultyId, reason}
- new_event       {name, id}
"""

import logging
from typing import Any, Optional

import socketio

from counselchat.core.config import get_settings
from counselchat.services.gateway import SocketIOGateway
from counselchat.services.relationship_store import SQLRelationshipStore
from counselchat.websocket.hub import RelayHub

logger = logging.getLogger(__name__)

settings = get_settings()

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.allowed_origins,
    ping_interval=settings.socketio_ping_interval,
    ping_timeout=settings.socketio_ping_timeout,
    logger=False,
    engineio_logger=False,
)

socket_app = socketio.ASGIApp(sio, socketio_path=settings.socketio_path)

_hub: Optional[RelayHub] = None


def get_relay_hub() -> RelayHub:
    """Get the process-wide relay hub, creating it on first use"""
    global _hub
    if _hub is None:
        _hub = RelayHub(SocketIOGateway(sio), SQLRelationshipStore(), settings)
    return _hub


def set_relay_hub(hub: Optional[RelayHub]) -> None:
    """Replace the process-wide hub (application startup and tests)"""
    global _hub
    _hub = hub


@sio.event
async def connect(sid: str, environ: dict, auth: Any = None):
    # Identity arrives later with `user_connected`; nothing is registered yet
    logger.info(f"Socket.IO client connected: {sid}")


@sio.event
async def user_connected(sid: str, data: Any = None):
    return await get_relay_hub().handle_register(sid, data)


@sio.event
async def send_message(sid: str, data: Any = None):
    return await get_relay_hub().handle_message(sid, data)


@sio.event
async def report_student(sid: str, data: Any = None):
    return await get_relay_hub().handle_report(sid, data)


@sio.event
async def new_event(sid: str, data: Any = None):
    return await get_relay_hub().handle_event(sid, data)


@sio.event
async def disconnect(sid: str, reason: Any = None):
    logger.info(f"Socket.IO client disconnected: {sid} (reason: {reason})")
    await get_relay_hub().handle_disconnect(sid)
