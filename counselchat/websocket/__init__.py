"""
Realtime module for student/counselor chat.

Provides the Socket.IO server and the relay hub behind it:
- Presence tracking and status broadcasts
- Chat relay and first-contact bookkeeping
- Report and event notifications
"""

from .hub import RelayHub
from .server import sio, socket_app, get_relay_hub, set_relay_hub

__all__ = [
    "RelayHub",
    "sio",
    "socket_app",
    "get_relay_hub",
    "set_relay_hub",
]
