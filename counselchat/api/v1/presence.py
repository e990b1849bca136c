"""
Presence API endpoints

Read-only view of who is connected to this relay process.
"""

import logging

from fastapi import APIRouter, Depends

from counselchat.schemas.api import PresenceResponse
from counselchat.websocket.hub import RelayHub
from counselchat.websocket.server import get_relay_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/presence", tags=["presence"])


@router.get("", response_model=PresenceResponse)
async def get_presence(hub: RelayHub = Depends(get_relay_hub)):
    """Online counselors and students, as last broadcast in the status events"""
    return PresenceResponse(**hub.presence.online())
