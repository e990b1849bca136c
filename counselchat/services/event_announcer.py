"""
Generic event announcements
"""

import logging
from typing import Any, Dict, Optional

from counselchat.schemas.events import GenericEventPayload, build_event_notification
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.metrics import RelayMetrics

logger = logging.getLogger(__name__)


class EventAnnouncer:
    """Rebroadcasts `new_event` as `new_event_notification` to everyone"""

    def __init__(self, gateway: RealtimeGateway, metrics: Optional[RelayMetrics] = None):
        self.gateway = gateway
        self.metrics = metrics or RelayMetrics()

    async def announce(self, event: GenericEventPayload) -> Dict[str, Any]:
        payload = build_event_notification(event)
        await self.gateway.broadcast("new_event_notification", payload)
        self.metrics.events_announced += 1
        logger.info(f"Announced event {event.name} ({event.id})")
        return payload
