"""
Chat message routing

Relays a chat line, kicks off relationship bookkeeping for a student's
first message to a counselor, and emits the derived notification.
"""

import logging
from typing import Any, Dict, List, Optional

from counselchat.schemas.events import (
    ChatMessagePayload,
    build_message_notification,
    build_receive_message,
    normalize_timestamp,
)
from counselchat.services.conversation_bootstrap import ConversationBootstrapService
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.metrics import RelayMetrics
from counselchat.services.presence import PresenceRegistry
from counselchat.services.tasks import BackgroundTasks

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes `send_message` events.

    By default `receive_message` and `new_message_notification` go to every
    connection, which existing clients filter themselves. With
    `targeted_delivery` they go only to the online participants.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        gateway: RealtimeGateway,
        bootstrap: ConversationBootstrapService,
        tasks: BackgroundTasks,
        metrics: Optional[RelayMetrics] = None,
        targeted_delivery: bool = False
    ):
        self.registry = registry
        self.gateway = gateway
        self.bootstrap = bootstrap
        self.tasks = tasks
        self.metrics = metrics or RelayMetrics()
        self.targeted_delivery = targeted_delivery

    async def route(self, message: ChatMessagePayload) -> Dict[str, Any]:
        """Relay one chat message; returns the `receive_message` payload sent"""
        logger.debug(
            f"Received message from {message.sender_id} "
            f"({message.sender_role} -> {message.receiver_role})"
        )

        if message.is_student_to_counselor:
            # Runs alongside delivery; its outcome never blocks the relay
            self.tasks.spawn(
                self.bootstrap.bootstrap(message.counselor_id, message.student_id),
                name=f"bootstrap:{message.counselor_id}:{message.student_id}",
            )

        payload = build_receive_message(message, normalize_timestamp(message.timestamp))
        notification = build_message_notification(message)

        await self._deliver(message, "receive_message", payload)
        await self._deliver(message, "new_message_notification", notification)

        self.metrics.messages_relayed += 1
        return payload

    async def _deliver(self, message: ChatMessagePayload, event: str, data: Dict[str, Any]) -> None:
        if not self.targeted_delivery:
            await self.gateway.broadcast(event, data)
            return

        for sid in self._participant_sids(message):
            await self.gateway.send(sid, event, data)

    def _participant_sids(self, message: ChatMessagePayload) -> List[str]:
        sids: List[str] = []
        for identity in (message.student_id, message.counselor_id):
            entry = self.registry.get(identity)
            if entry is not None and entry.sid not in sids:
                sids.append(entry.sid)
        return sids
