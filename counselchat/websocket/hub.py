"""
Relay hub

Single entry point for inbound realtime events: validates payloads,
dispatches them to the presence, routing, report and announcement
services, and turns every outcome into an acknowledgement for the client.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from counselchat.core.config import Settings, get_settings
from counselchat.core.exceptions import InvalidEventPayload
from counselchat.schemas.events import (
    ChatMessagePayload,
    GenericEventPayload,
    InboundEvent,
    RegisterPayload,
    ReportPayload,
    UserRole,
    parse_event,
)
from counselchat.services.conversation_bootstrap import ConversationBootstrapService
from counselchat.services.event_announcer import EventAnnouncer
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.message_router import MessageRouter
from counselchat.services.metrics import RelayMetrics
from counselchat.services.presence import PresenceRegistry, PresenceService
from counselchat.services.relationship_store import RelationshipStore
from counselchat.services.report_relay import ReportRelay
from counselchat.services.tasks import BackgroundTasks

logger = logging.getLogger(__name__)

Ack = Dict[str, Any]


class RelayHub:
    """
    Owns the per-process relay state.

    Everything here runs on one event loop. Registry updates and fan-out
    never suspend midway; only relationship persistence does, and it runs as
    a tracked background task.
    """

    def __init__(
        self,
        gateway: RealtimeGateway,
        store: RelationshipStore,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.strict = self.settings.strict_payload_validation
        self.metrics = RelayMetrics()
        self.registry = PresenceRegistry()
        self.tasks = BackgroundTasks()

        self.presence = PresenceService(self.registry, gateway)
        self.bootstrap = ConversationBootstrapService(store, gateway, self.metrics)
        self.router = MessageRouter(
            self.registry,
            gateway,
            self.bootstrap,
            self.tasks,
            metrics=self.metrics,
            targeted_delivery=self.settings.targeted_chat_delivery,
        )
        self.reports = ReportRelay(self.registry, gateway, self.metrics)
        self.announcer = EventAnnouncer(gateway, self.metrics)

    async def _dispatch(
        self,
        event: str,
        model: Type[InboundEvent],
        data: Any,
        handler: Callable[[Any], Awaitable[Any]]
    ) -> Ack:
        try:
            payload = parse_event(model, event, data, strict=self.strict)
        except InvalidEventPayload as e:
            self.metrics.invalid_payloads += 1
            logger.warning(f"Rejected {e}")
            return {"error": "invalid_payload", "detail": e.errors}

        try:
            await handler(payload)
        except Exception as e:
            self.metrics.handler_errors += 1
            logger.exception(f"Error handling '{event}': {e}")
            return {"error": "internal_error"}

        return {"success": True}

    async def handle_register(self, sid: str, data: Any) -> Ack:
        async def register(payload: RegisterPayload):
            role = payload.role
            if role not in (UserRole.STUDENT.value, UserRole.COUNSELOR.value):
                # Lenient clients: anything that is not a counselor is a student
                role = UserRole.STUDENT.value
            await self.presence.register(sid, payload.identity, role, payload.display_name)

        return await self._dispatch("user_connected", RegisterPayload, data, register)

    async def handle_message(self, sid: str, data: Any) -> Ack:
        return await self._dispatch("send_message", ChatMessagePayload, data, self.router.route)

    async def handle_report(self, sid: str, data: Any) -> Ack:
        return await self._dispatch("report_student", ReportPayload, data, self.reports.report)

    async def handle_event(self, sid: str, data: Any) -> Ack:
        return await self._dispatch("new_event", GenericEventPayload, data, self.announcer.announce)

    async def handle_disconnect(self, sid: str) -> None:
        try:
            await self.presence.unregister(sid)
        except Exception as e:
            self.metrics.handler_errors += 1
            logger.exception(f"Error handling disconnect of {sid}: {e}")

    def online_counts(self) -> Dict[str, int]:
        return {
            UserRole.COUNSELOR.value: self.registry.count(UserRole.COUNSELOR.value),
            UserRole.STUDENT.value: self.registry.count(UserRole.STUDENT.value),
        }

    async def drain(self) -> None:
        """Wait for in-flight relationship updates"""
        await self.tasks.drain()
