"""
Presence tracking for connected students and counselors

The registry is plain in-memory state owned by the event loop: every
operation runs to completion without awaiting, so no locking is needed.
`PresenceService` wraps it with the status broadcasts clients listen to.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from counselchat.schemas.events import UserRole
from counselchat.services.gateway import RealtimeGateway

logger = logging.getLogger(__name__)


STATUS_EVENTS = {
    UserRole.COUNSELOR.value: "counselor_status_change",
    UserRole.STUDENT.value: "student_status_change",
}


@dataclass
class PresenceEntry:
    """Current connection of an online identity"""
    identity: Optional[str]
    sid: str
    role: str
    display_name: Optional[str] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Registration:
    """Outcome of registering an identity on a connection"""
    entry: PresenceEntry
    # Previous entry for the same identity (reconnect, last write wins)
    replaced: Optional[PresenceEntry] = None
    # Entry of another identity previously registered on the same connection
    displaced: Optional[PresenceEntry] = None

    def affected_roles(self) -> List[str]:
        roles = [self.entry.role]
        for previous in (self.replaced, self.displaced):
            if previous is not None and previous.role not in roles:
                roles.append(previous.role)
        return roles


class PresenceRegistry:
    """
    Identity → connection map with a reverse connection → identity index.

    Invariants:
    - at most one entry per identity
    - no two entries share a connection id
    """

    def __init__(self):
        self._entries: Dict[Optional[str], PresenceEntry] = {}
        self._by_sid: Dict[str, Optional[str]] = {}

    def connect(
        self,
        identity: Optional[str],
        role: str,
        sid: str,
        display_name: Optional[str] = None
    ) -> Registration:
        """Insert or replace the entry for `identity`. Never fails."""
        displaced = None
        if sid in self._by_sid and self._by_sid[sid] != identity:
            displaced = self._entries.pop(self._by_sid[sid], None)

        replaced = self._entries.get(identity)
        if replaced is not None and replaced.sid != sid:
            # The stale connection stays open but no longer owns this identity
            self._by_sid.pop(replaced.sid, None)

        entry = PresenceEntry(identity=identity, sid=sid, role=role, display_name=display_name)
        self._entries[identity] = entry
        self._by_sid[sid] = identity
        return Registration(entry=entry, replaced=replaced, displaced=displaced)

    def disconnect(self, sid: str) -> Optional[PresenceEntry]:
        """Remove and return the entry owned by `sid`, or None if it owns none"""
        if sid not in self._by_sid:
            return None
        identity = self._by_sid.pop(sid)
        return self._entries.pop(identity, None)

    def snapshot(self, role: str) -> List[Optional[str]]:
        """Identities currently online with `role`, in registry order"""
        return [identity for identity, entry in self._entries.items() if entry.role == role]

    def get(self, identity: Optional[str]) -> Optional[PresenceEntry]:
        return self._entries.get(identity)

    def entry_for_sid(self, sid: str) -> Optional[PresenceEntry]:
        if sid not in self._by_sid:
            return None
        return self._entries.get(self._by_sid[sid])

    def entries(self, role: Optional[str] = None) -> Iterator[PresenceEntry]:
        for entry in list(self._entries.values()):
            if role is None or entry.role == role:
                yield entry

    def count(self, role: Optional[str] = None) -> int:
        return sum(1 for _ in self.entries(role))

    def clear(self) -> None:
        self._entries.clear()
        self._by_sid.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries


class PresenceService:
    """Registers connections and broadcasts the per-role online lists"""

    def __init__(self, registry: PresenceRegistry, gateway: RealtimeGateway):
        self.registry = registry
        self.gateway = gateway

    async def register(
        self,
        sid: str,
        identity: Optional[str],
        role: str,
        display_name: Optional[str] = None
    ) -> Registration:
        registration = self.registry.connect(identity, role, sid, display_name)

        if registration.replaced is not None and registration.replaced.sid != sid:
            logger.info(f"Identity {identity} reconnected on {sid}, replacing {registration.replaced.sid}")
        if registration.displaced is not None:
            logger.warning(
                f"Connection {sid} re-registered as {identity}, dropping {registration.displaced.identity}"
            )

        for affected_role in registration.affected_roles():
            await self.broadcast_status(affected_role)

        logger.info(f"User registered: {identity} ({role}) {display_name or ''}".rstrip())
        return registration

    async def unregister(self, sid: str) -> Optional[PresenceEntry]:
        entry = self.registry.disconnect(sid)
        if entry is None:
            return None

        await self.broadcast_status(entry.role)
        logger.info(f"User disconnected: {entry.identity} ({entry.role})")
        return entry

    async def broadcast_status(self, role: str) -> None:
        event = STATUS_EVENTS.get(role, STATUS_EVENTS[UserRole.STUDENT.value])
        await self.gateway.broadcast(event, self.registry.snapshot(role))

    def online(self) -> Dict[str, List[Optional[str]]]:
        return {
            "counselors": self.registry.snapshot(UserRole.COUNSELOR.value),
            "students": self.registry.snapshot(UserRole.STUDENT.value),
        }
