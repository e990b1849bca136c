"""
CounselChat Relay Exceptions

Custom exceptions for the realtime relay.
"""

from typing import Any, Dict, List, Optional


class CounselChatError(Exception):
    """Base exception for relay errors"""
    pass


class InvalidEventPayload(CounselChatError):
    """Inbound Socket.IO event is missing fields or has malformed values"""

    def __init__(self, event: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.event = event
        self.errors = errors or []
        fields = ", ".join(
            ".".join(str(part) for part in error.get("loc", ())) or "payload"
            for error in self.errors
        )
        super().__init__(f"Invalid '{event}' payload: {fields or 'malformed'}")


class RelationshipStoreError(CounselChatError):
    """Persistence failure in the counselor relationship store"""
    pass
