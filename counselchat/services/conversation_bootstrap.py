"""
Conversation bootstrap

Records the first time a student messages a counselor and tells connected
clients about it. Persistence failures are logged and counted, never
raised; chat delivery does not wait on this bookkeeping.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from counselchat.core.exceptions import RelationshipStoreError
from counselchat.models.relationship import InsertOutcome
from counselchat.schemas.events import build_new_student_message
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.metrics import RelayMetrics
from counselchat.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


class ConversationBootstrapService:
    """Ensures each student → counselor pairing is recorded exactly once"""

    def __init__(
        self,
        store: RelationshipStore,
        gateway: RealtimeGateway,
        metrics: Optional[RelayMetrics] = None
    ):
        self.store = store
        self.gateway = gateway
        self.metrics = metrics or RelayMetrics()

    async def bootstrap(self, counselor_id: Optional[str], student_id: Optional[str]) -> bool:
        """
        Record `student_id` in the counselor's relationship if absent.

        Returns:
            True when a new entry was persisted and announced, False for
            every no-op branch (unknown counselor, already present) and on
            failure.
        """
        if not counselor_id or not student_id:
            logger.warning(f"Skipping relationship update with missing ids: counselor={counselor_id} student={student_id}")
            return False

        try:
            outcome = await self.store.add_student_if_absent(
                counselor_id, student_id, at=datetime.now(timezone.utc)
            )
        except RelationshipStoreError as e:
            self.metrics.bootstrap_failures += 1
            logger.error(f"Error handling counselor update for {counselor_id}: {e}", exc_info=True)
            return False

        if outcome == InsertOutcome.COUNSELOR_MISSING:
            logger.debug(f"No counselor record for {counselor_id}; relationship not tracked")
            return False
        if outcome == InsertOutcome.ALREADY_PRESENT:
            return False

        self.metrics.bootstraps_recorded += 1
        logger.info(f"Recorded first message from student {student_id} to counselor {counselor_id}")
        await self.gateway.broadcast("new_student_message", build_new_student_message(counselor_id, student_id))
        return True
