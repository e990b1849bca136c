"""
Moderation report relay

Delivers a student report to the reporting counselor's own connection and
notifies every other online counselor. Nothing is persisted.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from counselchat.schemas.events import (
    ReportPayload,
    UserRole,
    build_counselor_report_notification,
    build_report_notification,
)
from counselchat.services.gateway import RealtimeGateway
from counselchat.services.metrics import RelayMetrics
from counselchat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class ReportRelay:
    """Routes `report_student` events to counselors"""

    def __init__(
        self,
        registry: PresenceRegistry,
        gateway: RealtimeGateway,
        metrics: Optional[RelayMetrics] = None
    ):
        self.registry = registry
        self.gateway = gateway
        self.metrics = metrics or RelayMetrics()

    async def report(self, report: ReportPayload) -> List[str]:
        """
        Relay a report.

        Returns:
            Identities of the counselors that were notified (target first
            when online).
        """
        timestamp = datetime.now(timezone.utc)
        notified: List[str] = []

        try:
            target = self.registry.get(report.counselor_id)
            if target is not None and target.role == UserRole.COUNSELOR.value:
                await self.gateway.send(target.sid, "report_notification", build_report_notification(report, timestamp))
                notified.append(target.identity)
            else:
                logger.debug(f"Report target {report.counselor_id} is offline")

            announcement = build_counselor_report_notification(report, timestamp)
            for entry in self.registry.entries(UserRole.COUNSELOR.value):
                if entry.identity == report.counselor_id:
                    continue
                await self.gateway.send(entry.sid, "counselor_report_notification", announcement)
                notified.append(entry.identity)

        except Exception as e:
            logger.error(f"Error relaying report on {report.student_id}: {e}", exc_info=True)

        self.metrics.reports_relayed += 1
        logger.info(f"Report on student {report.student_id} by {report.counselor_id} sent to {len(notified)} counselor(s)")
        return notified
