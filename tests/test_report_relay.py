"""
Tests for report and event relays
"""
import pytest

from counselchat.schemas.events import GenericEventPayload, ReportPayload, parse_event
from counselchat.services.event_announcer import EventAnnouncer
from counselchat.services.metrics import RelayMetrics
from counselchat.services.presence import PresenceRegistry
from counselchat.services.report_relay import ReportRelay


def report(**overrides) -> ReportPayload:
    data = {"studentId": "alice", "counselorId": "dr.bob", "reason": "spam"}
    data.update(overrides)
    return parse_event(ReportPayload, "report_student", data)


@pytest.fixture
def registry():
    registry = PresenceRegistry()
    registry.connect("dr.bob", "counselor", "s2")
    registry.connect("dr.carol", "counselor", "s4")
    registry.connect("alice", "student", "s1")
    return registry


@pytest.fixture
def metrics():
    return RelayMetrics()


@pytest.fixture
def relay(registry, gateway, metrics):
    return ReportRelay(registry, gateway, metrics)


class TestReportRelay:

    @pytest.mark.asyncio
    async def test_report_fan_out(self, relay, gateway, metrics):
        notified = await relay.report(report())

        assert notified == ["dr.bob", "dr.carol"]

        [(event, data)] = gateway.sent_to("s2")
        assert event == "report_notification"
        assert data["studentId"] == "alice"
        assert data["counselorId"] == "dr.bob"
        assert data["reason"] == "spam"
        assert data["timestamp"].endswith("Z")

        [(event, data)] = gateway.sent_to("s4")
        assert event == "counselor_report_notification"
        assert data["studentId"] == "alice"
        assert data["reportedBy"] == "dr.bob"
        assert "reason" not in data

        assert gateway.sent_to("s1") == []
        assert gateway.broadcasts == []
        assert metrics.reports_relayed == 1

    @pytest.mark.asyncio
    async def test_offline_reporter_still_notifies_others(self, relay, gateway):
        notified = await relay.report(report(counselorId="dr.offline"))

        assert notified == ["dr.bob", "dr.carol"]
        assert all(event == "counselor_report_notification" for _, event, _ in gateway.sends)

    @pytest.mark.asyncio
    async def test_student_identity_is_not_a_report_target(self, relay, gateway):
        await relay.report(report(counselorId="alice"))

        assert gateway.sent_to("s1") == []

    @pytest.mark.asyncio
    async def test_no_counselors_online(self, gateway, metrics):
        relay = ReportRelay(PresenceRegistry(), gateway, metrics)

        assert await relay.report(report()) == []
        assert gateway.sends == []
        assert metrics.reports_relayed == 1


class TestEventAnnouncer:

    @pytest.mark.asyncio
    async def test_announce_broadcasts(self, gateway):
        metrics = RelayMetrics()
        announcer = EventAnnouncer(gateway, metrics)
        event = parse_event(GenericEventPayload, "new_event", {"name": "Career Fair", "id": 7})

        payload = await announcer.announce(event)

        assert payload == {"eventName": "Career Fair", "eventId": 7}
        assert gateway.broadcasts == [("new_event_notification", payload)]
        assert metrics.events_announced == 1
