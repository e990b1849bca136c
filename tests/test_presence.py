"""
Tests for presence tracking and status broadcasts
"""
import pytest

from counselchat.services.presence import PresenceRegistry, PresenceService


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def presence(registry, gateway):
    return PresenceService(registry, gateway)


class TestPresenceRegistry:
    """Registry bookkeeping without any I/O"""

    def test_connect_and_snapshot(self, registry):
        registry.connect("alice", "student", "s1")
        registry.connect("dr.bob", "counselor", "s2")
        registry.connect("carl", "student", "s3")

        assert registry.snapshot("student") == ["alice", "carl"]
        assert registry.snapshot("counselor") == ["dr.bob"]
        assert len(registry) == 3
        assert "alice" in registry

    def test_reconnect_replaces_entry(self, registry):
        registry.connect("alice", "student", "s1")
        registration = registry.connect("alice", "student", "s9")

        assert registration.replaced.sid == "s1"
        assert registry.get("alice").sid == "s9"
        assert registry.snapshot("student") == ["alice"]
        # The stale connection no longer owns the identity
        assert registry.disconnect("s1") is None
        assert "alice" in registry

    def test_same_connection_new_identity_displaces_old(self, registry):
        registry.connect("alice", "student", "s1")
        registration = registry.connect("dr.bob", "counselor", "s1")

        assert registration.displaced.identity == "alice"
        assert "alice" not in registry
        assert registry.entry_for_sid("s1").identity == "dr.bob"
        assert registration.affected_roles() == ["counselor", "student"]

    def test_disconnect_unknown_connection(self, registry):
        registry.connect("alice", "student", "s1")

        assert registry.disconnect("nope") is None
        assert registry.snapshot("student") == ["alice"]

    def test_disconnect_removes_entry(self, registry):
        registry.connect("alice", "student", "s1")

        entry = registry.disconnect("s1")

        assert entry.identity == "alice"
        assert registry.count() == 0
        assert registry.entry_for_sid("s1") is None

    def test_count_by_role(self, registry):
        registry.connect("alice", "student", "s1")
        registry.connect("dr.bob", "counselor", "s2")

        assert registry.count("student") == 1
        assert registry.count("counselor") == 1
        assert registry.count() == 2

        registry.clear()
        assert registry.count() == 0


class TestPresenceService:
    """Status broadcasts on register and disconnect"""

    @pytest.mark.asyncio
    async def test_student_register_broadcasts_student_status(self, presence, gateway):
        await presence.register("s1", "alice", "student", "Alice")

        assert gateway.broadcasts == [("student_status_change", ["alice"])]

    @pytest.mark.asyncio
    async def test_counselor_register_broadcasts_counselor_status(self, presence, gateway):
        await presence.register("s2", "dr.bob", "counselor", "Dr. Bob")

        assert gateway.broadcasts == [("counselor_status_change", ["dr.bob"])]

    @pytest.mark.asyncio
    async def test_broadcast_matches_snapshot(self, presence, registry, gateway):
        await presence.register("s1", "alice", "student")
        await presence.register("s3", "carl", "student")

        last_event, last_list = gateway.broadcasts[-1]
        assert last_event == "student_status_change"
        assert last_list == registry.snapshot("student") == ["alice", "carl"]

    @pytest.mark.asyncio
    async def test_disconnect_broadcasts_for_role_only(self, presence, gateway):
        await presence.register("s1", "alice", "student")
        await presence.register("s2", "dr.bob", "counselor")
        gateway.reset()

        entry = await presence.unregister("s2")

        assert entry.identity == "dr.bob"
        assert gateway.broadcasts == [("counselor_status_change", [])]

    @pytest.mark.asyncio
    async def test_disconnect_unknown_connection_is_silent(self, presence, gateway):
        await presence.register("s1", "alice", "student")
        gateway.reset()

        assert await presence.unregister("unknown") is None
        assert gateway.broadcasts == []

    @pytest.mark.asyncio
    async def test_reconnect_keeps_single_entry(self, presence, registry, gateway):
        await presence.register("s1", "alice", "student")
        await presence.register("s9", "alice", "student")

        assert registry.snapshot("student") == ["alice"]
        assert registry.get("alice").sid == "s9"
        assert gateway.broadcasts[-1] == ("student_status_change", ["alice"])

    @pytest.mark.asyncio
    async def test_role_change_broadcasts_both_roles(self, presence, gateway):
        await presence.register("s1", "x", "student")
        gateway.reset()

        await presence.register("s1", "x", "counselor")

        assert ("counselor_status_change", ["x"]) in gateway.broadcasts
        assert ("student_status_change", []) in gateway.broadcasts

    @pytest.mark.asyncio
    async def test_online_lists(self, presence):
        await presence.register("s1", "alice", "student")
        await presence.register("s2", "dr.bob", "counselor")

        assert presence.online() == {"counselors": ["dr.bob"], "students": ["alice"]}
