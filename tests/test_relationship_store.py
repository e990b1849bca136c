"""
Tests for the SQL-backed counselor relationship store
"""
import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from counselchat.core.exceptions import RelationshipStoreError
from counselchat.models.relationship import InsertOutcome, Relationship, StudentEntry
from counselchat.services.relationship_store import SQLRelationshipStore


class TestFindRelationship:

    @pytest.mark.asyncio
    async def test_unknown_counselor(self, store):
        assert await store.find_relationship("nobody@uni.edu") is None

    @pytest.mark.asyncio
    async def test_empty_relationship(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")

        relationship = await store.find_relationship("dr.bob@uni.edu")

        assert relationship.counselor_id == "dr.bob@uni.edu"
        assert relationship.students == []

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self, store, make_counselor):
        await make_counselor(email="  Dr.Bob@Uni.edu ")

        relationship = await store.find_relationship("DR.BOB@uni.edu")

        assert relationship is not None
        assert relationship.counselor_id == "dr.bob@uni.edu"


class TestAddStudentIfAbsent:

    @pytest.mark.asyncio
    async def test_adds_new_student(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")

        outcome = await store.add_student_if_absent("dr.bob@uni.edu", "alice")

        assert outcome == InsertOutcome.ADDED
        relationship = await store.find_relationship("dr.bob@uni.edu")
        assert relationship.student_ids() == ["alice"]
        assert relationship.students[0].last_message_at is not None

    @pytest.mark.asyncio
    async def test_second_insert_is_noop(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")

        await store.add_student_if_absent("dr.bob@uni.edu", "alice")
        outcome = await store.add_student_if_absent("dr.bob@uni.edu", "alice")

        assert outcome == InsertOutcome.ALREADY_PRESENT
        relationship = await store.find_relationship("dr.bob@uni.edu")
        assert relationship.student_ids() == ["alice"]

    @pytest.mark.asyncio
    async def test_missing_counselor(self, store):
        outcome = await store.add_student_if_absent("ghost@uni.edu", "alice")

        assert outcome == InsertOutcome.COUNSELOR_MISSING

    @pytest.mark.asyncio
    async def test_preserves_first_contact_order(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")

        for student in ("carl", "alice", "bea", "alice"):
            await store.add_student_if_absent("dr.bob@uni.edu", student)

        relationship = await store.find_relationship("dr.bob@uni.edu")
        assert relationship.student_ids() == ["carl", "alice", "bea"]

    @pytest.mark.asyncio
    async def test_relationships_are_per_counselor(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")
        await make_counselor(email="dr.carol@uni.edu")

        await store.add_student_if_absent("dr.bob@uni.edu", "alice")
        outcome = await store.add_student_if_absent("dr.carol@uni.edu", "alice")

        assert outcome == InsertOutcome.ADDED
        assert (await store.find_relationship("dr.carol@uni.edu")).student_ids() == ["alice"]

    @pytest.mark.asyncio
    async def test_concurrent_inserts_collapse_to_one(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")

        outcomes = await asyncio.gather(
            store.add_student_if_absent("dr.bob@uni.edu", "alice"),
            store.add_student_if_absent("dr.bob@uni.edu", "alice"),
        )

        assert sorted(outcomes) == sorted([InsertOutcome.ADDED, InsertOutcome.ALREADY_PRESENT])
        relationship = await store.find_relationship("dr.bob@uni.edu")
        assert relationship.student_ids() == ["alice"]

    @pytest.mark.asyncio
    async def test_database_failure_raises_store_error(self, database):
        class BrokenSession:
            async def __aenter__(self):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

            async def __aexit__(self, *args):
                return False

        broken = SQLRelationshipStore(session_factory=BrokenSession)

        with pytest.raises(RelationshipStoreError):
            await broken.add_student_if_absent("dr.bob@uni.edu", "alice")


class TestSave:

    @pytest.mark.asyncio
    async def test_save_appends_and_updates(self, store, make_counselor):
        await make_counselor(email="dr.bob@uni.edu")
        await store.add_student_if_absent("dr.bob@uni.edu", "alice")

        relationship = await store.find_relationship("dr.bob@uni.edu")
        later = datetime(2030, 1, 1, tzinfo=timezone.utc)
        relationship.students[0].last_message_at = later
        assert relationship.add_student("bea", later)
        await store.save(relationship)

        reloaded = await store.find_relationship("dr.bob@uni.edu")
        assert reloaded.student_ids() == ["alice", "bea"]
        assert reloaded.students[0].last_message_at.replace(tzinfo=timezone.utc) == later

    @pytest.mark.asyncio
    async def test_save_unknown_counselor(self, store):
        relationship = Relationship(counselor_id="ghost@uni.edu", students=[StudentEntry("alice")])

        with pytest.raises(RelationshipStoreError):
            await store.save(relationship)
