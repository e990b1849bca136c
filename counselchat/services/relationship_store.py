"""
Counselor relationship store

Persists, per counselor, the students who have ever messaged them.
Counselor records themselves are provisioned by the account service; this
store only reads them and appends students.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import AsyncContextManager, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselchat.core.database import get_db_session
from counselchat.core.exceptions import RelationshipStoreError
from counselchat.models.counselor import Counselor, CounselorStudent, normalize_email
from counselchat.models.relationship import InsertOutcome, Relationship, StudentEntry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


class RelationshipStore(ABC):
    """Persistence boundary used by the conversation bootstrap"""

    @abstractmethod
    async def find_relationship(self, counselor_id: str) -> Optional[Relationship]:
        """Load a counselor's relationship record, or None if no such counselor"""

    @abstractmethod
    async def save(self, relationship: Relationship) -> None:
        """Persist the full student list of an existing counselor"""

    @abstractmethod
    async def add_student_if_absent(
        self,
        counselor_id: str,
        student_id: str,
        at: Optional[datetime] = None
    ) -> InsertOutcome:
        """Atomically append a student to a counselor's list unless already present"""


class SQLRelationshipStore(RelationshipStore):
    """
    SQLAlchemy-backed store.

    Uniqueness of (counselor, student) is enforced by the database, so
    concurrent first messages collapse to a single row.

    Raises:
        RelationshipStoreError: on any database failure
    """

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def _get_counselor(self, session: AsyncSession, counselor_id: str) -> Optional[Counselor]:
        if not counselor_id:
            return None
        result = await session.execute(
            select(Counselor).where(Counselor.email == normalize_email(counselor_id))
        )
        return result.scalar_one_or_none()

    async def find_relationship(self, counselor_id: str) -> Optional[Relationship]:
        try:
            async with self.session_factory() as session:
                counselor = await self._get_counselor(session, counselor_id)
                if counselor is None:
                    return None

                result = await session.execute(
                    select(CounselorStudent)
                    .where(CounselorStudent.counselor_id == counselor.id)
                    .order_by(CounselorStudent.id)
                )
                students = [
                    StudentEntry(student_id=row.student_id, last_message_at=row.last_message_at)
                    for row in result.scalars().all()
                ]
                return Relationship(counselor_id=counselor.email, students=students)

        except SQLAlchemyError as e:
            raise RelationshipStoreError(f"Failed to load relationship for {counselor_id}: {e}") from e

    async def save(self, relationship: Relationship) -> None:
        try:
            async with self.session_factory() as session:
                counselor = await self._get_counselor(session, relationship.counselor_id)
                if counselor is None:
                    raise RelationshipStoreError(f"Counselor {relationship.counselor_id} does not exist")

                result = await session.execute(
                    select(CounselorStudent).where(CounselorStudent.counselor_id == counselor.id)
                )
                existing = {row.student_id: row for row in result.scalars().all()}

                for entry in relationship.students:
                    row = existing.get(entry.student_id)
                    if row is None:
                        session.add(CounselorStudent(
                            counselor_id=counselor.id,
                            student_id=entry.student_id,
                            last_message_at=entry.last_message_at or datetime.now(timezone.utc),
                        ))
                    elif entry.last_message_at is not None:
                        row.last_message_at = entry.last_message_at

                await session.flush()

        except IntegrityError as e:
            raise RelationshipStoreError(
                f"Concurrent update of relationship for {relationship.counselor_id}"
            ) from e
        except SQLAlchemyError as e:
            raise RelationshipStoreError(f"Failed to save relationship for {relationship.counselor_id}: {e}") from e

    async def add_student_if_absent(
        self,
        counselor_id: str,
        student_id: str,
        at: Optional[datetime] = None
    ) -> InsertOutcome:
        try:
            async with self.session_factory() as session:
                counselor = await self._get_counselor(session, counselor_id)
                if counselor is None:
                    return InsertOutcome.COUNSELOR_MISSING

                session.add(CounselorStudent(
                    counselor_id=counselor.id,
                    student_id=student_id,
                    last_message_at=at or datetime.now(timezone.utc),
                ))
                try:
                    await session.flush()
                except IntegrityError:
                    await session.rollback()
                    return InsertOutcome.ALREADY_PRESENT

                return InsertOutcome.ADDED

        except SQLAlchemyError as e:
            raise RelationshipStoreError(
                f"Failed to record student {student_id} for counselor {counselor_id}: {e}"
            ) from e
